"""Logger configuration for the sprint planner.

Every record is tagged with the planner component that emitted it
(``orchestrator``, ``retry``, ``adapter``, ``builder`` ...) so that a single
generation can be followed across modules on the console, and filtered by
``extra.component`` in the JSON log file.
"""

import sys
from pathlib import Path

from loguru import logger

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | "
    "<magenta>{extra[component]: <12}</magenta> | <level>{message}</level> | {extra}"
)


def component_for(module_name: str | None) -> str:
    """Short component name for a module path.

    ``sprint_planner.planning.retry`` -> ``retry``; modules outside the
    package keep their top-level name.
    """
    if not module_name:
        return "unknown"
    if module_name == "sprint_planner" or module_name.startswith("sprint_planner."):
        return module_name.rsplit(".", 1)[-1]
    return module_name.split(".", 1)[0]


def _tag_component(record) -> None:
    record["extra"].setdefault("component", component_for(record["name"]))


def setup_logger(
    level: str = "INFO",
    log_file: str | None = None,
    rotation: str = "10 MB",
    retention: str = "7 days",
) -> None:
    """Configure console output and an optional JSON-lines log file.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional path of a serialized log file (one JSON record per line)
        rotation: Log rotation size (e.g., "10 MB", "1 day")
        retention: Log retention period (e.g., "7 days", "1 month")
    """
    logger.remove()
    logger.configure(patcher=_tag_component)

    logger.add(sys.stderr, format=CONSOLE_FORMAT, level=level, colorize=True)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_path,
            level=level,
            rotation=rotation,
            retention=retention,
            compression="zip",
            serialize=True,
            backtrace=True,
            diagnose=False,
        )

    logger.bind(component="logger").info(f"Sprint planner logging ready (level={level}, file={log_file or 'none'})")
