"""Sprint Planner CLI.

Developer CLI that runs the same generation path as production on a request
read from a JSON file. ``--offline`` skips the remote planner entirely and
returns the deterministic fallback plan.
"""

import asyncio
import json
from datetime import UTC, datetime
from pathlib import Path

import typer
from loguru import logger
from pydantic import ValidationError
from rich.console import Console
from rich.json import JSON
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from sprint_planner.config.settings import settings
from sprint_planner.core.logger import setup_logger
from sprint_planner.planning.llm.adapter import OfflinePlannerAdapter, PydanticAIPlannerAdapter
from sprint_planner.planning.orchestrator import SprintPlanGenerator
from sprint_planner.planning.schema.metadata import SprintPlan
from sprint_planner.planning.schema.request import SprintGenerationRequest

console = Console()

app = typer.Typer(
    name="sprint-planner",
    help="Sprint Planner CLI - generate and expand learning sprints locally",
    add_completion=False,
)


def _setup_logging(debug: bool, log_file: str | None) -> None:
    level = "DEBUG" if debug else settings.log_level
    if log_file is None and debug:
        timestamp = datetime.now(UTC).strftime("%Y%m%d_%H%M%S")
        log_file = str(Path("logs") / f"sprint_planner_{timestamp}.log")
    setup_logger(level=level, log_file=log_file)


def _load_request(request_file: Path) -> SprintGenerationRequest:
    try:
        raw = json.loads(request_file.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        console.print(f"[red]Error:[/red] Could not read request file {escape(str(request_file))}: {escape(str(e))}", style="bold red")
        raise typer.Exit(1) from e

    try:
        return SprintGenerationRequest.model_validate(raw)
    except ValidationError as e:
        console.print(f"[red]Error:[/red] Invalid generation request:\n{escape(str(e))}", style="bold red")
        raise typer.Exit(1) from e


def _format_plan(plan: SprintPlan, pretty: bool = True) -> str:
    if pretty:
        return json.dumps(plan.to_record(), indent=2, ensure_ascii=False)
    return json.dumps(plan.to_record(), ensure_ascii=False)


def _print_summary(plan: SprintPlan) -> None:
    table = Table(title=escape(plan.title), show_lines=False)
    table.add_column("#", justify="right", style="dim")
    table.add_column("Task", style="cyan")
    table.add_column("Type")
    table.add_column("Minutes", justify="right")
    for index, task in enumerate(plan.micro_tasks, start=1):
        table.add_row(str(index), escape(task.title), task.type.value, str(task.estimated_minutes))

    provider_style = "green" if plan.metadata.provider == "remote" else "yellow"
    console.print(
        Panel(
            f"[bold]{plan.id}[/bold]\n"
            f"provider=[{provider_style}]{plan.metadata.provider.value}[/{provider_style}] "
            f"mode={plan.metadata.mode.value} lengthDays={plan.length_days} "
            f"hours={plan.total_estimated_hours} attempts={len(plan.metadata.attempts)}",
            border_style="cyan",
        )
    )
    console.print(table)


@app.command()
def generate(
    request_file: Path = typer.Argument(..., help="JSON file with a sprint generation request (camelCase)"),
    offline: bool = typer.Option(False, "--offline", help="Skip the remote planner and use the fallback plan"),
    output_file: str | None = typer.Option(None, "--output", "-o", help="Write the plan JSON to file"),
    pretty: bool = typer.Option(True, "--pretty/--no-pretty", help="Pretty print JSON output"),
    debug: bool = typer.Option(False, "--debug", help="Enable debug logging"),
    log_file: str | None = typer.Option(None, "--log-file", help="Also write JSON logs to this file"),
) -> None:
    """Generate a sprint plan (skeleton or expansion, as set in the request)."""
    _setup_logging(debug, log_file)
    request = _load_request(request_file)

    adapter = OfflinePlannerAdapter() if offline else PydanticAIPlannerAdapter()
    generator = SprintPlanGenerator(adapter)
    plan = asyncio.run(generator.generate(request))

    output = _format_plan(plan, pretty)
    if output_file:
        Path(output_file).write_text(output, encoding="utf-8")
        logger.info(f"Plan written to {output_file}")
        _print_summary(plan)
    else:
        console.print(JSON(output))


@app.command()
def show_config() -> None:
    """Show the effective planner configuration (secrets masked)."""
    values = settings.model_dump()
    if values.get("openai_api_key"):
        values["openai_api_key"] = "***"
    console.print(JSON(json.dumps(values)))


if __name__ == "__main__":
    app()
