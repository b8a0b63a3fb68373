"""Sprint Generation Observability.

Structured log entries for failed remote attempts and fallback activation.
Logging here is observability only and never changes control flow.
"""

from loguru import logger

from sprint_planner.planning.llm.results import FatalFailure, RetryableFailure


def log_generation_failure(
    outcome: RetryableFailure | FatalFailure,
    context: dict[str, str | int | float | bool | None],
) -> None:
    """Log a failed remote planner attempt with context.

    Args:
        outcome: The failed attempt outcome
        context: Additional context dictionary for logging (attempt, objective_id, ...)
    """
    retryable = isinstance(outcome, RetryableFailure)
    issues = [str(issue) for issue in outcome.issues] if retryable else []

    logger.warning(
        "SPRINT_GENERATION_ATTEMPT_FAILED",
        reason=outcome.reason.value,
        retryable=retryable,
        detail=outcome.message,
        issue_count=len(issues),
        issues=issues[:10],
        **context,
    )


def log_fallback_activated(reason: str | None, context: dict[str, str | int | float | bool | None]) -> None:
    logger.warning(
        "SPRINT_GENERATION_FALLBACK",
        reason=reason,
        **context,
    )
