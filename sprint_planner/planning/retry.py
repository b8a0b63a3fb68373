"""Bounded remote planner retries.

Each attempt asks the adapter for a candidate and validates it. Attempt
results are tagged values (Ok | RetryableFailure | FatalFailure) so the
branching below is plain data inspection.

State machine:
    ATTEMPTING -> SUCCEEDED          valid plan
    ATTEMPTING -> RETRYING           invalid JSON or schema failure, attempts left
    RETRYING   -> ATTEMPTING         after the backoff sleep
    ATTEMPTING -> EXHAUSTED          fatal failure, or no attempts left

EXHAUSTED is not an error: the orchestrator falls back to the heuristic plan.
"""

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from loguru import logger

from sprint_planner.config.settings import settings
from sprint_planner.planning.invariants import BACKOFF_SCHEDULE_MS, DEFAULT_MAX_ATTEMPTS
from sprint_planner.planning.llm.adapter import RemoteGenerationAdapter
from sprint_planner.planning.llm.results import (
    AdapterFailure,
    AdapterResult,
    AttemptOutcome,
    FailureReason,
    FatalFailure,
    Ok,
    RequestTelemetry,
    RetryableFailure,
)
from sprint_planner.planning.logging import log_generation_failure
from sprint_planner.planning.schema.metadata import AttemptRecord
from sprint_planner.planning.validate import validate_plan_candidate

Sleep = Callable[[float], Awaitable[Any]]


class RetryState(StrEnum):
    ATTEMPTING = "attempting"
    RETRYING = "retrying"
    EXHAUSTED = "exhausted"
    SUCCEEDED = "succeeded"


@dataclass
class RetryOutcome:
    """Terminal result of a retry run.

    Attributes:
        state: SUCCEEDED or EXHAUSTED
        result: The successful attempt, when there is one
        attempts: One record per adapter call, in order
        last_failure: Outcome of the final failed attempt
    """

    state: RetryState
    result: Ok | None = None
    attempts: list[AttemptRecord] = field(default_factory=list)
    last_failure: RetryableFailure | FatalFailure | None = None

    @property
    def ok(self) -> bool:
        return self.state == RetryState.SUCCEEDED and self.result is not None


def backoff_delay_ms(attempt_index: int, schedule: Sequence[int] = BACKOFF_SCHEDULE_MS) -> int:
    """Delay before the retry that follows attempt ``attempt_index`` (0-based).

    Indices past the end of the schedule reuse its last entry.
    """
    if not schedule:
        return 0
    return schedule[min(max(attempt_index, 0), len(schedule) - 1)]


def classify_attempt(result: AdapterResult, *, skeleton: bool = False) -> AttemptOutcome:
    """Turn an adapter result into a tagged attempt outcome."""
    if isinstance(result, AdapterFailure):
        if result.retryable:
            return RetryableFailure(reason=FailureReason.INVALID_JSON, message=result.message)
        return FatalFailure(reason=FailureReason.PROVIDER_ERROR, message=result.message)

    validation = validate_plan_candidate(result.candidate, skeleton=skeleton)
    if validation.ok and validation.plan is not None:
        return Ok(plan=validation.plan, raw=result.candidate)

    return RetryableFailure(
        reason=FailureReason.SCHEMA_VALIDATION_FAILURE,
        message=f"Remote plan failed schema validation ({len(validation.issues)} issues)",
        issues=list(validation.issues),
    )


def _attempt_record(attempt: int, outcome: AttemptOutcome, telemetry: RequestTelemetry | None) -> AttemptRecord:
    if isinstance(outcome, Ok):
        kind, reason, message, issue_count = "success", None, None, 0
    elif isinstance(outcome, RetryableFailure):
        kind, reason, message, issue_count = "retryable_failure", outcome.reason.value, outcome.message, len(outcome.issues)
    else:
        kind, reason, message, issue_count = "fatal_failure", outcome.reason.value, outcome.message, 0

    return AttemptRecord(
        attempt=attempt,
        outcome=kind,
        reason=reason,
        message=message,
        issue_count=issue_count,
        provider=telemetry.provider if telemetry else None,
        model=telemetry.model if telemetry else None,
        latency_ms=telemetry.latency_ms if telemetry else None,
        prompt_hash=telemetry.prompt_hash if telemetry else None,
        timed_out=telemetry.timed_out if telemetry else False,
    )


class RetryController:
    """Runs up to ``max_attempts`` adapter calls with fixed backoff between them."""

    def __init__(
        self,
        adapter: RemoteGenerationAdapter,
        *,
        sleep: Sleep = asyncio.sleep,
        max_attempts: int | None = None,
        backoff_schedule_ms: Sequence[int] | None = None,
    ):
        self.adapter = adapter
        self.sleep = sleep
        requested = max_attempts if max_attempts is not None else settings.max_attempts
        self.max_attempts = max(1, min(requested, DEFAULT_MAX_ATTEMPTS))
        self.backoff_schedule_ms = (
            list(backoff_schedule_ms) if backoff_schedule_ms is not None else list(settings.backoff_schedule_ms)
        )
        self.state = RetryState.ATTEMPTING

    async def run(
        self,
        payload: dict[str, Any],
        *,
        skeleton: bool = False,
        context: dict[str, str | int | float | bool | None] | None = None,
    ) -> RetryOutcome:
        """Call the adapter until a valid plan arrives or attempts run out.

        Args:
            payload: Remote planner payload
            skeleton: Enforce the skeleton shape on remote candidates
            context: Extra structured logging context (objective id, mode, ...)

        Returns:
            RetryOutcome; never raises for adapter or validation failures
        """
        log_context = dict(context or {})
        attempts: list[AttemptRecord] = []
        last_failure: RetryableFailure | FatalFailure | None = None
        self.state = RetryState.ATTEMPTING

        for attempt in range(1, self.max_attempts + 1):
            logger.info(f"sprint_planner: Remote attempt {attempt}/{self.max_attempts}", attempt=attempt, **log_context)

            telemetry: RequestTelemetry | None = None
            try:
                result = await self.adapter.generate(payload)
            except Exception as e:
                logger.exception("sprint_planner: Remote adapter raised", attempt=attempt, **log_context)
                outcome: AttemptOutcome = FatalFailure(
                    reason=FailureReason.PROVIDER_ERROR,
                    message=f"{type(e).__name__}: {e}",
                )
            else:
                telemetry = result.telemetry
                outcome = classify_attempt(result, skeleton=skeleton)

            attempts.append(_attempt_record(attempt, outcome, telemetry))

            if isinstance(outcome, Ok):
                self.state = RetryState.SUCCEEDED
                logger.info(
                    "sprint_planner: Remote plan accepted",
                    attempt=attempt,
                    latency_ms=telemetry.latency_ms if telemetry else None,
                    **log_context,
                )
                return RetryOutcome(state=self.state, result=outcome, attempts=attempts)

            last_failure = outcome
            log_generation_failure(
                outcome,
                {
                    "attempt": attempt,
                    "max_attempts": self.max_attempts,
                    "timed_out": telemetry.timed_out if telemetry else False,
                    **log_context,
                },
            )

            if isinstance(outcome, FatalFailure) or attempt >= self.max_attempts:
                break

            self.state = RetryState.RETRYING
            delay_ms = backoff_delay_ms(attempt - 1, self.backoff_schedule_ms)
            logger.debug(f"sprint_planner: Retrying in {delay_ms}ms", attempt=attempt, delay_ms=delay_ms, **log_context)
            await self.sleep(delay_ms / 1000)
            self.state = RetryState.ATTEMPTING

        self.state = RetryState.EXHAUSTED
        logger.warning(
            "sprint_planner: Remote attempts exhausted",
            attempts=len(attempts),
            reason=last_failure.reason.value if last_failure else None,
            **log_context,
        )
        return RetryOutcome(state=self.state, attempts=attempts, last_failure=last_failure)
