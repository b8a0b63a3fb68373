"""Remote Planner Result Types.

Adapter outputs and per-attempt outcomes are tagged values, not
exceptions, so that retry branching is explicit data.
All types are frozen dataclasses for immutability.
"""

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from sprint_planner.planning.schema.sprint_plan import SprintPlanCore
from sprint_planner.planning.validate import SchemaIssue


class AdapterFailureKind(StrEnum):
    INVALID_JSON = "invalid_json"
    PROVIDER_ERROR = "provider_error"


class FailureReason(StrEnum):
    INVALID_JSON = "invalid_json"
    SCHEMA_VALIDATION_FAILURE = "schema_validation_failure"
    PROVIDER_ERROR = "provider_error"


@dataclass(frozen=True)
class RequestTelemetry:
    """Telemetry for one remote planner call.

    Attributes:
        provider: Remote provider name (e.g. "openai", "lmstudio")
        model: Model identifier
        latency_ms: Wall time of the call in milliseconds
        prompt_hash: SHA-256 of the rendered prompt
        timed_out: Whether the call hit the adapter timeout
    """

    provider: str
    model: str
    latency_ms: int = 0
    prompt_hash: str | None = None
    timed_out: bool = False


@dataclass(frozen=True)
class AdapterSuccess:
    candidate: Any
    telemetry: RequestTelemetry


@dataclass(frozen=True)
class AdapterFailure:
    kind: AdapterFailureKind
    message: str
    telemetry: RequestTelemetry

    @property
    def retryable(self) -> bool:
        return self.kind == AdapterFailureKind.INVALID_JSON


AdapterResult = AdapterSuccess | AdapterFailure


@dataclass(frozen=True)
class Ok:
    plan: SprintPlanCore
    raw: Any = None


@dataclass(frozen=True)
class RetryableFailure:
    reason: FailureReason
    message: str
    issues: list[SchemaIssue] = field(default_factory=list)


@dataclass(frozen=True)
class FatalFailure:
    reason: FailureReason
    message: str


AttemptOutcome = Ok | RetryableFailure | FatalFailure
