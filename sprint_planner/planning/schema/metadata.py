"""Plan provenance and the assembled SprintPlan output."""

from enum import StrEnum
from typing import Any

from pydantic import Field

from sprint_planner.planning.schema.request import ExpansionGoal, PlanningMode
from sprint_planner.planning.schema.sprint_plan import PlanModel, SprintPlanCore


class PlanProvider(StrEnum):
    REMOTE = "remote"
    FALLBACK = "fallback"


class AttemptRecord(PlanModel):
    attempt: int
    outcome: str  # success | retryable_failure | fatal_failure
    reason: str | None = None
    message: str | None = None
    issue_count: int = 0
    provider: str | None = None
    model: str | None = None
    latency_ms: int | None = None
    prompt_hash: str | None = None
    timed_out: bool = False


class PlanMetadata(PlanModel):
    plan_id: str
    planner_version: str
    requested_at: str
    provider: PlanProvider
    objective_id: str
    learner_profile_id: str | None = None
    mode: PlanningMode
    incremental: bool = False
    expansion_goal: ExpansionGoal | None = None
    prefer_length: int | None = None
    attempts: list[AttemptRecord] = Field(default_factory=list)


class SprintPlan(SprintPlanCore):
    """Assembled plan returned to the caller.

    ``planner_input``/``planner_output`` form the audit pair the persistence
    collaborator stores alongside the sprint row.
    """

    planner_input: dict[str, Any] = Field(default_factory=dict)
    planner_output: dict[str, Any] = Field(default_factory=dict)
    metadata: PlanMetadata

    def to_record(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)
