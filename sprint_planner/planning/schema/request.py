"""Sprint generation request contract.

This module defines the immutable request object handed to the planner by
the objective-management collaborator. It carries everything the planner
needs (objective, learner profile, mode, prior plan) so that generation is
a pure function of the request plus stateless collaborators.
"""

from datetime import datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from sprint_planner.planning.invariants import MAX_ADDITIONAL_DAYS, MAX_ADDITIONAL_MICRO_TASKS, LengthDays
from sprint_planner.planning.schema.sprint_plan import SprintPlanCore
from sprint_planner.planning.validate import ensure_project_evidence_rubrics


class PlanningMode(StrEnum):
    SKELETON = "skeleton"
    EXPANSION = "expansion"


class RequestModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="ignore",
    )


class ObjectiveContext(RequestModel):
    """Objective driving the sprint.

    Attributes:
        id: Objective identifier (used in the derived plan id)
        title: Objective title
        description: Optional long description
        success_criteria: Measurable criteria; the first three seed fallback acceptance criteria
        required_skills: Skills the objective exercises
        priority: Optional priority rank
        status: Optional lifecycle status
    """

    id: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1)
    description: str | None = None
    success_criteria: list[str] = Field(default_factory=list)
    required_skills: list[str] = Field(default_factory=list)
    priority: int | None = None
    status: str | None = None


class LearnerProfile(RequestModel):
    id: str
    hours_per_week: float | None = Field(None, ge=0)
    strengths: list[str] = Field(default_factory=list)
    gaps: list[str] = Field(default_factory=list)
    passion_tags: list[str] = Field(default_factory=list)
    blockers: list[str] = Field(default_factory=list)
    goals: list[str] = Field(default_factory=list)


class ProgressSignals(RequestModel):
    """Progress signals read by the fallback heuristics; other keys pass through."""

    model_config = ConfigDict(extra="allow")

    streak: int | None = None
    completed_tasks: int | None = None
    completion_rate: float | None = Field(None, ge=0.0, le=1.0)


class ProfileContext(RequestModel):
    """Serialized learner context forwarded to the remote planner.

    Only ``progress`` is interpreted by the fallback heuristics; everything
    else is passed through untouched.
    """

    model_config = ConfigDict(extra="allow")

    progress: ProgressSignals | None = None


class ExpansionGoal(RequestModel):
    target_length_days: LengthDays | None = None
    additional_days: int | None = Field(None, ge=1, le=MAX_ADDITIONAL_DAYS)
    additional_micro_tasks: int | None = Field(None, ge=1, le=MAX_ADDITIONAL_MICRO_TASKS)


class PreviousSprintContext(RequestModel):
    day_number: int
    title: str | None = None
    project_titles: list[str] = Field(default_factory=list)
    deliverables: list[str] = Field(default_factory=list)
    reflection: str | None = None
    completion_percentage: float | None = None


class SprintGenerationRequest(RequestModel):
    """Complete generation request.

    ``current_plan`` accepts a raw snapshot (e.g. a stored ``plannerOutput``);
    project rubrics are repaired before the snapshot is validated, so a
    legacy plan without rubrics is still a usable expansion seed.
    """

    objective: ObjectiveContext
    learner_profile: LearnerProfile | None = None
    profile_context: ProfileContext | None = None
    mode: PlanningMode = PlanningMode.SKELETON
    current_plan: SprintPlanCore | None = None
    expansion_goal: ExpansionGoal | None = None
    prefer_length: int | None = None
    allowed_resources: list[str] | None = None
    user_language: str | None = None
    planner_version: str | None = None
    custom_instructions: list[str] = Field(default_factory=list)
    previous_sprint: PreviousSprintContext | None = None
    requested_at: datetime | None = None

    @field_validator("current_plan", mode="before")
    @classmethod
    def _repair_current_plan(cls, value: Any) -> Any:
        if isinstance(value, dict):
            return ensure_project_evidence_rubrics(value)
        return value

    @property
    def hours_per_week(self) -> float | None:
        if self.learner_profile is None:
            return None
        return self.learner_profile.hours_per_week
