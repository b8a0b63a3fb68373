"""SprintPlanCore - Structural Contract of a Sprint Plan.

Every plan leaving the engine conforms to these models, whichever path
produced it (remote planner, retried remote planner, heuristic fallback).
Field names are snake_case in Python and camelCase on the wire.
"""

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from sprint_planner.planning.invariants import (
    DEFAULT_PASS_THRESHOLD,
    DEFAULT_RUBRIC_DIMENSIONS,
    MAX_TASK_MINUTES,
    MIN_MICRO_TASKS,
    MIN_PROJECTS,
    MIN_TASK_MINUTES,
    MIN_TOTAL_ESTIMATED_HOURS,
    LengthDays,
)


class Difficulty(StrEnum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


class DeliverableType(StrEnum):
    REPOSITORY = "repository"
    DEPLOYMENT = "deployment"
    VIDEO = "video"
    SCREENSHOT = "screenshot"


class CheckpointType(StrEnum):
    ASSESSMENT = "assessment"
    QUIZ = "quiz"
    DEMO = "demo"


class MicroTaskType(StrEnum):
    CONCEPT = "concept"
    PRACTICE = "practice"
    PROJECT = "project"
    ASSESSMENT = "assessment"
    REFLECTION = "reflection"


class AcceptanceTestType(StrEnum):
    CHECKLIST = "checklist"
    UNIT_TESTS = "unit_tests"
    QUIZ = "quiz"
    DEMO = "demo"


class PlanModel(BaseModel):
    """Base for plan models: camelCase aliases, unknown fields ignored."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    def to_wire(self) -> dict:
        """Serialize to the camelCase JSON shape used on the wire."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class Deliverable(PlanModel):
    type: DeliverableType
    title: str
    artifact_id: str


class RubricDimension(PlanModel):
    name: str
    weight: float = Field(..., ge=0.0, le=1.0)
    levels: list[str] | None = None


class EvidenceRubric(PlanModel):
    dimensions: list[RubricDimension] = Field(..., min_length=1)
    pass_threshold: float = Field(..., ge=0.0, le=1.0)


class Checkpoint(PlanModel):
    id: str
    title: str
    type: CheckpointType
    spec: str


class Concept(PlanModel):
    id: str
    title: str
    summary: str


class PracticeKata(PlanModel):
    id: str
    title: str
    estimate_min: int = Field(..., ge=5)


class ProjectSupport(PlanModel):
    concepts: list[Concept] | None = None
    practice_katas: list[PracticeKata] | None = None
    allowed_resources: list[str] | None = None


class Reflection(PlanModel):
    prompt: str
    mood_check: bool | None = None


class Project(PlanModel):
    id: str
    title: str
    brief: str
    requirements: list[str] = Field(..., min_length=1)
    acceptance_criteria: list[str] = Field(..., min_length=1)
    deliverables: list[Deliverable] = Field(..., min_length=1)
    evidence_rubric: EvidenceRubric
    checkpoints: list[Checkpoint] | None = None
    support: ProjectSupport | None = None
    reflection: Reflection | None = None


class AcceptanceTest(PlanModel):
    type: AcceptanceTestType
    spec: str | list[str]

    @model_validator(mode="after")
    def _spec_not_empty(self) -> "AcceptanceTest":
        if isinstance(self.spec, list) and not self.spec:
            raise ValueError("acceptance test spec list must contain at least one item")
        return self


class MicroTask(PlanModel):
    id: str
    project_id: str
    title: str
    type: MicroTaskType
    estimated_minutes: int = Field(..., ge=MIN_TASK_MINUTES, le=MAX_TASK_MINUTES)
    instructions: str
    acceptance_test: AcceptanceTest
    resources: list[str] | None = None


class PortfolioLinks(PlanModel):
    repo: str | None = None
    demo: str | None = None
    video: str | None = None


class PortfolioCard(PlanModel):
    project_id: str
    cover: str | None = None
    headline: str
    badges: list[str] | None = None
    links: PortfolioLinks | None = None


class SprintPlanCore(PlanModel):
    id: str = Field(..., min_length=1)
    title: str = Field(..., min_length=3)
    description: str = Field(..., min_length=5)
    length_days: LengthDays
    total_estimated_hours: float = Field(..., ge=MIN_TOTAL_ESTIMATED_HOURS)
    difficulty: Difficulty
    projects: list[Project] = Field(..., min_length=MIN_PROJECTS)
    micro_tasks: list[MicroTask] = Field(..., min_length=MIN_MICRO_TASKS)
    portfolio_cards: list[PortfolioCard] | None = None
    adaptation_notes: str = Field(..., min_length=5)

    @model_validator(mode="after")
    def _tasks_reference_projects(self) -> "SprintPlanCore":
        project_ids = {project.id for project in self.projects}
        dangling = [task.id for task in self.micro_tasks if task.project_id not in project_ids]
        if dangling:
            raise ValueError(f"micro-tasks reference unknown projects: {', '.join(dangling)}")
        return self

    @property
    def micro_task_ids(self) -> list[str]:
        return [task.id for task in self.micro_tasks]


def default_evidence_rubric() -> EvidenceRubric:
    """Build the rubric substituted for projects that arrive without a valid one."""
    return EvidenceRubric(
        dimensions=[RubricDimension(name=name, weight=weight) for name, weight in DEFAULT_RUBRIC_DIMENSIONS],
        pass_threshold=DEFAULT_PASS_THRESHOLD,
    )
