"""Sprint Plan Validator - Core.

Single validation pass enforcing the sprint plan contract on an arbitrary
candidate value (typically JSON parsed from the remote planner). Pure: no
network and no persistence.

📌 Rubric repair happens BEFORE validation. A project without a valid
evidence rubric is not a reason to reject an otherwise good plan.
"""

from dataclasses import dataclass, field
from typing import Any

from pydantic import ValidationError

from sprint_planner.planning.clone import clone_value
from sprint_planner.planning.errors import PlanSchemaError
from sprint_planner.planning.invariants import SKELETON_LENGTH_DAYS, SKELETON_MICRO_TASKS
from sprint_planner.planning.schema.sprint_plan import EvidenceRubric, SprintPlanCore, default_evidence_rubric


@dataclass(frozen=True)
class SchemaIssue:
    """One violated constraint.

    Attributes:
        path: Dotted camelCase field path (e.g. "projects.0.evidenceRubric.passThreshold")
        message: Human readable description of the expected constraint
        constraint: Machine readable constraint kind (pydantic error type or planner rule)
    """

    path: str
    message: str
    constraint: str

    def __str__(self) -> str:
        return f"{self.path or '<plan>'}: {self.message}"


@dataclass(frozen=True)
class PlanValidationResult:
    plan: SprintPlanCore | None = None
    issues: list[SchemaIssue] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.plan is not None and not self.issues


def _rubric_is_valid(rubric: Any) -> bool:
    if not isinstance(rubric, dict):
        return False
    try:
        EvidenceRubric.model_validate(rubric)
    except ValidationError:
        return False
    return True


def ensure_project_evidence_rubrics(raw_plan: Any) -> Any:
    """Repair missing or invalid project rubrics on a clone of ``raw_plan``.

    Args:
        raw_plan: Candidate plan value; non-dict values are returned cloned but untouched

    Returns:
        A cloned candidate where every project dict carries a valid ``evidenceRubric``
    """
    sanitized = clone_value(raw_plan)
    if not isinstance(sanitized, dict):
        return sanitized

    projects = sanitized.get("projects")
    if not isinstance(projects, list):
        return sanitized

    for project in projects:
        if not isinstance(project, dict):
            continue
        if not _rubric_is_valid(project.get("evidenceRubric")):
            project["evidenceRubric"] = default_evidence_rubric().to_wire()

    return sanitized


def _issues_from_validation_error(error: ValidationError) -> list[SchemaIssue]:
    return [
        SchemaIssue(
            path=".".join(str(part) for part in err["loc"]),
            message=err["msg"],
            constraint=err["type"],
        )
        for err in error.errors()
    ]


def _skeleton_issues(plan: SprintPlanCore) -> list[SchemaIssue]:
    issues: list[SchemaIssue] = []
    if plan.length_days != SKELETON_LENGTH_DAYS:
        issues.append(
            SchemaIssue(
                path="lengthDays",
                message=f"skeleton sprints must last {SKELETON_LENGTH_DAYS} day, got {plan.length_days}",
                constraint="skeleton_length",
            )
        )
    if len(plan.micro_tasks) != SKELETON_MICRO_TASKS:
        issues.append(
            SchemaIssue(
                path="microTasks",
                message=f"skeleton sprints must contain exactly {SKELETON_MICRO_TASKS} micro-tasks, got {len(plan.micro_tasks)}",
                constraint="skeleton_task_count",
            )
        )
    return issues


def validate_plan_candidate(candidate: Any, *, skeleton: bool = False) -> PlanValidationResult:
    """Sanitize and validate a candidate sprint plan.

    Args:
        candidate: Untyped candidate value (e.g. parsed JSON)
        skeleton: Also enforce the skeleton shape (1 day, exactly 3 micro-tasks)

    Returns:
        PlanValidationResult with either the typed plan or every violated constraint
    """
    sanitized = ensure_project_evidence_rubrics(candidate)
    try:
        plan = SprintPlanCore.model_validate(sanitized)
    except ValidationError as e:
        return PlanValidationResult(issues=_issues_from_validation_error(e))

    if skeleton:
        issues = _skeleton_issues(plan)
        if issues:
            return PlanValidationResult(issues=issues)

    return PlanValidationResult(plan=plan)


def require_valid_plan(candidate: Any, *, code: str = "INVALID_SPRINT_PLAN", skeleton: bool = False) -> SprintPlanCore:
    """Validate a plan that must already be valid.

    Raises:
        PlanSchemaError: If any constraint is violated
    """
    result = validate_plan_candidate(candidate, skeleton=skeleton)
    if not result.ok or result.plan is None:
        raise PlanSchemaError(code, [str(issue) for issue in result.issues])
    return result.plan
