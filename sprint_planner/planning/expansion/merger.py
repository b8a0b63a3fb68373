"""Expansion Merger.

Extends an existing plan instead of replacing it. Shared by the remote
success path (remote expansion results) and the fallback path.

Guarantees:
- Existing micro-tasks are a prefix of the merged list, order preserved
- Projects, portfolio cards, title and description are carried forward
- lengthDays and totalEstimatedHours never shrink
- Prior adaptation notes text is kept; the new note is appended
"""

from collections.abc import Sequence
from dataclasses import dataclass

from loguru import logger

from sprint_planner.planning.clone import clone_value
from sprint_planner.planning.fallback.heuristics import normalize_length, round_hours
from sprint_planner.planning.schema.sprint_plan import MicroTask, Project, SprintPlanCore
from sprint_planner.planning.validate import require_valid_plan


@dataclass(frozen=True)
class ExpansionTail:
    """New content extracted from an expansion result.

    Attributes:
        micro_tasks: Micro-tasks to append after the current plan's tasks
        projects: Projects the new tasks need that the current plan lacks
    """

    micro_tasks: list[MicroTask]
    projects: list[Project]


def merge_expansion(
    current: SprintPlanCore,
    tail: Sequence[MicroTask],
    *,
    length_days: int,
    total_estimated_hours: float,
    plan_id: str | None = None,
    adaptation_note: str | None = None,
    extra_projects: Sequence[Project] = (),
    title: str | None = None,
    description: str | None = None,
) -> SprintPlanCore:
    """Build a new plan value from ``current`` plus appended content.

    The tail is appended as-is: each append is assumed novel, no
    deduplication happens here.

    Args:
        current: Sanitized snapshot of the plan being expanded (not mutated)
        tail: Micro-tasks to append
        length_days: Requested length; widened to the current length if smaller
        total_estimated_hours: Requested hours; widened to the current hours if smaller
        plan_id: Id of the new plan value (defaults to the current id)
        adaptation_note: Explanation appended to the carried-forward notes
        extra_projects: Projects appended when their id is not already present
        title: Optional title override
        description: Optional description override

    Returns:
        New, validated SprintPlanCore

    Raises:
        PlanSchemaError: If the merged plan violates the schema
    """
    seed = clone_value(current)

    projects = list(seed.projects)
    known_project_ids = {project.id for project in projects}
    for project in extra_projects:
        if project.id not in known_project_ids:
            projects.append(project)
            known_project_ids.add(project.id)

    notes = seed.adaptation_notes
    if adaptation_note and adaptation_note not in notes:
        notes = f"{notes} {adaptation_note}"

    merged_wire = {
        **seed.to_wire(),
        "id": plan_id or seed.id,
        "title": title or seed.title,
        "description": description or seed.description,
        "lengthDays": normalize_length(length_days, seed.length_days),
        "totalEstimatedHours": round_hours(max(total_estimated_hours, seed.total_estimated_hours)),
        "projects": [project.to_wire() for project in projects],
        "microTasks": [task.to_wire() for task in [*seed.micro_tasks, *tail]],
        "adaptationNotes": notes,
    }
    merged = require_valid_plan(merged_wire, code="INVALID_EXPANSION")

    logger.debug(
        "expansion_merger: Plan merged",
        plan_id=merged.id,
        previous_length=current.length_days,
        length_days=merged.length_days,
        previous_task_count=len(current.micro_tasks),
        task_count=len(merged.micro_tasks),
    )

    return merged


def remote_expansion_tail(current: SprintPlanCore, remote: SprintPlanCore) -> ExpansionTail:
    """Extract what a remote expansion result adds to ``current``.

    The remote planner may echo the current tasks back; only micro-tasks
    whose ids are new form the tail. Remote projects are kept only when a
    tail task references them and the current plan does not have them.
    """
    existing_task_ids = set(current.micro_task_ids)
    existing_project_ids = {project.id for project in current.projects}

    tasks = [task for task in remote.micro_tasks if task.id not in existing_task_ids]
    needed_project_ids = {task.project_id for task in tasks} - existing_project_ids
    projects = [project for project in remote.projects if project.id in needed_project_ids]

    return ExpansionTail(micro_tasks=tasks, projects=projects)
