"""Remote planner payload construction.

The payload is plain JSON (camelCase) so it can be sent to the remote
planner as-is and stored verbatim as the sprint's ``plannerInput``.
"""

from datetime import datetime
from typing import Any

from sprint_planner.planning.clone import clone_value
from sprint_planner.planning.schema.request import PreviousSprintContext, SprintGenerationRequest


def _dump(model: Any) -> dict[str, Any] | None:
    if model is None:
        return None
    return model.model_dump(mode="json", by_alias=True, exclude_none=True)


def build_planner_payload(
    request: SprintGenerationRequest,
    *,
    planner_version: str,
    requested_at: datetime,
    plan_id: str,
    default_language: str = "en",
) -> dict[str, Any]:
    """Build the remote planner request payload.

    Args:
        request: Generation request
        planner_version: Planner version tag for provenance
        requested_at: Request timestamp
        plan_id: Derived plan id
        default_language: Language used when the request does not carry one

    Returns:
        JSON-serializable payload dictionary
    """
    objective = request.objective
    profile = request.learner_profile

    return {
        "objective": {
            "id": objective.id,
            "title": objective.title,
            "description": objective.description,
            "successCriteria": list(objective.success_criteria),
            "requiredSkills": list(objective.required_skills),
            "priority": objective.priority,
            "status": objective.status,
        },
        "learnerProfile": (
            {
                "id": profile.id,
                "hoursPerWeek": profile.hours_per_week,
                "strengths": list(profile.strengths),
                "gaps": list(profile.gaps),
                "passionTags": list(profile.passion_tags),
                "blockers": list(profile.blockers),
                "goals": list(profile.goals),
            }
            if profile is not None
            else None
        ),
        "mode": request.mode.value,
        "preferLength": request.prefer_length,
        "currentPlan": request.current_plan.to_wire() if request.current_plan is not None else None,
        "expansionGoal": _dump(request.expansion_goal),
        "allowedResources": list(request.allowed_resources) if request.allowed_resources else None,
        "userLanguage": request.user_language or default_language,
        "customInstructions": list(request.custom_instructions),
        "previousSprint": _dump(request.previous_sprint),
        "context": {
            "plannerVersion": planner_version,
            "requestedAt": requested_at.isoformat(),
            "planId": plan_id,
            "profileContext": clone_value(_dump(request.profile_context)),
        },
    }


def extract_previous_sprint_context(
    *,
    day_number: int,
    planner_output: Any,
    reflection: str | None = None,
    completion_percentage: float | None = None,
) -> PreviousSprintContext:
    """Summarize a persisted sprint for continuation prompts.

    Args:
        day_number: Day number of the previous sprint
        planner_output: Stored ``plannerOutput`` of the previous sprint (any shape)
        reflection: Learner's self-evaluation reflection
        completion_percentage: Completion percentage of the previous sprint

    Returns:
        PreviousSprintContext with whatever could be read from the output
    """
    output = planner_output if isinstance(planner_output, dict) else {}
    projects = output.get("projects") if isinstance(output.get("projects"), list) else []

    project_titles: list[str] = []
    deliverables: list[str] = []
    for project in projects:
        if not isinstance(project, dict):
            continue
        if isinstance(project.get("title"), str):
            project_titles.append(project["title"])
        for deliverable in project.get("deliverables") or []:
            if isinstance(deliverable, dict) and isinstance(deliverable.get("title"), str):
                deliverables.append(deliverable["title"])

    title = output.get("title") if isinstance(output.get("title"), str) else None

    return PreviousSprintContext(
        day_number=day_number,
        title=title,
        project_titles=project_titles,
        deliverables=deliverables,
        reflection=reflection.strip() if reflection and reflection.strip() else None,
        completion_percentage=completion_percentage,
    )
