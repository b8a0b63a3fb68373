"""Deterministic Fallback Planner.

Used when the remote planner fails, is unreachable, or keeps returning
non-conformant output. Guarantees a schema-valid plan without any
external call.

Strategy:
- Skeleton mode: 1 day, one templated project, exactly 3 micro-tasks
- Expansion mode: the current plan is the seed; new micro-tasks are
  appended from a fixed rotation of templates and length/hours only grow
"""

import re

from loguru import logger

from sprint_planner.planning.expansion.merger import merge_expansion
from sprint_planner.planning.fallback.heuristics import (
    additional_task_count,
    build_adaptation_notes,
    expansion_hours,
    resolve_difficulty,
    resolve_expansion_length,
    skeleton_hours,
)
from sprint_planner.planning.invariants import (
    MAX_TASK_MINUTES,
    MIN_TASK_MINUTES,
    SKELETON_LENGTH_DAYS,
    SKELETON_MICRO_TASKS,
)
from sprint_planner.planning.schema.request import PlanningMode, SprintGenerationRequest
from sprint_planner.planning.schema.sprint_plan import (
    AcceptanceTest,
    AcceptanceTestType,
    Checkpoint,
    CheckpointType,
    Concept,
    Deliverable,
    DeliverableType,
    Difficulty,
    MicroTask,
    MicroTaskType,
    PortfolioCard,
    PortfolioLinks,
    PracticeKata,
    Project,
    ProjectSupport,
    Reflection,
    SprintPlanCore,
    default_evidence_rubric,
)
from sprint_planner.planning.validate import require_valid_plan

DEFAULT_ACCEPTANCE_CRITERIA: list[str] = [
    "Submit code repository",
    "Record demo or screenshots",
    "Write sprint retrospective",
]

CHECKLIST_SPEC: list[str] = [
    "Document progress with screenshots or notes",
    "List blockers and mitigation plan",
    "Attach supporting evidence links",
]

_TASK_NUMBER = re.compile(r"^(?P<prefix>.*?)(?P<number>\d+)$")


def _clamp_minutes(minutes: float) -> int:
    rounded = int(round(minutes / 5) * 5)
    return max(MIN_TASK_MINUTES, min(MAX_TASK_MINUTES, rounded))


def _description_for(title: str, description: str | None) -> str:
    if description and len(description.strip()) >= 5:
        return description.strip()
    return f"Sprint focusing on {title}."


def _build_project(plan_id: str, request: SprintGenerationRequest, difficulty: Difficulty) -> Project:
    objective = request.objective
    project_id = f"{plan_id}_project"

    requirements = [
        "Follow accessible and inclusive best practices",
        "Document project decisions in README",
        f"Highlight how this work contributes to {objective.title}",
    ]
    if difficulty == Difficulty.BEGINNER:
        requirements.append("Include learning journal notes in repository.")

    support = ProjectSupport(
        concepts=[
            Concept(
                id=f"{plan_id}_concept_scope",
                title="Scope definition",
                summary="Clarify MVP vs stretch tasks before starting.",
            )
        ],
        practice_katas=[
            PracticeKata(
                id=f"{plan_id}_kata_tests",
                title="Write smoke tests for critical flows",
                estimate_min=30,
            )
        ],
        allowed_resources=list(request.allowed_resources) if request.allowed_resources else None,
    )

    return Project(
        id=project_id,
        title=f"{objective.title} project",
        brief=objective.description or f"Ship a tangible artifact for {objective.title}.",
        requirements=requirements,
        acceptance_criteria=objective.success_criteria[:3] or list(DEFAULT_ACCEPTANCE_CRITERIA),
        deliverables=[
            Deliverable(type=DeliverableType.REPOSITORY, title="Repository link", artifact_id=f"{project_id}_repo"),
            Deliverable(type=DeliverableType.DEPLOYMENT, title="Demo link", artifact_id=f"{project_id}_demo"),
        ],
        evidence_rubric=default_evidence_rubric(),
        checkpoints=[
            Checkpoint(
                id=f"{plan_id}_checkpoint_demo",
                title="End-of-day demo",
                type=CheckpointType.DEMO,
                spec="Walk through the core slice and capture blockers.",
            )
        ],
        support=support,
        reflection=Reflection(
            prompt="What did this sprint change about your understanding of the objective?",
            mood_check=True,
        ),
    )


def _build_skeleton_tasks(plan_id: str, project_id: str, request: SprintGenerationRequest, hours: float) -> list[MicroTask]:
    title = request.objective.title
    total_minutes = hours * 60
    resources = list(request.allowed_resources[:3]) if request.allowed_resources else None

    templates: list[tuple[str, MicroTaskType, float, str]] = [
        (
            f"Frame the sprint for {title}",
            MicroTaskType.CONCEPT,
            0.25,
            f"Capture key outcomes you aim to achieve for {title}. Share blockers or open questions.",
        ),
        (
            f"Ship the core slice of {title}",
            MicroTaskType.PROJECT,
            0.5,
            "Implement the smallest end-to-end version of the main functionality and document tradeoffs in the README.",
        ),
        (
            "Evidence & reflection package",
            MicroTaskType.REFLECTION,
            0.25,
            "Record a quick demo, collect links/screenshots, and note learning takeaways.",
        ),
    ]

    return [
        MicroTask(
            id=f"{plan_id}_task_{idx}",
            project_id=project_id,
            title=task_title,
            type=task_type,
            estimated_minutes=_clamp_minutes(total_minutes * share),
            instructions=instructions,
            acceptance_test=AcceptanceTest(type=AcceptanceTestType.CHECKLIST, spec=list(CHECKLIST_SPEC)),
            resources=resources if task_type == MicroTaskType.CONCEPT else None,
        )
        for idx, (task_title, task_type, share, instructions) in enumerate(templates, start=1)
    ]


def build_skeleton_plan(request: SprintGenerationRequest, *, plan_id: str) -> SprintPlanCore:
    """Build the 1-day, 3-task skeleton sprint.

    Args:
        request: Generation request
        plan_id: Derived plan id (also the prefix of every generated id)

    Returns:
        Schema-valid SprintPlanCore
    """
    objective = request.objective
    difficulty = resolve_difficulty(request.learner_profile, objective.required_skills)
    hours = skeleton_hours(request.hours_per_week)

    project = _build_project(plan_id, request, difficulty)
    micro_tasks = _build_skeleton_tasks(plan_id, project.id, request, hours)

    plan = SprintPlanCore(
        id=plan_id,
        title=f"{objective.title} Sprint",
        description=_description_for(objective.title, objective.description),
        length_days=SKELETON_LENGTH_DAYS,
        total_estimated_hours=hours,
        difficulty=difficulty,
        projects=[project],
        micro_tasks=micro_tasks,
        portfolio_cards=[
            PortfolioCard(
                project_id=project.id,
                headline=f"Showcase: {objective.title}",
                badges=objective.required_skills[:3],
                links=PortfolioLinks(),
            )
        ],
        adaptation_notes=build_adaptation_notes(request.learner_profile, request.profile_context),
    )
    return require_valid_plan(plan.to_wire(), code="INVALID_FALLBACK_PLAN", skeleton=True)


def _next_task_numbering(seed: SprintPlanCore) -> tuple[str, int]:
    """Continue the numbering of the seed's micro-task ids.

    Returns:
        (id prefix, next number)
    """
    prefix = f"{seed.id}_task_"
    highest = len(seed.micro_tasks)
    last_id = seed.micro_tasks[-1].id if seed.micro_tasks else ""

    match = _TASK_NUMBER.match(last_id)
    if match and match.group("prefix"):
        prefix = match.group("prefix")
    for task in seed.micro_tasks:
        task_match = _TASK_NUMBER.match(task.id)
        if task_match and task_match.group("prefix") == prefix:
            highest = max(highest, int(task_match.group("number")))

    return prefix, highest + 1


def _skill_focus(request: SprintGenerationRequest, index: int) -> str:
    pool = (request.learner_profile.gaps if request.learner_profile else []) or request.objective.required_skills
    if not pool:
        return request.objective.title
    return pool[index % len(pool)]


def build_expansion_tasks(seed: SprintPlanCore, count: int, request: SprintGenerationRequest) -> list[MicroTask]:
    """Generate ``count`` micro-tasks that extend ``seed``.

    Templates rotate: extend deliverable, quality/peer-review sweep,
    evidence packaging, skill deep-dive.
    """
    project = seed.projects[0]
    prefix, next_number = _next_task_numbering(seed)
    existing_ids = set(seed.micro_task_ids)
    # Rotation continues across expansions of the same skeleton
    offset = max(0, len(seed.micro_tasks) - SKELETON_MICRO_TASKS)

    tasks: list[MicroTask] = []
    for i in range(count):
        rotation = (offset + i) % 4
        if rotation == 0:
            title = f"Extend {project.title} with the next deliverable increment"
            task_type = MicroTaskType.PROJECT
            minutes = 90
            instructions = "Pick the next requirement that is not yet shipped, implement it end to end and update the README."
            test = AcceptanceTest(type=AcceptanceTestType.DEMO, spec="Demo the new increment running alongside the existing features.")
        elif rotation == 1:
            title = "Quality and peer-review sweep"
            task_type = MicroTaskType.PRACTICE
            minutes = 60
            instructions = "Refactor the roughest module, add tests for critical flows and request a peer or community review."
            test = AcceptanceTest(
                type=AcceptanceTestType.CHECKLIST,
                spec=["Tests cover the critical flows", "Review feedback captured", "Follow-up fixes listed"],
            )
        elif rotation == 2:
            title = "Package evidence for the portfolio"
            task_type = MicroTaskType.REFLECTION
            minutes = 45
            instructions = "Update screenshots or the demo recording, refresh deliverable links and summarize what changed."
            test = AcceptanceTest(type=AcceptanceTestType.CHECKLIST, spec=list(CHECKLIST_SPEC))
        else:
            focus = _skill_focus(request, i)
            title = f"Deep dive: {focus}"
            task_type = MicroTaskType.CONCEPT
            minutes = 60
            instructions = f"Study {focus} through one focused resource, then apply it to a small part of {project.title}."
            test = AcceptanceTest(type=AcceptanceTestType.QUIZ, spec=f"Explain how {focus} is used in the project in three sentences.")

        task_id = f"{prefix}{next_number}"
        while task_id in existing_ids:
            next_number += 1
            task_id = f"{prefix}{next_number}"
        existing_ids.add(task_id)
        next_number += 1

        tasks.append(
            MicroTask(
                id=task_id,
                project_id=project.id,
                title=title,
                type=task_type,
                estimated_minutes=minutes,
                instructions=instructions,
                acceptance_test=test,
                resources=list(request.allowed_resources[:3]) if request.allowed_resources and task_type == MicroTaskType.CONCEPT else None,
            )
        )

    return tasks


def build_expansion_plan(request: SprintGenerationRequest, *, plan_id: str) -> SprintPlanCore:
    """Grow the current plan deterministically.

    When the request carries no current plan, a skeleton plan is built
    first and expanded.

    Args:
        request: Generation request in expansion mode
        plan_id: Derived plan id of the new plan value

    Returns:
        Schema-valid SprintPlanCore whose micro-tasks start with the seed's
    """
    seed = request.current_plan or build_skeleton_plan(request, plan_id=plan_id)

    length_days = resolve_expansion_length(
        seed.length_days,
        goal=request.expansion_goal,
        prefer_length=request.prefer_length,
        hours_per_week=request.hours_per_week,
    )
    length_delta = length_days - seed.length_days
    task_count = additional_task_count(length_delta, len(seed.micro_tasks), request.expansion_goal)
    tail = build_expansion_tasks(seed, task_count, request)

    logger.debug(
        "fallback_planner: Expanding plan",
        seed_id=seed.id,
        previous_length=seed.length_days,
        length_days=length_days,
        added_tasks=len(tail),
    )

    return merge_expansion(
        seed,
        tail,
        plan_id=plan_id,
        length_days=length_days,
        total_estimated_hours=expansion_hours(seed.total_estimated_hours, length_delta, len(tail)),
        adaptation_note=(
            f"Expanded from {seed.length_days} to {length_days} days with {len(tail)} additional micro-tasks."
        ),
    )


def build_fallback_plan(request: SprintGenerationRequest, *, plan_id: str) -> SprintPlanCore:
    """Build the fallback plan for the request's mode."""
    if request.mode == PlanningMode.EXPANSION:
        return build_expansion_plan(request, plan_id=plan_id)
    return build_skeleton_plan(request, plan_id=plan_id)
