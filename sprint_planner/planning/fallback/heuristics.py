"""Fallback Planning Heuristics.

Deterministic rules used by the fallback planner to size and frame a
sprint when the remote planner is unavailable. Every function is pure.

Length resolution for expansion (first match wins):
1. expansionGoal.targetLengthDays
2. expansionGoal.additionalDays (current + additional, snapped up to a bucket)
3. next bucket strictly greater than the current length
4. preferred length, when it is an allowed bucket
5. hours/week heuristic: fewer hours -> longer, slower sprint
The result is always normalized to be >= the current length.
"""

from sprint_planner.planning.invariants import (
    ADVANCED_HOURS_PER_WEEK,
    ALLOWED_LENGTH_DAYS,
    DEFAULT_SKELETON_HOURS,
    EXPANSION_HOURS_PER_DAY,
    EXPANSION_HOURS_PER_TASK,
    MAX_LENGTH_DAYS,
    MIN_TOTAL_ESTIMATED_HOURS,
)
from sprint_planner.planning.schema.request import ExpansionGoal, LearnerProfile, ProfileContext
from sprint_planner.planning.schema.sprint_plan import Difficulty


def round_hours(value: float) -> float:
    return round(value * 10) / 10


def skeleton_hours(hours_per_week: float | None) -> float:
    """One day's share of the weekly budget, rounded to 0.1, minimum 1."""
    if hours_per_week and hours_per_week > 0:
        return max(MIN_TOTAL_ESTIMATED_HOURS, round_hours(hours_per_week / 7))
    return DEFAULT_SKELETON_HOURS


def snap_to_bucket(days: int) -> int:
    """Smallest allowed length >= ``days``, capped at the largest bucket."""
    for bucket in ALLOWED_LENGTH_DAYS:
        if bucket >= days:
            return bucket
    return MAX_LENGTH_DAYS


def next_bucket_after(length_days: int) -> int | None:
    for bucket in ALLOWED_LENGTH_DAYS:
        if bucket > length_days:
            return bucket
    return None


def length_for_hours(hours_per_week: float | None) -> int:
    if hours_per_week and hours_per_week < 8:
        return 14
    if hours_per_week and hours_per_week <= 15:
        return 7
    return 3


def normalize_length(target: int, current: int) -> int:
    """Lengths never shrink along an expansion chain."""
    return max(target, current)


def resolve_expansion_length(
    current_length: int,
    *,
    goal: ExpansionGoal | None,
    prefer_length: int | None,
    hours_per_week: float | None,
) -> int:
    """Resolve the target length of an expansion.

    Args:
        current_length: Length of the plan being expanded
        goal: Optional explicit expansion goal
        prefer_length: Caller's preferred sprint length
        hours_per_week: Learner's weekly availability

    Returns:
        Allowed length in days, never less than ``current_length``
    """
    target: int | None = None
    if goal is not None and goal.target_length_days is not None:
        target = goal.target_length_days
    elif goal is not None and goal.additional_days is not None:
        target = snap_to_bucket(current_length + goal.additional_days)
    else:
        target = next_bucket_after(current_length)

    if target is None and prefer_length in ALLOWED_LENGTH_DAYS:
        target = prefer_length
    if target is None:
        target = length_for_hours(hours_per_week)

    return normalize_length(target, current_length)


def additional_task_count(length_delta: int, current_task_count: int, goal: ExpansionGoal | None = None) -> int:
    """Number of micro-tasks appended by an expansion."""
    if goal is not None and goal.additional_micro_tasks is not None:
        return goal.additional_micro_tasks
    if length_delta >= 7:
        return 6
    if length_delta >= 4:
        return 4
    if length_delta >= 2:
        return 3
    if length_delta > 0:
        return 2
    return 3 if current_task_count < 6 else 2


def expansion_hours(previous_hours: float, length_delta: int, task_delta: int) -> float:
    """Hours only grow on expansion: at least one extra hour."""
    added = max(1.0, length_delta * EXPANSION_HOURS_PER_DAY + task_delta * EXPANSION_HOURS_PER_TASK)
    return round_hours(previous_hours + added)


def resolve_difficulty(profile: LearnerProfile | None, required_skills: list[str]) -> Difficulty:
    strengths = {s.lower() for s in (profile.strengths if profile else [])}
    has_matching_strength = any(skill.lower() in strengths for skill in required_skills)

    if profile is not None and profile.gaps and not has_matching_strength:
        return Difficulty.BEGINNER
    if profile is not None and profile.hours_per_week and profile.hours_per_week > ADVANCED_HOURS_PER_WEEK:
        return Difficulty.ADVANCED
    return Difficulty.INTERMEDIATE


def build_adaptation_notes(profile: LearnerProfile | None, profile_context: ProfileContext | None) -> str:
    """Explain how the sprint adapts to the learner. Never empty."""
    strengths = [s.lower() for s in (profile.strengths if profile else [])]
    gaps = profile.gaps if profile else []
    progress = profile_context.progress if profile_context else None

    notes: list[str] = []

    if gaps:
        notes.append(f"Insert refresher resources for learner gaps ({', '.join(gaps[:3])}) before core tasks.")

    if "collaboration" in strengths:
        notes.append("Schedule a mid-sprint peer or community review of the core slice.")

    if progress is not None and progress.streak is not None and progress.streak > 3:
        notes.append("Sustain momentum with a stretch checkpoint once the core slice ships.")

    low_completion = progress is not None and (
        progress.completed_tasks == 0 or (progress.completion_rate is not None and progress.completion_rate < 0.5)
    )
    if low_completion:
        notes.append("Start with a quick win task to build confidence before tackling core work.")

    if not notes:
        notes.append("Review progress every two days to adjust scope if needed.")

    return " ".join(notes)
