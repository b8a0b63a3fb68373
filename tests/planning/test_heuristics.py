"""Tests for deterministic fallback heuristics."""

import pytest

from sprint_planner.planning.fallback.heuristics import (
    additional_task_count,
    build_adaptation_notes,
    expansion_hours,
    length_for_hours,
    resolve_difficulty,
    resolve_expansion_length,
    skeleton_hours,
    snap_to_bucket,
)
from sprint_planner.planning.schema.request import ExpansionGoal, LearnerProfile, ProfileContext
from sprint_planner.planning.schema.sprint_plan import Difficulty


@pytest.mark.parametrize(
    ("hours_per_week", "expected"),
    [(14, 2.0), (10, 1.4), (3, 1.0), (None, 2.0), (0, 2.0)],
)
def test_skeleton_hours(hours_per_week, expected):
    assert skeleton_hours(hours_per_week) == expected


@pytest.mark.parametrize(("days", "expected"), [(1, 1), (2, 3), (4, 7), (8, 14), (30, 14)])
def test_snap_to_bucket(days, expected):
    assert snap_to_bucket(days) == expected


@pytest.mark.parametrize(("hours_per_week", "expected"), [(5, 14), (8, 7), (15, 7), (16, 3), (None, 3)])
def test_length_for_hours(hours_per_week, expected):
    assert length_for_hours(hours_per_week) == expected


def test_explicit_target_length_wins():
    goal = ExpansionGoal(target_length_days=7)
    assert resolve_expansion_length(3, goal=goal, prefer_length=14, hours_per_week=5) == 7


def test_target_length_never_shrinks():
    goal = ExpansionGoal(target_length_days=3)
    assert resolve_expansion_length(7, goal=goal, prefer_length=None, hours_per_week=None) == 7


def test_additional_days_snap_up():
    goal = ExpansionGoal(additional_days=2)
    assert resolve_expansion_length(3, goal=goal, prefer_length=None, hours_per_week=None) == 7


def test_next_bucket_without_goal():
    assert resolve_expansion_length(1, goal=None, prefer_length=14, hours_per_week=5) == 3
    assert resolve_expansion_length(7, goal=None, prefer_length=None, hours_per_week=None) == 14


def test_max_length_stays_at_max():
    assert resolve_expansion_length(14, goal=None, prefer_length=3, hours_per_week=20) == 14


@pytest.mark.parametrize(
    ("delta", "current", "expected"),
    [(7, 3, 6), (4, 3, 4), (2, 3, 3), (1, 3, 2), (0, 3, 3), (0, 8, 2)],
)
def test_additional_task_count_from_delta(delta, current, expected):
    assert additional_task_count(delta, current) == expected


def test_additional_task_count_explicit_goal():
    assert additional_task_count(7, 3, ExpansionGoal(additional_micro_tasks=5)) == 5


def test_expansion_hours_grow_by_at_least_one():
    assert expansion_hours(2.0, 0, 0) == 3.0
    assert expansion_hours(2.0, 6, 6) == 18.5


def test_difficulty_beginner_when_gaps_and_no_matching_strength():
    profile = LearnerProfile(id="lp", strengths=["design"], gaps=["sql"], hours_per_week=30)
    assert resolve_difficulty(profile, ["python"]) == Difficulty.BEGINNER


def test_difficulty_matching_strength_is_case_insensitive():
    profile = LearnerProfile(id="lp", strengths=["Python"], gaps=["sql"], hours_per_week=10)
    assert resolve_difficulty(profile, ["python"]) == Difficulty.INTERMEDIATE


def test_difficulty_advanced_for_high_availability():
    profile = LearnerProfile(id="lp", strengths=["python"], hours_per_week=25)
    assert resolve_difficulty(profile, ["python"]) == Difficulty.ADVANCED


def test_difficulty_without_profile():
    assert resolve_difficulty(None, []) == Difficulty.INTERMEDIATE


def test_adaptation_notes_default():
    assert build_adaptation_notes(None, None) == "Review progress every two days to adjust scope if needed."


def test_adaptation_notes_combine_signals():
    profile = LearnerProfile(id="lp", strengths=["Collaboration"], gaps=["testing", "sql", "docker", "k8s"])
    context = ProfileContext.model_validate({"progress": {"streak": 5, "completedTasks": 0}})

    notes = build_adaptation_notes(profile, context)

    assert "testing, sql, docker" in notes
    assert "k8s" not in notes
    assert "peer or community review" in notes
    assert "stretch checkpoint" in notes
    assert "quick win" in notes


def test_adaptation_notes_low_completion_rate():
    context = ProfileContext.model_validate({"progress": {"completionRate": 0.3, "completedTasks": 4}})
    assert "quick win" in build_adaptation_notes(None, context)
