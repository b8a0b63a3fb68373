"""Global Sprint Planning Invariants - Single Source of Truth.

This module defines the non-negotiable constants of the sprint plan
contract. Schema models, the fallback planner, the expansion merger and
the retry controller import from here - nowhere else.

ARCHITECTURAL COMMITMENT: CLOSED LENGTH BUCKETS
===============================================
A sprint is 1, 3, 7 or 14 days long. Lengths are an ordinal set, never an
arbitrary integer, and only ever grow along an expansion chain.
"""

from typing import Final, Literal

LengthDays = Literal[1, 3, 7, 14]

# Allowed sprint lengths, ascending
ALLOWED_LENGTH_DAYS: Final[tuple[int, ...]] = (1, 3, 7, 14)
SKELETON_LENGTH_DAYS: Final[int] = 1
MAX_LENGTH_DAYS: Final[int] = ALLOWED_LENGTH_DAYS[-1]

# Structural minimums
MIN_PROJECTS: Final[int] = 1
MIN_MICRO_TASKS: Final[int] = 3
SKELETON_MICRO_TASKS: Final[int] = 3
MIN_TOTAL_ESTIMATED_HOURS: Final[float] = 1.0
MIN_TASK_MINUTES: Final[int] = 15
MAX_TASK_MINUTES: Final[int] = 180

# Expansion request bounds
MAX_ADDITIONAL_DAYS: Final[int] = 14
MAX_ADDITIONAL_MICRO_TASKS: Final[int] = 12

# Default evidence rubric substituted for missing/invalid project rubrics
DEFAULT_RUBRIC_DIMENSIONS: Final[tuple[tuple[str, float], ...]] = (
    ("Functionality", 0.40),
    ("Code quality", 0.25),
    ("User experience", 0.20),
    ("Documentation", 0.15),
)
DEFAULT_PASS_THRESHOLD: Final[float] = 0.70

# Retry policy
DEFAULT_MAX_ATTEMPTS: Final[int] = 3
BACKOFF_SCHEDULE_MS: Final[tuple[int, ...]] = (500, 1500, 3000)

# Fallback hour heuristics
DEFAULT_SKELETON_HOURS: Final[float] = 2.0
EXPANSION_HOURS_PER_DAY: Final[float] = 2.0
EXPANSION_HOURS_PER_TASK: Final[float] = 0.75
ADVANCED_HOURS_PER_WEEK: Final[float] = 20.0
