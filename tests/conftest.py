"""Shared planner test doubles.

Scripted adapters stand in for the remote planner, sleep and clock are
recorded or frozen, and loguru records are captured as plain dicts.
Plan and request factories are importable helpers as well as fixtures.
"""

from collections.abc import Callable, Iterator
from datetime import UTC, datetime
from typing import Any

import pytest
from loguru import logger

from sprint_planner.planning.llm.results import (
    AdapterFailure,
    AdapterFailureKind,
    AdapterResult,
    AdapterSuccess,
    RequestTelemetry,
)
from sprint_planner.planning.schema.request import SprintGenerationRequest

FIXED_NOW = datetime(2025, 3, 14, 9, 26, 53, tzinfo=UTC)

TELEMETRY = RequestTelemetry(provider="openai", model="gpt-4o-mini", latency_ms=12, prompt_hash="abc123")


def invalid_json(message: str = "Remote planner returned invalid JSON") -> AdapterFailure:
    return AdapterFailure(kind=AdapterFailureKind.INVALID_JSON, message=message, telemetry=TELEMETRY)


def provider_error(message: str = "APIConnectionError: connection refused", *, timed_out: bool = False) -> AdapterFailure:
    telemetry = RequestTelemetry(provider="openai", model="gpt-4o-mini", latency_ms=45000, timed_out=timed_out)
    return AdapterFailure(kind=AdapterFailureKind.PROVIDER_ERROR, message=message, telemetry=telemetry)


def success(candidate: Any) -> AdapterSuccess:
    return AdapterSuccess(candidate=candidate, telemetry=TELEMETRY)


class ScriptedAdapter:
    """Adapter returning scripted results in order.

    Script entries are AdapterResult values or exceptions (raised when reached).
    The last entry repeats once the script is exhausted.
    """

    def __init__(self, script: list[AdapterResult | Exception]):
        self.script = list(script)
        self.payloads: list[dict[str, Any]] = []

    @property
    def calls(self) -> int:
        return len(self.payloads)

    async def generate(self, payload: dict[str, Any]) -> AdapterResult:
        self.payloads.append(payload)
        index = min(len(self.payloads), len(self.script)) - 1
        step = self.script[index]
        if isinstance(step, Exception):
            raise step
        return step


@pytest.fixture
def scripted_adapter() -> Callable[..., ScriptedAdapter]:
    """Factory for scripted adapters: ``scripted_adapter(invalid_json(), success(plan))``."""

    def _make(*script: AdapterResult | Exception) -> ScriptedAdapter:
        return ScriptedAdapter(list(script))

    return _make


@pytest.fixture
def recorded_sleep() -> tuple[list[float], Callable[[float], Any]]:
    """Sleep replacement that records requested delays (seconds) instead of waiting."""
    delays: list[float] = []

    async def _sleep(seconds: float) -> None:
        delays.append(seconds)

    return delays, _sleep


@pytest.fixture
def fixed_clock() -> Callable[[], datetime]:
    return lambda: FIXED_NOW


@pytest.fixture
def log_messages() -> Iterator[list[dict[str, Any]]]:
    """Capture loguru records (message + extra) emitted during a test."""
    records: list[dict[str, Any]] = []

    def _sink(message: Any) -> None:
        record = message.record
        records.append({"level": record["level"].name, "message": record["message"], **record["extra"]})

    handler_id = logger.add(_sink, level="DEBUG")
    yield records
    logger.remove(handler_id)


def make_plan_wire(
    plan_id: str = "spr_remote",
    *,
    length_days: int = 1,
    task_count: int = 3,
    hours: float = 2.0,
    task_prefix: str | None = None,
    project_id: str = "proj_1",
) -> dict[str, Any]:
    """Valid camelCase plan as a remote planner would return it."""
    prefix = task_prefix or f"{plan_id}_task_"
    return {
        "id": plan_id,
        "title": "Build a portfolio API",
        "description": "Ship a small REST API with tests and a live demo.",
        "lengthDays": length_days,
        "totalEstimatedHours": hours,
        "difficulty": "intermediate",
        "projects": [
            {
                "id": project_id,
                "title": "Portfolio API",
                "brief": "A small REST API that lists portfolio projects.",
                "requirements": ["Expose GET /projects", "Write README"],
                "acceptanceCriteria": ["API responds with JSON", "Deployed demo link"],
                "deliverables": [
                    {"type": "repository", "title": "Repository link", "artifactId": "repo_1"},
                ],
                "evidenceRubric": {
                    "dimensions": [
                        {"name": "Functionality", "weight": 0.6},
                        {"name": "Code quality", "weight": 0.4},
                    ],
                    "passThreshold": 0.6,
                },
            }
        ],
        "microTasks": [
            {
                "id": f"{prefix}{index}",
                "projectId": project_id,
                "title": f"Task {index}",
                "type": "project",
                "estimatedMinutes": 45,
                "instructions": "Implement the next endpoint.",
                "acceptanceTest": {"type": "checklist", "spec": ["Endpoint returns 200"]},
            }
            for index in range(1, task_count + 1)
        ],
        "adaptationNotes": "Keep tasks short for weekday evenings.",
    }


@pytest.fixture
def plan_wire() -> Callable[..., dict[str, Any]]:
    return make_plan_wire


def make_request(**overrides: Any) -> SprintGenerationRequest:
    """Generation request with a typical learner; keyword overrides use camelCase or snake_case."""
    data: dict[str, Any] = {
        "objective": {
            "id": "obj_42",
            "title": "Backend APIs",
            "description": "Become comfortable building and shipping REST APIs.",
            "successCriteria": ["Ship a deployed API", "Write integration tests", "Document endpoints", "Extra"],
            "requiredSkills": ["python", "http", "sql"],
            "priority": 1,
            "status": "active",
        },
        "learnerProfile": {
            "id": "lp_7",
            "hoursPerWeek": 14,
            "strengths": ["Python"],
            "gaps": ["testing"],
            "passionTags": ["music"],
            "blockers": [],
            "goals": ["land a backend role"],
        },
        "mode": "skeleton",
    }
    data.update(overrides)
    return SprintGenerationRequest.model_validate(data)


@pytest.fixture
def request_factory() -> Callable[..., SprintGenerationRequest]:
    return make_request
