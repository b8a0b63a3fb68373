"""Tests for the pydantic_ai planner adapter (agent is mocked)."""

import asyncio
import json
from types import SimpleNamespace

import pytest

from sprint_planner.planning.llm.adapter import (
    OfflinePlannerAdapter,
    PydanticAIPlannerAdapter,
    parse_planner_content,
    strip_code_fence,
)
from sprint_planner.planning.llm.results import AdapterFailure, AdapterFailureKind, AdapterSuccess
from tests.conftest import make_plan_wire

PAYLOAD = {"objective": {"id": "obj_1", "title": "APIs"}, "mode": "skeleton"}


class MockAgent:
    """Stands in for pydantic_ai.Agent: ``run`` returns a result with ``output``."""

    def __init__(self, output=None, error: Exception | None = None, delay: float = 0):
        self.output = output
        self.error = error
        self.delay = delay
        self.prompts: list[str] = []
        self.model_settings: list[dict] = []

    async def run(self, user_prompt, model_settings=None):
        self.prompts.append(user_prompt)
        self.model_settings.append(model_settings)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error

        return SimpleNamespace(output=self.output)


def _adapter(agent: MockAgent, timeout_s: float = 5.0) -> PydanticAIPlannerAdapter:
    return PydanticAIPlannerAdapter(
        "openai",
        "gpt-4o-mini",
        timeout_s=timeout_s,
        temperature=0.1,
        max_tokens=1000,
        agent=agent,
    )


def test_strip_code_fence():
    assert strip_code_fence('```json\n{"a": 1}\n```') == '{"a": 1}'
    assert strip_code_fence('```\n{"a": 1}\n```') == '{"a": 1}'
    assert strip_code_fence('  {"a": 1}  ') == '{"a": 1}'


def test_parse_planner_content():
    assert parse_planner_content('```JSON\n{"id": "x"}\n```') == {"id": "x"}
    assert parse_planner_content({"id": "x"}) == {"id": "x"}
    with pytest.raises(json.JSONDecodeError):
        parse_planner_content("Here is your plan: {")


@pytest.mark.asyncio
async def test_adapter_success_parses_json():
    agent = MockAgent(output=json.dumps(make_plan_wire()))

    result = await _adapter(agent).generate(PAYLOAD)

    assert isinstance(result, AdapterSuccess)
    assert result.candidate["id"] == "spr_remote"
    assert result.telemetry.provider == "openai"
    assert result.telemetry.model == "gpt-4o-mini"
    assert len(result.telemetry.prompt_hash) == 64
    assert agent.model_settings == [{"temperature": 0.1, "max_tokens": 1000}]
    assert "MODE: skeleton" in agent.prompts[0]


@pytest.mark.asyncio
async def test_adapter_invalid_json_is_retryable():
    result = await _adapter(MockAgent(output="Sure! Here's a plan")).generate(PAYLOAD)

    assert isinstance(result, AdapterFailure)
    assert result.kind == AdapterFailureKind.INVALID_JSON
    assert result.retryable


@pytest.mark.asyncio
async def test_adapter_empty_response_is_invalid_json():
    result = await _adapter(MockAgent(output="   ")).generate(PAYLOAD)

    assert result.kind == AdapterFailureKind.INVALID_JSON


@pytest.mark.asyncio
async def test_adapter_provider_error_is_not_retryable():
    result = await _adapter(MockAgent(error=ConnectionError("refused"))).generate(PAYLOAD)

    assert isinstance(result, AdapterFailure)
    assert result.kind == AdapterFailureKind.PROVIDER_ERROR
    assert not result.retryable
    assert result.message == "ConnectionError: refused"
    assert result.telemetry.timed_out is False


@pytest.mark.asyncio
async def test_adapter_timeout_sets_flag():
    result = await _adapter(MockAgent(output="{}", delay=1.0), timeout_s=0.01).generate(PAYLOAD)

    assert result.kind == AdapterFailureKind.PROVIDER_ERROR
    assert result.telemetry.timed_out is True


@pytest.mark.asyncio
async def test_same_payload_same_prompt_hash():
    agent = MockAgent(output="{}")
    adapter = _adapter(agent)

    first = await adapter.generate(PAYLOAD)
    second = await adapter.generate(PAYLOAD)

    assert first.telemetry.prompt_hash == second.telemetry.prompt_hash


@pytest.mark.asyncio
async def test_unsupported_provider_is_provider_error():
    adapter = PydanticAIPlannerAdapter("not-a-provider", "model-x", timeout_s=1.0)

    result = await adapter.generate(PAYLOAD)

    assert result.kind == AdapterFailureKind.PROVIDER_ERROR
    assert "UnsupportedProviderError" in result.message


@pytest.mark.asyncio
async def test_offline_adapter_always_fails_fast():
    result = await OfflinePlannerAdapter().generate(PAYLOAD)

    assert result.kind == AdapterFailureKind.PROVIDER_ERROR
    assert result.telemetry.provider == "offline"
