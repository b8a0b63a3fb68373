"""Remote Planner Adapter.

Boundary to the remote generative service. The adapter never raises:
every call resolves to an AdapterSuccess carrying the parsed candidate, or
an AdapterFailure classified as invalid_json (retryable) or provider_error.
Schema validation is not the adapter's job.
"""

import asyncio
import hashlib
import json
import re
import time
from typing import Any, Protocol

from loguru import logger
from pydantic_ai import Agent

from sprint_planner.config.settings import settings
from sprint_planner.planning.llm.prompts import build_planner_prompt
from sprint_planner.planning.llm.results import (
    AdapterFailure,
    AdapterFailureKind,
    AdapterResult,
    AdapterSuccess,
    RequestTelemetry,
)
from sprint_planner.services.llm.model import get_model

_CODE_FENCE = re.compile(r"^\s*```(?:json)?\s*(.*?)\s*```\s*$", re.DOTALL | re.IGNORECASE)


class RemoteGenerationAdapter(Protocol):
    """Anything that can turn a planner payload into a candidate plan."""

    async def generate(self, payload: dict[str, Any]) -> AdapterResult: ...


def strip_code_fence(content: str) -> str:
    match = _CODE_FENCE.match(content)
    if match:
        return match.group(1)
    return content.strip()


def parse_planner_content(content: Any) -> Any:
    """Parse raw model output into a JSON value.

    Args:
        content: Model output; strings are parsed, already-structured values pass through

    Returns:
        Parsed JSON value

    Raises:
        json.JSONDecodeError: If the text is not valid JSON
    """
    if isinstance(content, (dict, list)):
        return content
    return json.loads(strip_code_fence(str(content)))


def prompt_hash(system_prompt: str, user_prompt: str) -> str:
    digest = hashlib.sha256()
    digest.update(system_prompt.encode("utf-8"))
    digest.update(b"\n\n")
    digest.update(user_prompt.encode("utf-8"))
    return digest.hexdigest()


def log_llm_request(context: str, system_prompt: str, user_prompt: str, attempt_hash: str) -> None:
    logger.debug(
        f"LLM Request: {context} - PROMPT SUBMITTED",
        system_prompt=system_prompt,
        user_prompt=user_prompt,
        prompt_hash=attempt_hash,
    )


class PydanticAIPlannerAdapter:
    """Remote planner backed by a pydantic_ai Agent with plain text output.

    The agent is built lazily so that constructing the adapter never touches
    provider credentials.
    """

    def __init__(
        self,
        provider: str | None = None,
        model_name: str | None = None,
        *,
        timeout_s: float | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
        agent: Any | None = None,
    ):
        self.provider = provider or settings.planner_provider
        self.model_name = model_name or settings.planner_model
        self.timeout_s = timeout_s if timeout_s is not None else settings.request_timeout_s
        self.temperature = temperature if temperature is not None else settings.temperature
        self.max_tokens = max_tokens if max_tokens is not None else settings.max_tokens
        self._agent = agent

    def _get_agent(self, system_prompt: str) -> Any:
        if self._agent is None:
            self._agent = Agent(
                model=get_model(self.provider, self.model_name),
                system_prompt=system_prompt,
            )
        return self._agent

    def _telemetry(self, started: float, hashed: str, *, timed_out: bool = False) -> RequestTelemetry:
        return RequestTelemetry(
            provider=self.provider,
            model=self.model_name,
            latency_ms=int((time.perf_counter() - started) * 1000),
            prompt_hash=hashed,
            timed_out=timed_out,
        )

    async def generate(self, payload: dict[str, Any]) -> AdapterResult:
        system_prompt, user_prompt = build_planner_prompt(payload)
        hashed = prompt_hash(system_prompt, user_prompt)
        log_llm_request("Sprint Plan Generation", system_prompt, user_prompt, hashed)

        started = time.perf_counter()
        try:
            agent = self._get_agent(system_prompt)
            result = await asyncio.wait_for(
                agent.run(
                    user_prompt,
                    model_settings={"temperature": self.temperature, "max_tokens": self.max_tokens},
                ),
                timeout=self.timeout_s,
            )
        except TimeoutError:
            telemetry = self._telemetry(started, hashed, timed_out=True)
            logger.warning(
                "sprint_planner: Remote planner timed out",
                provider=self.provider,
                model=self.model_name,
                timeout_s=self.timeout_s,
            )
            return AdapterFailure(
                kind=AdapterFailureKind.PROVIDER_ERROR,
                message=f"Remote planner timed out after {self.timeout_s}s",
                telemetry=telemetry,
            )
        except Exception as e:
            telemetry = self._telemetry(started, hashed)
            logger.warning(
                "sprint_planner: Remote planner call failed",
                provider=self.provider,
                model=self.model_name,
                error_type=type(e).__name__,
            )
            return AdapterFailure(
                kind=AdapterFailureKind.PROVIDER_ERROR,
                message=f"{type(e).__name__}: {e}",
                telemetry=telemetry,
            )

        telemetry = self._telemetry(started, hashed)
        content = result.output
        logger.debug(
            "LLM Response: Sprint Plan Generation - RAW RESPONSE",
            raw_response=str(content),
            latency_ms=telemetry.latency_ms,
        )

        if content is None or (isinstance(content, str) and not content.strip()):
            return AdapterFailure(
                kind=AdapterFailureKind.INVALID_JSON,
                message="Remote planner returned an empty response",
                telemetry=telemetry,
            )

        try:
            candidate = parse_planner_content(content)
        except json.JSONDecodeError as e:
            return AdapterFailure(
                kind=AdapterFailureKind.INVALID_JSON,
                message=f"Remote planner returned invalid JSON: {e.msg} (line {e.lineno}, column {e.colno})",
                telemetry=telemetry,
            )

        return AdapterSuccess(candidate=candidate, telemetry=telemetry)


class OfflinePlannerAdapter:
    """Adapter for runs without a remote planner: every call is a provider error.

    One fatal attempt is recorded and the orchestrator goes straight to the
    deterministic fallback plan.
    """

    provider = "offline"
    model_name = "none"

    async def generate(self, payload: dict[str, Any]) -> AdapterResult:
        return AdapterFailure(
            kind=AdapterFailureKind.PROVIDER_ERROR,
            message="Remote planner disabled",
            telemetry=RequestTelemetry(provider=self.provider, model=self.model_name),
        )
