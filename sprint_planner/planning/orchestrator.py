"""Sprint Plan Generator.

Top-level entry point of the planning engine:

1. Derive the plan id and build the remote payload
2. Run bounded remote attempts (RetryController)
3. Accept the remote plan (merging it onto the current plan in expansion mode)
   or build the deterministic fallback plan
4. Stamp provenance metadata and return

📌 ``generate`` never raises for remote or validation failures. The worst
case is a fallback plan with ``metadata.provider == "fallback"``.

Concurrent expansions of the same sprint are not coordinated here; callers
must serialize them at the persistence boundary.
"""

import asyncio
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

from loguru import logger

from sprint_planner.config.settings import Settings, settings
from sprint_planner.planning.clone import clone_value
from sprint_planner.planning.errors import PlanSchemaError
from sprint_planner.planning.expansion.merger import merge_expansion, remote_expansion_tail
from sprint_planner.planning.fallback.builder import build_fallback_plan
from sprint_planner.planning.fallback.heuristics import expansion_hours, resolve_expansion_length
from sprint_planner.planning.llm.adapter import PydanticAIPlannerAdapter, RemoteGenerationAdapter
from sprint_planner.planning.llm.payload import build_planner_payload
from sprint_planner.planning.logging import log_fallback_activated
from sprint_planner.planning.retry import RetryController, RetryOutcome, RetryState, Sleep
from sprint_planner.planning.schema.metadata import PlanMetadata, PlanProvider, SprintPlan
from sprint_planner.planning.schema.request import PlanningMode, SprintGenerationRequest
from sprint_planner.planning.schema.sprint_plan import SprintPlanCore

Clock = Callable[[], datetime]


def _utc_now() -> datetime:
    return datetime.now(UTC)


def _new_adaptation_note(current: SprintPlanCore, remote: SprintPlanCore) -> str | None:
    """Remote notes minus an echoed copy of the current notes."""
    note = remote.adaptation_notes.strip()
    previous = current.adaptation_notes.strip()
    if note.startswith(previous):
        note = note[len(previous) :].strip()
    return note or None


def build_plan_id(objective_id: str, requested_at: datetime) -> str:
    """Opaque plan id: ``spr_<objectiveId>_<YYYYMMDDHHMMSS>`` (UTC)."""
    if requested_at.tzinfo is not None:
        requested_at = requested_at.astimezone(UTC)
    return f"spr_{objective_id}_{requested_at.strftime('%Y%m%d%H%M%S')}"


class SprintPlanGenerator:
    """Generates sprint plans from a remote planner with a guaranteed fallback.

    Args:
        adapter: Remote generation adapter
        settings: Planner settings (attempts, backoff, version, language)
        clock: Timestamp source used when the request has no ``requested_at``
        sleep: Awaitable sleep used for retry backoff (seconds)
    """

    def __init__(
        self,
        adapter: RemoteGenerationAdapter,
        *,
        settings: Settings = settings,
        clock: Clock = _utc_now,
        sleep: Sleep = asyncio.sleep,
    ):
        self.adapter = adapter
        self.settings = settings
        self.clock = clock
        self.sleep = sleep

    async def generate(self, request: SprintGenerationRequest) -> SprintPlan:
        requested_at = request.requested_at or self.clock()
        planner_version = request.planner_version or self.settings.planner_version
        plan_id = build_plan_id(request.objective.id, requested_at)
        log_context: dict[str, str | int | float | bool | None] = {
            "objective_id": request.objective.id,
            "plan_id": plan_id,
            "mode": request.mode.value,
        }

        logger.info(
            "sprint_planner: Generating sprint plan",
            incremental=request.current_plan is not None,
            **log_context,
        )

        payload = build_planner_payload(
            request,
            planner_version=planner_version,
            requested_at=requested_at,
            plan_id=plan_id,
            default_language=self.settings.default_language,
        )

        outcome = await self._run_remote(payload, request, log_context)

        plan: SprintPlanCore | None = None
        fallback_reason = outcome.last_failure.reason.value if outcome.last_failure else None
        if outcome.ok and outcome.result is not None:
            try:
                plan = self._accept_remote(request, outcome.result.plan, plan_id)
            except PlanSchemaError as e:
                logger.warning(
                    "sprint_planner: Remote plan could not be merged",
                    code=e.code,
                    details=e.details[:10],
                    **log_context,
                )
                fallback_reason = e.code

        provider = PlanProvider.REMOTE
        if plan is None:
            provider = PlanProvider.FALLBACK
            log_fallback_activated(fallback_reason, {"attempts": len(outcome.attempts), **log_context})
            plan = build_fallback_plan(request, plan_id=plan_id)

        metadata = PlanMetadata(
            plan_id=plan_id,
            planner_version=planner_version,
            requested_at=requested_at.isoformat(),
            provider=provider,
            objective_id=request.objective.id,
            learner_profile_id=request.learner_profile.id if request.learner_profile else None,
            mode=request.mode,
            incremental=request.current_plan is not None,
            expansion_goal=request.expansion_goal,
            prefer_length=request.prefer_length,
            attempts=outcome.attempts,
        )

        logger.info(
            "sprint_planner: Sprint plan ready",
            provider=provider.value,
            length_days=plan.length_days,
            task_count=len(plan.micro_tasks),
            attempts=len(outcome.attempts),
            **log_context,
        )

        return SprintPlan(
            **plan.model_dump(),
            planner_input=payload,
            planner_output=self._planner_output(plan, metadata, request),
            metadata=metadata,
        )

    async def _run_remote(
        self,
        payload: dict[str, Any],
        request: SprintGenerationRequest,
        log_context: dict[str, str | int | float | bool | None],
    ) -> RetryOutcome:
        controller = RetryController(
            self.adapter,
            sleep=self.sleep,
            max_attempts=self.settings.max_attempts,
            backoff_schedule_ms=self.settings.backoff_schedule_ms,
        )
        try:
            return await controller.run(
                payload,
                skeleton=request.mode == PlanningMode.SKELETON,
                context=log_context,
            )
        except Exception:
            logger.exception("sprint_planner: Remote generation aborted", **log_context)
            return RetryOutcome(state=RetryState.EXHAUSTED)

    def _accept_remote(self, request: SprintGenerationRequest, remote: SprintPlanCore, plan_id: str) -> SprintPlanCore | None:
        """Turn an accepted remote plan into the returned plan value.

        Returns None when a remote expansion adds no new micro-tasks.

        Raises:
            PlanSchemaError: If merging onto the current plan breaks the schema
        """
        current = request.current_plan
        if request.mode != PlanningMode.EXPANSION or current is None:
            return remote.model_copy(update={"id": plan_id})

        tail = remote_expansion_tail(current, remote)
        if not tail.micro_tasks:
            logger.warning(
                "sprint_planner: Remote expansion added no micro-tasks",
                objective_id=request.objective.id,
                plan_id=plan_id,
            )
            return None

        # the remote plan may widen the expansion but never undercut the requested goal
        length_days = max(
            remote.length_days,
            resolve_expansion_length(
                current.length_days,
                goal=request.expansion_goal,
                prefer_length=request.prefer_length,
                hours_per_week=request.hours_per_week,
            ),
        )
        hours = expansion_hours(
            current.total_estimated_hours,
            length_days - current.length_days,
            len(tail.micro_tasks),
        )

        return merge_expansion(
            current,
            tail.micro_tasks,
            plan_id=plan_id,
            length_days=length_days,
            total_estimated_hours=max(remote.total_estimated_hours, hours),
            adaptation_note=_new_adaptation_note(current, remote),
            extra_projects=tail.projects,
        )

    def _planner_output(
        self,
        plan: SprintPlanCore,
        metadata: PlanMetadata,
        request: SprintGenerationRequest,
    ) -> dict[str, Any]:
        output = clone_value(plan.to_wire())
        output["metadata"] = metadata.to_wire()
        if request.profile_context is not None:
            output["profileContext"] = request.profile_context.model_dump(mode="json", by_alias=True, exclude_none=True)
        return output


async def generate_sprint_plan(
    request: SprintGenerationRequest,
    adapter: RemoteGenerationAdapter | None = None,
) -> SprintPlan:
    """Generate a sprint plan with a default-configured generator.

    Args:
        request: Generation request
        adapter: Remote adapter; defaults to the configured pydantic_ai planner

    Returns:
        Schema-valid SprintPlan
    """
    generator = SprintPlanGenerator(adapter or PydanticAIPlannerAdapter())
    return await generator.generate(request)
