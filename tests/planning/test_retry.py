"""Tests for bounded remote planner retries."""

import pytest

from sprint_planner.planning.llm.results import FailureReason, FatalFailure, Ok, RetryableFailure
from sprint_planner.planning.retry import RetryController, RetryState, backoff_delay_ms, classify_attempt
from tests.conftest import invalid_json, make_plan_wire, provider_error, success


@pytest.mark.parametrize(("index", "expected"), [(0, 500), (1, 1500), (2, 3000), (3, 3000), (10, 3000), (-1, 500)])
def test_backoff_delay_is_clamped(index, expected):
    assert backoff_delay_ms(index) == expected


def test_backoff_delay_with_empty_schedule():
    assert backoff_delay_ms(2, []) == 0


def test_classify_invalid_json_is_retryable():
    outcome = classify_attempt(invalid_json())

    assert isinstance(outcome, RetryableFailure)
    assert outcome.reason == FailureReason.INVALID_JSON


def test_classify_provider_error_is_fatal():
    outcome = classify_attempt(provider_error(timed_out=True))

    assert isinstance(outcome, FatalFailure)
    assert outcome.reason == FailureReason.PROVIDER_ERROR


def test_classify_schema_failure_carries_issues():
    candidate = make_plan_wire()
    candidate["lengthDays"] = 4

    outcome = classify_attempt(success(candidate))

    assert isinstance(outcome, RetryableFailure)
    assert outcome.reason == FailureReason.SCHEMA_VALIDATION_FAILURE
    assert [issue.path for issue in outcome.issues] == ["lengthDays"]


def test_classify_valid_candidate_is_ok():
    candidate = make_plan_wire()

    outcome = classify_attempt(success(candidate), skeleton=True)

    assert isinstance(outcome, Ok)
    assert outcome.raw is candidate


def test_classify_skeleton_shape_violation_is_retryable():
    outcome = classify_attempt(success(make_plan_wire(length_days=3)), skeleton=True)

    assert isinstance(outcome, RetryableFailure)
    assert outcome.reason == FailureReason.SCHEMA_VALIDATION_FAILURE


@pytest.mark.asyncio
async def test_first_attempt_success(scripted_adapter, recorded_sleep):
    delays, sleep = recorded_sleep
    adapter = scripted_adapter(success(make_plan_wire()))

    outcome = await RetryController(adapter, sleep=sleep, max_attempts=3).run({"mode": "skeleton"})

    assert outcome.ok
    assert outcome.state == RetryState.SUCCEEDED
    assert adapter.calls == 1
    assert delays == []
    assert [record.outcome for record in outcome.attempts] == ["success"]
    assert outcome.attempts[0].prompt_hash == "abc123"


@pytest.mark.asyncio
async def test_invalid_json_then_success(scripted_adapter, recorded_sleep):
    delays, sleep = recorded_sleep
    adapter = scripted_adapter(invalid_json(), invalid_json(), success(make_plan_wire()))

    outcome = await RetryController(adapter, sleep=sleep, max_attempts=3, backoff_schedule_ms=[500, 1500, 3000]).run({})

    assert outcome.ok
    assert adapter.calls == 3
    assert delays == [0.5, 1.5]
    assert [record.outcome for record in outcome.attempts] == ["retryable_failure", "retryable_failure", "success"]
    assert outcome.attempts[0].reason == "invalid_json"


@pytest.mark.asyncio
async def test_attempts_are_bounded(scripted_adapter, recorded_sleep):
    delays, sleep = recorded_sleep
    adapter = scripted_adapter(invalid_json())

    outcome = await RetryController(adapter, sleep=sleep, max_attempts=3, backoff_schedule_ms=[500, 1500, 3000]).run({})

    assert not outcome.ok
    assert outcome.state == RetryState.EXHAUSTED
    assert adapter.calls == 3
    assert delays == [0.5, 1.5]
    assert isinstance(outcome.last_failure, RetryableFailure)


@pytest.mark.asyncio
async def test_schema_failures_are_retried(scripted_adapter, recorded_sleep):
    _, sleep = recorded_sleep
    broken = make_plan_wire(task_count=1)
    adapter = scripted_adapter(success(broken), success(make_plan_wire()))

    outcome = await RetryController(adapter, sleep=sleep, max_attempts=3).run({})

    assert outcome.ok
    assert adapter.calls == 2
    assert outcome.attempts[0].reason == "schema_validation_failure"
    assert outcome.attempts[0].issue_count >= 1


@pytest.mark.asyncio
async def test_provider_error_is_not_retried(scripted_adapter, recorded_sleep):
    delays, sleep = recorded_sleep
    adapter = scripted_adapter(provider_error(timed_out=True), success(make_plan_wire()))

    outcome = await RetryController(adapter, sleep=sleep, max_attempts=3).run({})

    assert outcome.state == RetryState.EXHAUSTED
    assert adapter.calls == 1
    assert delays == []
    assert isinstance(outcome.last_failure, FatalFailure)
    assert outcome.attempts[0].timed_out is True
    assert outcome.attempts[0].outcome == "fatal_failure"


@pytest.mark.asyncio
async def test_adapter_exception_is_fatal(scripted_adapter, recorded_sleep):
    _, sleep = recorded_sleep
    adapter = scripted_adapter(RuntimeError("socket closed"))

    outcome = await RetryController(adapter, sleep=sleep, max_attempts=3).run({})

    assert outcome.state == RetryState.EXHAUSTED
    assert adapter.calls == 1
    assert outcome.last_failure.message == "RuntimeError: socket closed"
    assert outcome.attempts[0].provider is None


@pytest.mark.asyncio
async def test_failed_attempts_are_logged(scripted_adapter, recorded_sleep, log_messages):
    _, sleep = recorded_sleep
    adapter = scripted_adapter(invalid_json(), success(make_plan_wire()))

    await RetryController(adapter, sleep=sleep, max_attempts=3).run({}, context={"objective_id": "obj_42"})

    failures = [record for record in log_messages if record["message"] == "SPRINT_GENERATION_ATTEMPT_FAILED"]
    assert len(failures) == 1
    assert failures[0]["attempt"] == 1
    assert failures[0]["reason"] == "invalid_json"
    assert failures[0]["objective_id"] == "obj_42"


@pytest.mark.asyncio
async def test_attempts_never_exceed_three(scripted_adapter, recorded_sleep):
    delays, sleep = recorded_sleep
    adapter = scripted_adapter(invalid_json())

    outcome = await RetryController(adapter, sleep=sleep, max_attempts=5).run({})

    assert outcome.state == RetryState.EXHAUSTED
    assert adapter.calls == 3
    assert len(delays) == 2
