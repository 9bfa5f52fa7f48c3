import pytest

from vendor_mdm.core.exceptions import SideEffectError
from vendor_mdm.services.orchestrator import SideEffect, WriteOrchestrator, run_side_effects

pytestmark = pytest.mark.anyio


def _recorder(calls, name, fail=False):
    async def op():
        calls.append(name)
        if fail:
            raise RuntimeError(f"{name} exploded")

    return op


async def test_failed_step_is_reported_and_later_steps_still_run():
    calls = []
    results = await run_side_effects(
        [
            SideEffect("archive", _recorder(calls, "archive", fail=True)),
            SideEffect("event", _recorder(calls, "event")),
            SideEffect("publish", _recorder(calls, "publish")),
        ]
    )
    assert calls == ["archive", "event", "publish"]
    assert [r.succeeded for r in results] == [False, True, True]
    assert results[0].error == "RuntimeError: archive exploded"
    assert results[1].error is None


async def test_fatal_step_raises_and_stops_the_sequence():
    calls = []
    with pytest.raises(SideEffectError) as exc_info:
        await run_side_effects(
            [
                SideEffect("archive", _recorder(calls, "archive", fail=True), fatal=True),
                SideEffect("event", _recorder(calls, "event")),
            ]
        )
    assert calls == ["archive"]
    assert exc_info.value.step == "archive"
    assert exc_info.value.status_code == 500


async def test_outcome_keeps_primary_result_when_side_effects_fail():
    calls = []

    async def primary():
        calls.append("primary")
        return {"id": "cr-1"}

    outcome = await WriteOrchestrator().execute(
        primary,
        lambda result: [SideEffect(f"archive:{result['id']}", _recorder(calls, "archive", fail=True))],
        context=lambda result: result["id"],
    )
    assert outcome.result == {"id": "cr-1"}
    assert calls == ["primary", "archive"]
    assert not outcome.all_succeeded
    assert [f.name for f in outcome.failures] == ["archive:cr-1"]


async def test_primary_failure_propagates_before_any_side_effect():
    calls = []

    async def primary():
        raise ValueError("constraint violated")

    with pytest.raises(ValueError):
        await WriteOrchestrator().execute(
            primary, lambda _: [SideEffect("event", _recorder(calls, "event"))]
        )
    assert calls == []


async def test_no_side_effects():
    async def primary():
        return 42

    outcome = await WriteOrchestrator().execute(primary)
    assert outcome.result == 42
    assert outcome.side_effects == []
    assert outcome.all_succeeded
