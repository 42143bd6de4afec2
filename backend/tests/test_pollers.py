import asyncio

import pytest

from fakes import noop_tick
from pipesync.errors import RegistrationConflict
from pipesync.pollers import PipelinePoller


async def test_register_starts_ticking(registry):
    ticks = []

    async def on_tick():
        ticks.append(1)

    registry.register("p1", 0.01, on_tick)
    await asyncio.sleep(0.1)

    assert len(ticks) >= 2


async def test_register_rejects_second_poller_for_same_job(registry):
    first = registry.register("p1", 3600, noop_tick)

    with pytest.raises(RegistrationConflict):
        registry.register("p1", 3600, noop_tick)

    assert registry.get("p1") is first
    assert registry.list_active_job_ids() == ["p1"]


async def test_unregister_is_idempotent(registry):
    poller = registry.register("p1", 3600, noop_tick)

    registry.unregister(poller)
    registry.unregister(poller)

    assert not poller.is_live
    assert "p1" not in registry
    assert registry.list_active_job_ids() == []


async def test_unregister_stops_ticks(registry):
    ticks = []

    async def on_tick():
        ticks.append(1)

    poller = registry.register("p1", 0.01, on_tick)
    await asyncio.sleep(0.05)
    registry.unregister(poller)
    seen = len(ticks)
    await asyncio.sleep(0.05)

    assert len(ticks) == seen


async def test_stale_handle_does_not_remove_newer_poller(registry):
    old = registry.register("p1", 3600, noop_tick)
    registry.unregister(old)
    new = registry.register("p1", 3600, noop_tick)

    registry.unregister(old)

    assert registry.get("p1") is new
    assert new.is_live


async def test_poller_can_retire_itself_during_tick(registry):
    ticks = []

    async def on_tick():
        ticks.append(1)
        registry.unregister(registry.get("p1"))
        await asyncio.sleep(0)
        ticks.append(2)

    registry.register("p1", 0.01, on_tick)
    await asyncio.sleep(0.1)

    # The tick ran to completion and no further tick fired
    assert ticks == [1, 2]
    assert "p1" not in registry


async def test_failing_tick_keeps_poller_alive(registry):
    calls = []

    async def on_tick():
        calls.append(1)
        raise RuntimeError("boom")

    poller = registry.register("p1", 0.01, on_tick)
    await asyncio.sleep(0.1)

    assert len(calls) >= 2
    assert poller.is_live


async def test_dispose_all(registry):
    pollers = [registry.register(job, 3600, noop_tick) for job in ("a", "b", "c")]

    registry.dispose_all()

    assert len(registry) == 0
    assert not any(p.is_live for p in pollers)


def test_dispose_before_start_is_safe():
    poller = PipelinePoller("p1", 1.0, noop_tick)
    poller.dispose()
    poller.start()
    assert not poller.is_live
