import pytest

from fakes import make_pipeline, noop_tick
from pipesync.rehydration import Rehydrator


@pytest.fixture
def rehydrator(store, registry):
    return Rehydrator(store, registry, noop_tick, 3600)


async def test_rehydrate_registers_poller_for_running_pipeline(rehydrator, store, registry):
    store.replace_all([make_pipeline("p3", is_running=True)])

    created = rehydrator.rehydrate()

    assert [p.job_id for p in created] == ["p3"]
    assert registry.list_active_job_ids() == ["p3"]


async def test_rehydrate_twice_creates_one_poller_per_job(rehydrator, store, registry):
    store.replace_all([make_pipeline("p1", is_running=True), make_pipeline("p2", is_running=True)])

    rehydrator.rehydrate()
    second = rehydrator.rehydrate()

    assert second == []
    assert sorted(registry.list_active_job_ids()) == ["p1", "p2"]


async def test_rehydrate_skips_idle_and_already_polled(rehydrator, store, registry):
    store.replace_all(
        [
            make_pipeline("idle"),
            make_pipeline("polled", is_running=True),
            make_pipeline("orphan", is_running=True),
        ]
    )
    existing = registry.register("polled", 3600, noop_tick)

    created = rehydrator.rehydrate()

    assert [p.job_id for p in created] == ["orphan"]
    assert registry.get("polled") is existing
    assert "idle" not in registry


async def test_rehydrate_with_nothing_running(rehydrator, store, registry):
    store.replace_all([make_pipeline("p1")])
    assert rehydrator.rehydrate() == []
    assert len(registry) == 0
