"""Shared fixtures: fresh core components per test."""

from __future__ import annotations

import pytest

from fakes import FakeExecutionApi
from pipesync.orchestration import Orchestrator
from pipesync.pollers import PollerRegistry
from pipesync.store import PipelineStore


@pytest.fixture
def api() -> FakeExecutionApi:
    return FakeExecutionApi()


@pytest.fixture
def store() -> PipelineStore:
    return PipelineStore()


@pytest.fixture
async def registry():
    reg = PollerRegistry()
    yield reg
    reg.dispose_all()


@pytest.fixture
async def orchestrator(api, store, registry) -> Orchestrator:
    # Long interval: tests drive polling explicitly through poll_once
    return Orchestrator(api, store, registry, poll_interval=3600)
