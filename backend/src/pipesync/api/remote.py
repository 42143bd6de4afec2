"""Awaitable view of the execution service, as consumed by the orchestration core."""

from __future__ import annotations

import asyncio
from typing import Any, Protocol

from pipesync.api.client import OrchestrationsClient
from pipesync.models.pipeline import Pipeline, RunResult, StatusReport


class ExecutionApi(Protocol):
    async def run(self, pipeline_name: str) -> RunResult: ...

    async def job_status(self, job_ids: list[str]) -> list[StatusReport]: ...

    async def list_schedules(self) -> list[Pipeline]: ...

    async def save_schedule(self, pipeline: Pipeline) -> dict[str, Any]: ...

    async def update_schedule(self, pipeline: Pipeline) -> dict[str, Any]: ...

    async def delete_schedule(self, pipeline: Pipeline) -> None: ...

    async def get_job_log(self, job_id: str) -> str: ...


class ThreadedExecutionApi:
    """Runs the blocking HTTP client in a worker thread per call.

    Only the results come back to the event loop, so store and registry
    mutation stays on the loop thread.
    """

    def __init__(self, client: OrchestrationsClient | None = None) -> None:
        self.client = client or OrchestrationsClient()

    async def run(self, pipeline_name: str) -> RunResult:
        return await asyncio.to_thread(self.client.run, pipeline_name)

    async def job_status(self, job_ids: list[str]) -> list[StatusReport]:
        return await asyncio.to_thread(self.client.job_status, job_ids)

    async def list_schedules(self) -> list[Pipeline]:
        return await asyncio.to_thread(self.client.list_schedules)

    async def save_schedule(self, pipeline: Pipeline) -> dict[str, Any]:
        return await asyncio.to_thread(self.client.save_schedule, pipeline)

    async def update_schedule(self, pipeline: Pipeline) -> dict[str, Any]:
        return await asyncio.to_thread(self.client.update_schedule, pipeline)

    async def delete_schedule(self, pipeline: Pipeline) -> None:
        await asyncio.to_thread(self.client.delete_schedule, pipeline)

    async def get_job_log(self, job_id: str) -> str:
        return await asyncio.to_thread(self.client.get_job_log, job_id)

    def close(self) -> None:
        self.client.close()
