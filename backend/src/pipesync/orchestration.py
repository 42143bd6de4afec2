"""Public operations on pipelines: run, save, update, delete, session bootstrap.

This is the only component that calls the execution service directly; the
reconciler reaches it through the pollers' ticks.

Optimistic flags on failure:
  - run:           ``is_running`` is reverted, then the error is re-raised
  - save / update: ``is_saving`` is cleared, then the error is re-raised
  - delete:        ``is_deleting`` stays set; call ``cancel_delete`` to clear it
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable

from pipesync.api.remote import ExecutionApi
from pipesync.config import get_settings
from pipesync.errors import PipesyncError, RegistrationConflict
from pipesync.models.pipeline import Pipeline, StatusUpdate
from pipesync.pollers import PipelinePoller, PollerRegistry
from pipesync.reconciler import StatusReconciler
from pipesync.rehydration import Rehydrator
from pipesync.store import PipelineStore

logger = logging.getLogger(__name__)


class Orchestrator:
    def __init__(
        self,
        api: ExecutionApi,
        store: PipelineStore | None = None,
        registry: PollerRegistry | None = None,
        *,
        poll_interval: float | None = None,
    ) -> None:
        self.api = api
        self.store = store if store is not None else PipelineStore()
        self.registry = registry if registry is not None else PollerRegistry()
        self.poll_interval = (
            poll_interval if poll_interval is not None else get_settings().poll_interval_s
        )
        self.reconciler = StatusReconciler(self.store, self.registry, api)
        self.rehydrator = Rehydrator(
            self.store, self.registry, self.reconciler.poll_once, self.poll_interval
        )

    # ── Session ──────────────────────────────────────────────────────────────

    async def load_schedules(self) -> list[Pipeline]:
        """Replace local records with the service's listing, then resume polling."""
        pipelines = await self.api.list_schedules()
        self.store.replace_all(pipelines)
        logger.info("Loaded %d pipeline schedule(s)", len(pipelines))
        self.rehydrate()
        return self.store.list()

    def rehydrate(self) -> list[PipelinePoller]:
        return self.rehydrator.rehydrate()

    async def poll_once(self) -> None:
        await self.reconciler.poll_once()

    async def wait_until_idle(self, check_every: float = 0.5) -> None:
        """Block until every poller has been retired."""
        while len(self.registry):
            await asyncio.sleep(check_every)

    def shutdown(self) -> None:
        """Dispose all pollers. Running jobs are picked up again by rehydration."""
        self.registry.dispose_all()

    # ── Operations ───────────────────────────────────────────────────────────

    async def run(self, pipeline: Pipeline) -> PipelinePoller:
        """Start a job for ``pipeline`` and poll it until it completes."""
        target = self._tracked(pipeline)
        was_running = target.is_running
        self._set_status(target, is_running=True)

        try:
            result = await self.api.run(target.name)
        except PipesyncError:
            self._set_status(target, is_running=was_running)
            raise

        logger.info("Started job %s for pipeline %s", result.job_id, target.name)
        return self._queue_poller(result.job_id)

    async def save(self, pipeline: Pipeline) -> Pipeline:
        """Create a new schedule on the service."""
        return await self._persist(pipeline, self.api.save_schedule, "Saved")

    async def update(self, pipeline: Pipeline) -> Pipeline:
        """Update an existing schedule on the service."""
        return await self._persist(pipeline, self.api.update_schedule, "Updated")

    async def delete(self, pipeline: Pipeline) -> None:
        """Delete the schedule remotely; the local record goes only on success."""
        target = self._tracked(pipeline)
        self._set_status(target, is_deleting=True)

        await self.api.delete_schedule(target)

        poller = self.registry.get(target.poll_job_id)
        if poller is not None:
            self.registry.unregister(poller)
        self.store.remove(target)
        logger.info("Deleted pipeline schedule %s", target.name)

    def cancel_delete(self, pipeline: Pipeline) -> Pipeline:
        """Clear ``is_deleting`` after a failed delete."""
        target = self._tracked(pipeline)
        return self._set_status(target, is_deleting=False)

    async def get_job_log(self, job_id: str) -> str:
        return await self.api.get_job_log(job_id)

    # ── Internals ────────────────────────────────────────────────────────────

    def _tracked(self, pipeline: Pipeline) -> Pipeline:
        """The store's instance for ``pipeline``, inserting it if unknown."""
        existing = self.store.find_by_name(pipeline.name)
        return existing if existing is not None else self.store.upsert(pipeline)

    def _set_status(self, pipeline: Pipeline, **changes: Any) -> Pipeline:
        return self.store.apply_status(pipeline, StatusUpdate.from_pipeline(pipeline, **changes))

    def _queue_poller(self, job_id: str) -> PipelinePoller:
        try:
            return self.registry.register(job_id, self.poll_interval, self.reconciler.poll_once)
        except RegistrationConflict:
            logger.warning("Job %s is already being polled; reusing its poller", job_id)
            return self.registry.get(job_id)

    async def _persist(
        self,
        pipeline: Pipeline,
        call: Callable[[Pipeline], Awaitable[dict[str, Any]]],
        verb: str,
    ) -> Pipeline:
        target = self._tracked(pipeline)
        if target is not pipeline:
            target.copy_schedule_from(pipeline)
        self._set_status(target, is_saving=True)

        try:
            remote = await call(target)
        except PipesyncError:
            self._set_status(target, is_saving=False)
            raise

        target.apply_remote(remote)
        self._set_status(target, is_saving=False)
        if self.store.find_by_name(target.name) is not target:
            # Deleted or reloaded while the call was in flight
            logger.info("Pipeline %s is no longer tracked; dropping save result", target.name)
            return target
        logger.info("%s pipeline schedule %s", verb, target.name)
        return target
