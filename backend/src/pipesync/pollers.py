"""Background pollers for in-flight jobs.

Each poller owns its own asyncio task, so a poller created late (for example by
rehydration) starts its own cycle instead of waiting on an existing one. Every
tick calls the same batched reconciliation, so two pollers firing close
together may issue overlapping status queries; reconciliation is idempotent,
so this is tolerated rather than deduplicated.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable

from pipesync.errors import RegistrationConflict

logger = logging.getLogger(__name__)

TickFn = Callable[[], Awaitable[object]]


class PipelinePoller:
    """Periodically awaits ``on_tick`` for one job until disposed."""

    def __init__(self, job_id: str, interval: float, on_tick: TickFn) -> None:
        self.job_id = job_id
        self.interval = interval
        self._on_tick = on_tick
        self._task: asyncio.Task | None = None
        self._disposed = False

    @property
    def is_live(self) -> bool:
        return not self._disposed

    def start(self) -> None:
        """Arm the timer. Must be called from inside a running event loop."""
        if self._task is not None or self._disposed:
            return
        loop = asyncio.get_running_loop()
        self._task = loop.create_task(self._run(), name=f"poller:{self.job_id}")

    async def _run(self) -> None:
        while not self._disposed:
            await asyncio.sleep(self.interval)
            if self._disposed:
                break
            try:
                await self._on_tick()
            except Exception as e:
                # Next tick retries
                logger.warning("Poll tick for %s failed: %s", self.job_id, e)

    def dispose(self) -> None:
        """Stop the timer. Safe to call more than once, and from inside a tick."""
        if self._disposed:
            return
        self._disposed = True
        task = self._task
        if task is None or task.done():
            return
        try:
            current = asyncio.current_task()
        except RuntimeError:
            current = None
        # A tick that retires its own poller finishes normally; the loop sees the flag
        if task is not current:
            task.cancel()

    def __repr__(self) -> str:
        state = "live" if self.is_live else "disposed"
        return f"PipelinePoller(job_id={self.job_id!r}, interval={self.interval}, {state})"


class PollerRegistry:
    """Owns the live pollers, at most one per job identifier."""

    def __init__(self) -> None:
        self._pollers: dict[str, PipelinePoller] = {}

    def __len__(self) -> int:
        return len(self._pollers)

    def __contains__(self, job_id: str) -> bool:
        return job_id in self._pollers

    def register(self, job_id: str, interval: float, on_tick: TickFn) -> PipelinePoller:
        """Create and start a poller for ``job_id``.

        Raises RegistrationConflict if one is already live for that job.
        """
        if job_id in self._pollers:
            raise RegistrationConflict(job_id)
        poller = PipelinePoller(job_id, interval, on_tick)
        poller.start()
        self._pollers[job_id] = poller
        logger.info("Registered poller for job %s (every %ss)", job_id, interval)
        return poller

    def unregister(self, poller: PipelinePoller) -> None:
        """Dispose ``poller`` and drop it. Idempotent."""
        poller.dispose()
        if self._pollers.get(poller.job_id) is poller:
            del self._pollers[poller.job_id]
            logger.info("Retired poller for job %s", poller.job_id)

    def get(self, job_id: str) -> PipelinePoller | None:
        return self._pollers.get(job_id)

    def list_active_job_ids(self) -> list[str]:
        return list(self._pollers)

    def dispose_all(self) -> None:
        for poller in list(self._pollers.values()):
            self.unregister(poller)
