"""Resume polling for jobs that were already running when the session started."""

from __future__ import annotations

import logging

from pipesync.pollers import PipelinePoller, PollerRegistry, TickFn
from pipesync.store import PipelineStore

logger = logging.getLogger(__name__)


class Rehydrator:
    """Issues a poller for every running pipeline that lacks one.

    Safe to call repeatedly: pipelines that already have a live poller are
    skipped, so a second call registers nothing.
    """

    def __init__(
        self,
        store: PipelineStore,
        registry: PollerRegistry,
        on_tick: TickFn,
        interval: float,
    ) -> None:
        self.store = store
        self.registry = registry
        self.on_tick = on_tick
        self.interval = interval

    def rehydrate(self) -> list[PipelinePoller]:
        created: list[PipelinePoller] = []
        for pipeline in self.store.running():
            job_id = pipeline.poll_job_id
            if job_id in self.registry:
                continue
            created.append(self.registry.register(job_id, self.interval, self.on_tick))

        if created:
            logger.info(
                "Rehydrated %d poller(s): %s",
                len(created),
                ", ".join(p.job_id for p in created),
            )
        return created
