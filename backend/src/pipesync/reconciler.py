"""Apply batched job status reports to local pipeline records.

Flow (one call to ``poll_once``):
  1. Collect the job ids of every live poller (none → return, no request)
  2. One batched status query to the execution service
  3. For each report, in order: retire the job's poller if complete, then
     apply the reported status to the matching pipeline
"""

from __future__ import annotations

import logging

from pipesync.api.remote import ExecutionApi
from pipesync.models.pipeline import StatusReport, StatusUpdate
from pipesync.pollers import PollerRegistry
from pipesync.store import PipelineStore

logger = logging.getLogger(__name__)


class StatusReconciler:
    def __init__(self, store: PipelineStore, registry: PollerRegistry, api: ExecutionApi) -> None:
        self.store = store
        self.registry = registry
        self.api = api

    async def poll_once(self) -> list[StatusReport]:
        """Query and reconcile every polled job. Remote failures propagate."""
        job_ids = self.registry.list_active_job_ids()
        if not job_ids:
            logger.debug("No live pollers; skipping status query")
            return []

        reports = await self.api.job_status(job_ids)
        self.apply(reports)
        return reports

    def apply(self, reports: list[StatusReport]) -> None:
        """Reconcile a batch. Applying the same batch twice is a no-op the second time."""
        for report in reports:
            poller = self.registry.get(report.job_id)
            if report.is_complete and poller is not None:
                self.registry.unregister(poller)

            pipeline = self.store.find_by_job_id(report.job_id)
            if pipeline is None:
                logger.debug("No local pipeline for job %s; ignoring report", report.job_id)
                continue

            update = StatusUpdate.from_pipeline(
                pipeline,
                is_running=not report.is_complete,
                has_error=report.has_error,
                has_ever_succeeded=report.has_ever_succeeded,
                started_at=report.started_at,
                ended_at=report.ended_at,
            )
            self.store.apply_status(pipeline, update)
            if report.is_complete:
                logger.info(
                    "Job %s finished (%s)",
                    report.job_id,
                    "error" if report.has_error else "success",
                )
