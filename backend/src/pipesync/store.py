"""In-memory record of every known pipeline and its latest observed run status.

The store is plain data plus invariant enforcement; it never does I/O. One
instance is created per session and handed to the orchestrator, reconciler and
rehydrator.
"""

from __future__ import annotations

import logging

from pipesync.models.pipeline import Pipeline, StatusUpdate
from pipesync.timestamps import format_yyyymmdd, latest

logger = logging.getLogger(__name__)


class PipelineStore:
    def __init__(self, pipelines: list[Pipeline] | None = None) -> None:
        self._pipelines: list[Pipeline] = list(pipelines or [])

    def __len__(self) -> int:
        return len(self._pipelines)

    def __contains__(self, pipeline: Pipeline) -> bool:
        return self.find_by_name(pipeline.name) is not None

    # ── Writes ───────────────────────────────────────────────────────────────

    def replace_all(self, pipelines: list[Pipeline]) -> None:
        """Swap in a fresh listing from the service (session start)."""
        self._pipelines = list(pipelines)

    def upsert(self, pipeline: Pipeline) -> Pipeline:
        """Insert, or replace the pipeline with the same name in place."""
        for idx, existing in enumerate(self._pipelines):
            if existing.name == pipeline.name:
                self._pipelines[idx] = pipeline
                return pipeline
        self._pipelines.append(pipeline)
        return pipeline

    def remove(self, pipeline: Pipeline) -> bool:
        """Delete by name. Returns False if it was not present."""
        before = len(self._pipelines)
        self._pipelines = [p for p in self._pipelines if p.name != pipeline.name]
        return len(self._pipelines) != before

    def apply_status(self, pipeline: Pipeline, update: StatusUpdate) -> Pipeline:
        """Set all status fields of ``pipeline`` from ``update`` in one step.

        Flags are last-write-wins, except ``has_ever_succeeded`` which is sticky
        once true. Timestamps only move forward: an older or missing value never
        replaces a stored one.
        """
        pipeline.is_running = update.is_running
        pipeline.has_error = update.has_error
        pipeline.has_ever_succeeded = pipeline.has_ever_succeeded or update.has_ever_succeeded
        pipeline.is_saving = update.is_saving
        pipeline.is_deleting = update.is_deleting
        pipeline.started_at = latest(pipeline.started_at, update.started_at)
        pipeline.ended_at = latest(pipeline.ended_at, update.ended_at)
        return pipeline

    # ── Reads ────────────────────────────────────────────────────────────────

    def list(self) -> list[Pipeline]:
        return list(self._pipelines)

    def find_by_name(self, name: str) -> Pipeline | None:
        return next((p for p in self._pipelines if p.name == name), None)

    def find_by_job_id(self, job_id: str) -> Pipeline | None:
        """Running jobs are keyed by pipeline name."""
        return next((p for p in self._pipelines if p.poll_job_id == job_id), None)

    def has_pipelines(self) -> bool:
        return bool(self._pipelines)

    def running(self) -> list[Pipeline]:
        return [p for p in self._pipelines if p.is_running]

    def successful(self) -> list[Pipeline]:
        return [p for p in self._pipelines if p.has_ever_succeeded]

    def with_plugin(self, plugin_type: str, plugin_name: str) -> list[Pipeline]:
        """Pipelines whose ``extractor``/``loader``/``transform`` is ``plugin_name``."""
        return [p for p in self._pipelines if getattr(p, plugin_type, None) == plugin_name]

    def first_with_plugin(self, plugin_type: str, plugin_name: str) -> Pipeline | None:
        matches = self.with_plugin(plugin_type, plugin_name)
        return matches[0] if matches else None

    def sorted_by_extractor(self) -> list[Pipeline]:
        return sorted(self._pipelines, key=lambda p: p.extractor or "")

    def last_updated_label(self, extractor: str) -> str:
        """Date of the extractor pipeline's last completed run, for display."""
        pipeline = self.first_with_plugin("extractor", extractor)
        if pipeline is None:
            return ""
        if pipeline.ended_at is not None:
            return format_yyyymmdd(pipeline.ended_at)
        return "Updating..." if pipeline.is_running else ""

    def start_date_for(self, extractor: str) -> str:
        """Configured start date of the extractor's pipeline, or empty string."""
        pipeline = self.first_with_plugin("extractor", extractor)
        if pipeline is None:
            return ""
        return pipeline.start_date or ""
