"""Models for pipeline schedules, their run status, and job status reports."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator, model_validator
from pydantic.alias_generators import to_camel

from pipesync.timestamps import parse_iso8601

logger = logging.getLogger(__name__)

# Fields the execution service accepts when saving/updating a schedule
SCHEDULE_FIELDS = ("name", "extractor", "loader", "transform", "interval", "start_date")
_EDITABLE_FIELDS = SCHEDULE_FIELDS[1:]  # name is the identity

STATUS_FIELDS = (
    "is_running",
    "has_error",
    "has_ever_succeeded",
    "is_saving",
    "is_deleting",
    "started_at",
    "ended_at",
)


class _WireModel(BaseModel):
    """camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class Pipeline(_WireModel):
    name: str
    extractor: str | None = None
    loader: str | None = None
    transform: str | None = None
    interval: str | None = None  # schedule cadence, e.g. "@daily"
    start_date: str | None = None

    is_running: bool = False
    has_error: bool = False
    has_ever_succeeded: bool = False
    is_saving: bool = False
    is_deleting: bool = False
    started_at: datetime | None = None
    ended_at: datetime | None = None

    @field_validator("started_at", "ended_at", mode="before")
    @classmethod
    def _normalize_ts(cls, v: Any) -> datetime | None:
        return parse_iso8601(v)

    @property
    def poll_job_id(self) -> str:
        """Job identifier used while running; equal to the pipeline name."""
        return self.name

    def schedule_payload(self) -> dict[str, Any]:
        """Serialize the schedule definition (no status fields) for the service."""
        return self.model_dump(by_alias=True, include=set(SCHEDULE_FIELDS), exclude_none=True)

    def copy_schedule_from(self, other: Pipeline) -> Pipeline:
        """Take ``other``'s schedule definition in place; status fields are untouched."""
        for field in _EDITABLE_FIELDS:
            setattr(self, field, getattr(other, field))
        return self

    def apply_remote(self, remote: dict[str, Any] | None) -> Pipeline:
        """Overlay schedule fields present in a service response, in place.

        Status fields in the response are ignored: run status only changes
        through status updates, so a save can never unset a running job or
        a past success.
        """
        if not remote:
            return self
        incoming = Pipeline.model_validate({**remote, "name": self.name})
        for field in _EDITABLE_FIELDS:
            if field in incoming.model_fields_set:
                setattr(self, field, getattr(incoming, field))
        return self


class StatusUpdate(BaseModel):
    """Complete set of status fields applied to a Pipeline in one step.

    Every field is required: there is no partial merge, so a caller can never
    clear a flag by forgetting to pass it.
    """

    model_config = ConfigDict(frozen=True)

    is_running: bool
    has_error: bool
    has_ever_succeeded: bool
    is_saving: bool
    is_deleting: bool
    started_at: datetime | None
    ended_at: datetime | None

    @classmethod
    def from_pipeline(cls, pipeline: Pipeline, **changes: Any) -> StatusUpdate:
        """Current status of ``pipeline`` with ``changes`` overlaid."""
        values = {f: getattr(pipeline, f) for f in STATUS_FIELDS}
        unknown = set(changes) - set(STATUS_FIELDS)
        if unknown:
            raise TypeError(f"Unknown status fields: {sorted(unknown)}")
        values.update(changes)
        return cls(**values)


class StatusReport(_WireModel):
    """One job's status as returned by the batched status query."""

    job_id: str
    is_complete: bool = False
    has_error: bool = False
    has_ever_succeeded: bool = False
    started_at: datetime | None = None
    ended_at: datetime | None = None

    @field_validator("started_at", "ended_at", mode="before")
    @classmethod
    def _normalize_ts(cls, v: Any) -> datetime | None:
        return parse_iso8601(v)

    @model_validator(mode="after")
    def _completion_has_end(self) -> StatusReport:
        # A completed job always has an end time; stamp receipt time if the service left it out
        if self.is_complete and self.ended_at is None:
            logger.warning("Completion report for %s has no endedAt; using receipt time", self.job_id)
            self.ended_at = datetime.now(timezone.utc)
        return self


class RunResult(_WireModel):
    """Response of the start-job call: the poll key plus whatever metadata came along."""

    model_config = ConfigDict(extra="allow")

    job_id: str
