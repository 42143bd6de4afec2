"""Error taxonomy for the orchestration core.

Correlation misses (a status report or rehydration candidate with no local
record) are not errors and have no exception type; they are logged and skipped.
"""

from __future__ import annotations


class PipesyncError(Exception):
    """Base class for all pipesync errors."""


class RemoteCallFailure(PipesyncError):
    """A call to the remote execution service failed.

    ``operation`` names the call (``run``, ``job_status``, ``delete_schedule``...)
    and ``cause`` carries the underlying transport/HTTP exception, if any.
    """

    def __init__(self, operation: str, cause: BaseException | None = None) -> None:
        self.operation = operation
        self.cause = cause
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"Remote call '{operation}' failed{detail}")


class RegistrationConflict(PipesyncError):
    """A live poller already exists for this job identifier."""

    def __init__(self, job_id: str) -> None:
        self.job_id = job_id
        super().__init__(f"A poller is already registered for job {job_id!r}")
