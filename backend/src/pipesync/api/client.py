"""HTTP client for the remote execution service's orchestration endpoints."""

from __future__ import annotations

import logging
from typing import Any

import requests
from pydantic import ValidationError
from requests.exceptions import ConnectionError, HTTPError, Timeout
from tenacity import Retrying, retry_if_exception, stop_after_attempt, wait_exponential

from pipesync.config import get_settings
from pipesync.errors import RemoteCallFailure
from pipesync.models.pipeline import Pipeline, RunResult, StatusReport

logger = logging.getLogger(__name__)

_PREFIX = "/orchestrations"


def _is_transient(exc: BaseException) -> bool:
    """Connection problems, timeouts and 5xx answers are worth another attempt."""
    if isinstance(exc, (ConnectionError, Timeout)):
        return True
    if isinstance(exc, HTTPError) and exc.response is not None:
        return exc.response.status_code >= 500
    return False


class OrchestrationsClient:
    """Thin synchronous wrapper; one method per endpoint.

    Every failure surfaces as RemoteCallFailure once the retry budget is spent.
    """

    def __init__(
        self,
        base_url: str | None = None,
        *,
        timeout: float | None = None,
        max_attempts: int | None = None,
        wait=None,
        session: requests.Session | None = None,
    ) -> None:
        s = get_settings()
        self.base_url = (base_url or s.api_base_url).rstrip("/")
        self.timeout = timeout if timeout is not None else s.api_timeout_s
        self.max_attempts = max_attempts if max_attempts is not None else s.api_max_attempts
        self._wait = wait if wait is not None else wait_exponential(multiplier=1, min=2, max=10)
        self._session = session or requests.Session()

    def _request(self, operation: str, method: str, path: str, **kwargs: Any) -> Any:
        url = f"{self.base_url}{_PREFIX}{path}"
        retrying = Retrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=self._wait,
            retry=retry_if_exception(_is_transient),
            reraise=True,
        )
        try:
            for attempt in retrying:
                with attempt:
                    logger.debug("%s %s (attempt %d)", method, url, attempt.retry_state.attempt_number)
                    resp = self._session.request(method, url, timeout=self.timeout, **kwargs)
                    resp.raise_for_status()
        except requests.RequestException as e:
            raise RemoteCallFailure(operation, e) from e

        if not resp.content:
            return None
        try:
            return resp.json()
        except ValueError as e:
            raise RemoteCallFailure(operation, e) from e

    # ── Jobs ─────────────────────────────────────────────────────────────────

    def run(self, pipeline_name: str) -> RunResult:
        """POST /orchestrations/run — start a job for the named pipeline."""
        data = self._request("run", "POST", "/run", json={"name": pipeline_name})
        try:
            return RunResult.model_validate(data)
        except ValidationError as e:
            raise RemoteCallFailure("run", e) from e

    def job_status(self, job_ids: list[str]) -> list[StatusReport]:
        """POST /orchestrations/jobs/state — one batched status query."""
        data = self._request("job_status", "POST", "/jobs/state", json={"jobIds": list(job_ids)})
        try:
            return [StatusReport.model_validate(j) for j in (data or {}).get("jobs", [])]
        except (ValidationError, AttributeError) as e:
            raise RemoteCallFailure("job_status", e) from e

    def get_job_log(self, job_id: str) -> str:
        """GET /orchestrations/jobs/{job_id}/log"""
        data = self._request("get_job_log", "GET", f"/jobs/{job_id}/log")
        if isinstance(data, dict):
            return data.get("log") or ""
        return data or ""

    # ── Pipeline schedules ───────────────────────────────────────────────────

    def list_schedules(self) -> list[Pipeline]:
        """GET /orchestrations/pipeline-schedules"""
        data = self._request("list_schedules", "GET", "/pipeline-schedules")
        try:
            return [Pipeline.model_validate(p) for p in data or []]
        except ValidationError as e:
            raise RemoteCallFailure("list_schedules", e) from e

    def save_schedule(self, pipeline: Pipeline) -> dict[str, Any]:
        """POST /orchestrations/pipeline-schedules — create a schedule."""
        data = self._request(
            "save_schedule", "POST", "/pipeline-schedules", json=pipeline.schedule_payload()
        )
        return data or {}

    def update_schedule(self, pipeline: Pipeline) -> dict[str, Any]:
        """PUT /orchestrations/pipeline-schedules — update an existing schedule."""
        data = self._request(
            "update_schedule", "PUT", "/pipeline-schedules", json=pipeline.schedule_payload()
        )
        return data or {}

    def delete_schedule(self, pipeline: Pipeline) -> None:
        """DELETE /orchestrations/pipeline-schedules"""
        self._request(
            "delete_schedule", "DELETE", "/pipeline-schedules", json=pipeline.schedule_payload()
        )

    def close(self) -> None:
        self._session.close()
