"""REST wrapper for the Dataflow v1b3 jobs API."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import httpx
import structlog
from tenacity import (
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from pipeline_harness.config.models import DataflowConfig, PipelineOptions
from pipeline_harness.jobs.base import JobHandle, JobMessage, JobState
from pipeline_harness.translation.context import JobGraph

logger = structlog.get_logger()

_SCOPE = "https://www.googleapis.com/auth/cloud-platform"
_CONSOLE_URL = "https://console.cloud.google.com/dataflow/jobs"


class DataflowError(Exception):
    """Raised when a Dataflow API call fails."""


def job_monitoring_url(project_id: str, job_id: str, region: str) -> str:
    """Console page where an operator can inspect or cancel a job."""
    return f"{_CONSOLE_URL}/{region}/{job_id}?project={project_id}"


class GoogleAccessToken:
    """Application-default credentials, refreshed when expired."""

    def __init__(self) -> None:
        self._credentials: Any = None

    def __call__(self) -> str:
        import google.auth
        from google.auth.transport.requests import Request

        if self._credentials is None:
            self._credentials, _ = google.auth.default(scopes=[_SCOPE])
        if not self._credentials.valid:
            self._credentials.refresh(Request())
        return str(self._credentials.token)


class DataflowJobService:
    """Thin synchronous wrapper around the Dataflow jobs REST API."""

    def __init__(
        self,
        config: DataflowConfig | None = None,
        token_provider: Callable[[], str] | None = None,
    ) -> None:
        self._config = config or DataflowConfig()
        self._token = token_provider or GoogleAccessToken()
        self._client = httpx.Client(
            base_url=f"{self._config.endpoint}/v1b3",
            timeout=self._config.timeout_seconds,
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> DataflowJobService:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def _request(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        headers = {"Authorization": f"Bearer {self._token()}"}
        resp = self._client.request(method, path, headers=headers, **kwargs)
        if resp.status_code >= 300:
            raise DataflowError(
                f"{method} {path} failed: {resp.status_code} {resp.text}"
            )
        return resp.json() if resp.content else {}  # type: ignore[no-any-return]

    @staticmethod
    def _job_path(job: JobHandle) -> str:
        return f"/projects/{job.project_id}/locations/{job.region}/jobs/{job.job_id}"

    # -- Submission ------------------------------------------------------------

    def submit(self, graph: JobGraph, options: PipelineOptions) -> JobHandle:
        """Create the job; transport errors are retried, API errors are not."""
        body: dict[str, Any] = {
            "name": options.job_name,
            "type": "JOB_TYPE_STREAMING" if options.streaming else "JOB_TYPE_BATCH",
            "steps": graph.to_api(),
            "environment": {
                "workerPools": [{"kind": "harness", "numWorkers": options.num_workers}],
            },
        }
        if options.temp_location:
            body["environment"]["tempStoragePrefix"] = options.temp_location

        path = f"/projects/{options.project}/locations/{options.region}/jobs"
        for attempt in Retrying(
            retry=retry_if_exception_type(httpx.TransportError),
            stop=stop_after_attempt(self._config.submit_max_attempts),
            wait=wait_exponential(multiplier=1, max=10),
            reraise=True,
        ):
            with attempt:
                created = self._request("POST", path, json=body)

        job = JobHandle(
            job_id=created["id"],
            project_id=options.project,
            region=options.region,
            name=options.job_name,
        )
        logger.info("dataflow.job_submitted", job_id=job.job_id, job_name=job.name)
        return job

    # -- State -----------------------------------------------------------------

    def get_state(self, job: JobHandle) -> JobState:
        data = self._request("GET", self._job_path(job), params={"view": "JOB_VIEW_SUMMARY"})
        return JobState.parse(data.get("currentState"))

    def cancel(self, job: JobHandle) -> None:
        self._request(
            "PUT",
            self._job_path(job),
            json={"requestedState": JobState.CANCELLED.value},
        )
        logger.info("dataflow.cancel_requested", job_id=job.job_id)

    def list_messages(self, job: JobHandle, since: str | None = None) -> list[JobMessage]:
        params: dict[str, str] = {"minimumImportance": "JOB_MESSAGE_BASIC"}
        if since is not None:
            params["startTime"] = since
        messages: list[JobMessage] = []
        while True:
            data = self._request(
                "GET", f"{self._job_path(job)}/messages", params=params
            )
            for raw in data.get("jobMessages", []):
                msg = JobMessage(
                    time=raw.get("time", ""),
                    text=raw.get("messageText", ""),
                    importance=raw.get("messageImportance", "JOB_MESSAGE_BASIC"),
                )
                if since is not None and msg.time < since:
                    continue
                messages.append(msg)
            token = data.get("nextPageToken")
            if not token:
                break
            params["pageToken"] = token
        messages.sort(key=lambda m: m.time)
        return messages

    def monitoring_url(self, project_id: str, job_id: str, region: str) -> str:
        return job_monitoring_url(project_id, job_id, region)
