"""Job handles, states and the job-service protocol."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from pipeline_harness.config.models import PipelineOptions
    from pipeline_harness.translation.context import JobGraph


class JobState(StrEnum):
    """Remote job states as reported by the Dataflow service."""

    UNKNOWN = "JOB_STATE_UNKNOWN"
    PENDING = "JOB_STATE_PENDING"
    QUEUED = "JOB_STATE_QUEUED"
    RUNNING = "JOB_STATE_RUNNING"
    UPDATING = "JOB_STATE_UPDATING"
    CANCELLING = "JOB_STATE_CANCELLING"
    DRAINING = "JOB_STATE_DRAINING"
    STOPPED = "JOB_STATE_STOPPED"
    DONE = "JOB_STATE_DONE"
    FAILED = "JOB_STATE_FAILED"
    CANCELLED = "JOB_STATE_CANCELLED"
    UPDATED = "JOB_STATE_UPDATED"
    DRAINED = "JOB_STATE_DRAINED"

    @property
    def is_terminal(self) -> bool:
        return self in _TERMINAL

    @classmethod
    def parse(cls, value: str | None) -> JobState:
        """Map an API state string to a JobState; unrecognised values are UNKNOWN."""
        try:
            return cls(value)
        except ValueError:
            return cls.UNKNOWN


_TERMINAL = frozenset(
    {
        JobState.DONE,
        JobState.FAILED,
        JobState.CANCELLED,
        JobState.UPDATED,
        JobState.DRAINED,
    }
)


@dataclass(frozen=True)
class JobHandle:
    """Opaque reference to a submitted job. Identity is the job id."""

    job_id: str
    project_id: str
    region: str = "us-central1"
    name: str = ""


@dataclass(frozen=True)
class JobMessage:
    """One status line reported by the job service."""

    time: str
    text: str
    importance: str = "JOB_MESSAGE_BASIC"

    def render(self) -> str:
        return f"{self.time} {self.importance.removeprefix('JOB_MESSAGE_')}: {self.text}"


@runtime_checkable
class JobService(Protocol):
    """Remote job service: submission, state polling and cancellation."""

    def submit(self, graph: JobGraph, options: PipelineOptions) -> JobHandle:
        """Submit a job graph and return its handle without waiting."""
        ...

    def get_state(self, job: JobHandle) -> JobState: ...

    def cancel(self, job: JobHandle) -> None:
        """Request cancellation. Raises on failure."""
        ...

    def list_messages(self, job: JobHandle, since: str | None = None) -> list[JobMessage]:
        """Return status messages at or after *since* (an RFC 3339 timestamp), oldest first.

        The bound is inclusive, so messages stamped exactly *since* come back
        again; callers drop the ones they have already seen.
        """
        ...

    def monitoring_url(self, project_id: str, job_id: str, region: str) -> str: ...
