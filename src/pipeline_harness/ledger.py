"""RunLedger — jobs to cancel and messages to print at shutdown."""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING

from pipeline_harness.console import OperatorSink

if TYPE_CHECKING:
    from pipeline_harness.jobs.base import JobHandle

BORDER = "*" * 59


class RunLedger:
    """Process-wide record shared by the caller's thread and the exit hook.

    Tracked jobs are unique by ``job_id`` and never removed; messages are kept
    in the order they were noted. Both live behind one lock.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._jobs: dict[str, JobHandle] = {}
        self._messages: list[str] = []

    def track(self, job: JobHandle) -> bool:
        """Add *job* to the cancellation set. Returns False if already tracked."""
        with self._lock:
            if job.job_id in self._jobs:
                return False
            self._jobs[job.job_id] = job
            return True

    def jobs(self) -> list[JobHandle]:
        with self._lock:
            return list(self._jobs.values())

    def note(self, message: str) -> None:
        with self._lock:
            self._messages.append(message)

    def messages(self) -> list[str]:
        with self._lock:
            return list(self._messages)

    def flush(self, sink: OperatorSink) -> None:
        """Write every pending message to *sink* as one bordered block."""
        lines = self.messages()
        sink.emit("")
        sink.emit(BORDER)
        sink.emit(BORDER)
        for line in lines:
            sink.emit(line)
        sink.emit(BORDER)
        sink.emit(BORDER)
