"""JobSupervisor — waits on jobs and cancels all of them when the process exits."""

from __future__ import annotations

import atexit
import signal
import threading
import time
from collections.abc import Callable
from typing import Any

import structlog
from tenacity import (
    RetryCallState,
    Retrying,
    retry_if_result,
    stop_after_attempt,
    wait_fixed,
)

from pipeline_harness.config.models import HarnessConfig
from pipeline_harness.console import OperatorSink
from pipeline_harness.injector import build_injector_graph, injector_options
from pipeline_harness.jobs.base import JobHandle, JobService, JobState
from pipeline_harness.ledger import RunLedger

logger = structlog.get_logger()


class JobWaitError(RuntimeError):
    """Polling a job failed before it reached a terminal state."""

    def __init__(self, job_id: str) -> None:
        super().__init__(f"Failed to wait for job to finish: {job_id}")
        self.job_id = job_id


class JobSupervisor:
    """Tracks every job launched by this process and owns its exit behaviour.

    Unless ``keep_jobs_running`` is set, the first ``wait_to_finish`` installs
    an exit hook that tears down resources, replays the ledger to the operator,
    requests cancellation of every tracked job and then verifies each one.
    """

    def __init__(
        self,
        config: HarnessConfig,
        jobs: JobService,
        ledger: RunLedger,
        sink: OperatorSink,
        teardown: Callable[[], None] | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._config = config
        self._jobs = jobs
        self._ledger = ledger
        self._sink = sink
        self._teardown = teardown
        self._sleep = sleep
        self._hook_lock = threading.Lock()
        self._hook_installed = False
        self._shutdown_done = False

    @property
    def hook_installed(self) -> bool:
        return self._hook_installed

    # -- Launch & wait ---------------------------------------------------------

    def run_injector(
        self, input_source: str, topic: str, parallelism: int | None = None
    ) -> JobHandle:
        """Submit the batch injector job and track it. Does not block."""
        options = injector_options(self._config.pipeline, self._config.injector)
        graph = build_injector_graph(
            options,
            input_source,
            topic,
            parallelism or self._config.injector.max_parallelism,
        )
        job = self._jobs.submit(graph, options)
        self._ledger.track(job)
        logger.info(
            "supervisor.injector_started",
            job_id=job.job_id,
            input=input_source,
            topic=topic,
        )
        return job

    def wait_to_finish(self, job: JobHandle) -> JobState:
        """Track *job* and block until it reaches a terminal state.

        Status messages and state transitions are written to the sink as they
        are observed.

        Raises:
            JobWaitError: polling failed; not retried.
        """
        self._ledger.track(job)
        if not self._config.keep_jobs_running:
            self.install_exit_hook()

        last_state: JobState | None = None
        last_message_time: str | None = None
        # messages already printed that carry last_message_time
        printed: set[tuple[str, str]] = set()
        try:
            while True:
                for message in self._jobs.list_messages(job, since=last_message_time):
                    key = (message.time, message.text)
                    if key in printed:
                        continue
                    if message.time != last_message_time:
                        printed.clear()
                        last_message_time = message.time
                    printed.add(key)
                    self._sink.emit(message.render())
                state = self._jobs.get_state(job)
                if state != last_state:
                    self._sink.emit(f"Job {job.job_id} is in state {state.value}")
                    logger.info("supervisor.job_state", job_id=job.job_id, state=state)
                    last_state = state
                if state.is_terminal:
                    return state
                self._sleep(self._config.dataflow.poll_interval_seconds)
        except Exception as exc:
            logger.error("supervisor.wait_failed", job_id=job.job_id, error=str(exc))
            raise JobWaitError(job.job_id) from exc

    # -- Exit hook -------------------------------------------------------------

    def install_exit_hook(self) -> bool:
        """Register :meth:`shutdown` to run at process exit. Installs at most once."""
        with self._hook_lock:
            if self._hook_installed:
                return False
            atexit.register(self.shutdown)
            if threading.current_thread() is threading.main_thread():
                signal.signal(signal.SIGTERM, self._on_terminate)
            self._hook_installed = True
        logger.info("supervisor.exit_hook_installed")
        return True

    def _on_terminate(self, signum: int, frame: Any) -> None:
        if self._shutdown_done:
            logger.warning("supervisor.shutdown_signal_ignored", signal=signum)
            return
        logger.info("supervisor.shutdown_signal", signal=signum)
        raise SystemExit(128 + signum)

    def shutdown(self) -> None:
        """Tear down, report, cancel every tracked job and verify. Runs at most once."""
        with self._hook_lock:
            if self._shutdown_done:
                return
            self._shutdown_done = True

        if self._teardown is not None:
            try:
                self._teardown()
            except (Exception, SystemExit) as exc:
                logger.error("supervisor.teardown_failed", error=str(exc))
        self._ledger.flush(self._sink)

        # an exit requested mid-pass must not strand the remaining jobs
        jobs = self._ledger.jobs()
        for job in jobs:
            try:
                self._cancel(job)
            except SystemExit:
                logger.warning("supervisor.cancel_interrupted", job_id=job.job_id)
                self._report_cancel_failure(job)
        for job in jobs:
            try:
                self._verify_cancelled(job)
            except SystemExit:
                logger.warning("supervisor.verify_interrupted", job_id=job.job_id)
                self._report_unverified(job)

    def _url(self, job: JobHandle) -> str:
        return self._jobs.monitoring_url(job.project_id, job.job_id, job.region)

    def _cancel(self, job: JobHandle) -> None:
        self._sink.emit(f"Canceling example pipeline: {job.job_id}")
        try:
            self._jobs.cancel(job)
        except Exception as exc:
            logger.warning("supervisor.cancel_failed", job_id=job.job_id, error=str(exc))
            self._report_cancel_failure(job)

    def _report_cancel_failure(self, job: JobHandle) -> None:
        self._sink.emit(
            "Failed to cancel the job, "
            "please go to the Developers Console to cancel it manually"
        )
        self._sink.emit(self._url(job))

    def _poll_state(self, job: JobHandle) -> JobState:
        try:
            return self._jobs.get_state(job)
        except Exception as exc:
            logger.warning("supervisor.poll_failed", job_id=job.job_id, error=str(exc))
            return JobState.UNKNOWN

    def _verify_cancelled(self, job: JobHandle) -> bool:
        cancellation = self._config.cancellation

        def _still_running(retry_state: RetryCallState) -> None:
            self._sink.emit(
                "The example pipeline is still running. Verifying the cancellation."
            )

        retrying = Retrying(
            retry=retry_if_result(lambda state: not state.is_terminal),
            stop=stop_after_attempt(cancellation.verify_attempts),
            wait=wait_fixed(cancellation.verify_interval_seconds),
            sleep=self._sleep,
            before_sleep=_still_running,
            retry_error_callback=lambda retry_state: None,
        )
        state = retrying(self._poll_state, job)
        if state is not None:
            self._sink.emit(f"Canceled example pipeline: {job.job_id}")
            return True

        logger.warning("supervisor.cancel_unverified", job_id=job.job_id)
        self._report_unverified(job)
        return False

    def _report_unverified(self, job: JobHandle) -> None:
        self._sink.emit(f"Failed to verify the cancellation for job: {job.job_id}")
        self._sink.emit("Please go to the Developers Console to verify manually:")
        self._sink.emit(self._url(job))
