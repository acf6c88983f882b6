"""ExampleHarness — wires provisioning and job supervision for one example run."""

from __future__ import annotations

import structlog

from pipeline_harness.config.models import HarnessConfig
from pipeline_harness.console import ConsoleSink, OperatorSink
from pipeline_harness.jobs.base import JobHandle, JobService, JobState
from pipeline_harness.jobs.supervisor import JobSupervisor
from pipeline_harness.ledger import RunLedger
from pipeline_harness.resources.base import MessagingService, WarehouseService
from pipeline_harness.resources.provisioner import ResourceProvisioner

logger = structlog.get_logger()


class ExampleHarness:
    """Sets up external resources, starts the injector and cleans up on exit.

    Typical use::

        harness = ExampleHarness(config)
        harness.setup()
        job = harness.jobs.submit(graph, config.pipeline)
        harness.run_injector("gs://bucket/input.txt")
        harness.wait_to_finish(job)
    """

    def __init__(
        self,
        config: HarnessConfig,
        *,
        messaging: MessagingService | None = None,
        warehouse: WarehouseService | None = None,
        jobs: JobService | None = None,
        sink: OperatorSink | None = None,
    ) -> None:
        if messaging is None:
            from pipeline_harness.resources.pubsub import PubSubMessagingService

            messaging = PubSubMessagingService()
        if warehouse is None:
            from pipeline_harness.resources.bigquery import BigQueryWarehouseService

            warehouse = BigQueryWarehouseService()
        if jobs is None:
            from pipeline_harness.jobs.dataflow import DataflowJobService

            jobs = DataflowJobService(config.dataflow)

        self.config = config
        self.ledger = RunLedger()
        self.jobs = jobs
        self.provisioner = ResourceProvisioner(config, messaging, warehouse, self.ledger)
        self.supervisor = JobSupervisor(
            config,
            jobs,
            self.ledger,
            sink or ConsoleSink(),
            teardown=self.provisioner.teardown,
        )

    def setup(self) -> None:
        """Provision the topic and table named in the configuration."""
        self.provisioner.setup()
        logger.info("harness.setup_complete", project=self.config.pipeline.project)

    def run_injector(self, input_source: str, parallelism: int | None = None) -> JobHandle | None:
        """Start the injector against the configured topic; skipped when no topic is set."""
        topic = self.config.pubsub.topic
        if not topic:
            logger.info("harness.injector_skipped", reason="no pubsub topic configured")
            return None
        return self.supervisor.run_injector(input_source, topic, parallelism)

    def wait_to_finish(self, job: JobHandle) -> JobState:
        return self.supervisor.wait_to_finish(job)

    def shutdown(self) -> None:
        self.supervisor.shutdown()
