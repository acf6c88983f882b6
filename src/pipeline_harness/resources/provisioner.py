"""ResourceProvisioner — create-if-absent for the example's topic and table."""

from __future__ import annotations

import structlog

from pipeline_harness.config.models import HarnessConfig, TableSchema
from pipeline_harness.ledger import RunLedger
from pipeline_harness.resources.base import MessagingService, WarehouseService
from pipeline_harness.resources.lookup import unwrap
from pipeline_harness.resources.naming import table_spec

logger = structlog.get_logger()

TOPIC_HEADER = "*******************Set Up Pubsub Topic*********************"
TABLE_HEADER = "******************Set Up Big Query Table*******************"
TEARDOWN_HEADER = "*************************Tear Down*************************"


class SchemaConflictError(RuntimeError):
    """An existing table's schema differs from the one the example expects."""


class ResourceProvisioner:
    """Sets up and tears down the external resources an example depends on.

    Setup is idempotent: an absent resource is created, a present one is left
    alone, and a table whose schema differs from the expected one is a fatal
    configuration error. Every outcome is noted in the ledger so it can be
    replayed to the operator at shutdown.
    """

    def __init__(
        self,
        config: HarnessConfig,
        messaging: MessagingService,
        warehouse: WarehouseService,
        ledger: RunLedger,
    ) -> None:
        self._config = config
        self._messaging = messaging
        self._warehouse = warehouse
        self._ledger = ledger

    def setup(self) -> None:
        """Provision whatever the configuration asks for."""
        topic = self._config.pubsub.topic
        if topic:
            self._ledger.note(TOPIC_HEADER)
            self.ensure_topic(topic)

        bq = self._config.bigquery
        if bq.enabled:
            assert bq.dataset is not None
            assert bq.table is not None
            assert bq.table_schema is not None
            self._ledger.note(TABLE_HEADER)
            self.ensure_table(
                self._config.pipeline.project, bq.dataset, bq.table, bq.table_schema
            )

    def ensure_topic(self, name: str) -> bool:
        """Create *name* unless it exists. Returns True if it was created."""
        if unwrap(self._messaging.get_topic(name)) is not None:
            logger.info("provisioner.topic_exists", topic=name)
            self._ledger.note(f"The Pub/Sub topic was already set up: {name}")
            return False

        self._messaging.create_topic(name)
        self._ledger.note(f"The Pub/Sub topic has been set up for this example: {name}")
        return True

    def ensure_table(
        self, project: str, dataset: str, table: str, schema: TableSchema
    ) -> bool:
        """Create the dataset and table as needed. Returns True if the table was created.

        Raises:
            SchemaConflictError: the table exists with a different schema.
        """
        spec = table_spec(project, dataset, table)
        if unwrap(self._warehouse.get_dataset(project, dataset)) is None:
            self._warehouse.create_dataset(project, dataset)

        existing = unwrap(self._warehouse.get_table(project, dataset, table))
        if existing is not None:
            if existing != schema:
                msg = (
                    f"Table {spec} exists and schemas do not match, "
                    f"expecting: {schema.pretty()}, actual: {existing.pretty()}"
                )
                raise SchemaConflictError(msg)
            logger.info("provisioner.table_exists", table=spec)
            self._ledger.note(f"The BigQuery table was already set up: {spec}")
            return False

        self._warehouse.create_table(project, dataset, table, schema)
        self._ledger.note(f"The BigQuery table has been set up for this example: {spec}")
        return True

    def delete_topic(self, name: str) -> bool:
        """Best-effort delete. Returns True if the topic was deleted; never raises."""
        try:
            if unwrap(self._messaging.get_topic(name)) is None:
                logger.info("provisioner.topic_already_absent", topic=name)
                return False
            self._messaging.delete_topic(name)
        except Exception as exc:
            logger.warning("provisioner.topic_delete_failed", topic=name, error=str(exc))
            self._ledger.note(f"Failed to delete the Pub/Sub topic: {name}")
            return False
        self._ledger.note(f"The Pub/Sub topic has been deleted: {name}")
        return True

    def teardown(self) -> None:
        """Delete what is safe to delete and note what the operator must clean up."""
        self._ledger.note(TEARDOWN_HEADER)
        topic = self._config.pubsub.topic
        if topic:
            self.delete_topic(topic)

        bq = self._config.bigquery
        if bq.enabled:
            assert bq.dataset is not None
            assert bq.table is not None
            spec = table_spec(self._config.pipeline.project, bq.dataset, bq.table)
            self._ledger.note(
                "The BigQuery table might contain the example's output, "
                f"and it is not deleted automatically: {spec}"
            )
            self._ledger.note(
                "Please go to the Developers Console to delete it manually. "
                "Otherwise, you may be charged for its usage."
            )
