"""Unit tests for the ResourceProvisioner."""

from __future__ import annotations

import pytest
from conftest import PROJECT, TOPIC, FakeMessaging, FakeWarehouse, make_config, make_schema

from pipeline_harness.config.models import HarnessConfig
from pipeline_harness.ledger import RunLedger
from pipeline_harness.resources.base import MessagingService, WarehouseService
from pipeline_harness.resources.provisioner import (
    TABLE_HEADER,
    TEARDOWN_HEADER,
    TOPIC_HEADER,
    ResourceProvisioner,
    SchemaConflictError,
)


def _provisioner(
    config: HarnessConfig,
    messaging: FakeMessaging,
    warehouse: FakeWarehouse,
    ledger: RunLedger,
) -> ResourceProvisioner:
    return ResourceProvisioner(config, messaging, warehouse, ledger)


class TestFakesSatisfyProtocols:
    def test_messaging(self, messaging: FakeMessaging):
        assert isinstance(messaging, MessagingService)

    def test_warehouse(self, warehouse: FakeWarehouse):
        assert isinstance(warehouse, WarehouseService)


class TestEnsureTopic:
    def test_creates_absent_topic(self, config, messaging, warehouse, ledger):
        prov = _provisioner(config, messaging, warehouse, ledger)
        assert prov.ensure_topic(TOPIC) is True
        assert messaging.created == [TOPIC]
        assert ledger.messages() == [
            f"The Pub/Sub topic has been set up for this example: {TOPIC}"
        ]

    def test_second_call_is_noop(self, config, messaging, warehouse, ledger):
        prov = _provisioner(config, messaging, warehouse, ledger)
        prov.ensure_topic(TOPIC)
        assert prov.ensure_topic(TOPIC) is False
        assert messaging.created == [TOPIC]
        assert ledger.messages()[-1] == f"The Pub/Sub topic was already set up: {TOPIC}"

    def test_other_lookup_failure_propagates(self, config, messaging, warehouse, ledger):
        messaging.get_error = PermissionError("403 forbidden")
        prov = _provisioner(config, messaging, warehouse, ledger)
        with pytest.raises(PermissionError, match="403"):
            prov.ensure_topic(TOPIC)
        assert messaging.created == []


class TestEnsureTable:
    def test_creates_dataset_and_table(self, config, messaging, warehouse, ledger):
        schema = make_schema(("station", "STRING"))
        prov = _provisioner(config, messaging, warehouse, ledger)
        assert prov.ensure_table(PROJECT, "ds", "tb", schema) is True
        assert warehouse.writes == [
            ("create_dataset", PROJECT, "ds"),
            ("create_table", PROJECT, "ds", "tb"),
        ]
        assert warehouse.tables[(PROJECT, "ds", "tb")] == schema

    def test_existing_dataset_not_recreated(self, config, messaging, warehouse, ledger):
        warehouse.datasets.add((PROJECT, "ds"))
        prov = _provisioner(config, messaging, warehouse, ledger)
        prov.ensure_table(PROJECT, "ds", "tb", make_schema(("a", "STRING")))
        assert warehouse.writes == [("create_table", PROJECT, "ds", "tb")]

    def test_matching_schema_is_noop(self, config, messaging, warehouse, ledger):
        schema = make_schema(("station", "STRING"), ("flow", "INTEGER"))
        prov = _provisioner(config, messaging, warehouse, ledger)
        prov.ensure_table(PROJECT, "ds", "tb", schema)
        writes_before = list(warehouse.writes)

        equal_copy = make_schema(("station", "string"), ("flow", "integer"))
        assert prov.ensure_table(PROJECT, "ds", "tb", equal_copy) is False
        assert warehouse.writes == writes_before
        assert ledger.messages()[-1] == (
            f"The BigQuery table was already set up: {PROJECT}:ds.tb"
        )

    def test_standard_sql_config_matches_legacy_remote_types(
        self, config, messaging, warehouse, ledger
    ):
        warehouse.datasets.add((PROJECT, "ds"))
        warehouse.tables[(PROJECT, "ds", "tb")] = make_schema(
            ("flow", "INTEGER"), ("ok", "BOOLEAN")
        )
        prov = _provisioner(config, messaging, warehouse, ledger)

        expected = make_schema(("flow", "INT64"), ("ok", "BOOL"))
        assert prov.ensure_table(PROJECT, "ds", "tb", expected) is False
        assert warehouse.writes == []

    def test_schema_mismatch_raises_without_write(
        self, config, messaging, warehouse, ledger
    ):
        warehouse.datasets.add((PROJECT, "ds"))
        warehouse.tables[(PROJECT, "ds", "tb")] = make_schema(("a", "STRING"))
        prov = _provisioner(config, messaging, warehouse, ledger)

        with pytest.raises(SchemaConflictError, match="schemas do not match") as info:
            prov.ensure_table(PROJECT, "ds", "tb", make_schema(("b", "INTEGER")))

        message = str(info.value)
        assert '"a"' in message
        assert '"b"' in message
        assert warehouse.writes == []


class TestSetup:
    def test_end_to_end_then_rerun(self, config, messaging, warehouse, ledger):
        prov = _provisioner(config, messaging, warehouse, ledger)
        prov.setup()

        assert messaging.created == [TOPIC]
        assert ("create_table", PROJECT, "traffic", "lane_flow") in warehouse.writes
        assert warehouse.tables[(PROJECT, "traffic", "lane_flow")] == (
            config.bigquery.table_schema
        )
        first_run = ledger.messages()
        assert first_run[0] == TOPIC_HEADER
        assert TABLE_HEADER in first_run

        creates_before = len(messaging.created) + len(warehouse.writes)
        prov.setup()
        assert len(messaging.created) + len(warehouse.writes) == creates_before

        rerun = ledger.messages()[len(first_run) :]
        already = [line for line in rerun if "already set up" in line]
        assert len(already) == 2

    def test_empty_topic_skips_topic(self, messaging, warehouse, ledger):
        config = make_config(pubsub={"topic": ""})
        prov = _provisioner(config, messaging, warehouse, ledger)
        prov.setup()
        assert messaging.created == []
        assert TOPIC_HEADER not in ledger.messages()

    def test_partial_table_config_skips_table(self, messaging, warehouse, ledger):
        config = make_config(bigquery={"dataset": "traffic"})
        prov = _provisioner(config, messaging, warehouse, ledger)
        prov.setup()
        assert warehouse.writes == []
        assert TABLE_HEADER not in ledger.messages()


class TestTeardown:
    def test_deletes_topic_and_warns_about_table(
        self, config, messaging, warehouse, ledger
    ):
        messaging.topics.add(TOPIC)
        prov = _provisioner(config, messaging, warehouse, ledger)
        prov.teardown()

        assert messaging.deleted == [TOPIC]
        lines = ledger.messages()
        assert lines[0] == TEARDOWN_HEADER
        assert lines[1] == f"The Pub/Sub topic has been deleted: {TOPIC}"
        assert "not deleted automatically" in lines[2]
        assert f"{PROJECT}:traffic.lane_flow" in lines[2]
        assert "Developers Console" in lines[3]

    def test_absent_topic_is_noop(self, config, messaging, warehouse, ledger):
        prov = _provisioner(config, messaging, warehouse, ledger)
        assert prov.delete_topic(TOPIC) is False
        assert messaging.deleted == []

    def test_delete_failure_is_noted_not_raised(
        self, config, messaging, warehouse, ledger
    ):
        messaging.topics.add(TOPIC)
        messaging.delete_error = RuntimeError("backend unavailable")
        prov = _provisioner(config, messaging, warehouse, ledger)

        prov.teardown()

        assert f"Failed to delete the Pub/Sub topic: {TOPIC}" in ledger.messages()

    def test_lookup_failure_during_teardown_is_swallowed(
        self, config, messaging, warehouse, ledger
    ):
        messaging.get_error = ConnectionError("reset")
        prov = _provisioner(config, messaging, warehouse, ledger)
        assert prov.delete_topic(TOPIC) is False
        assert f"Failed to delete the Pub/Sub topic: {TOPIC}" in ledger.messages()
