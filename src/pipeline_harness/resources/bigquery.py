"""BigQuery dataset/table administration over google-cloud-bigquery."""

from __future__ import annotations

from typing import Any

import structlog

from pipeline_harness.config.models import TableFieldSchema, TableSchema
from pipeline_harness.resources.lookup import Found, Lookup, lookup

logger = structlog.get_logger()


def to_schema_fields(schema: TableSchema) -> list[Any]:
    """Convert a TableSchema into ``bigquery.SchemaField`` objects."""
    from google.cloud import bigquery

    def _field(f: TableFieldSchema) -> Any:
        return bigquery.SchemaField(
            f.name,
            f.type,
            mode=f.mode,
            description=f.description,
            fields=[_field(sub) for sub in f.fields],
        )

    return [_field(f) for f in schema.fields]


def from_schema_fields(fields: list[Any]) -> TableSchema:
    """Convert ``bigquery.SchemaField`` objects back into a TableSchema."""

    def _field(f: Any) -> TableFieldSchema:
        return TableFieldSchema(
            name=f.name,
            type=f.field_type,
            mode=f.mode or "NULLABLE",
            description=f.description or None,
            fields=tuple(_field(sub) for sub in (f.fields or ())),
        )

    return TableSchema(fields=tuple(_field(f) for f in fields))


class BigQueryWarehouseService:
    """WarehouseService backed by ``bigquery.Client``."""

    def __init__(self, client: Any | None = None) -> None:
        self._client = client

    def _get_client(self, project: str) -> Any:
        if self._client is None:
            from google.cloud import bigquery

            self._client = bigquery.Client(project=project)
        return self._client

    def get_dataset(self, project: str, dataset: str) -> Lookup[Any]:
        client = self._get_client(project)
        return lookup(lambda: client.get_dataset(f"{project}.{dataset}"))

    def create_dataset(self, project: str, dataset: str) -> None:
        from google.cloud import bigquery

        client = self._get_client(project)
        client.create_dataset(bigquery.Dataset(f"{project}.{dataset}"))
        logger.info("bigquery.dataset_created", project=project, dataset=dataset)

    def get_table(self, project: str, dataset: str, table: str) -> Lookup[TableSchema]:
        client = self._get_client(project)
        result = lookup(lambda: client.get_table(f"{project}.{dataset}.{table}"))
        if isinstance(result, Found):
            return Found(from_schema_fields(result.value.schema))
        return result

    def create_table(
        self, project: str, dataset: str, table: str, schema: TableSchema
    ) -> None:
        from google.cloud import bigquery

        client = self._get_client(project)
        client.create_table(
            bigquery.Table(f"{project}.{dataset}.{table}", schema=to_schema_fields(schema))
        )
        logger.info(
            "bigquery.table_created", project=project, dataset=dataset, table=table
        )
