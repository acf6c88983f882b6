"""Pydantic configuration models for the example harness."""

from __future__ import annotations

import re
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, field_validator

# BigQuery reports standard SQL type names under their legacy spelling.
_LEGACY_TYPE_NAMES = {
    "INT64": "INTEGER",
    "FLOAT64": "FLOAT",
    "BOOL": "BOOLEAN",
    "STRUCT": "RECORD",
    "DECIMAL": "NUMERIC",
    "BIGDECIMAL": "BIGNUMERIC",
}


class TableFieldSchema(BaseModel):
    """One column of a BigQuery table schema.

    Nested ``fields`` are only meaningful for ``RECORD`` columns.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    type: str
    mode: str = "NULLABLE"
    description: str | None = None
    fields: tuple[TableFieldSchema, ...] = ()

    @field_validator("type")
    @classmethod
    def canonical_type(cls, v: str) -> str:
        name = v.upper()
        return _LEGACY_TYPE_NAMES.get(name, name)

    @field_validator("mode")
    @classmethod
    def upper_case(cls, v: str) -> str:
        return v.upper()


class TableSchema(BaseModel):
    """BigQuery table schema, compared structurally against remote tables."""

    model_config = ConfigDict(frozen=True)

    fields: tuple[TableFieldSchema, ...] = ()

    def pretty(self) -> str:
        return self.model_dump_json(indent=2, exclude_none=True)


TopicName = Annotated[str, Field(pattern=r"^(projects/[^/]+/topics/[^/]+)?$")]


class PubSubTopicConfig(BaseModel):
    """Pub/Sub topic used by the streaming example.

    An empty ``topic`` skips both topic provisioning and injection.
    """

    topic: TopicName = ""

    @property
    def enabled(self) -> bool:
        return bool(self.topic)


class BigQueryTableConfig(BaseModel):
    """Output table; provisioning is active only when all three parts are set."""

    dataset: str | None = None
    table: str | None = None
    table_schema: TableSchema | None = Field(default=None, alias="schema")

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("dataset", "table")
    @classmethod
    def validate_identifier(cls, v: str | None) -> str | None:
        if v is None:
            return v
        if not re.match(r"^[A-Za-z_][\w-]*$", v):
            msg = f"BigQuery identifier '{v}' must start with a letter or underscore"
            raise ValueError(msg)
        return v

    @property
    def enabled(self) -> bool:
        return (
            self.dataset is not None
            and self.table is not None
            and self.table_schema is not None
        )


class InjectorConfig(BaseModel):
    """Batch injector job that republishes a bounded input onto the topic."""

    num_workers: int = Field(default=1, ge=1)
    max_parallelism: int = Field(default=20, ge=1)


class CancellationConfig(BaseModel):
    """Post-cancel verification budget, per job."""

    verify_attempts: int = Field(default=6, ge=1)
    verify_interval_seconds: float = Field(default=10.0, ge=0.0)


class DataflowConfig(BaseModel):
    """Dataflow REST endpoint and job polling settings."""

    endpoint: str = "https://dataflow.googleapis.com"
    timeout_seconds: float = Field(default=30.0, gt=0)
    poll_interval_seconds: float = Field(default=10.0, ge=0.0)
    submit_max_attempts: int = Field(default=3, ge=1)


class PipelineOptions(BaseModel):
    """Options handed to the job service alongside a job graph."""

    project: str
    region: str = "us-central1"
    job_name: str = "example-pipeline"
    streaming: bool = True
    num_workers: int = Field(default=3, ge=1)
    temp_location: str | None = None

    def copy_with(self, **changes: object) -> PipelineOptions:
        """Return a validated copy; the original options are left untouched."""
        return PipelineOptions.model_validate({**self.model_dump(), **changes})


class HarnessConfig(BaseModel, extra="forbid"):
    """Everything the harness needs to set up, run and tear down an example."""

    pipeline: PipelineOptions
    pubsub: PubSubTopicConfig = PubSubTopicConfig()
    bigquery: BigQueryTableConfig = BigQueryTableConfig()
    injector: InjectorConfig = InjectorConfig()
    cancellation: CancellationConfig = CancellationConfig()
    dataflow: DataflowConfig = DataflowConfig()
    keep_jobs_running: bool = False
