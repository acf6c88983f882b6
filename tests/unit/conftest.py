"""In-memory collaborators for harness unit tests."""

from __future__ import annotations

from typing import Any

import pytest

from pipeline_harness.config.models import (
    HarnessConfig,
    PipelineOptions,
    TableFieldSchema,
    TableSchema,
)
from pipeline_harness.console import ListSink
from pipeline_harness.jobs.base import JobHandle, JobMessage, JobState
from pipeline_harness.ledger import RunLedger
from pipeline_harness.resources.lookup import Failed, Found, Lookup, NotFound
from pipeline_harness.translation.context import JobGraph

PROJECT = "demo-project"
TOPIC = f"projects/{PROJECT}/topics/readings"


class FakeMessaging:
    def __init__(self, topics: set[str] | None = None) -> None:
        self.topics = set(topics or ())
        self.created: list[str] = []
        self.deleted: list[str] = []
        self.get_error: Exception | None = None
        self.delete_error: Exception | None = None

    def get_topic(self, name: str) -> Lookup[Any]:
        if self.get_error is not None:
            return Failed(self.get_error)
        if name in self.topics:
            return Found({"name": name})
        return NotFound()

    def create_topic(self, name: str) -> None:
        self.created.append(name)
        self.topics.add(name)

    def delete_topic(self, name: str) -> None:
        if self.delete_error is not None:
            raise self.delete_error
        self.deleted.append(name)
        self.topics.discard(name)


class FakeWarehouse:
    def __init__(self) -> None:
        self.datasets: set[tuple[str, str]] = set()
        self.tables: dict[tuple[str, str, str], TableSchema] = {}
        self.writes: list[tuple[str, ...]] = []

    def get_dataset(self, project: str, dataset: str) -> Lookup[Any]:
        if (project, dataset) in self.datasets:
            return Found(dataset)
        return NotFound()

    def create_dataset(self, project: str, dataset: str) -> None:
        self.writes.append(("create_dataset", project, dataset))
        self.datasets.add((project, dataset))

    def get_table(self, project: str, dataset: str, table: str) -> Lookup[TableSchema]:
        schema = self.tables.get((project, dataset, table))
        return NotFound() if schema is None else Found(schema)

    def create_table(
        self, project: str, dataset: str, table: str, schema: TableSchema
    ) -> None:
        self.writes.append(("create_table", project, dataset, table))
        self.tables[(project, dataset, table)] = schema


class FakeJobService:
    """Jobs become terminal after a scripted number of state polls.

    ``terminal_after[job_id] = k`` makes the k-th poll return CANCELLED;
    ``None`` never terminates. ``calls`` records the order of operations.
    """

    def __init__(self) -> None:
        self.terminal_after: dict[str, int | None] = {}
        self.polls: dict[str, int] = {}
        self.calls: list[tuple[str, str]] = []
        self.cancel_errors: dict[str, BaseException] = {}
        self.state_errors: dict[str, Exception] = {}
        self.states: dict[str, list[JobState]] = {}
        self.messages: dict[str, list[JobMessage]] = {}
        self.submitted: list[tuple[JobGraph, PipelineOptions]] = []

    def submit(self, graph: JobGraph, options: PipelineOptions) -> JobHandle:
        self.submitted.append((graph, options))
        job = JobHandle(
            job_id=f"job-{len(self.submitted)}",
            project_id=options.project,
            region=options.region,
            name=options.job_name,
        )
        self.calls.append(("submit", job.job_id))
        return job

    def get_state(self, job: JobHandle) -> JobState:
        self.calls.append(("get_state", job.job_id))
        if job.job_id in self.state_errors:
            raise self.state_errors[job.job_id]
        count = self.polls.get(job.job_id, 0) + 1
        self.polls[job.job_id] = count
        if job.job_id in self.states:
            scripted = self.states[job.job_id]
            return scripted[min(count, len(scripted)) - 1]
        limit = self.terminal_after.get(job.job_id)
        if limit is not None and count >= limit:
            return JobState.CANCELLED
        return JobState.RUNNING

    def cancel(self, job: JobHandle) -> None:
        self.calls.append(("cancel", job.job_id))
        if job.job_id in self.cancel_errors:
            raise self.cancel_errors[job.job_id]

    def list_messages(self, job: JobHandle, since: str | None = None) -> list[JobMessage]:
        pending = self.messages.get(job.job_id, [])
        return sorted(
            (m for m in pending if since is None or m.time >= since),
            key=lambda m: m.time,
        )

    def monitoring_url(self, project_id: str, job_id: str, region: str) -> str:
        return f"https://console.example/{region}/{job_id}?project={project_id}"


def make_schema(*columns: tuple[str, str]) -> TableSchema:
    return TableSchema(
        fields=tuple(TableFieldSchema(name=n, type=t) for n, t in columns)
    )


def make_config(**overrides: Any) -> HarnessConfig:
    data: dict[str, Any] = {
        "pipeline": {"project": PROJECT},
        "pubsub": {"topic": TOPIC},
        "bigquery": {
            "dataset": "traffic",
            "table": "lane_flow",
            "schema": {
                "fields": [
                    {"name": "station", "type": "STRING"},
                    {"name": "flow", "type": "INTEGER"},
                ]
            },
        },
        "cancellation": {"verify_attempts": 6, "verify_interval_seconds": 10.0},
        "dataflow": {"poll_interval_seconds": 5.0},
    }
    data.update(overrides)
    return HarnessConfig.model_validate(data)


@pytest.fixture
def config() -> HarnessConfig:
    return make_config()


@pytest.fixture
def ledger() -> RunLedger:
    return RunLedger()


@pytest.fixture
def sink() -> ListSink:
    return ListSink()


@pytest.fixture
def messaging() -> FakeMessaging:
    return FakeMessaging()


@pytest.fixture
def warehouse() -> FakeWarehouse:
    return FakeWarehouse()


@pytest.fixture
def job_service() -> FakeJobService:
    return FakeJobService()
