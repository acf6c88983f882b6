"""Backing-service protocols consumed by the ResourceProvisioner."""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from pipeline_harness.config.models import TableSchema
from pipeline_harness.resources.lookup import Lookup


@runtime_checkable
class MessagingService(Protocol):
    """Topic administration on the messaging service."""

    def get_topic(self, name: str) -> Lookup[Any]:
        """Look up a fully-qualified topic."""
        ...

    def create_topic(self, name: str) -> None: ...

    def delete_topic(self, name: str) -> None: ...


@runtime_checkable
class WarehouseService(Protocol):
    """Dataset and table administration on the analytical warehouse."""

    def get_dataset(self, project: str, dataset: str) -> Lookup[Any]: ...

    def create_dataset(self, project: str, dataset: str) -> None: ...

    def get_table(self, project: str, dataset: str, table: str) -> Lookup[TableSchema]:
        """Look up a table; a found result carries the table's current schema."""
        ...

    def create_table(
        self, project: str, dataset: str, table: str, schema: TableSchema
    ) -> None: ...
