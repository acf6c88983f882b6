"""BigQuery table specs."""

from __future__ import annotations


def table_spec(project: str, dataset: str, table: str) -> str:
    """Render a table as ``project:dataset.table``."""
    return f"{project}:{dataset}.{table}"
