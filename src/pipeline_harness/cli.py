"""Typer CLI for the example harness."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import structlog
import typer
from rich.console import Console

from pipeline_harness.config.loader import load_harness_config
from pipeline_harness.config.models import HarnessConfig
from pipeline_harness.console import ConsoleSink
from pipeline_harness.harness import ExampleHarness
from pipeline_harness.jobs.base import JobHandle
from pipeline_harness.jobs.supervisor import JobWaitError
from pipeline_harness.resources.provisioner import SchemaConflictError

logger = structlog.get_logger()
console = Console()
app = typer.Typer(name="harness", help="Example pipeline harness")


def configure_logging(json_logs: bool = False, level: str = "INFO") -> None:
    """Route structlog through stdlib logging with a console or JSON renderer."""
    logging.basicConfig(format="%(message)s", level=level.upper())
    processors: list[Any] = [
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]
    if json_logs:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        logger_factory=structlog.stdlib.LoggerFactory(),
    )


@app.callback()
def main(
    json_logs: bool = typer.Option(False, "--json-logs", help="Emit JSON log lines"),
    log_level: str = typer.Option("INFO", "--log-level", help="Log level"),
) -> None:
    configure_logging(json_logs=json_logs, level=log_level)


def _load(config_path: str) -> HarnessConfig:
    path = Path(config_path)
    if not path.exists():
        console.print(f"[red]Config file not found: {path}[/red]")
        raise typer.Exit(1)
    return load_harness_config(path)


def _harness(config: HarnessConfig) -> ExampleHarness:
    return ExampleHarness(config, sink=ConsoleSink(console))


@app.command()
def validate(
    config_path: str = typer.Argument(..., help="Path to harness YAML"),
) -> None:
    """Validate a harness configuration file."""
    try:
        config = _load(config_path)
    except typer.Exit:
        raise
    except Exception as exc:
        console.print(f"[red]Validation error:[/red] {exc}")
        raise typer.Exit(1) from exc

    console.print(f"[green]Valid[/green] — project={config.pipeline.project}")
    console.print(f"  region:    {config.pipeline.region}")
    console.print(f"  streaming: {config.pipeline.streaming}")
    console.print(f"  topic:     {config.pubsub.topic or '(none)'}")
    bq = config.bigquery
    if bq.enabled:
        assert bq.table_schema is not None
        console.print(
            f"  table:     {config.pipeline.project}:{bq.dataset}.{bq.table} "
            f"({len(bq.table_schema.fields)} field(s))"
        )
    else:
        console.print("  table:     (none)")
    console.print(f"  keep jobs running: {config.keep_jobs_running}")


@app.command()
def setup(
    config_path: str = typer.Argument(..., help="Path to harness YAML"),
) -> None:
    """Create the topic and table the example needs (idempotent)."""
    harness = _harness(_load(config_path))
    try:
        harness.setup()
    except SchemaConflictError as exc:
        console.print(f"[red]Schema conflict:[/red] {exc}")
        raise typer.Exit(1) from exc
    harness.ledger.flush(ConsoleSink(console))


@app.command()
def teardown(
    config_path: str = typer.Argument(..., help="Path to harness YAML"),
) -> None:
    """Delete the topic; report what must be deleted by hand."""
    harness = _harness(_load(config_path))
    harness.provisioner.teardown()
    harness.ledger.flush(ConsoleSink(console))


@app.command()
def inject(
    config_path: str = typer.Argument(..., help="Path to harness YAML"),
    input_source: str = typer.Argument(..., help="Input file or pattern"),
    parallelism: int | None = typer.Option(
        None, "--parallelism", help="Max concurrent publishes per bundle"
    ),
) -> None:
    """Start the batch injector job against the configured topic."""
    config = _load(config_path)
    harness = _harness(config)
    job = harness.run_injector(input_source, parallelism)
    if job is None:
        console.print("[yellow]No pubsub.topic configured — nothing to inject[/yellow]")
        raise typer.Exit(1)
    console.print(f"[green]Injector started:[/green] {job.job_id}")
    console.print(harness.jobs.monitoring_url(job.project_id, job.job_id, job.region))


@app.command()
def watch(
    config_path: str = typer.Argument(..., help="Path to harness YAML"),
    job_id: str = typer.Argument(..., help="Dataflow job id"),
) -> None:
    """Wait for a running job; cancel it on exit unless keep_jobs_running is set."""
    config = _load(config_path)
    harness = _harness(config)
    job = JobHandle(
        job_id=job_id,
        project_id=config.pipeline.project,
        region=config.pipeline.region,
    )
    try:
        state = harness.wait_to_finish(job)
    except JobWaitError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(1) from exc
    console.print(f"Job {job_id} finished: {state.value}")
