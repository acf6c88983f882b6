#!/usr/bin/env python3
"""Runnable demo: stream a text file through Pub/Sub into BigQuery on Dataflow.

Prerequisites:
    gcloud auth application-default login
    export GCP_PROJECT=my-project
    uv run python examples/traffic_streaming_demo.py gs://my-bucket/traffic.csv
"""

from __future__ import annotations

import sys
from pathlib import Path

from rich.console import Console

from pipeline_harness.config.loader import load_harness_config
from pipeline_harness.harness import ExampleHarness
from pipeline_harness.translation.context import TranslationContext
from pipeline_harness.translation.transforms import PubsubRead, PubsubWrite

console = Console()


def main() -> None:
    if len(sys.argv) != 2:
        console.print("usage: traffic_streaming_demo.py INPUT_FILE")
        sys.exit(2)

    # 1. Config: demo YAML merged over the built-in defaults
    config = load_harness_config(Path(__file__).parent / "harness.yaml")
    harness = ExampleHarness(config)

    # 2. Topic + table
    harness.setup()

    # 3. Streaming graph: read the topic, republish to a second topic
    context = TranslationContext(config.pipeline)
    readings = context.apply(
        PubsubRead(name="ReadReadings", topic=config.pubsub.topic, timestamp_label="ts")
    )
    context.apply(
        PubsubWrite(name="Republish", topic=f"{config.pubsub.topic}-out"),
        readings,
    )
    job = harness.jobs.submit(context.graph, config.pipeline)
    console.print(f"[green]Streaming job submitted:[/green] {job.job_id}")

    # 4. Feed the topic, then block; Ctrl-C cancels both jobs
    harness.run_injector(sys.argv[1])
    harness.wait_to_finish(job)


if __name__ == "__main__":
    main()
