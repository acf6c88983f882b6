"""Injector job: republish a bounded text input onto a Pub/Sub topic."""

from __future__ import annotations

from pipeline_harness.config.models import InjectorConfig, PipelineOptions
from pipeline_harness.translation.context import JobGraph, TranslationContext
from pipeline_harness.translation.transforms import PublishToTopic, TextRead


def injector_options(
    options: PipelineOptions, injector: InjectorConfig
) -> PipelineOptions:
    """Batch copy of *options* sized for the injector."""
    return options.copy_with(
        streaming=False,
        num_workers=injector.num_workers,
        job_name=f"{options.job_name}-injector",
    )


def build_injector_graph(
    options: PipelineOptions, input_source: str, topic: str, parallelism: int
) -> JobGraph:
    """Read *input_source* line by line and publish each line to *topic*."""
    context = TranslationContext(options)
    lines = context.apply(TextRead(name="ReadLines", filepattern=input_source))
    context.apply(
        PublishToTopic(name="PublishLines", topic=topic, max_parallelism=parallelism),
        lines,
    )
    return context.graph
