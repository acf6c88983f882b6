"""Bounded text read and per-element publish, used by the injector job."""

from __future__ import annotations

from pipeline_harness.translation.context import (
    FILEPATTERN,
    FORMAT,
    MAX_PARALLELISM,
    OUTPUT,
    PARALLEL_INPUT,
    PUBSUB_TOPIC,
    TranslationContext,
)
from pipeline_harness.translation.transforms import PublishToTopic, TextRead


class TextReadTranslator:
    def translate(self, transform: TextRead, context: TranslationContext) -> None:
        context.add_step(transform, "ParallelRead")
        context.add_input(FORMAT, "text")
        context.add_input(FILEPATTERN, transform.filepattern)
        context.add_value_only_output(OUTPUT, context.get_output(transform))


class PublishToTopicTranslator:
    """Element-wise publish; the worker caps concurrent publishes per bundle."""

    def translate(self, transform: PublishToTopic, context: TranslationContext) -> None:
        context.add_step(transform, "ParallelDo")
        context.add_input(PUBSUB_TOPIC, transform.topic)
        context.add_input(MAX_PARALLELISM, transform.max_parallelism)
        context.add_input(PARALLEL_INPUT, context.get_input(transform))
