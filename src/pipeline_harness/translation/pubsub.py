"""Pub/Sub read and write translation into job-service steps."""

from __future__ import annotations

from pipeline_harness.translation.coders import value_only_coder
from pipeline_harness.translation.context import (
    FORMAT,
    OUTPUT,
    PARALLEL_INPUT,
    PUBSUB_DROP_LATE_DATA,
    PUBSUB_ID_LABEL,
    PUBSUB_SUBSCRIPTION,
    PUBSUB_TIMESTAMP_LABEL,
    PUBSUB_TOPIC,
    TranslationContext,
)
from pipeline_harness.translation.transforms import PubsubRead, PubsubWrite


class StreamingModeError(ValueError):
    """A streaming-only transform was used in a batch pipeline."""


def _require_streaming(context: TranslationContext) -> None:
    if not context.options.streaming:
        msg = "PubsubIO can only be used in streaming mode."
        raise StreamingModeError(msg)


class PubsubReadTranslator:
    """Translates PubsubRead into a ``ParallelRead`` step."""

    def translate(self, transform: PubsubRead, context: TranslationContext) -> None:
        _require_streaming(context)

        context.add_step(transform, "ParallelRead")
        context.add_input(FORMAT, "pubsub")
        context.add_input_if_present(PUBSUB_TOPIC, transform.topic)
        context.add_input_if_present(PUBSUB_SUBSCRIPTION, transform.subscription)
        context.add_input_if_present(PUBSUB_TIMESTAMP_LABEL, transform.timestamp_label)
        context.add_input(PUBSUB_DROP_LATE_DATA, transform.drop_late_data)
        context.add_input_if_present(PUBSUB_ID_LABEL, transform.id_label)
        context.add_value_only_output(OUTPUT, context.get_output(transform))


class PubsubWriteTranslator:
    """Translates PubsubWrite into a ``ParallelWrite`` step."""

    def translate(self, transform: PubsubWrite, context: TranslationContext) -> None:
        _require_streaming(context)

        context.add_step(transform, "ParallelWrite")
        context.add_input(FORMAT, "pubsub")
        context.add_input(PUBSUB_TOPIC, transform.topic)
        context.add_input_if_present(PUBSUB_TIMESTAMP_LABEL, transform.timestamp_label)
        context.add_input_if_present(PUBSUB_ID_LABEL, transform.id_label)
        context.add_encoding_input(value_only_coder(transform.coder))
        context.add_input(PARALLEL_INPUT, context.get_input(transform))
