"""Translator registry — maps transform types to their translators."""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from pipeline_harness.translation.context import TranslationContext
from pipeline_harness.translation.pubsub import (
    PubsubReadTranslator,
    PubsubWriteTranslator,
)
from pipeline_harness.translation.text import (
    PublishToTopicTranslator,
    TextReadTranslator,
)
from pipeline_harness.translation.transforms import (
    PublishToTopic,
    PubsubRead,
    PubsubWrite,
    TextRead,
    Transform,
)


@runtime_checkable
class TransformTranslator(Protocol):
    """Contributes exactly one step per translated transform."""

    def translate(self, transform: Any, context: TranslationContext) -> None: ...


_TRANSLATOR_REGISTRY: dict[type[Transform], TransformTranslator] = {
    PubsubRead: PubsubReadTranslator(),
    PubsubWrite: PubsubWriteTranslator(),
    TextRead: TextReadTranslator(),
    PublishToTopic: PublishToTopicTranslator(),
}


def register_translator(
    transform_type: type[Transform], translator: TransformTranslator
) -> None:
    _TRANSLATOR_REGISTRY[transform_type] = translator


def get_translator(transform: Transform) -> TransformTranslator:
    """Return the translator for *transform*'s type.

    Adding a new transform = one translator class + one dict entry.
    """
    translator = _TRANSLATOR_REGISTRY.get(type(transform))
    if translator is None:
        msg = f"No translator registered for {type(transform).__name__}"
        raise ValueError(msg)
    return translator
