"""Typed configuration for the transforms the harness knows how to translate."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from pipeline_harness.translation.coders import Coder, string_utf8_coder


class Transform(BaseModel):
    """A node of the pipeline graph. ``name`` is the user-visible step name."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    name: str

    @property
    def output_coder(self) -> Coder | None:
        """Coder of the produced collection; None for sinks."""
        return None


class PubsubRead(Transform):
    """Unbounded read from a Pub/Sub topic or subscription.

    Exactly one of ``topic`` and ``subscription`` is expected by convention;
    neither is required at translation time.
    """

    topic: str | None = None
    subscription: str | None = None
    timestamp_label: str | None = None
    id_label: str | None = None
    drop_late_data: bool = True
    coder: Coder = Field(default_factory=string_utf8_coder)

    @property
    def output_coder(self) -> Coder | None:
        return self.coder


class PubsubWrite(Transform):
    """Unbounded write to a Pub/Sub topic."""

    topic: str
    timestamp_label: str | None = None
    id_label: str | None = None
    coder: Coder = Field(default_factory=string_utf8_coder)


class TextRead(Transform):
    """Bounded read of text lines from a file pattern."""

    filepattern: str

    @property
    def output_coder(self) -> Coder | None:
        return string_utf8_coder()


class PublishToTopic(Transform):
    """Publish every element to a topic, at most ``max_parallelism`` in flight per bundle."""

    topic: str
    max_parallelism: int = Field(default=20, ge=1)
