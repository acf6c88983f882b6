"""Job graph construction: step descriptions and the translation context."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from pipeline_harness.config.models import PipelineOptions
from pipeline_harness.translation.coders import Coder, value_only_coder
from pipeline_harness.translation.transforms import Transform

# Step property names understood by the job service.
FORMAT = "format"
ENCODING = "encoding"
OUTPUT = "output_info"
PARALLEL_INPUT = "parallel_input"
PUBSUB_TOPIC = "pubsub_topic"
PUBSUB_SUBSCRIPTION = "pubsub_subscription"
PUBSUB_TIMESTAMP_LABEL = "pubsub_timestamp_label"
PUBSUB_ID_LABEL = "pubsub_id_label"
PUBSUB_DROP_LATE_DATA = "pubsub_drop_late_data"
FILEPATTERN = "filepattern"
MAX_PARALLELISM = "max_parallelism"


@dataclass
class PCollection:
    """A collection flowing between steps, bound to the step that produces it."""

    name: str
    coder: Coder
    producer: str | None = None
    output_name: str = "out"

    def output_reference(self) -> dict[str, Any]:
        if self.producer is None:
            msg = f"Collection '{self.name}' has no producing step"
            raise ValueError(msg)
        return {
            "@type": "OutputReference",
            "step_name": self.producer,
            "output_name": self.output_name,
        }


class StepDescription:
    """One node of the remote job graph.

    Properties keep insertion order and are never overwritten; optional
    values are either present or absent, never placeholders.
    """

    def __init__(self, kind: str, name: str, user_name: str) -> None:
        self.kind = kind
        self.name = name
        self.user_name = user_name
        self.properties: dict[str, Any] = {}

    def add(self, key: str, value: Any) -> None:
        if key in self.properties:
            msg = f"Step {self.name} already has property '{key}'"
            raise KeyError(msg)
        self.properties[key] = value

    def add_if_present(self, key: str, value: Any | None) -> None:
        if value is not None:
            self.add(key, value)

    def to_api(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "name": self.name,
            "properties": {"user_name": self.user_name, **self.properties},
        }


@dataclass
class JobGraph:
    steps: list[StepDescription] = field(default_factory=list)

    def to_api(self) -> list[dict[str, Any]]:
        return [s.to_api() for s in self.steps]


class TranslationContext:
    """Mutable state while a pipeline is turned into a JobGraph.

    Translators call ``add_step`` once per node and then the ``add_*``
    helpers, which all write to the most recently added step.
    """

    def __init__(self, options: PipelineOptions) -> None:
        self.options = options
        self.graph = JobGraph()
        self._inputs: dict[str, PCollection] = {}
        self._outputs: dict[str, PCollection] = {}
        self._current: StepDescription | None = None

    @property
    def current_step(self) -> StepDescription:
        if self._current is None:
            msg = "No step has been added yet"
            raise RuntimeError(msg)
        return self._current

    def apply(
        self, transform: Transform, input: PCollection | None = None
    ) -> PCollection | None:
        """Translate *transform* into the graph and return what it produces."""
        from pipeline_harness.translation.registry import get_translator

        if transform.name in self._inputs or transform.name in self._outputs:
            msg = f"Transform name '{transform.name}' is already in the graph"
            raise ValueError(msg)
        translator = get_translator(transform)
        if input is not None:
            self._inputs[transform.name] = input
        output: PCollection | None = None
        if transform.output_coder is not None:
            output = PCollection(f"{transform.name}.out", transform.output_coder)
            self._outputs[transform.name] = output
        step_count = len(self.graph.steps)
        try:
            translator.translate(transform, self)
        except Exception:
            # a rejected transform leaves neither its name nor a partial step
            self._inputs.pop(transform.name, None)
            self._outputs.pop(transform.name, None)
            del self.graph.steps[step_count:]
            self._current = self.graph.steps[-1] if self.graph.steps else None
            raise
        return output

    def get_input(self, transform: Transform) -> PCollection:
        try:
            return self._inputs[transform.name]
        except KeyError:
            msg = f"Transform '{transform.name}' has no input"
            raise ValueError(msg) from None

    def get_output(self, transform: Transform) -> PCollection:
        try:
            return self._outputs[transform.name]
        except KeyError:
            msg = f"Transform '{transform.name}' has no output"
            raise ValueError(msg) from None

    def add_step(self, transform: Transform, kind: str) -> StepDescription:
        step = StepDescription(kind, f"s{len(self.graph.steps) + 1}", transform.name)
        self.graph.steps.append(step)
        self._current = step
        return step

    def add_input(self, key: str, value: Any) -> None:
        if isinstance(value, PCollection):
            value = value.output_reference()
        self.current_step.add(key, value)

    def add_input_if_present(self, key: str, value: Any | None) -> None:
        if value is not None:
            self.add_input(key, value)

    def add_encoding_input(self, coder: Coder) -> None:
        self.current_step.add(ENCODING, coder.cloud_encoding())

    def add_value_only_output(self, key: str, output: PCollection) -> None:
        step = self.current_step
        output.producer = step.name
        step.add(
            key,
            [
                {
                    "user_name": output.name,
                    "output_name": output.output_name,
                    "encoding": value_only_coder(output.coder).cloud_encoding(),
                }
            ],
        )
