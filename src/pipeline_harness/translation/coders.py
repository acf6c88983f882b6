"""Cloud encodings for element coders."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class Coder:
    """A coder as the job service sees it: a kind plus component coders."""

    kind: str
    components: tuple[Coder, ...] = ()
    is_wrapper: bool = False
    is_pair_like: bool = False

    def cloud_encoding(self) -> dict[str, Any]:
        encoding: dict[str, Any] = {"@type": self.kind}
        if self.components:
            encoding["component_encodings"] = [
                c.cloud_encoding() for c in self.components
            ]
        if self.is_wrapper:
            encoding["is_wrapper"] = True
        if self.is_pair_like:
            encoding["is_pair_like"] = True
        return encoding


def string_utf8_coder() -> Coder:
    return Coder("StringUtf8Coder")


def bytes_coder() -> Coder:
    return Coder("ByteArrayCoder")


def var_int_coder() -> Coder:
    return Coder("VarIntCoder")


def kv_coder(key: Coder, value: Coder) -> Coder:
    return Coder("kind:pair", (key, value), is_pair_like=True)


def value_only_coder(element: Coder) -> Coder:
    """Wrap *element* in a windowed-value envelope that carries only the value.

    Pub/Sub elements have no window or pane information on the wire.
    """
    return Coder("ValueOnlyWindowedValueCoder", (element,), is_wrapper=True)
