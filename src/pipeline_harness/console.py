"""Operator-visible output sinks."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from rich.console import Console


@runtime_checkable
class OperatorSink(Protocol):
    """Ordered, line-oriented output the operator reads."""

    def emit(self, line: str) -> None:
        """Write one line."""
        ...


class ConsoleSink:
    """Writes plain lines to a rich Console.

    Markup and highlighting are disabled: job ids, URLs and JSON schemas must
    appear exactly as produced.
    """

    def __init__(self, console: Console | None = None) -> None:
        self._console = console or Console()

    def emit(self, line: str) -> None:
        self._console.print(line, markup=False, highlight=False, soft_wrap=True)


class ListSink:
    """Collects lines in memory."""

    def __init__(self) -> None:
        self.lines: list[str] = []

    def emit(self, line: str) -> None:
        self.lines.append(line)
