"""Tagged results for remote lookups: Found, NotFound or Failed.

Backing services signal absence with a not-found status. That one status
drives create-on-absence; every other failure is carried unchanged so the
caller can re-raise it.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class Found(Generic[T]):
    value: T


@dataclass(frozen=True)
class NotFound:
    pass


@dataclass(frozen=True)
class Failed:
    error: Exception


Lookup = Found[T] | NotFound | Failed


def lookup(call: Callable[[], T]) -> Lookup[T]:
    """Run *call* and tag its outcome.

    ``google.api_core.exceptions.NotFound`` (HTTP 404 from the Pub/Sub and
    BigQuery clients) becomes :class:`NotFound`.
    """
    from google.api_core.exceptions import NotFound as GoogleNotFound

    try:
        return Found(call())
    except GoogleNotFound:
        return NotFound()
    except Exception as exc:
        return Failed(exc)


def unwrap(result: Lookup[T]) -> T | None:
    """Return the found value, None when absent; re-raise any other failure."""
    match result:
        case Found(value=value):
            return value
        case NotFound():
            return None
        case Failed(error=error):
            raise error
    msg = f"Unexpected lookup result: {result!r}"
    raise TypeError(msg)
