"""Protocol interfaces for the host-supplied collaborators.

The core never decides on its own whether a bound is satisfied; it asks a
``BoundaryPredicate`` supplied by the host (a media-query matcher, a feature
query shim, a class-name matcher, or ``threshold_predicate`` in tests).
"""

from __future__ import annotations

from typing import Any, Callable, Protocol, runtime_checkable

from .models import BoundaryQuery

Callback = Callable[[], Any]


@runtime_checkable
class BoundaryPredicate(Protocol):
    """Decides whether the current measurement satisfies a boundary query."""

    def __call__(self, query: BoundaryQuery) -> bool: ...


@runtime_checkable
class ValueReader(Protocol):
    """Returns the current measured value for an axis."""

    def __call__(self, axis: Any) -> Any: ...
