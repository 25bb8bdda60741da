"""Core domain models: regions, their activity state, and boundary queries.

``Region`` and ``RegionState`` are mutable internal state owned by the
registry, so they are plain dataclasses. Values handed to the outside
(``BoundaryQuery``, ``RegionBoundaries``) are immutable pydantic models.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable

from pydantic import BaseModel

from .enums import Boundary
from .errors import ValidationError


# ---------------------------------------------------------------------------
# Activity state
# ---------------------------------------------------------------------------

@dataclass
class RegionState:
    """Tri-state activity flags for one region.

    At rest ``conjunction_active == lower_active and upper_active``. The
    flags may disagree only while a trigger call is still running.
    """

    lower_active: bool = False
    upper_active: bool = False
    conjunction_active: bool = False

    def get(self, boundary: Boundary) -> bool:
        if boundary is Boundary.LOWER:
            return self.lower_active
        if boundary is Boundary.UPPER:
            return self.upper_active
        return self.conjunction_active

    def set(self, boundary: Boundary, active: bool) -> None:
        if boundary is Boundary.LOWER:
            self.lower_active = active
        elif boundary is Boundary.UPPER:
            self.upper_active = active
        else:
            self.conjunction_active = active

    @property
    def is_consistent(self) -> bool:
        return self.conjunction_active == (self.lower_active and self.upper_active)

    def snapshot(self) -> dict[str, bool]:
        return {
            Boundary.LOWER.value: self.lower_active,
            Boundary.UPPER.value: self.upper_active,
            Boundary.CONJUNCTION.value: self.conjunction_active,
        }


# ---------------------------------------------------------------------------
# Region
# ---------------------------------------------------------------------------

@dataclass
class Region:
    """A named interval on one axis.

    ``lower`` and ``upper`` are optional; an unset bound is treated as always
    satisfied, which gives open-ended regions. Ordering between the two is the
    caller's concern and is not validated.
    """

    id: str
    axis: Any
    lower: Any = None
    upper: Any = None
    state: RegionState = field(default_factory=RegionState)

    def bound(self, boundary: Boundary) -> Any:
        if boundary is Boundary.LOWER:
            return self.lower
        if boundary is Boundary.UPPER:
            return self.upper
        raise ValidationError("The conjunction boundary has no bound value")

    def is_active(self, boundary: Boundary | str) -> bool:
        return self.state.get(Boundary.coerce(boundary))

    def __repr__(self) -> str:
        return (
            f"Region(id={self.id!r}, axis={self.axis!r}, lower={self.lower!r}, "
            f"upper={self.upper!r}, state={self.state.snapshot()})"
        )


# ---------------------------------------------------------------------------
# Callback subscriptions
# ---------------------------------------------------------------------------

@dataclass(eq=False)
class CallbackEntry:
    """One subscription. Entries compare by identity so duplicates stay distinct."""

    callback: Callable[[], Any]
    namespace: str | None = None

    def __call__(self) -> Any:
        return self.callback()


# ---------------------------------------------------------------------------
# Predicate input / introspection output
# ---------------------------------------------------------------------------

class BoundaryQuery(BaseModel):
    """Question handed to the host predicate: is ``boundary`` satisfied on ``axis``?"""

    model_config = {"frozen": True}

    axis: Any
    boundary: Boundary
    boundary_value: Any
    is_sentinel: bool = False

    def media_query(self, unit: str = "px") -> str:
        """Render as a CSS media feature, e.g. ``(min-width:320px)``."""
        prefix = "min" if self.boundary is Boundary.LOWER else "max"
        value = self.boundary_value
        if not isinstance(value, str):
            value = f"{value:g}{unit}" if isinstance(value, float) else f"{value}{unit}"
        return f"({prefix}-{self.axis}:{value})"


class RegionBoundaries(BaseModel):
    """Snapshot of a region's axis and bounds."""

    model_config = {"frozen": True}

    axis: Any
    lower: Any = None
    upper: Any = None
