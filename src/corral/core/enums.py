"""Enumerations for region boundaries and crossing directions."""

from __future__ import annotations

from enum import Enum
from typing import Iterator

from .errors import ValidationError


class Boundary(str, Enum):
    LOWER = "lower"
    UPPER = "upper"
    CONJUNCTION = "conjunction"  # both bounds satisfied

    @classmethod
    def coerce(cls, value: Boundary | str) -> Boundary:
        """Accept an enum member, its value, or a legacy alias (min/max/both)."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            key = value.strip().lower()
            key = _BOUNDARY_ALIASES.get(key, key)
            try:
                return cls(key)
            except ValueError:
                pass
        raise ValidationError(f"Unknown boundary: {value!r}")

    @classmethod
    def elementary(cls) -> Iterator[Boundary]:
        """Boundaries that are evaluated directly, in evaluation order."""
        yield cls.LOWER
        yield cls.UPPER

    @property
    def complement(self) -> Boundary:
        if self is Boundary.LOWER:
            return Boundary.UPPER
        if self is Boundary.UPPER:
            return Boundary.LOWER
        raise ValidationError("The conjunction boundary has no complement")


class Direction(str, Enum):
    ENTER = "enter"
    EXIT = "exit"

    @classmethod
    def coerce(cls, value: Direction | str) -> Direction:
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                pass
        raise ValidationError(f"Unknown direction: {value!r}")

    @classmethod
    def for_state(cls, active: bool) -> Direction:
        """The direction whose completion leaves a boundary in ``active``."""
        return cls.ENTER if active else cls.EXIT

    @property
    def active(self) -> bool:
        """Boundary state after a transition in this direction."""
        return self is Direction.ENTER


_BOUNDARY_ALIASES = {
    "min": "lower",
    "max": "upper",
    "both": "conjunction",
}
