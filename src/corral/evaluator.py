"""Evaluator: rechecks regions against the host predicate.

Only boundaries whose predicate result disagrees with the stored state are
triggered, so an unchanged measurement produces no dispatch.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from corral.core.config import CorralSettings
from corral.core.enums import Boundary, Direction
from corral.core.interfaces import BoundaryPredicate, ValueReader
from corral.core.models import BoundaryQuery, Region
from corral.observability import metrics
from corral.observability.logger import new_recheck_id
from corral.state_machine import StateMachine

if TYPE_CHECKING:
    from corral.registry import RegionRegistry

logger = logging.getLogger(__name__)


def build_query(region: Region, boundary: Boundary, settings: CorralSettings) -> BoundaryQuery:
    """Build the query for one elementary boundary, substituting sentinels for unset bounds."""
    value = region.bound(boundary)
    if value is not None:
        return BoundaryQuery(axis=region.axis, boundary=boundary, boundary_value=value)
    sentinel = settings.lower_sentinel if boundary is Boundary.LOWER else settings.upper_sentinel
    return BoundaryQuery(
        axis=region.axis,
        boundary=boundary,
        boundary_value=sentinel,
        is_sentinel=True,
    )


def threshold_predicate(read_value: ValueReader) -> BoundaryPredicate:
    """Predicate comparing a numeric reading against the bound.

    Lower is satisfied at or above the bound, upper at or below it. Sentinel
    queries are always satisfied; a reading of ``None`` satisfies nothing.
    """

    def predicate(query: BoundaryQuery) -> bool:
        if query.is_sentinel:
            return True
        value = read_value(query.axis)
        if value is None:
            return False
        if query.boundary is Boundary.LOWER:
            return value >= query.boundary_value
        return value <= query.boundary_value

    return predicate


class Evaluator:
    """Drives rechecks for one registry."""

    def __init__(
        self,
        registry: RegionRegistry,
        state_machine: StateMachine,
        predicate: BoundaryPredicate,
        settings: CorralSettings,
    ) -> None:
        self._registry = registry
        self._state_machine = state_machine
        self._predicate = predicate
        self._settings = settings

    def recheck_all(self) -> list[tuple[str, Boundary, Direction]]:
        """Recheck every registered region. Returns the triggers issued."""
        new_recheck_id()
        metrics.record_recheck("all")
        fired: list[tuple[str, Boundary, Direction]] = []
        regions = list(self._registry)
        for region in regions:
            # Skip regions a callback removed earlier in this pass.
            if self._registry.get(region.id) is not region:
                continue
            fired.extend((region.id, b, d) for b, d in self._check(region))
        logger.debug(
            "Recheck pass regions=%d triggers=%d",
            len(regions),
            len(fired),
        )
        return fired

    def recheck_one(self, region: Region) -> list[tuple[Boundary, Direction]]:
        """Recheck a single region. Returns the triggers issued."""
        metrics.record_recheck("one")
        return self._check(region)

    def _check(self, region: Region) -> list[tuple[Boundary, Direction]]:
        fired: list[tuple[Boundary, Direction]] = []
        for boundary in Boundary.elementary():
            query = build_query(region, boundary, self._settings)
            matched = bool(self._predicate(query))
            if matched == region.state.get(boundary):
                continue
            direction = Direction.for_state(matched)
            self._state_machine.trigger(region, boundary, direction)
            fired.append((boundary, direction))
        return fired
