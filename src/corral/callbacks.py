"""Callback registry: ordered per-region subscriptions keyed by (boundary, direction).

Insertion order is invocation order. The same callable may be subscribed more
than once; each subscription is a separate ``CallbackEntry`` and is removed
independently. An optional namespace tag allows bulk removal.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Any, Union

from corral.core.enums import Boundary, Direction
from corral.core.errors import (
    NamespaceNotFoundError,
    RegionNotFoundError,
    ValidationError,
)
from corral.core.interfaces import Callback
from corral.core.models import CallbackEntry, Region

logger = logging.getLogger(__name__)

Callbacks = Union[Callback, Iterable[Callback]]

# (boundary, direction) -> ordered entries
_Slots = dict[tuple[Boundary, Direction], list[CallbackEntry]]


def sanitise_callbacks(callbacks: Callbacks) -> list[Callback]:
    """Normalise a callable or an iterable of callables into a list.

    Raises ``ValidationError`` before anything is stored if any item is not
    callable.
    """
    if callable(callbacks):
        return [callbacks]
    if isinstance(callbacks, (str, bytes, Mapping)) or not isinstance(callbacks, Iterable):
        raise ValidationError(
            f"Expected a callable or a list of callables, got {type(callbacks).__name__}"
        )
    items = list(callbacks)
    for item in items:
        if not callable(item):
            raise ValidationError(
                f"Callback is not callable: {item!r}"
            )
    return items


def check_namespace(namespace: str | None) -> None:
    if namespace is not None and (not isinstance(namespace, str) or not namespace):
        raise ValidationError(f"Namespace must be a non-empty string, got {namespace!r}")


def _empty_slots() -> _Slots:
    return {
        (boundary, direction): []
        for boundary in Boundary
        for direction in Direction
    }


class CallbackRegistry:
    """Per-region callback lists.

    The region registry opens a slot table with ``register`` when a region is
    created and drops it with ``discard`` when the region is removed or
    replaced, so callbacks never outlive their region.
    """

    def __init__(self, replay_on_subscribe: bool = True) -> None:
        self._replay_on_subscribe = replay_on_subscribe
        # region id -> slot table
        self._slots: dict[str, _Slots] = {}

    # ------------------------------------------------------------------
    # Region lifecycle
    # ------------------------------------------------------------------

    def register(self, region_id: str) -> None:
        self._slots[region_id] = _empty_slots()

    def discard(self, region_id: str) -> bool:
        """Drop every callback for a region. Returns whether it was known."""
        return self._slots.pop(region_id, None) is not None

    def clear(self) -> None:
        self._slots.clear()

    # ------------------------------------------------------------------
    # Subscription
    # ------------------------------------------------------------------

    def attach(
        self,
        region: Region,
        boundary: Boundary | str,
        direction: Direction | str,
        callbacks: Callbacks,
        namespace: str | None = None,
    ) -> list[CallbackEntry]:
        """Append callbacks without replaying them against the current state."""
        boundary = Boundary.coerce(boundary)
        direction = Direction.coerce(direction)
        check_namespace(namespace)
        slot = self._slot(region, boundary, direction)
        entries = [CallbackEntry(cb, namespace) for cb in sanitise_callbacks(callbacks)]
        slot.extend(entries)
        return entries

    def subscribe(
        self,
        region: Region,
        boundary: Boundary | str,
        direction: Direction | str,
        callbacks: Callbacks,
        namespace: str | None = None,
    ) -> list[CallbackEntry]:
        """Append callbacks for (boundary, direction).

        If the region is already in the state this direction leads to, each
        callback is invoked once right away, so late subscribers see the
        current state without waiting for the next recheck.

        Entries are stored only after every replay has returned. If a replayed
        callback raises, none of the callbacks passed in this call are stored;
        the ones replayed before it have still run.
        """
        boundary = Boundary.coerce(boundary)
        direction = Direction.coerce(direction)
        check_namespace(namespace)
        slot = self._slot(region, boundary, direction)
        entries = [CallbackEntry(cb, namespace) for cb in sanitise_callbacks(callbacks)]

        if self._replay_on_subscribe and region.state.get(boundary) == direction.active:
            logger.debug(
                "Replaying %s-%s for %d late subscriber(s) on region=%s",
                direction.value,
                boundary.value,
                len(entries),
                region.id,
            )
            for entry in entries:
                entry()
        slot.extend(entries)
        return entries

    def unsubscribe(
        self,
        region: Region,
        boundary: Boundary | str | None = None,
        direction: Direction | str | None = None,
        callback: Callback | None = None,
        namespace: str | None = None,
    ) -> int:
        """Remove subscriptions and return how many were removed.

        - ``callback`` without ``namespace``: the first matching entry for
          (boundary, direction).
        - neither: every entry for (boundary, direction).
        - ``namespace``: every entry with that tag on both directions of
          ``boundary`` (or on every boundary when ``boundary`` is None),
          narrowed by ``direction`` and ``callback`` when given.
        """
        slots = self._table(region)
        check_namespace(namespace)

        if namespace is not None:
            return self._remove_namespace(region, slots, boundary, direction, callback, namespace)

        if boundary is None or direction is None:
            raise ValidationError(
                "unsubscribe() needs a boundary and a direction unless a namespace is given"
            )
        key = (Boundary.coerce(boundary), Direction.coerce(direction))
        slot = slots[key]

        if callback is None:
            removed = len(slot)
            slot.clear()
            return removed

        for index, entry in enumerate(slot):
            if entry.callback == callback:
                del slot[index]
                return 1
        return 0

    def _remove_namespace(
        self,
        region: Region,
        slots: _Slots,
        boundary: Boundary | str | None,
        direction: Direction | str | None,
        callback: Callback | None,
        namespace: str,
    ) -> int:
        if not any(e.namespace == namespace for slot in slots.values() for e in slot):
            raise NamespaceNotFoundError(region.id, namespace)

        boundaries = list(Boundary) if boundary is None else [Boundary.coerce(boundary)]
        directions = list(Direction) if direction is None else [Direction.coerce(direction)]

        removed = 0
        for b in boundaries:
            for d in directions:
                slot = slots[(b, d)]
                kept = [
                    e for e in slot
                    if e.namespace != namespace
                    or (callback is not None and e.callback != callback)
                ]
                removed += len(slot) - len(kept)
                slot[:] = kept
        logger.debug(
            "Removed %d callback(s) in namespace=%s from region=%s",
            removed,
            namespace,
            region.id,
        )
        return removed

    # ------------------------------------------------------------------
    # Dispatch support
    # ------------------------------------------------------------------

    def entries(
        self,
        region: Region,
        boundary: Boundary | str,
        direction: Direction | str,
    ) -> tuple[CallbackEntry, ...]:
        """Snapshot of the entries for (boundary, direction), in invocation order."""
        return tuple(self._slot(region, Boundary.coerce(boundary), Direction.coerce(direction)))

    def count(self, region: Region | None = None) -> int:
        tables: Iterable[_Slots]
        tables = self._slots.values() if region is None else [self._table(region)]
        return sum(len(slot) for slots in tables for slot in slots.values())

    def namespaces(self, region: Region) -> set[str]:
        return {
            e.namespace
            for slot in self._table(region).values()
            for e in slot
            if e.namespace is not None
        }

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _table(self, region: Region) -> _Slots:
        slots = self._slots.get(region.id)
        if slots is None:
            raise RegionNotFoundError(region.id)
        return slots

    def _slot(
        self, region: Region, boundary: Boundary, direction: Direction
    ) -> list[CallbackEntry]:
        return self._table(region)[(boundary, direction)]


def _is_direction(key: Any) -> bool:
    try:
        Direction.coerce(key)
    except ValidationError:
        return False
    return True


def iter_callback_map(
    mapping: Mapping[Any, Any],
) -> Iterable[tuple[Boundary, Direction, Callbacks]]:
    """Flatten a creation-time callback mapping.

    Accepts ``{boundary: {direction: callbacks}}``. A mapping with only
    ``enter``/``exit`` keys is shorthand for the conjunction boundary.
    """
    if not isinstance(mapping, Mapping):
        raise ValidationError(f"Callbacks must be a mapping, got {type(mapping).__name__}")

    if mapping and all(_is_direction(key) for key in mapping):
        mapping = {Boundary.CONJUNCTION: mapping}

    for boundary_key, by_direction in mapping.items():
        boundary = Boundary.coerce(boundary_key)
        if not isinstance(by_direction, Mapping):
            raise ValidationError(
                f"Callbacks for boundary {boundary.value!r} must be a mapping of direction to callbacks"
            )
        for direction_key, callbacks in by_direction.items():
            yield boundary, Direction.coerce(direction_key), callbacks
