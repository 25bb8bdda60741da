"""Boundary-crossing state machine.

Each elementary boundary (lower, upper) crosses independently. The
conjunction boundary ("inside both bounds") is derived: it fires once, right
after the second constituent's own event, and only when both constituents
agree. Derivation is limited to a single extra level.

Transitions are idempotent: a direction does not fire again without an
intervening opposite transition unless ``force`` is set.
"""

from __future__ import annotations

import logging
from collections import defaultdict

from corral.callbacks import CallbackRegistry
from corral.core.enums import Boundary, Direction
from corral.core.models import Region
from corral.observability import metrics

logger = logging.getLogger(__name__)

# A trigger may derive at most this many further transitions.
_MAX_DERIVATION_DEPTH = 1


class StateMachine:
    """Applies transitions to regions and dispatches their callbacks.

    Dispatch is synchronous on the caller's thread. A callback that raises
    aborts the rest of the dispatch, leaves the boundary in its previous
    state and propagates to the caller of ``trigger``.
    """

    def __init__(self, callbacks: CallbackRegistry) -> None:
        self._callbacks = callbacks
        # "direction-boundary" -> callbacks invoked
        self._dispatch_counts: dict[str, int] = defaultdict(int)
        self._transitions: int = 0

    def trigger(
        self,
        region: Region,
        boundary: Boundary | str,
        direction: Direction | str,
        force: bool = False,
        cascade: bool = True,
    ) -> bool:
        """Move ``boundary`` of ``region`` in ``direction``.

        Returns ``False`` when the boundary is already in the target state and
        ``force`` is not set (nothing fires), ``True`` otherwise. With
        ``cascade=False`` no conjunction transition is derived.
        """
        boundary = Boundary.coerce(boundary)
        direction = Direction.coerce(direction)
        depth = 0 if cascade else _MAX_DERIVATION_DEPTH
        return self._apply(region, boundary, direction, force=force, depth=depth, derived=False)

    def _apply(
        self,
        region: Region,
        boundary: Boundary,
        direction: Direction,
        *,
        force: bool,
        depth: int,
        derived: bool,
    ) -> bool:
        target = direction.active
        state = region.state

        if state.get(boundary) == target and not force:
            return False

        self._dispatch(region, boundary, direction)
        state.set(boundary, target)
        self._transitions += 1
        metrics.record_transition(boundary.value, direction.value)
        logger.debug(
            "Transition %s-%s region=%s force=%s derived=%s state=%s",
            direction.value,
            boundary.value,
            region.id,
            force,
            derived,
            state.snapshot(),
        )

        if boundary is Boundary.CONJUNCTION:
            # A conjunction trigger from a caller is authoritative over the
            # constituents. A derived one leaves them alone: exiting one bound
            # must not clear the other, or the next recheck would fire enter
            # again for a bound whose predicate never changed.
            if not derived:
                state.lower_active = target
                state.upper_active = target
        elif depth < _MAX_DERIVATION_DEPTH:
            if state.get(boundary.complement) and (
                state.conjunction_active != target or force
            ):
                self._apply(
                    region,
                    Boundary.CONJUNCTION,
                    direction,
                    force=False,
                    depth=depth + 1,
                    derived=True,
                )
        return True

    def _dispatch(self, region: Region, boundary: Boundary, direction: Direction) -> None:
        entries = self._callbacks.entries(region, boundary, direction)
        key = f"{direction.value}-{boundary.value}"
        invoked = 0
        try:
            for entry in entries:
                entry()
                invoked += 1
        except Exception:
            logger.exception(
                "Callback %d/%d failed during %s on region=%s",
                invoked + 1,
                len(entries),
                key,
                region.id,
            )
            raise
        finally:
            self._dispatch_counts[key] += invoked
            metrics.record_dispatch(boundary.value, direction.value, invoked)

    # ------------------------------------------------------------------
    # Observability
    # ------------------------------------------------------------------

    def dispatch_counts(self) -> dict[str, int]:
        """Callbacks invoked so far, keyed by ``"<direction>-<boundary>"``."""
        return dict(self._dispatch_counts)

    @property
    def transitions(self) -> int:
        """Transitions applied so far, derived ones included."""
        return self._transitions
