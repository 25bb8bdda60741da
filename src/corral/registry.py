"""Region registry: owns every region and wires the evaluation pipeline.

The registry is an explicit object rather than module-level state. It builds
its ``CallbackRegistry``, ``StateMachine`` and ``Evaluator`` from an injected
boundary predicate and settings; a driver holds the registry and calls
``registry.evaluator.recheck_all()`` (or ``registry.recheck_all()``) whenever
the measurement may have changed.

Policy:
- creating a region under an existing id replaces the old region and drops
  its callbacks;
- removal is not a transition, so no exit callbacks fire on removal.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping
from pathlib import Path
from typing import Any

from corral.callbacks import (
    CallbackRegistry,
    Callbacks,
    check_namespace,
    iter_callback_map,
    sanitise_callbacks,
)
from corral.core.config import CorralSettings, load_settings
from corral.core.enums import Boundary, Direction
from corral.core.errors import RegionNotFoundError, ValidationError
from corral.core.interfaces import BoundaryPredicate, Callback
from corral.core.models import CallbackEntry, Region, RegionBoundaries
from corral.evaluator import Evaluator
from corral.observability import metrics
from corral.observability.logger import setup_logging
from corral.state_machine import StateMachine

logger = logging.getLogger(__name__)

_UNCHANGED: Any = object()

RegionRef = Region | str


class RegionRegistry:
    """Create, look up and remove named regions.

    Parameters
    ----------
    predicate:
        Host function deciding whether a ``BoundaryQuery`` is satisfied.
    settings:
        Sentinels and replay behaviour (default ``CorralSettings()``).
    """

    def __init__(
        self,
        predicate: BoundaryPredicate,
        settings: CorralSettings | None = None,
    ) -> None:
        if not callable(predicate):
            raise ValidationError("predicate must be callable")
        self._settings = settings or CorralSettings()
        self._regions: dict[str, Region] = {}
        self.callbacks = CallbackRegistry(
            replay_on_subscribe=self._settings.replay_on_subscribe,
        )
        self.state_machine = StateMachine(self.callbacks)
        self.evaluator = Evaluator(self, self.state_machine, predicate, self._settings)

    @classmethod
    def from_config(
        cls,
        predicate: BoundaryPredicate,
        config_path: str | Path | None = None,
        overrides: dict[str, Any] | None = None,
        configure_observability: bool = False,
    ) -> RegionRegistry:
        """Build a registry from a TOML file + env vars.

        With ``configure_observability`` the structured logging setup is
        applied and, if enabled, the metrics endpoint is started.
        """
        settings = load_settings(config_path, overrides)
        if configure_observability:
            obs = settings.observability
            setup_logging(level=obs.log_level, format=obs.log_format)
            if obs.metrics_enabled:
                metrics.start_metrics_server(obs.metrics_port)
        return cls(predicate, settings)

    @property
    def settings(self) -> CorralSettings:
        return self._settings

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def create(
        self,
        region_id: str,
        axis: Any,
        lower: Any = None,
        upper: Any = None,
        callbacks: Mapping[Any, Any] | None = None,
        namespace: str | None = None,
    ) -> Region:
        """Register a region and evaluate it once against the current measurement.

        ``callbacks`` is ``{boundary: {direction: callable | [callables]}}``;
        a mapping with only ``enter``/``exit`` keys applies to the
        conjunction. They are attached before the initial evaluation and are
        not replayed, so they see that evaluation as ordinary transitions.
        """
        if not isinstance(region_id, str) or not region_id:
            raise ValidationError(f"Region id must be a non-empty string, got {region_id!r}")

        # Validate every callback before touching any state.
        check_namespace(namespace)
        planned = [
            (boundary, direction, sanitise_callbacks(cbs))
            for boundary, direction, cbs in (
                iter_callback_map(callbacks) if callbacks is not None else ()
            )
        ]

        if region_id in self._regions:
            logger.warning("Replacing existing region id=%s", region_id)
            self.callbacks.discard(region_id)
        else:
            metrics.record_regions_added()

        region = Region(id=region_id, axis=axis, lower=lower, upper=upper)
        self._regions[region_id] = region
        self.callbacks.register(region_id)
        for boundary, direction, cbs in planned:
            self.callbacks.attach(region, boundary, direction, cbs, namespace=namespace)

        logger.info(
            "Region created: id=%s axis=%s lower=%s upper=%s",
            region_id,
            axis,
            lower,
            upper,
        )
        self.evaluator.recheck_one(region)
        return region

    def remove(self, region: RegionRef) -> bool:
        """Remove a region and its callbacks. No exit events fire."""
        region_id = region.id if isinstance(region, Region) else region
        current = self._regions.get(region_id)
        if current is None:
            return False
        if isinstance(region, Region) and current is not region:
            # A stale object for an id that has since been re-created.
            return False
        del self._regions[region_id]
        self.callbacks.discard(region_id)
        metrics.record_regions_removed()
        logger.info("Region removed: id=%s", region_id)
        return True

    def clear(self) -> None:
        """Remove every region. No exit events fire."""
        metrics.record_regions_removed(len(self._regions))
        self._regions.clear()
        self.callbacks.clear()

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def get(self, region_id: str) -> Region | None:
        return self._regions.get(region_id)

    def resolve(self, region: RegionRef) -> Region:
        """Return the registered region for an id or region object."""
        region_id = region.id if isinstance(region, Region) else region
        current = self._regions.get(region_id)
        if current is None or (isinstance(region, Region) and current is not region):
            raise RegionNotFoundError(str(region_id))
        return current

    def ids(self) -> list[str]:
        return list(self._regions)

    def list_boundaries(self) -> dict[str, RegionBoundaries]:
        """Snapshot of every region's axis and bounds, keyed by id."""
        return {
            region_id: RegionBoundaries(axis=r.axis, lower=r.lower, upper=r.upper)
            for region_id, r in self._regions.items()
        }

    def __iter__(self) -> Iterator[Region]:
        return iter(list(self._regions.values()))

    def __len__(self) -> int:
        return len(self._regions)

    def __contains__(self, region_id: object) -> bool:
        return region_id in self._regions

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def set_bounds(
        self,
        region: RegionRef,
        lower: Any = _UNCHANGED,
        upper: Any = _UNCHANGED,
    ) -> Region:
        """Change one or both bounds, then recheck the region.

        Omitted arguments keep the current bound; ``None`` clears it.
        """
        target = self.resolve(region)
        if lower is not _UNCHANGED:
            target.lower = lower
        if upper is not _UNCHANGED:
            target.upper = upper
        logger.debug(
            "Bounds changed: id=%s lower=%s upper=%s",
            target.id,
            target.lower,
            target.upper,
        )
        self.evaluator.recheck_one(target)
        return target

    def set_axis(self, region: RegionRef, axis: Any) -> Region:
        target = self.resolve(region)
        target.axis = axis
        self.evaluator.recheck_one(target)
        return target

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def on(
        self,
        region: RegionRef,
        boundary: Boundary | str,
        direction: Direction | str,
        callbacks: Callbacks,
        namespace: str | None = None,
    ) -> list[CallbackEntry]:
        """Subscribe; replays at once if the region is already in that state."""
        return self.callbacks.subscribe(
            self.resolve(region), boundary, direction, callbacks, namespace=namespace
        )

    def off(
        self,
        region: RegionRef,
        boundary: Boundary | str | None = None,
        direction: Direction | str | None = None,
        callback: Callback | None = None,
        namespace: str | None = None,
    ) -> int:
        """Unsubscribe; see ``CallbackRegistry.unsubscribe``."""
        return self.callbacks.unsubscribe(
            self.resolve(region),
            boundary,
            direction,
            callback=callback,
            namespace=namespace,
        )

    def trigger(
        self,
        region: RegionRef,
        boundary: Boundary | str,
        direction: Direction | str,
        force: bool = False,
        cascade: bool = True,
    ) -> bool:
        return self.state_machine.trigger(
            self.resolve(region), boundary, direction, force=force, cascade=cascade
        )

    def is_active(self, region: RegionRef, boundary: Boundary | str) -> bool:
        return self.resolve(region).is_active(boundary)

    # ------------------------------------------------------------------
    # Evaluation shortcuts
    # ------------------------------------------------------------------

    def recheck_all(self) -> list[tuple[str, Boundary, Direction]]:
        return self.evaluator.recheck_all()

    def recheck_one(self, region: RegionRef) -> list[tuple[Boundary, Direction]]:
        return self.evaluator.recheck_one(self.resolve(region))
