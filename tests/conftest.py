"""Shared fixtures for the corral test suite."""

from __future__ import annotations

from typing import Any

import pytest

from corral.core.config import CorralSettings
from corral.evaluator import threshold_predicate
from corral.registry import RegionRegistry


class Measurement:
    """Mutable per-axis readings fed to ``threshold_predicate``."""

    def __init__(self, **values: float) -> None:
        self.values: dict[str, Any] = dict(values)

    def __call__(self, axis: Any) -> Any:
        return self.values.get(axis)

    def set(self, axis: str, value: Any) -> None:
        self.values[axis] = value


class Recorder:
    """Collects labelled callback invocations in call order."""

    def __init__(self) -> None:
        self.calls: list[str] = []

    def __call__(self, label: str):
        def callback() -> None:
            self.calls.append(label)

        return callback

    def clear(self) -> None:
        self.calls.clear()


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def measurement() -> Measurement:
    """Width starts at 400."""
    return Measurement(width=400)


@pytest.fixture
def settings() -> CorralSettings:
    return CorralSettings()


@pytest.fixture
def registry(measurement: Measurement, settings: CorralSettings) -> RegionRegistry:
    return RegionRegistry(threshold_predicate(measurement), settings)


@pytest.fixture
def recorder() -> Recorder:
    return Recorder()


@pytest.fixture
def subscribe_all(registry: RegionRegistry, recorder: Recorder):
    """Subscribe a labelled recorder to all six events of a region.

    Replays caused by subscribing are discarded; only later calls are kept.
    """

    def _subscribe(region_id: str) -> None:
        for boundary in ("lower", "upper", "conjunction"):
            for direction in ("enter", "exit"):
                registry.on(
                    region_id,
                    boundary,
                    direction,
                    recorder(f"{region_id}:{direction}-{boundary}"),
                )
        recorder.clear()

    return _subscribe
