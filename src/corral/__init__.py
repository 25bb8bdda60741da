"""Named interval regions with directional enter/exit notifications.

A ``RegionRegistry`` holds named regions on an axis. Whenever the host's
measurement may have changed, the driver calls ``recheck_all()``; for each
region the lower and upper boundaries are checked with the injected
predicate, and enter/exit callbacks fire on every change, followed by the
derived conjunction event when both bounds agree.
"""

from corral.core.config import CorralSettings, load_settings
from corral.core.enums import Boundary, Direction
from corral.core.errors import (
    ConfigError,
    CorralError,
    NamespaceNotFoundError,
    NotFoundError,
    RegionNotFoundError,
    ValidationError,
)
from corral.core.models import BoundaryQuery, CallbackEntry, Region, RegionBoundaries, RegionState
from corral.evaluator import Evaluator, threshold_predicate
from corral.registry import RegionRegistry

__all__ = [
    "Boundary",
    "BoundaryQuery",
    "CallbackEntry",
    "ConfigError",
    "CorralError",
    "CorralSettings",
    "Direction",
    "Evaluator",
    "NamespaceNotFoundError",
    "NotFoundError",
    "Region",
    "RegionBoundaries",
    "RegionNotFoundError",
    "RegionRegistry",
    "RegionState",
    "ValidationError",
    "load_settings",
    "threshold_predicate",
]
