"""Prometheus metrics for region transitions and callback dispatch."""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Info, start_http_server

SYSTEM_INFO = Info("corral", "Region tracker information")

TRANSITIONS_TOTAL = Counter(
    "corral_transitions_total",
    "Boundary state transitions applied",
    ["boundary", "direction"],
)

CALLBACK_DISPATCHES_TOTAL = Counter(
    "corral_callback_dispatches_total",
    "Callbacks invoked",
    ["boundary", "direction"],
)

RECHECKS_TOTAL = Counter(
    "corral_rechecks_total",
    "Evaluation passes run",
    ["scope"],  # "all" or "one"
)

REGIONS = Gauge(
    "corral_regions",
    "Regions currently registered, summed over all registries",
)


def start_metrics_server(port: int = 9090) -> None:
    """Start Prometheus metrics HTTP server in a background thread."""
    SYSTEM_INFO.info({"version": "0.1.0"})
    start_http_server(port)


def record_transition(boundary: str, direction: str) -> None:
    TRANSITIONS_TOTAL.labels(boundary=boundary, direction=direction).inc()


def record_dispatch(boundary: str, direction: str, count: int = 1) -> None:
    """Record callbacks invoked for one (boundary, direction) dispatch."""
    if count:
        CALLBACK_DISPATCHES_TOTAL.labels(boundary=boundary, direction=direction).inc(count)


def record_recheck(scope: str) -> None:
    RECHECKS_TOTAL.labels(scope=scope).inc()


def record_regions_added(count: int = 1) -> None:
    REGIONS.inc(count)


def record_regions_removed(count: int = 1) -> None:
    if count:
        REGIONS.dec(count)
