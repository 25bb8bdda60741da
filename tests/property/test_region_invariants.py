"""Property test: region state machine invariants.

Uses hypothesis to drive random trigger sequences and random measurement
paths, checking that the conjunction invariant holds at rest and that
rechecks never dispatch redundantly.
"""

from hypothesis import given, settings, strategies as st

from corral.core.enums import Boundary, Direction
from corral.evaluator import threshold_predicate
from corral.registry import RegionRegistry

TRIGGERS = st.tuples(
    st.sampled_from(list(Boundary)),
    st.sampled_from(list(Direction)),
    st.booleans(),
)

WIDTHS = st.integers(min_value=0, max_value=2000)


def _recording_registry(predicate):
    registry = RegionRegistry(predicate)
    calls: list[tuple[Boundary, Direction]] = []
    return registry, calls


def _subscribe_all(registry, region, calls):
    for boundary in Boundary:
        for direction in Direction:
            registry.callbacks.attach(
                region,
                boundary,
                direction,
                lambda b=boundary, d=direction: calls.append((b, d)),
            )


@settings(max_examples=200)
@given(triggers=st.lists(TRIGGERS, min_size=1, max_size=30))
def test_conjunction_invariant_holds_after_every_trigger(triggers):
    registry, calls = _recording_registry(lambda query: False)
    region = registry.create("r", "width", lower=10, upper=20)
    _subscribe_all(registry, region, calls)

    for boundary, direction, force in triggers:
        was_active = region.state.get(boundary)
        fired = registry.trigger(region, boundary, direction, force=force)

        assert region.state.is_consistent
        if not force and was_active == direction.active:
            assert fired is False
        else:
            assert region.state.get(boundary) == direction.active


@settings(max_examples=200)
@given(triggers=st.lists(TRIGGERS, min_size=1, max_size=30))
def test_conjunction_callbacks_track_state_changes(triggers):
    registry, calls = _recording_registry(lambda query: False)
    region = registry.create("r", "width", lower=10, upper=20)
    _subscribe_all(registry, region, calls)

    for boundary, direction, force in triggers:
        if boundary is Boundary.CONJUNCTION:
            continue
        before = region.state.conjunction_active
        calls.clear()
        registry.trigger(region, boundary, direction, force=force)
        after = region.state.conjunction_active

        derived = [c for c in calls if c[0] is Boundary.CONJUNCTION]
        if before != after:
            assert derived == [(Boundary.CONJUNCTION, Direction.for_state(after))]
            assert calls[-1] == derived[0]
        else:
            assert derived == []


@settings(max_examples=200)
@given(
    lower=st.one_of(st.none(), st.integers(min_value=1, max_value=1000)),
    span=st.integers(min_value=0, max_value=1000),
    unbounded_upper=st.booleans(),
    path=st.lists(WIDTHS, min_size=1, max_size=15),
)
def test_recheck_matches_measurement_and_is_idempotent(lower, span, unbounded_upper, path):
    reading = {"width": path[0]}
    registry, calls = _recording_registry(threshold_predicate(reading.get))
    upper = None if unbounded_upper else (lower or 0) + span
    region = registry.create("r", "width", lower=lower, upper=upper)
    _subscribe_all(registry, region, calls)

    for width in path:
        reading["width"] = width
        registry.recheck_all()

        in_lower = lower is None or width >= lower
        in_upper = upper is None or width <= upper
        assert region.state.lower_active == in_lower
        assert region.state.upper_active == in_upper
        assert region.state.conjunction_active == (in_lower and in_upper)

        calls.clear()
        assert registry.recheck_all() == []
        assert calls == []
