"""Test trigger idempotence, force, conjunction derivation and dispatch."""

import pytest

from corral.core.enums import Boundary, Direction
from corral.core.errors import RegionNotFoundError, ValidationError
from corral.registry import RegionRegistry


@pytest.fixture
def idle_registry() -> RegionRegistry:
    """Registry whose predicate never matches, so regions start inactive."""
    return RegionRegistry(lambda query: False)


@pytest.fixture
def region(idle_registry, recorder):
    region = idle_registry.create("tablet", "width", lower=10, upper=20)
    for boundary in Boundary:
        for direction in Direction:
            idle_registry.callbacks.attach(
                region, boundary, direction, recorder(f"{direction.value}-{boundary.value}")
            )
    return region


class TestIdempotence:
    def test_enter_twice_fires_once(self, idle_registry, region, recorder):
        assert idle_registry.trigger(region, Boundary.LOWER, Direction.ENTER) is True
        assert idle_registry.trigger(region, Boundary.LOWER, Direction.ENTER) is False
        assert recorder.calls == ["enter-lower"]

    def test_exit_when_inactive_is_noop(self, idle_registry, region, recorder):
        assert idle_registry.trigger(region, "upper", "exit") is False
        assert recorder.calls == []

    def test_opposite_direction_rearms(self, idle_registry, region, recorder):
        idle_registry.trigger(region, "lower", "enter")
        idle_registry.trigger(region, "lower", "exit")
        idle_registry.trigger(region, "lower", "enter")
        assert recorder.calls == ["enter-lower", "exit-lower", "enter-lower"]


class TestForce:
    def test_force_refires_when_active(self, idle_registry, region, recorder):
        idle_registry.trigger(region, "lower", "enter")
        assert idle_registry.trigger(region, "lower", "enter", force=True) is True
        assert recorder.calls == ["enter-lower", "enter-lower"]
        assert region.state.lower_active

    def test_force_does_not_refire_active_conjunction(self, idle_registry, region, recorder):
        idle_registry.trigger(region, "lower", "enter")
        idle_registry.trigger(region, "upper", "enter")
        recorder.clear()

        idle_registry.trigger(region, "upper", "enter", force=True)
        assert recorder.calls == ["enter-upper"]


class TestConjunctionDerivation:
    def test_second_constituent_derives_conjunction(self, idle_registry, region, recorder):
        idle_registry.trigger(region, "lower", "enter")
        idle_registry.trigger(region, "upper", "enter")
        assert recorder.calls == ["enter-lower", "enter-upper", "enter-conjunction"]
        assert region.state.conjunction_active

    def test_single_constituent_never_derives(self, idle_registry, region, recorder):
        idle_registry.trigger(region, "upper", "enter")
        assert "enter-conjunction" not in recorder.calls
        assert not region.state.conjunction_active

    def test_exit_of_one_bound_keeps_the_other(self, idle_registry, region, recorder):
        idle_registry.trigger(region, "lower", "enter")
        idle_registry.trigger(region, "upper", "enter")
        recorder.clear()

        idle_registry.trigger(region, "upper", "exit")
        assert recorder.calls == ["exit-upper", "exit-conjunction"]
        assert region.state.lower_active
        assert not region.state.upper_active
        assert not region.state.conjunction_active
        assert region.state.is_consistent

    def test_recheck_after_exit_of_one_bound_is_quiet(self, registry, recorder, measurement):
        region = registry.create("tablet", "width", lower=321, upper=768)
        for boundary in Boundary:
            for direction in Direction:
                registry.callbacks.attach(
                    region, boundary, direction, recorder(f"{direction.value}-{boundary.value}")
                )

        measurement.set("width", 900)
        registry.recheck_all()
        assert recorder.calls == ["exit-upper", "exit-conjunction"]

        recorder.clear()
        registry.recheck_all()
        assert recorder.calls == []
        assert region.state.lower_active

    def test_no_cascade_skips_derivation(self, idle_registry, region, recorder):
        idle_registry.trigger(region, "lower", "enter")
        idle_registry.trigger(region, "upper", "enter", cascade=False)
        assert recorder.calls == ["enter-lower", "enter-upper"]
        assert not region.state.conjunction_active


class TestDirectConjunction:
    def test_direct_enter_sets_constituents(self, idle_registry, region, recorder):
        idle_registry.trigger(region, "conjunction", "enter")
        assert recorder.calls == ["enter-conjunction"]
        assert region.state.lower_active
        assert region.state.upper_active

    def test_direct_exit_clears_constituents(self, idle_registry, region, recorder):
        idle_registry.trigger(region, "lower", "enter")
        idle_registry.trigger(region, "upper", "enter")
        recorder.clear()

        idle_registry.trigger(region, "both", "exit")
        assert recorder.calls == ["exit-conjunction"]
        assert region.state.snapshot() == {
            "lower": False,
            "upper": False,
            "conjunction": False,
        }


class TestDispatchFailure:
    def test_raising_callback_aborts_and_propagates(self, idle_registry, recorder):
        region = idle_registry.create("r", "width", lower=1)

        def boom():
            raise RuntimeError("callback failed")

        idle_registry.callbacks.attach(region, "lower", "enter", [recorder("first"), boom, recorder("last")])

        with pytest.raises(RuntimeError, match="callback failed"):
            idle_registry.trigger(region, "lower", "enter")

        assert recorder.calls == ["first"]
        assert not region.state.lower_active

    def test_failure_in_derived_step_leaves_conjunction_inactive(self, idle_registry, recorder):
        region = idle_registry.create("r", "width", lower=1, upper=2)

        def boom():
            raise RuntimeError("both failed")

        idle_registry.callbacks.attach(region, "conjunction", "enter", boom)
        idle_registry.trigger(region, "lower", "enter")

        with pytest.raises(RuntimeError):
            idle_registry.trigger(region, "upper", "enter")
        assert region.state.upper_active
        assert not region.state.conjunction_active


class TestValidation:
    def test_unknown_boundary(self, idle_registry, region):
        with pytest.raises(ValidationError, match="Unknown boundary"):
            idle_registry.trigger(region, "middle", "enter")

    def test_unknown_direction(self, idle_registry, region):
        with pytest.raises(ValidationError, match="Unknown direction"):
            idle_registry.trigger(region, "lower", "hover")

    def test_legacy_aliases(self, idle_registry, region, recorder):
        idle_registry.trigger(region, "min", "enter")
        idle_registry.trigger(region, "max", "enter")
        assert recorder.calls[-1] == "enter-conjunction"

    def test_removed_region(self, idle_registry, region):
        idle_registry.remove(region)
        with pytest.raises(RegionNotFoundError):
            idle_registry.trigger(region, "lower", "enter")


class TestObservability:
    def test_dispatch_counts(self, idle_registry, region):
        idle_registry.trigger(region, "lower", "enter")
        idle_registry.trigger(region, "upper", "enter")
        counts = idle_registry.state_machine.dispatch_counts()
        assert counts["enter-lower"] == 1
        assert counts["enter-upper"] == 1
        assert counts["enter-conjunction"] == 1
        assert idle_registry.state_machine.transitions == 3
