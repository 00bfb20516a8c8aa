"""Tests for the distance-to-destination evaluator and its smoother."""

from __future__ import annotations

import pytest

from wayfinder.const import MovementState
from wayfinder.destination import DestinationEvaluator
from wayfinder.filters.distance import DistanceSmoother
from wayfinder.models import Destination, FilteredPosition

from .conftest import DEST_LAT, DEST_LNG, offset

DESTINATION = Destination(DEST_LAT, DEST_LNG, "Feeding Zone")


def position(north: float = 0.0, east: float = 0.0, t: float = 0.0) -> FilteredPosition:
    lat, lng = offset(north, east)
    return FilteredPosition(lat, lng, t)


class TestDistanceSmoother:
    """Adaptive alpha smoothing."""

    def test_first_measurement_seeds(self) -> None:
        smoother = DistanceSmoother()
        assert smoother.get_estimate() is None
        assert smoother.update(42.0) == 42.0

    def test_alpha_grows_with_change(self) -> None:
        smoother = DistanceSmoother(base_alpha=0.2)
        smoother.update(50.0)
        assert smoother.alpha_for(50.5) == pytest.approx(0.21)
        assert smoother.alpha_for(45.0) == pytest.approx(0.3)
        assert smoother.alpha_for(10.0) == pytest.approx(0.4)

    def test_update_blends(self) -> None:
        smoother = DistanceSmoother(base_alpha=0.2)
        smoother.update(50.0)
        assert smoother.update(40.0) == pytest.approx(0.4 * 40.0 + 0.6 * 50.0)
        assert smoother.get_variance() > 0.0

    def test_diagnostics(self) -> None:
        smoother = DistanceSmoother(base_alpha=0.2)
        smoother.update(20.0)
        smoother.update(15.0)
        diag = smoother.get_diagnostics()
        assert diag["estimate"] == pytest.approx(0.3 * 15.0 + 0.7 * 20.0)
        assert diag["alpha"] == 0.3
        assert diag["sample_count"] == 2

    def test_reset(self) -> None:
        smoother = DistanceSmoother()
        smoother.update(10.0)
        smoother.reset()
        assert smoother.get_estimate() is None
        assert smoother.sample_count == 0


class TestDestinationEvaluator:
    """Stability counter and one-way latch."""

    def test_unknown_position_is_a_noop(self) -> None:
        evaluator = DestinationEvaluator(DESTINATION)
        for _ in range(5):
            assert evaluator.update(None, MovementState.STATIONARY) is False
        assert evaluator.distance is None
        assert evaluator.reached is False

    def test_latches_after_required_stable_samples(self) -> None:
        """Stationary needs three consecutive smoothed distances inside 3 m."""
        evaluator = DestinationEvaluator(DESTINATION)
        assert evaluator.update(position(north=1.5, t=0.0), MovementState.STATIONARY) is False
        assert evaluator.update(position(north=1.5, t=1.0), MovementState.STATIONARY) is False
        assert evaluator.update(position(north=1.5, t=2.0), MovementState.STATIONARY) is True
        assert evaluator.reached is True
        assert evaluator.distance == pytest.approx(1.5, rel=1e-6)

    def test_walking_needs_two_samples(self) -> None:
        evaluator = DestinationEvaluator(DESTINATION)
        evaluator.update(position(east=3.5, t=0.0), MovementState.WALKING)
        assert evaluator.update(position(east=3.5, t=1.0), MovementState.WALKING) is True

    def test_counter_resets_when_leaving_range(self) -> None:
        evaluator = DestinationEvaluator(DESTINATION)
        evaluator.update(position(north=1.0, t=0.0), MovementState.STATIONARY)
        evaluator.update(position(north=1.0, t=1.0), MovementState.STATIONARY)
        evaluator.update(position(north=40.0, t=2.0), MovementState.STATIONARY)
        assert evaluator.stable_count == 0
        assert evaluator.reached is False

    def test_latch_never_releases(self) -> None:
        evaluator = DestinationEvaluator(DESTINATION)
        for t in range(3):
            evaluator.update(position(t=float(t)), MovementState.STATIONARY)
        assert evaluator.reached is True

        for t in range(3, 20):
            assert evaluator.update(position(north=200.0, t=float(t)), MovementState.RUNNING) is False
        assert evaluator.reached is True
        assert evaluator.distance > 3.0

    def test_smoothing_lags_real_approach(self) -> None:
        """A sudden drop from 30 m to 1 m is not accepted as arrival on the first sample."""
        evaluator = DestinationEvaluator(DESTINATION)
        evaluator.update(position(north=30.0, t=0.0), MovementState.STATIONARY)
        evaluator.update(position(north=1.0, t=1.0), MovementState.STATIONARY)
        assert evaluator.distance > 3.0
        assert evaluator.stable_count == 0

    def test_reset(self) -> None:
        evaluator = DestinationEvaluator(DESTINATION)
        for t in range(3):
            evaluator.update(position(t=float(t)), MovementState.STATIONARY)
        evaluator.reset()
        assert evaluator.reached is False
        assert evaluator.distance is None
