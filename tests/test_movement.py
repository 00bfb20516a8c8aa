"""Tests for movement classification."""

from __future__ import annotations

import pytest

from wayfinder.const import MovementState
from wayfinder.movement import MovementClassifier, classify_speed


@pytest.mark.parametrize(
    ("speed", "expected"),
    [
        (0.0, MovementState.STATIONARY),
        (0.29, MovementState.STATIONARY),
        (0.3, MovementState.WALKING),
        (1.4, MovementState.WALKING),
        (2.0, MovementState.RUNNING),
        (4.5, MovementState.RUNNING),
    ],
)
def test_classify_speed_thresholds(speed: float, expected: MovementState) -> None:
    """Lower bounds are inclusive: 0.3 is walking, 2.0 is running."""
    assert classify_speed(speed) is expected


class TestMovementClassifier:
    """State tracking with optional debounce."""

    def test_starts_stationary(self) -> None:
        assert MovementClassifier().state is MovementState.STATIONARY

    def test_unknown_speed_keeps_state(self) -> None:
        classifier = MovementClassifier()
        classifier.update(1.0)
        assert classifier.update(None) is MovementState.WALKING

    def test_switches_immediately_without_debounce(self) -> None:
        classifier = MovementClassifier()
        assert classifier.update(3.0) is MovementState.RUNNING
        assert classifier.update(0.1) is MovementState.STATIONARY

    def test_debounce_requires_consecutive_samples(self) -> None:
        classifier = MovementClassifier(debounce_samples=3)
        assert classifier.update(1.0) is MovementState.STATIONARY
        assert classifier.update(1.0) is MovementState.STATIONARY
        assert classifier.update(1.0) is MovementState.WALKING

    def test_debounce_streak_broken_by_current_state(self) -> None:
        """A sample matching the current state discards the pending candidate."""
        classifier = MovementClassifier(debounce_samples=2)
        classifier.update(1.0)
        classifier.update(0.0)
        assert classifier.pending_state is None
        assert classifier.update(1.0) is MovementState.STATIONARY
        assert classifier.update(1.0) is MovementState.WALKING

    def test_debounce_streak_restarts_on_new_candidate(self) -> None:
        classifier = MovementClassifier(debounce_samples=2)
        classifier.update(1.0)
        classifier.update(5.0)
        assert classifier.pending_state is MovementState.RUNNING
        assert classifier.pending_streak == 1
        assert classifier.update(5.0) is MovementState.RUNNING

    def test_custom_thresholds(self) -> None:
        classifier = MovementClassifier(stationary_threshold=0.5, walking_threshold=3.0)
        assert classifier.update(0.4) is MovementState.STATIONARY
        assert classifier.update(2.5) is MovementState.WALKING

    def test_reset(self) -> None:
        classifier = MovementClassifier(debounce_samples=2)
        classifier.update(5.0)
        classifier.update(5.0)
        classifier.reset()
        assert classifier.state is MovementState.STATIONARY
        assert classifier.pending_streak == 0
