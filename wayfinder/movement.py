"""Movement classification from the position filter's speed output."""

from __future__ import annotations

from .const import (
    _LOGGER,
    MOVEMENT_DEBOUNCE_SAMPLES,
    STATIONARY_SPEED_THRESHOLD,
    WALKING_SPEED_THRESHOLD,
    MovementState,
)


def classify_speed(
    speed: float,
    stationary_threshold: float = STATIONARY_SPEED_THRESHOLD,
    walking_threshold: float = WALKING_SPEED_THRESHOLD,
) -> MovementState:
    """Pure threshold mapping of a speed in m/s to a MovementState."""
    if speed < stationary_threshold:
        return MovementState.STATIONARY
    if speed < walking_threshold:
        return MovementState.WALKING
    return MovementState.RUNNING


class MovementClassifier:
    """
    Tracks the current MovementState.

    With `debounce_samples` > 1 a new state must be observed on that many
    consecutive speed samples before it is adopted, which stops the state
    flapping when the speed hovers around a threshold. The default of 1
    switches immediately.
    """

    def __init__(
        self,
        stationary_threshold: float = STATIONARY_SPEED_THRESHOLD,
        walking_threshold: float = WALKING_SPEED_THRESHOLD,
        debounce_samples: int = MOVEMENT_DEBOUNCE_SAMPLES,
    ) -> None:
        self.stationary_threshold = stationary_threshold
        self.walking_threshold = walking_threshold
        self.debounce_samples = max(1, debounce_samples)
        self.state = MovementState.STATIONARY
        self.pending_state: MovementState | None = None
        self.pending_streak = 0

    def update(self, speed: float | None) -> MovementState:
        """Classify a new speed sample. None (speed unknown) keeps the current state."""
        if speed is None:
            return self.state

        candidate = classify_speed(speed, self.stationary_threshold, self.walking_threshold)
        if candidate is self.state:
            self.pending_state = None
            self.pending_streak = 0
            return self.state

        if candidate is self.pending_state:
            self.pending_streak += 1
        else:
            self.pending_state = candidate
            self.pending_streak = 1

        if self.pending_streak >= self.debounce_samples:
            _LOGGER.debug("Movement %s -> %s at %.2f m/s", self.state.value, candidate.value, speed)
            self.state = candidate
            self.pending_state = None
            self.pending_streak = 0
        return self.state

    def reset(self) -> None:
        self.state = MovementState.STATIONARY
        self.pending_state = None
        self.pending_streak = 0
