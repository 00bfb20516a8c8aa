"""Distance-to-destination evaluator with a one-way "destination reached" latch."""

from __future__ import annotations

from .config import NavigationConfig
from .const import _LOGGER, MovementState
from .filters.distance import DistanceSmoother
from .models import Destination, FilteredPosition
from .util import haversine_distance


class DestinationEvaluator:
    """
    Smooths the great-circle distance to the destination and latches
    `reached` once it has stayed inside the movement profile's reach
    threshold for enough consecutive samples.

    Without a filtered position nothing is computed; that is a steady
    state, not an error.
    """

    def __init__(self, destination: Destination, config: NavigationConfig | None = None) -> None:
        self.destination = destination
        self.config = config or NavigationConfig()
        self.smoother = DistanceSmoother()
        self.raw_distance: float | None = None
        self.stable_count = 0
        self.reached = False

    @property
    def distance(self) -> float | None:
        """Smoothed distance-to-go in metres, None while position is unknown."""
        return self.smoother.get_estimate()

    def update(self, position: FilteredPosition | None, movement: MovementState) -> bool:
        """
        Evaluate one accepted position.

        Returns True only on the call that sets the latch.
        """
        if position is None:
            return False

        profile = self.config.profile(movement)
        self.raw_distance = haversine_distance(position.latlng, self.destination.latlng)
        self.smoother.base_alpha = profile.distance_alpha
        smoothed = self.smoother.update(self.raw_distance, position.timestamp)

        if self.reached:
            return False

        if smoothed <= profile.gps_reach_threshold:
            self.stable_count += 1
        else:
            self.stable_count = 0
            return False

        if self.stable_count < max(1, profile.gps_required_stable):
            return False

        self.reached = True
        _LOGGER.info(
            "Destination %s reached (%.1fm, %s)",
            self.destination.name or "",
            smoothed,
            movement.value,
        )
        return True

    def reset(self) -> None:
        self.smoother.reset()
        self.raw_distance = None
        self.stable_count = 0
        self.reached = False
