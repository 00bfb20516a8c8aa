"""
Abstract base class for scalar signal filters.

Both per-beacon RSSI smoothing and distance-to-destination smoothing are
one-dimensional filters over an irregular stream of measurements, so they
share one interface:

- Filters process sequential measurements over time
- Each filter maintains its own state (estimate, variance)
- reset() returns a filter to its neutral, unseeded state
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class SignalFilter(ABC):
    """
    Abstract base class for swappable scalar filters.

    Example usage:
        flt = DistanceSmoother(base_alpha=0.2)
        for metres in readings:
            smoothed = flt.update(metres, timestamp)
    """

    @abstractmethod
    def update(self, measurement: float, timestamp: float | None = None) -> float:
        """
        Process a new measurement and update filter state.

        Args:
            measurement: Raw value (dBm for RSSI, metres for distance)
            timestamp: Optional timestamp of the measurement, seconds

        Returns:
            The filtered estimate after incorporating this measurement

        """

    @abstractmethod
    def get_estimate(self) -> float | None:
        """Return the current estimate, or None if the filter is unseeded."""

    @abstractmethod
    def get_variance(self) -> float:
        """Return the spread of recent measurements around the estimate."""

    @abstractmethod
    def reset(self) -> None:
        """Reset filter state to initial conditions."""

    def get_diagnostics(self) -> dict[str, Any]:
        """
        Return diagnostic information for debugging/monitoring.

        Default implementation returns basic state.
        """
        return {
            "estimate": self.get_estimate(),
            "variance": self.get_variance(),
        }
