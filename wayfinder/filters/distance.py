"""
Adaptive exponential smoothing of distance-to-destination.

A fixed alpha either drags out a real approach (too low) or passes GPS
jitter straight through (too high). Here alpha grows with the size of the
change: small wobbles are smoothed at the base alpha, while a change of
`change_saturation` metres or more is followed at `base_alpha + alpha_span`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from ..const import DISTANCE_ALPHA_SPAN, DISTANCE_CHANGE_SATURATION
from ..util import clamp
from .base import SignalFilter


@dataclass
class DistanceSmoother(SignalFilter):
    """Distance smoother whose alpha adapts to the magnitude of change."""

    base_alpha: float = 0.2
    alpha_span: float = DISTANCE_ALPHA_SPAN
    change_saturation: float = DISTANCE_CHANGE_SATURATION

    estimate: float | None = None
    variance: float = 0.0
    sample_count: int = 0
    last_alpha: float = field(default=0.0, repr=False)

    def alpha_for(self, measurement: float) -> float:
        """Alpha that would be applied to this measurement."""
        if self.estimate is None:
            return self.base_alpha
        change = abs(measurement - self.estimate)
        factor = clamp(change / self.change_saturation, 0.0, 1.0)
        return clamp(self.base_alpha + self.alpha_span * factor, 0.0, 1.0)

    def update(self, measurement: float, timestamp: float | None = None) -> float:
        self.sample_count += 1
        if self.estimate is None:
            self.estimate = measurement
            self.last_alpha = 1.0
            return self.estimate

        alpha = self.alpha_for(measurement)
        deviation_sq = (measurement - self.estimate) ** 2
        self.estimate = alpha * measurement + (1 - alpha) * self.estimate
        self.variance = alpha * deviation_sq + (1 - alpha) * self.variance
        self.last_alpha = alpha
        return self.estimate

    def get_estimate(self) -> float | None:
        return self.estimate

    def get_variance(self) -> float:
        return self.variance

    def reset(self) -> None:
        self.estimate = None
        self.variance = 0.0
        self.sample_count = 0
        self.last_alpha = 0.0

    def get_diagnostics(self) -> dict[str, Any]:
        diag = super().get_diagnostics()
        diag["alpha"] = round(self.last_alpha, 3)
        diag["sample_count"] = self.sample_count
        return diag
