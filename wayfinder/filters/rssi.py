"""
Per-beacon RSSI filtering.

BLE RSSI at a fixed distance routinely varies by +/-10 dB, with occasional
multipath spikes far larger than that. Each beacon therefore keeps a short
history which is filtered in three stages per sample:

1. Median outlier removal: readings more than `outlier_threshold` dB from
   the median of the history are ignored (once enough history exists).
2. Positional weighting: the surviving history is averaged with weights
   growing geometrically towards the newest sample.
3. Exponential smoothing: the weighted average is blended into the running
   estimate with a movement-dependent smoothing factor.

A quality score (0..1) summarises how much the estimate can be trusted,
from the consistency, strength and detection frequency of the signal.
"""

from __future__ import annotations

import logging
import statistics
from dataclasses import dataclass, field
from typing import Any

from ..config import MovementProfile, SmootherConfig
from ..util import clamp, normalized_rssi
from .base import SignalFilter

_LOGGER = logging.getLogger(__name__)


@dataclass
class BeaconSignalState(SignalFilter):
    """
    Mutable signal record for one beacon (one per waypoint).

    Created at session start, updated for every sample, reset to neutral
    values on timeout. `last_reached` is the cooldown stamp of the bound
    waypoint and survives resets.
    """

    identifier: str
    config: SmootherConfig = field(default_factory=SmootherConfig, repr=False)

    history: list[int] = field(default_factory=list)
    smoothed_rssi: float = field(init=False)
    quality: float = 0.0
    detection_count: int = 0
    last_seen: float | None = None
    last_reached: float | None = None

    # Current movement parameters, applied by the smoother before each update
    history_size: int = 15
    smoothing_factor: float = 0.25

    _seeded: bool = field(default=False, repr=False)

    def __post_init__(self) -> None:
        self.smoothed_rssi = self.config.no_signal_rssi

    def apply_profile(self, profile: MovementProfile) -> None:
        """Adopt the history size and smoothing factor of a movement profile."""
        self.history_size = max(1, profile.history_size)
        self.smoothing_factor = clamp(profile.smoothing_factor, 0.0, 1.0)

    def update(self, measurement: float, timestamp: float | None = None) -> float:
        """
        Add a raw RSSI reading and return the new smoothed RSSI.

        The first reading after creation or a reset seeds the estimate
        directly; later readings are blended in.
        """
        self.detection_count += 1
        if timestamp is not None:
            self.last_seen = timestamp

        self.history.append(int(measurement))
        if len(self.history) > self.history_size:
            del self.history[: len(self.history) - self.history_size]

        working = self._remove_outliers(self.history)
        weighted = self._weighted_average(working)

        if not self._seeded:
            self.smoothed_rssi = weighted
            self._seeded = True
        else:
            f = self.smoothing_factor
            self.smoothed_rssi = f * weighted + (1 - f) * self.smoothed_rssi

        self.quality = self._quality_score()
        return self.smoothed_rssi

    def _remove_outliers(self, readings: list[int]) -> list[int]:
        if len(readings) < self.config.outlier_min_history:
            return readings
        median = statistics.median_high(readings)
        kept = [r for r in readings if abs(r - median) <= self.config.outlier_threshold]
        if len(kept) != len(readings):
            _LOGGER.debug(
                "%s: dropped %d outlier(s) around median %s",
                self.identifier,
                len(readings) - len(kept),
                median,
            )
        return kept

    def _weighted_average(self, readings: list[int]) -> float:
        # Oldest reading has weight 1, each newer one `weight_ratio` times more
        weighted_sum = 0.0
        weight_sum = 0.0
        weight = 1.0
        for rssi in readings:
            weighted_sum += rssi * weight
            weight_sum += weight
            weight *= self.config.weight_ratio
        if weight_sum == 0:
            return float(self.history[-1])
        return weighted_sum / weight_sum

    def _quality_score(self) -> float:
        cfg = self.config
        if len(self.history) < cfg.quality_min_history:
            return cfg.quality_default

        consistency = max(0.0, 1.0 - self.get_variance() / cfg.variance_scale)
        strength = normalized_rssi(self.smoothed_rssi, cfg.strength_floor, cfg.strength_ceiling)
        frequency = min(1.0, self.detection_count / cfg.frequency_saturation)

        score = consistency * cfg.weight_consistency + strength * cfg.weight_strength + frequency * cfg.weight_frequency
        return clamp(score, 0.0, 1.0)

    def get_estimate(self) -> float | None:
        return self.smoothed_rssi if self._seeded else None

    def get_variance(self) -> float:
        """Population variance of the raw history (dBm^2)."""
        if len(self.history) < 2:
            return 0.0
        return statistics.pvariance(self.history)

    @property
    def has_signal(self) -> bool:
        return self._seeded

    def is_stale(self, now: float) -> bool:
        return self.last_seen is not None and now - self.last_seen > self.config.device_timeout

    def reset(self) -> None:
        """Back to the neutral "no signal" state. Keeps the cooldown stamp."""
        self.history.clear()
        self.smoothed_rssi = self.config.no_signal_rssi
        self.quality = 0.0
        self.detection_count = 0
        self.last_seen = None
        self._seeded = False

    def get_diagnostics(self) -> dict[str, Any]:
        return {
            "identifier": self.identifier,
            "smoothed_rssi": round(self.smoothed_rssi, 1),
            "quality": round(self.quality, 3),
            "detection_count": self.detection_count,
            "history_len": len(self.history),
            "variance": round(self.get_variance(), 2),
            "last_seen": self.last_seen,
        }
