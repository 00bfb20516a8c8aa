"""
Position filter for raw geodetic fixes.

Pipeline per fix, short-circuiting on the first rejection:

    raw fix
      -> accuracy gate  (drop low-quality readings)
      -> speed gate     (drop physically implausible displacement)
      -> jump gate      (drop large displacement in a short window)
      -> exponential smoothing on lat/lng
      -> small moving average
      -> FilteredPosition

Rejected fixes are dropped silently and leave the filtered state as it
was. The speed a fix implies relative to the last accepted one is still
recorded in `implied_speed`, so a stream the speed gate keeps rejecting
(a vehicle) stays visible to consumers. Until the first fix is accepted `position` is None, which consumers
must treat as "position unknown".
"""

from __future__ import annotations

import logging
import math
from collections import deque

from ..config import PositionFilterConfig
from ..models import FilteredPosition, GeoFix, LatLng
from ..util import haversine_distance, initial_bearing

_LOGGER = logging.getLogger(__name__)


class PositionFilter:
    """Gates, smooths and averages a stream of GeoFix samples."""

    def __init__(self, config: PositionFilterConfig | None = None) -> None:
        self.config = config or PositionFilterConfig()
        self.position: FilteredPosition | None = None
        self.current_speed: float | None = None  # m/s, from the last two accepted fixes
        self.current_course: float | None = None  # degrees, bearing of movement
        self.implied_speed: float | None = None  # m/s, latest fix vs last accepted, even if rejected
        self.accepted_count = 0
        self.rejected_count = 0
        self._last_valid: GeoFix | None = None
        self._last_smoothed: LatLng | None = None
        self._window: deque[LatLng] = deque(maxlen=max(1, self.config.moving_average_window))

    def update(self, fix: GeoFix) -> bool:
        """
        Feed one raw fix through the pipeline.

        Returns True if the fix was accepted and the filtered position moved.
        """
        cfg = self.config

        if not (math.isfinite(fix.latitude) and math.isfinite(fix.longitude)):
            return self._reject(fix, "non-finite coordinates")

        if math.isfinite(fix.accuracy) and fix.accuracy > cfg.accuracy_threshold:
            return self._reject(fix, f"accuracy {fix.accuracy:.1f}m > {cfg.accuracy_threshold}m")

        speed: float | None = None
        course: float | None = None
        last = self._last_valid
        if last is not None:
            dt = fix.timestamp - last.timestamp
            if dt < 0:
                return self._reject(fix, f"older than last accepted fix by {-dt:.1f}s")
            distance = haversine_distance(last.latlng, fix.latlng)
            if dt > 0:
                speed = distance / dt
                self.implied_speed = speed
                if speed > cfg.max_human_speed:
                    return self._reject(fix, f"speed {speed:.1f}m/s > {cfg.max_human_speed}m/s")
                course = initial_bearing(last.latlng, fix.latlng)
            if dt < cfg.jump_time and distance > cfg.jump_distance:
                return self._reject(fix, f"jump of {distance:.1f}m in {dt:.1f}s")

        self._last_valid = fix
        self.accepted_count += 1
        if speed is not None:
            self.current_speed = speed
            self.current_course = course

        if self._last_smoothed is None:
            smoothed = fix.latlng
        else:
            prev = self._last_smoothed
            smoothed = LatLng(
                prev.lat + cfg.alpha * (fix.latitude - prev.lat),
                prev.lng + cfg.alpha * (fix.longitude - prev.lng),
            )
        self._last_smoothed = smoothed

        self._window.append(smoothed)
        n = len(self._window)
        avg_lat = sum(p.lat for p in self._window) / n
        avg_lng = sum(p.lng for p in self._window) / n

        if self.position is None:
            self.position = FilteredPosition(avg_lat, avg_lng, fix.timestamp)
        else:
            self.position.latitude = avg_lat
            self.position.longitude = avg_lng
            self.position.timestamp = fix.timestamp
        return True

    def _reject(self, fix: GeoFix, reason: str) -> bool:
        self.rejected_count += 1
        _LOGGER.debug("Fix at %.1f rejected: %s", fix.timestamp, reason)
        return False

    @property
    def has_position(self) -> bool:
        return self.position is not None

    def reset(self) -> None:
        """Forget every fix; position becomes unknown again."""
        self.position = None
        self.current_speed = None
        self.current_course = None
        self.implied_speed = None
        self.accepted_count = 0
        self.rejected_count = 0
        self._last_valid = None
        self._last_smoothed = None
        self._window.clear()
