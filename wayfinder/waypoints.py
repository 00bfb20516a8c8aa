"""
Waypoint progress engine.

Each waypoint is a one-way state machine, NotReached -> Reached, driven by
the smoothed RSSI and quality of the beacon bound to it:

1. A dynamic RSSI threshold is derived from the movement profile and
   relaxed for lower quality signals:

       quality > 0.8          base threshold
       0.6 < quality <= 0.8   base - 3 dB
       quality <= 0.6         base - 6 dB

2. The number of consecutive qualifying updates required comes from the
   movement profile (Running 1, Walking 2). Profiles flagged with
   `adapt_stable_to_quality` (Stationary) need one fewer sample at high
   quality and two more at low quality.
3. A qualifying update increments the waypoint's stable counter; any other
   update resets it to zero.
4. Once the counter reaches the requirement the waypoint is reached,
   unless the user is moving at vehicular speed or the waypoint is still
   inside the cooldown window of a previous transition.

Reached waypoints are skipped on re-evaluation, so nothing short of an
explicit reset can turn them back.
"""

from __future__ import annotations

from collections.abc import Mapping

from .config import MovementProfile, NavigationConfig
from .const import (
    _LOGGER,
    QUALITY_HIGH,
    QUALITY_MEDIUM,
    THRESHOLD_SHIFT_LOW_QUALITY,
    THRESHOLD_SHIFT_MEDIUM_QUALITY,
    MovementState,
)
from .filters.rssi import BeaconSignalState
from .models import Route, RouteProgress, WaypointStatus
from .util import normalized_rssi, rssi_to_metres, signal_percent, signal_quality_label


def dynamic_threshold(profile: MovementProfile, quality: float) -> float:
    """RSSI (dBm) a beacon's smoothed signal must reach to count as qualifying."""
    if quality > QUALITY_HIGH:
        return profile.rssi_threshold
    if quality > QUALITY_MEDIUM:
        return profile.rssi_threshold - THRESHOLD_SHIFT_MEDIUM_QUALITY
    return profile.rssi_threshold - THRESHOLD_SHIFT_LOW_QUALITY


def required_stable_samples(profile: MovementProfile, quality: float) -> int:
    """Consecutive qualifying updates needed before a waypoint is reached."""
    base = max(1, profile.required_stable_samples)
    if not profile.adapt_stable_to_quality:
        return base
    if quality > QUALITY_HIGH:
        return max(1, base - 1)
    if quality > QUALITY_MEDIUM:
        return base
    return base + 2


class WaypointProgressEngine:
    """Decides when waypoints are reached and reports progress along the route."""

    def __init__(self, route: Route, config: NavigationConfig | None = None) -> None:
        self.route = route
        self.config = config or NavigationConfig()

    @property
    def completed_count(self) -> int:
        return self.route.completed_count

    @property
    def is_complete(self) -> bool:
        return self.route.is_complete

    def evaluate(
        self,
        state: BeaconSignalState,
        movement: MovementState,
        speed: float | None,
        now: float,
    ) -> bool:
        """
        Run the state machine for the waypoint bound to `state`.

        Returns True only on the update that transitions the waypoint to
        reached ("just reached").
        """
        waypoint = self.route.get(state.identifier)
        if waypoint is None or waypoint.reached:
            return False

        profile = self.config.profile(movement)
        threshold = dynamic_threshold(profile, state.quality)
        required = required_stable_samples(profile, state.quality)

        if state.smoothed_rssi >= threshold:
            waypoint.stable_count += 1
        else:
            waypoint.stable_count = 0
            return False

        if waypoint.stable_count < required:
            _LOGGER.debug(
                "%s qualifying %d/%d (%.1f dBm >= %.1f, q=%.2f, %s)",
                waypoint.id,
                waypoint.stable_count,
                required,
                state.smoothed_rssi,
                threshold,
                state.quality,
                movement.value,
            )
            return False

        if speed is not None and speed > self.config.vehicular_speed:
            _LOGGER.warning(
                "Not marking %s reached: speed %.1f m/s looks vehicular",
                waypoint.id,
                speed,
            )
            return False

        if self.in_cooldown(state, now):
            _LOGGER.warning(
                "Not marking %s reached: still in cooldown (%.1fs since last transition)",
                waypoint.id,
                now - (state.last_reached or now),
            )
            return False

        waypoint.reached = True
        state.last_reached = now
        _LOGGER.info(
            "Reached %s (%s), %d/%d complete",
            waypoint.label,
            waypoint.id,
            self.completed_count,
            len(self.route),
        )
        return True

    def in_cooldown(self, state: BeaconSignalState, now: float) -> bool:
        return state.last_reached is not None and now - state.last_reached < self.config.waypoint_cooldown

    def clear_stability(self, identifiers: list[str]) -> None:
        """Zero the stable counter of unreached waypoints, e.g. after a beacon timeout."""
        for identifier in identifiers:
            waypoint = self.route.get(identifier)
            if waypoint is not None and not waypoint.reached:
                waypoint.stable_count = 0

    def progress(self, states: Mapping[str, BeaconSignalState], movement: MovementState) -> RouteProgress:
        """
        Position along the progress line.

        The line has one segment per waypoint plus one from the start, so
        waypoint i (0-based, by ordinal) sits at (i + 1) / (N + 1). Between
        the last reached waypoint and the next one the position is
        interpolated from the next beacon's smoothed RSSI, normalised
        between the floor and ceiling of the movement profile.
        """
        waypoints = self.route.waypoints
        total = len(waypoints)
        completed = self.completed_count

        last_index = -1
        for index, waypoint in enumerate(waypoints):
            if waypoint.reached:
                last_index = index

        if total == 0 or last_index == total - 1:
            return RouteProgress(
                completed_count=completed,
                total=total,
                last_reached_ordinal=waypoints[-1].ordinal if total else None,
                next_waypoint_id=None,
                segment_fraction=1.0 if total else 0.0,
                overall_fraction=1.0 if total else 0.0,
            )

        next_waypoint = waypoints[last_index + 1]
        profile = self.config.profile(movement)
        state = states.get(next_waypoint.id)
        fraction = 0.0
        if state is not None and state.has_signal:
            fraction = normalized_rssi(state.smoothed_rssi, profile.progress_rssi_floor, profile.progress_rssi_ceiling)

        return RouteProgress(
            completed_count=completed,
            total=total,
            last_reached_ordinal=waypoints[last_index].ordinal if last_index >= 0 else None,
            next_waypoint_id=next_waypoint.id,
            segment_fraction=fraction,
            overall_fraction=(last_index + 1 + fraction) / (total + 1),
        )

    def statuses(self, states: Mapping[str, BeaconSignalState]) -> tuple[WaypointStatus, ...]:
        """Observable per-waypoint state, ordered by ordinal."""
        result = []
        for waypoint in self.route.waypoints:
            state = states[waypoint.id]
            result.append(
                WaypointStatus(
                    id=waypoint.id,
                    label=waypoint.label,
                    ordinal=waypoint.ordinal,
                    reached=waypoint.reached,
                    smoothed_rssi=state.smoothed_rssi,
                    quality=state.quality,
                    detection_count=state.detection_count,
                    signal_percent=signal_percent(state.smoothed_rssi),
                    estimated_distance=rssi_to_metres(round(state.smoothed_rssi, 1)),
                    quality_label=signal_quality_label(state.quality),
                )
            )
        return tuple(result)

    def reset(self) -> None:
        """Clear every reached flag and counter (explicit session reset only)."""
        for waypoint in self.route.waypoints:
            waypoint.reset()
