"""
Signal smoother for beacon RSSI samples.

Owns one BeaconSignalState per known waypoint id. Samples may arrive in any
order, at any rate and in bursts (for example after a scan restart); each
sample is applied to its beacon using the current movement profile.
Samples for identifiers that are not part of the route are ignored.

A periodic timeout sweep, independent of sample arrival, returns beacons
that have gone quiet to their neutral "no signal" state so stale strong
readings cannot linger after a beacon goes out of range.
"""

from __future__ import annotations

from collections.abc import Iterable

from .config import MovementProfile, SmootherConfig
from .const import _LOGGER, ACTIVE_SIGNAL_MIN_QUALITY, ACTIVE_SIGNAL_MIN_RSSI
from .filters.rssi import BeaconSignalState
from .models import BeaconSample


class SignalSmoother:
    """Per-beacon RSSI smoothing, quality scoring and timeout handling."""

    def __init__(self, identifiers: Iterable[str], config: SmootherConfig | None = None) -> None:
        self.config = config or SmootherConfig()
        self.states: dict[str, BeaconSignalState] = {
            identifier: BeaconSignalState(identifier, config=self.config) for identifier in identifiers
        }
        self.total_detections = 0

    def get(self, identifier: str) -> BeaconSignalState | None:
        return self.states.get(identifier)

    def process(
        self,
        sample: BeaconSample,
        profile: MovementProfile,
        received_at: float | None = None,
    ) -> BeaconSignalState | None:
        """
        Apply one sample.

        `received_at` stamps the beacon as last seen and must be on the same
        clock that sweep() is called with; it defaults to the sample's own
        timestamp. Returns the updated state, or None if the identifier is
        unknown.
        """
        state = self.states.get(sample.identifier)
        if state is None:
            return None
        self.total_detections += 1
        state.apply_profile(profile)
        state.update(sample.rssi, sample.timestamp if received_at is None else received_at)
        return state

    def sweep(self, now: float) -> list[str]:
        """
        Reset every beacon not seen for longer than the device timeout.

        Returns the identifiers that were reset. Beacons that were never
        seen, or already reset, are left alone, so repeated sweeps with
        nothing stale change nothing.
        """
        expired = [identifier for identifier, state in self.states.items() if state.is_stale(now)]
        for identifier in expired:
            state = self.states[identifier]
            _LOGGER.debug(
                "Beacon %s timed out (last seen %.1fs ago)",
                identifier,
                now - (state.last_seen or now),
            )
            state.reset()
        return expired

    def active_signals(self) -> list[BeaconSignalState]:
        """
        Beacons currently worth showing, strongest first.

        Ranked by the headroom above the no-signal floor scaled by
        (0.7 + 0.3 * quality), so a trustworthy signal outranks a noisy one
        of similar strength.
        """
        floor = self.config.no_signal_rssi
        active = [
            state
            for state in self.states.values()
            if state.smoothed_rssi > ACTIVE_SIGNAL_MIN_RSSI and state.quality > ACTIVE_SIGNAL_MIN_QUALITY
        ]
        return sorted(
            active,
            key=lambda s: (s.smoothed_rssi - floor) * (0.7 + s.quality * 0.3),
            reverse=True,
        )

    def reset(self) -> None:
        """Return every beacon to neutral. Cooldown stamps are kept."""
        for state in self.states.values():
            state.reset()
        self.total_detections = 0
