"""
The navigation session aggregate.

A NavigationSession owns every piece of mutable navigation state for one
route: position filter, movement classifier, per-beacon signal states,
waypoint progress and the destination latch. Nothing is shared between
sessions.

Each input type has one method that applies the event to completion and
returns an immutable NavigationSnapshot:

    apply_fix(GeoFix)                 location source
    apply_heading(degrees | None)     compass source
    apply_beacon_batch([samples])     BLE scan source

Sources may call in from different threads; all mutation is serialised
through a single re-entrant lock. Two background timers run on an asyncio
loop when one is available: the beacon timeout sweep and the periodic scan
restart. Both are cancelled by stop(), which may be called any number of
times.

Beacons are stamped as last seen with the session clock when their batch
arrives, so the timeout sweep never compares sample timestamps from a
different clock. Sample timestamps still drive the reach cooldown.
"""

from __future__ import annotations

import asyncio
import threading
from collections.abc import Callable, Iterable, Mapping
from typing import Any, Protocol

from bluetooth_data_tools import monotonic_time_coarse

from .config import NavigationConfig, route_from_dict, validate_route
from .const import _LOGGER, SIGNIFICANT_RSSI_CHANGE, DestinationPolicy, GuidanceStatus
from .destination import DestinationEvaluator
from .filters.position import PositionFilter
from .filters.rssi import BeaconSignalState
from .heading import compute_guidance
from .models import BeaconSample, GeoFix, Guidance, NavigationSnapshot, Route, RouteProgress, Waypoint
from .movement import MovementClassifier
from .signal import SignalSmoother
from .util import normalize_heading
from .waypoints import WaypointProgressEngine


class ScanController(Protocol):
    """The BLE scanning collaborator, restarted periodically to keep results flowing."""

    def restart_scan(self) -> None: ...


class NavigationSession:
    """One navigation run along one route."""

    def __init__(
        self,
        config: NavigationConfig | None = None,
        *,
        scanner: ScanController | None = None,
        clock: Callable[[], float] = monotonic_time_coarse,
    ) -> None:
        self.config = config or NavigationConfig()
        self.scanner = scanner
        self._clock = clock
        self._lock = threading.RLock()

        self.running = False
        self.route: Route | None = None
        self.position_filter = PositionFilter(self.config.position)
        self.movement = MovementClassifier(
            self.config.stationary_speed,
            self.config.walking_speed,
            self.config.movement_debounce_samples,
        )
        self.signals: SignalSmoother | None = None
        self.waypoints: WaypointProgressEngine | None = None
        self.destination: DestinationEvaluator | None = None
        self.heading: float | None = None
        self.destination_reached = False
        self.scan_cycle_count = 0

        self._loop: asyncio.AbstractEventLoop | None = None
        self._sweep_handle: asyncio.TimerHandle | None = None
        self._scan_handle: asyncio.TimerHandle | None = None

    # =========================================================================
    # Control surface
    # =========================================================================

    def start(self, route: Route | Mapping[str, Any], loop: asyncio.AbstractEventLoop | None = None) -> None:
        """
        Validate the route and begin navigating.

        Raises RouteConfigError for an unusable route, leaving the session
        stopped, and RuntimeError if the session is already running.
        Background timers are scheduled on `loop`, or on the running loop
        if called from a coroutine; without either, callers drive
        sweep_timeouts() themselves. `loop` may be running in another
        thread. The route is copied, so one Route can seed several sessions.
        """
        with self._lock:
            if self.running:
                msg = "Navigation session is already running"
                raise RuntimeError(msg)

            if isinstance(route, Mapping):
                route = route_from_dict(route)
            else:
                validate_route(route)

            # The session owns its waypoint state; the caller's Route is never mutated.
            route = Route(
                [Waypoint(w.id, w.label, w.ordinal) for w in route.waypoints],
                route.destination,
            )
            self.route = route
            self.signals = SignalSmoother([w.id for w in route.waypoints], self.config.smoother)
            self.waypoints = WaypointProgressEngine(route, self.config)
            self.destination = DestinationEvaluator(route.destination, self.config)
            self.position_filter.reset()
            self.movement.reset()
            self.heading = None
            self.destination_reached = False
            self.scan_cycle_count = 0
            self.running = True

            if loop is None:
                try:
                    loop = asyncio.get_running_loop()
                except RuntimeError:
                    loop = None
            self._loop = loop
            if loop is not None:
                self._call_on_loop(loop, self._arm_timers, loop)

            _LOGGER.info(
                "Navigation started: %d waypoints, destination %s",
                len(route),
                route.destination.name or route.destination.latlng,
            )

    def stop(self) -> None:
        """Stop navigating and cancel the timers. Safe to call repeatedly."""
        with self._lock:
            loop = self._loop
            handles = [h for h in (self._sweep_handle, self._scan_handle) if h is not None]
            self._sweep_handle = None
            self._scan_handle = None
            self._loop = None
            if self.running:
                self.running = False
                _LOGGER.info("Navigation stopped")
        if loop is not None:
            for handle in handles:
                self._call_on_loop(loop, handle.cancel)

    def restart_signal_scanning(self) -> None:
        """
        Re-arm BLE state without touching GPS state.

        Beacon histories and unreached stable counters are cleared; reached
        waypoints and cooldown stamps are kept.
        """
        with self._lock:
            if not self.running:
                _LOGGER.debug("Ignoring scan restart, session not running")
                return
            self.signals.reset()
            self.waypoints.clear_stability(list(self.signals.states))
            self._restart_scanner()

    def reset(self) -> None:
        """Full state reset: every reached flag and the destination latch are cleared."""
        with self._lock:
            self.position_filter.reset()
            self.movement.reset()
            self.heading = None
            self.destination_reached = False
            if self.route is not None:
                self.signals.reset()
                self.waypoints.reset()
                self.destination.reset()
            _LOGGER.info("Navigation state reset")

    # =========================================================================
    # Events
    # =========================================================================

    def apply_fix(self, fix: GeoFix) -> NavigationSnapshot:
        with self._lock:
            if not self.running:
                _LOGGER.debug("Ignoring fix, session not running")
                return self.snapshot()

            if self.position_filter.update(fix):
                self.movement.update(self.position_filter.current_speed)
                self.destination.update(self.position_filter.position, self.movement.state)
                self._update_destination_latch()
            return self.snapshot()

    def apply_heading(self, heading: float | None) -> NavigationSnapshot:
        with self._lock:
            if not self.running:
                return self.snapshot()
            self.heading = normalize_heading(heading)
            return self.snapshot()

    def apply_beacon_batch(self, samples: Iterable[BeaconSample]) -> NavigationSnapshot:
        """
        Apply one scan batch in arrival order.

        The snapshot lists the waypoints reached by this batch and is
        flagged significant if any smoothed RSSI moved by at least
        SIGNIFICANT_RSSI_CHANGE dB or a waypoint was reached.
        """
        with self._lock:
            if not self.running:
                _LOGGER.debug("Ignoring beacon batch, session not running")
                return self.snapshot()

            movement = self.movement.state
            profile = self.config.profile(movement)
            # Includes fixes the speed gate rejected, so vehicular travel still blocks reaching.
            speed = self.position_filter.implied_speed
            received_at = self._clock()
            newly_reached: list[str] = []
            significant = False

            for sample in samples:
                state = self.signals.get(sample.identifier)
                if state is None:
                    continue
                previous = state.get_estimate()
                self.signals.process(sample, profile, received_at)
                if previous is None or abs(state.smoothed_rssi - previous) >= SIGNIFICANT_RSSI_CHANGE:
                    significant = True
                if self.waypoints.evaluate(state, movement, speed, sample.timestamp):
                    newly_reached.append(sample.identifier)

            if newly_reached:
                significant = True
                self._update_destination_latch()
            return self.snapshot(newly_reached=tuple(newly_reached), significant_update=significant)

    def sweep_timeouts(self, now: float | None = None) -> list[str]:
        """Reset beacons that have gone quiet. Returns the identifiers reset."""
        with self._lock:
            if not self.running:
                return []
            if now is None:
                now = self._clock()
            expired = self.signals.sweep(now)
            if expired:
                self.waypoints.clear_stability(expired)
            return expired

    # =========================================================================
    # Observable state
    # =========================================================================

    @property
    def total_detections(self) -> int:
        return self.signals.total_detections if self.signals is not None else 0

    def active_signals(self) -> list[BeaconSignalState]:
        with self._lock:
            return self.signals.active_signals() if self.signals is not None else []

    def snapshot(
        self,
        newly_reached: tuple[str, ...] = (),
        significant_update: bool = False,
    ) -> NavigationSnapshot:
        with self._lock:
            pf = self.position_filter
            position = pf.position
            if self.route is None:
                statuses: tuple = ()
                progress = RouteProgress(0, 0, None, None, 0.0, 0.0)
                guidance = Guidance(GuidanceStatus.POSITION_UNKNOWN)
                distance = None
            else:
                statuses = self.waypoints.statuses(self.signals.states)
                progress = self.waypoints.progress(self.signals.states, self.movement.state)
                guidance = compute_guidance(position, self.heading, self.route.destination)
                distance = self.destination.distance
            return NavigationSnapshot(
                running=self.running,
                position=position.latlng if position is not None else None,
                speed_mps=pf.current_speed,
                course_degrees=pf.current_course,
                movement_state=self.movement.state,
                waypoints=statuses,
                progress=progress,
                destination_reached=self.destination_reached,
                distance_to_destination=distance,
                guidance=guidance,
                newly_reached=newly_reached,
                significant_update=significant_update,
            )

    # =========================================================================
    # Internals
    # =========================================================================

    def _update_destination_latch(self) -> None:
        if self.destination_reached:
            return
        policy = self.config.destination_policy
        gps = self.destination.reached
        final = self.route.final_waypoint
        beacon = final is not None and final.reached
        if (
            (policy is DestinationPolicy.GPS and gps)
            or (policy is DestinationPolicy.FINAL_WAYPOINT and beacon)
            or (policy is DestinationPolicy.EITHER and (gps or beacon))
        ):
            self.destination_reached = True
            _LOGGER.info("Destination reached (%s)", policy.value)

    def _restart_scanner(self) -> None:
        self.scan_cycle_count += 1
        if self.scanner is None:
            return
        try:
            self.scanner.restart_scan()
        except Exception:  # noqa: BLE001
            _LOGGER.exception("Scan restart failed, continuing with existing scan")

    def _schedule_sweep(self) -> None:
        self._sweep_handle = self._loop.call_later(self.config.sweep_interval, self._sweep_tick)

    def _schedule_scan_restart(self) -> None:
        if self.config.scan_restart_interval > 0:
            self._scan_handle = self._loop.call_later(self.config.scan_restart_interval, self._scan_tick)

    def _sweep_tick(self) -> None:
        with self._lock:
            self._sweep_handle = None
            if not self.running or self._loop is None:
                return
            self.sweep_timeouts()
            self._schedule_sweep()

    def _scan_tick(self) -> None:
        with self._lock:
            self._scan_handle = None
            if not self.running or self._loop is None:
                return
            self._restart_scanner()
            self._schedule_scan_restart()

    def _arm_timers(self, loop: asyncio.AbstractEventLoop) -> None:
        with self._lock:
            if not self.running or self._loop is not loop:
                return
            if self._sweep_handle is not None or self._scan_handle is not None:
                return
            self._schedule_sweep()
            self._schedule_scan_restart()

    @staticmethod
    def _call_on_loop(loop: asyncio.AbstractEventLoop, callback: Callable[..., Any], *args: Any) -> None:
        """Run `callback` on the loop's own thread; call_later and TimerHandle.cancel are not thread-safe."""
        try:
            current = asyncio.get_running_loop()
        except RuntimeError:
            current = None
        if current is loop or not loop.is_running():
            callback(*args)
        else:
            loop.call_soon_threadsafe(callback, *args)
