"""
Data records shared by the Wayfinder filters and the navigation session.

Raw inputs (GeoFix, BeaconSample) are immutable and produced by external
collaborators. FilteredPosition and Waypoint are mutated in place by the
component that owns them. Snapshot records are immutable views handed to
the UI layer after each event.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field

from .const import GuidanceStatus, MovementState


@dataclass(frozen=True)
class LatLng:
    """Plain geodetic coordinate in decimal degrees."""

    lat: float
    lng: float


@dataclass(frozen=True)
class GeoFix:
    """One raw location sample from the location source."""

    latitude: float
    longitude: float
    accuracy: float  # horizontal accuracy, metres
    timestamp: float  # seconds

    @property
    def latlng(self) -> LatLng:
        return LatLng(self.latitude, self.longitude)


@dataclass
class FilteredPosition:
    """Smoothed position owned by the position filter, updated in place."""

    latitude: float
    longitude: float
    timestamp: float

    @property
    def latlng(self) -> LatLng:
        return LatLng(self.latitude, self.longitude)


@dataclass(frozen=True)
class BeaconSample:
    """One raw detection of a beacon, already resolved to a waypoint id."""

    identifier: str
    rssi: int  # dBm
    timestamp: float  # seconds


@dataclass
class Waypoint:
    """
    An ordered checkpoint along a route.

    Only the waypoint progress engine mutates `reached` and `stable_count`.
    Once `reached` is True it stays True until an explicit session reset.
    """

    id: str
    label: str
    ordinal: int
    reached: bool = False
    stable_count: int = 0  # consecutive qualifying updates

    def reset(self) -> None:
        """Clear progress, used only by an explicit session reset."""
        self.reached = False
        self.stable_count = 0


@dataclass(frozen=True)
class Destination:
    """Target coordinate of a route."""

    latitude: float
    longitude: float
    name: str | None = None

    @property
    def latlng(self) -> LatLng:
        return LatLng(self.latitude, self.longitude)


@dataclass
class Route:
    """Waypoints ordered by ordinal plus the destination coordinate."""

    waypoints: list[Waypoint]
    destination: Destination

    def __post_init__(self) -> None:
        # Recorded before sorting so validation can still see how the route was listed.
        self.listed_in_order = all(a.ordinal < b.ordinal for a, b in zip(self.waypoints, self.waypoints[1:]))
        self.waypoints = sorted(self.waypoints, key=lambda w: w.ordinal)
        self._by_id = {w.id: w for w in self.waypoints}

    def get(self, waypoint_id: str) -> Waypoint | None:
        return self._by_id.get(waypoint_id)

    def __contains__(self, waypoint_id: object) -> bool:
        return waypoint_id in self._by_id

    def __len__(self) -> int:
        return len(self.waypoints)

    @property
    def final_waypoint(self) -> Waypoint | None:
        return self.waypoints[-1] if self.waypoints else None

    @property
    def completed_count(self) -> int:
        return sum(1 for w in self.waypoints if w.reached)

    @property
    def is_complete(self) -> bool:
        return bool(self.waypoints) and all(w.reached for w in self.waypoints)


# =============================================================================
# Observable outputs
# =============================================================================


@dataclass(frozen=True)
class Guidance:
    """
    Directional indicator output.

    `relative_degrees` is None whenever `status` is not OK, so a valid
    zero relative bearing can never be confused with "heading unavailable".
    """

    status: GuidanceStatus
    bearing_degrees: float | None = None
    relative_degrees: float | None = None

    @property
    def available(self) -> bool:
        return self.status is GuidanceStatus.OK

    @property
    def relative_radians(self) -> float | None:
        if self.relative_degrees is None:
            return None
        return math.radians(self.relative_degrees)


@dataclass(frozen=True)
class WaypointStatus:
    """Per-waypoint observable state."""

    id: str
    label: str
    ordinal: int
    reached: bool
    smoothed_rssi: float
    quality: float
    detection_count: int
    signal_percent: int
    estimated_distance: float
    quality_label: str


@dataclass(frozen=True)
class RouteProgress:
    """Progress along the ordered waypoints, for progress line rendering."""

    completed_count: int
    total: int
    last_reached_ordinal: int | None
    next_waypoint_id: str | None
    segment_fraction: float  # 0..1 between the last reached and next waypoint
    overall_fraction: float  # 0..1 along the whole line


@dataclass(frozen=True)
class NavigationSnapshot:
    """Everything the UI observes after an event has been applied."""

    running: bool
    position: LatLng | None
    speed_mps: float | None
    course_degrees: float | None
    movement_state: MovementState
    waypoints: tuple[WaypointStatus, ...]
    progress: RouteProgress
    destination_reached: bool
    distance_to_destination: float | None
    guidance: Guidance
    newly_reached: tuple[str, ...] = field(default=())
    significant_update: bool = False

    @property
    def completed_count(self) -> int:
        return self.progress.completed_count

    @property
    def route_complete(self) -> bool:
        return self.progress.total > 0 and self.progress.completed_count == self.progress.total
