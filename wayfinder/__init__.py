"""
Wayfinder.

Fuses BLE beacon proximity and GPS position into route progress for
indoor/outdoor wayfinding: ordered waypoints reached by beacon signal,
a destination reached by smoothed GPS distance, and a bearing for a
directional indicator.
"""

from __future__ import annotations

from .config import (
    DEFAULT_MOVEMENT_PROFILES,
    MovementProfile,
    NavigationConfig,
    PositionFilterConfig,
    RouteConfigError,
    SmootherConfig,
    async_load_route,
    route_from_dict,
)
from .const import VERSION, DestinationPolicy, GuidanceStatus, MovementState
from .models import (
    BeaconSample,
    Destination,
    GeoFix,
    Guidance,
    NavigationSnapshot,
    Route,
    RouteProgress,
    Waypoint,
    WaypointStatus,
)
from .resolver import AdvertisementResolver
from .session import NavigationSession, ScanController

__version__ = VERSION

__all__ = [
    "DEFAULT_MOVEMENT_PROFILES",
    "AdvertisementResolver",
    "BeaconSample",
    "Destination",
    "DestinationPolicy",
    "GeoFix",
    "Guidance",
    "GuidanceStatus",
    "MovementProfile",
    "MovementState",
    "NavigationConfig",
    "NavigationSession",
    "NavigationSnapshot",
    "PositionFilterConfig",
    "Route",
    "RouteConfigError",
    "RouteProgress",
    "ScanController",
    "SmootherConfig",
    "Waypoint",
    "WaypointStatus",
    "async_load_route",
    "route_from_dict",
]
