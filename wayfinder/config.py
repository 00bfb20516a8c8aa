"""
Configuration for the navigation core.

All tunables live here as explicit dataclasses handed to the components at
construction time. Movement-dependent values are centralised in one
MovementProfile table indexed by MovementState, instead of each filter
switching on the movement state itself.

Routes are validated with voluptuous before a session may start; any
problem raises RouteConfigError and no session state is created.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

import aiofiles
import voluptuous as vol
import yaml

from .const import (
    _LOGGER,
    CONF_DESTINATION,
    CONF_ID,
    CONF_LABEL,
    CONF_LATITUDE,
    CONF_LONGITUDE,
    CONF_NAME,
    CONF_ORDINAL,
    CONF_WAYPOINTS,
    DEFAULT_ACCURACY_THRESHOLD,
    DEFAULT_JUMP_DISTANCE,
    DEFAULT_JUMP_TIME,
    DEFAULT_MAX_HUMAN_SPEED,
    DEFAULT_MOVING_AVERAGE_WINDOW,
    DEFAULT_POSITION_ALPHA,
    DEVICE_TIMEOUT,
    MOVEMENT_DEBOUNCE_SAMPLES,
    QUALITY_DEFAULT_LOW,
    QUALITY_FREQUENCY_SATURATION,
    QUALITY_MIN_HISTORY,
    QUALITY_STRENGTH_CEILING,
    QUALITY_STRENGTH_FLOOR,
    QUALITY_VARIANCE_SCALE,
    QUALITY_WEIGHT_CONSISTENCY,
    QUALITY_WEIGHT_FREQUENCY,
    QUALITY_WEIGHT_STRENGTH,
    RSSI_NO_SIGNAL,
    RSSI_OUTLIER_MIN_HISTORY,
    RSSI_OUTLIER_THRESHOLD,
    RSSI_WEIGHT_RATIO,
    SCAN_RESTART_INTERVAL,
    STATIONARY_SPEED_THRESHOLD,
    TIMEOUT_SWEEP_INTERVAL,
    VEHICULAR_SPEED,
    WALKING_SPEED_THRESHOLD,
    WAYPOINT_COOLDOWN,
    DestinationPolicy,
    MovementState,
)
from .models import Destination, Route, Waypoint


class RouteConfigError(ValueError):
    """A route definition is unusable; raised before any processing begins."""


@dataclass(frozen=True)
class MovementProfile:
    """
    Every movement-dependent tunable, for one MovementState.

    Attributes:
        history_size: RSSI samples kept per beacon. Larger = more averaging.
        smoothing_factor: EMA weight of the new weighted average (0..1).
            Larger = more reactive.
        rssi_threshold: Base smoothed RSSI (dBm) a waypoint must reach.
        required_stable_samples: Consecutive qualifying updates before a
            waypoint is reached (medium quality when adapted).
        adapt_stable_to_quality: If set, the stable count shrinks by one for
            high quality and grows by two for low quality.
        gps_reach_threshold: Smoothed distance (m) that counts as "at" the
            destination.
        gps_required_stable: Consecutive in-range distance samples needed.
        distance_alpha: Base alpha of the adaptive distance smoother.
        progress_rssi_floor: RSSI mapped to 0% of a progress segment.
        progress_rssi_ceiling: RSSI mapped to 100% of a progress segment.

    """

    history_size: int
    smoothing_factor: float
    rssi_threshold: float
    required_stable_samples: int
    adapt_stable_to_quality: bool
    gps_reach_threshold: float
    gps_required_stable: int
    distance_alpha: float
    progress_rssi_floor: float
    progress_rssi_ceiling: float


DEFAULT_MOVEMENT_PROFILES: Mapping[MovementState, MovementProfile] = MappingProxyType(
    {
        MovementState.STATIONARY: MovementProfile(
            history_size=15,
            smoothing_factor=0.25,
            rssi_threshold=-65.0,
            required_stable_samples=3,
            adapt_stable_to_quality=True,
            gps_reach_threshold=3.0,
            gps_required_stable=3,
            distance_alpha=0.2,
            progress_rssi_floor=-100.0,
            progress_rssi_ceiling=-50.0,
        ),
        # Walking past a beacon gives a short strong pulse, so accept a
        # farther threshold and react faster.
        MovementState.WALKING: MovementProfile(
            history_size=8,
            smoothing_factor=0.5,
            rssi_threshold=-70.0,
            required_stable_samples=2,
            adapt_stable_to_quality=False,
            gps_reach_threshold=4.0,
            gps_required_stable=2,
            distance_alpha=0.3,
            progress_rssi_floor=-100.0,
            progress_rssi_ceiling=-55.0,
        ),
        MovementState.RUNNING: MovementProfile(
            history_size=4,
            smoothing_factor=0.75,
            rssi_threshold=-75.0,
            required_stable_samples=1,
            adapt_stable_to_quality=False,
            gps_reach_threshold=6.0,
            gps_required_stable=2,
            distance_alpha=0.4,
            progress_rssi_floor=-95.0,
            progress_rssi_ceiling=-60.0,
        ),
    }
)


@dataclass
class PositionFilterConfig:
    """
    Gates and smoothing for raw location fixes.

    Attributes:
        accuracy_threshold: Fixes with worse horizontal accuracy (m) are dropped.
        max_human_speed: Implied speeds above this (m/s) are dropped.
        jump_distance: Displacement (m) that counts as a jump...
        jump_time: ...when it happens in less than this many seconds.
        alpha: Exponential smoothing factor on lat/lng (higher = faster).
        moving_average_window: Smoothed points averaged into the output.

    """

    accuracy_threshold: float = DEFAULT_ACCURACY_THRESHOLD
    max_human_speed: float = DEFAULT_MAX_HUMAN_SPEED
    jump_distance: float = DEFAULT_JUMP_DISTANCE
    jump_time: float = DEFAULT_JUMP_TIME
    alpha: float = DEFAULT_POSITION_ALPHA
    moving_average_window: int = DEFAULT_MOVING_AVERAGE_WINDOW

    @classmethod
    def fast_response(cls) -> PositionFilterConfig:
        """Preset for indoor walking: permissive accuracy, minimal lag."""
        return cls(
            accuracy_threshold=75.0,
            max_human_speed=3.0,  # ~11 km/h
            jump_distance=25.0,
            jump_time=3.0,
            alpha=0.9,
            moving_average_window=2,
        )

    @classmethod
    def smooth(cls) -> PositionFilterConfig:
        """Preset for outdoor use: strict accuracy, heavy smoothing."""
        return cls(
            accuracy_threshold=30.0,
            max_human_speed=15.0,
            jump_distance=50.0,
            jump_time=3.0,
            alpha=0.2,
            moving_average_window=5,
        )


@dataclass
class SmootherConfig:
    """Outlier removal, weighting, quality scoring and timeout for beacon RSSI."""

    outlier_threshold: float = RSSI_OUTLIER_THRESHOLD
    outlier_min_history: int = RSSI_OUTLIER_MIN_HISTORY
    weight_ratio: float = RSSI_WEIGHT_RATIO
    quality_min_history: int = QUALITY_MIN_HISTORY
    quality_default: float = QUALITY_DEFAULT_LOW
    variance_scale: float = QUALITY_VARIANCE_SCALE
    strength_floor: float = QUALITY_STRENGTH_FLOOR
    strength_ceiling: float = QUALITY_STRENGTH_CEILING
    frequency_saturation: int = QUALITY_FREQUENCY_SATURATION
    weight_consistency: float = QUALITY_WEIGHT_CONSISTENCY
    weight_strength: float = QUALITY_WEIGHT_STRENGTH
    weight_frequency: float = QUALITY_WEIGHT_FREQUENCY
    no_signal_rssi: float = RSSI_NO_SIGNAL
    device_timeout: float = DEVICE_TIMEOUT


@dataclass
class NavigationConfig:
    """Top-level configuration handed to a NavigationSession."""

    position: PositionFilterConfig = field(default_factory=PositionFilterConfig)
    smoother: SmootherConfig = field(default_factory=SmootherConfig)
    profiles: Mapping[MovementState, MovementProfile] = field(default_factory=lambda: DEFAULT_MOVEMENT_PROFILES)
    stationary_speed: float = STATIONARY_SPEED_THRESHOLD
    walking_speed: float = WALKING_SPEED_THRESHOLD
    movement_debounce_samples: int = MOVEMENT_DEBOUNCE_SAMPLES
    vehicular_speed: float = VEHICULAR_SPEED
    waypoint_cooldown: float = WAYPOINT_COOLDOWN
    sweep_interval: float = TIMEOUT_SWEEP_INTERVAL
    scan_restart_interval: float = SCAN_RESTART_INTERVAL
    destination_policy: DestinationPolicy = DestinationPolicy.GPS

    def __post_init__(self) -> None:
        missing = [state.value for state in MovementState if state not in self.profiles]
        if missing:
            msg = f"Movement profiles missing for: {', '.join(missing)}"
            raise ValueError(msg)
        if not 0 <= self.stationary_speed <= self.walking_speed:
            msg = "Movement thresholds must satisfy 0 <= stationary_speed <= walking_speed"
            raise ValueError(msg)

    def profile(self, state: MovementState) -> MovementProfile:
        return self.profiles[state]


# =============================================================================
# Route validation
# =============================================================================

WAYPOINT_SCHEMA = vol.Schema(
    {
        vol.Required(CONF_ID): vol.All(str, vol.Length(min=1)),
        vol.Optional(CONF_LABEL): vol.Any(None, str),
        vol.Required(CONF_ORDINAL): vol.All(vol.Coerce(int), vol.Range(min=1)),
    }
)

DESTINATION_SCHEMA = vol.Schema(
    {
        vol.Required(CONF_LATITUDE): vol.All(vol.Coerce(float), vol.Range(min=-90.0, max=90.0)),
        vol.Required(CONF_LONGITUDE): vol.All(vol.Coerce(float), vol.Range(min=-180.0, max=180.0)),
        vol.Optional(CONF_NAME): vol.Any(None, str),
    }
)

ROUTE_SCHEMA = vol.Schema(
    {
        vol.Required(CONF_WAYPOINTS, default=list): [WAYPOINT_SCHEMA],
        vol.Required(CONF_DESTINATION): DESTINATION_SCHEMA,
    }
)


def route_from_dict(data: Any) -> Route:
    """
    Build a Route from a plain mapping (as loaded from YAML/JSON).

    Waypoints must be listed in strictly increasing ordinal order, with
    unique ids. Raises RouteConfigError describing the first problem found.
    """
    if not isinstance(data, Mapping):
        msg = f"Route definition must be a mapping, got {type(data).__name__}"
        raise RouteConfigError(msg)
    try:
        cleaned = ROUTE_SCHEMA(dict(data))
    except vol.Invalid as err:
        msg = f"Invalid route definition: {err}"
        raise RouteConfigError(msg) from err

    previous: int | None = None
    for entry in cleaned[CONF_WAYPOINTS]:
        ordinal = entry[CONF_ORDINAL]
        if previous is not None and ordinal <= previous:
            msg = f"Waypoint ordinals must be strictly increasing: {ordinal} follows {previous}"
            raise RouteConfigError(msg)
        previous = ordinal

    waypoints = [
        Waypoint(
            id=entry[CONF_ID],
            label=entry.get(CONF_LABEL) or entry[CONF_ID],
            ordinal=entry[CONF_ORDINAL],
        )
        for entry in cleaned[CONF_WAYPOINTS]
    ]
    dest = cleaned[CONF_DESTINATION]
    route = Route(
        waypoints=waypoints,
        destination=Destination(
            latitude=dest[CONF_LATITUDE],
            longitude=dest[CONF_LONGITUDE],
            name=dest.get(CONF_NAME),
        ),
    )
    validate_route(route)
    return route


def validate_route(route: Route) -> None:
    """Check the invariants of an already-built Route. Raises RouteConfigError."""
    if route.destination is None:
        msg = "Route has no destination"
        raise RouteConfigError(msg)
    lat, lng = route.destination.latitude, route.destination.longitude
    if lat is None or lng is None or not (math.isfinite(lat) and math.isfinite(lng)):
        msg = f"Destination coordinates are missing or invalid: ({lat}, {lng})"
        raise RouteConfigError(msg)
    if not (-90.0 <= lat <= 90.0 and -180.0 <= lng <= 180.0):
        msg = f"Destination coordinates out of range: ({lat}, {lng})"
        raise RouteConfigError(msg)

    seen_ids: set[str] = set()
    seen_ordinals: set[int] = set()
    for waypoint in route.waypoints:
        if not waypoint.id:
            msg = "Waypoint id must not be empty"
            raise RouteConfigError(msg)
        if waypoint.id in seen_ids:
            msg = f"Duplicate waypoint id: {waypoint.id}"
            raise RouteConfigError(msg)
        if waypoint.ordinal < 1:
            msg = f"Waypoint {waypoint.id} has ordinal {waypoint.ordinal}; ordinals start at 1"
            raise RouteConfigError(msg)
        if waypoint.ordinal in seen_ordinals:
            msg = f"Duplicate waypoint ordinal: {waypoint.ordinal}"
            raise RouteConfigError(msg)
        seen_ids.add(waypoint.id)
        seen_ordinals.add(waypoint.ordinal)

    if not route.listed_in_order:
        msg = "Waypoint ordinals must be strictly increasing in the order the waypoints are listed"
        raise RouteConfigError(msg)


async def async_load_route(path: str) -> Route:
    """Load and validate a route definition from a YAML file."""
    async with aiofiles.open(path, encoding="utf-8") as f:
        raw = await f.read()
    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as err:
        msg = f"Route file {path} is not valid YAML: {err}"
        raise RouteConfigError(msg) from err
    route = route_from_dict(data)
    _LOGGER.debug("Loaded route from %s with %d waypoints", path, len(route))
    return route
