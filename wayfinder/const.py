"""Constants for Wayfinder beacon/GPS navigation."""

from __future__ import annotations

import logging
from enum import Enum
from typing import Final

# Version gets updated by the release workflow.
VERSION = "0.0.0"

_LOGGER: logging.Logger = logging.getLogger(__package__)


class MovementState(str, Enum):
    """Coarse classification of user speed, used to parameterise every filter."""

    STATIONARY = "stationary"
    WALKING = "walking"
    RUNNING = "running"


class DestinationPolicy(str, Enum):
    """Which signal latches destination_reached."""

    GPS = "gps"  # Distance-to-destination evaluator only
    FINAL_WAYPOINT = "final_waypoint"  # Last waypoint (by ordinal) reached
    EITHER = "either"  # Whichever fires first


class GuidanceStatus(str, Enum):
    """Availability of the directional indicator."""

    OK = "ok"
    HEADING_UNAVAILABLE = "heading_unavailable"
    POSITION_UNKNOWN = "position_unknown"


# =============================================================================
# Earth / geometry
# =============================================================================

EARTH_RADIUS_METRES: Final = 6371000.0

# =============================================================================
# Position filter defaults (balanced profile)
# =============================================================================

DEFAULT_ACCURACY_THRESHOLD: Final = 50.0  # metres
DEFAULT_MAX_HUMAN_SPEED: Final = 8.0  # m/s
DEFAULT_JUMP_DISTANCE: Final = 25.0  # metres
DEFAULT_JUMP_TIME: Final = 3.0  # seconds
DEFAULT_POSITION_ALPHA: Final = 0.6
DEFAULT_MOVING_AVERAGE_WINDOW: Final = 3

# =============================================================================
# Movement classification
# =============================================================================

STATIONARY_SPEED_THRESHOLD: Final = 0.3  # m/s, below is stationary
WALKING_SPEED_THRESHOLD: Final = 2.0  # m/s, below is walking, at or above is running
MOVEMENT_DEBOUNCE_SAMPLES: Final = 1  # 1 = switch on the first sample (no debounce)
VEHICULAR_SPEED: Final = 12.0  # m/s, above this waypoint transitions are suppressed

# =============================================================================
# RSSI smoothing and quality
# =============================================================================

RSSI_NO_SIGNAL: Final = -100.0  # dBm, "no signal" floor after timeout
RSSI_OUTLIER_THRESHOLD: Final = 20.0  # dB from the median
RSSI_OUTLIER_MIN_HISTORY: Final = 5
RSSI_WEIGHT_RATIO: Final = 1.2  # per-step weight growth towards newer samples

QUALITY_MIN_HISTORY: Final = 3
QUALITY_DEFAULT_LOW: Final = 0.3  # before QUALITY_MIN_HISTORY samples exist
QUALITY_VARIANCE_SCALE: Final = 400.0  # dBm^2 at which consistency reaches zero
QUALITY_STRENGTH_FLOOR: Final = -100.0
QUALITY_STRENGTH_CEILING: Final = -30.0
QUALITY_FREQUENCY_SATURATION: Final = 20
QUALITY_WEIGHT_CONSISTENCY: Final = 0.4
QUALITY_WEIGHT_STRENGTH: Final = 0.4
QUALITY_WEIGHT_FREQUENCY: Final = 0.2

# Quality bands used by the waypoint threshold/stability rules.
QUALITY_HIGH: Final = 0.8
QUALITY_MEDIUM: Final = 0.6
THRESHOLD_SHIFT_MEDIUM_QUALITY: Final = 3.0  # dB more permissive
THRESHOLD_SHIFT_LOW_QUALITY: Final = 6.0  # dB more permissive

# Beacon timeout
DEVICE_TIMEOUT: Final = 8.0  # seconds without a sample before a beacon is reset
TIMEOUT_SWEEP_INTERVAL: Final = 2.0  # seconds between timeout sweeps
SCAN_RESTART_INTERVAL: Final = 20.0  # seconds between scan restarts (collaborator)

# Waypoints
WAYPOINT_COOLDOWN: Final = 5.0  # seconds a waypoint can't re-trigger after a transition
SIGNIFICANT_RSSI_CHANGE: Final = 2.0  # dB change that counts as a significant update

# Active signal list
ACTIVE_SIGNAL_MIN_RSSI: Final = -95.0
ACTIVE_SIGNAL_MIN_QUALITY: Final = 0.1

# =============================================================================
# RSSI presentation helpers
# =============================================================================

SIGNAL_PERCENT_FLOOR: Final = -100.0
SIGNAL_PERCENT_CEILING: Final = -30.0
SIGNAL_PERCENT_EXPONENT: Final = 0.6  # lifts mid-range readings for display
REF_POWER: Final = -59.0  # dBm at 1 metre
PATH_LOSS_EXPONENT: Final = 2.4

QUALITY_LABELS: Final = (
    (0.9, "Excellent Signal"),
    (0.75, "Very Good Signal"),
    (0.6, "Good Signal"),
    (0.4, "Fair Signal"),
    (0.2, "Weak Signal"),
)
QUALITY_LABEL_POOR: Final = "Poor Signal"

# =============================================================================
# Distance to destination
# =============================================================================

DISTANCE_ALPHA_SPAN: Final = 0.2  # alpha can grow this much above its base
DISTANCE_CHANGE_SATURATION: Final = 10.0  # metres of change at which alpha is maxed

# =============================================================================
# Advertisement matching
# =============================================================================

APPLE_COMPANY_ID: Final = 0x004C
IBEACON_PREFIX: Final = b"\x02\x15"
ALTBEACON_PREFIX: Final = b"\xbe\xac"
BEACON_PAYLOAD_MIN_LEN: Final = 18

# =============================================================================
# Route configuration keys
# =============================================================================

CONF_WAYPOINTS = "waypoints"
CONF_DESTINATION = "destination"
CONF_ID = "id"
CONF_LABEL = "label"
CONF_ORDINAL = "ordinal"
CONF_LATITUDE = "latitude"
CONF_LONGITUDE = "longitude"
CONF_NAME = "name"
