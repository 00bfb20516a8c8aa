"""General helper utilities for Wayfinder."""

from __future__ import annotations

import math
import re
from functools import lru_cache
from typing import Final

from .const import (
    EARTH_RADIUS_METRES,
    PATH_LOSS_EXPONENT,
    QUALITY_LABEL_POOR,
    QUALITY_LABELS,
    REF_POWER,
    SIGNAL_PERCENT_CEILING,
    SIGNAL_PERCENT_EXPONENT,
    SIGNAL_PERCENT_FLOOR,
)
from .models import LatLng

MIN_DISTANCE: Final = 0.1  # metres, floor for rssi_to_metres

UUID_PATTERN: Final = re.compile(
    r"^([0-9A-Fa-f]{32}|[0-9A-Fa-f]{8}-[0-9A-Fa-f]{4}-[0-9A-Fa-f]{4}-[0-9A-Fa-f]{4}-[0-9A-Fa-f]{12})$"
)


def clamp(value: float, lower: float, upper: float) -> float:
    """Clamp value into [lower, upper]."""
    return max(lower, min(upper, value))


def haversine_distance(a: LatLng, b: LatLng) -> float:
    """
    Great-circle distance between two coordinates.

    Args:
        a: First coordinate, decimal degrees.
        b: Second coordinate, decimal degrees.

    Returns:
        Distance in metres.

    """
    phi1, phi2 = math.radians(a.lat), math.radians(b.lat)
    d_phi = phi2 - phi1
    d_lam = math.radians(b.lng - a.lng)
    h = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lam / 2) ** 2
    # Rounding can push h a hair past 1.0 for antipodal points
    return 2 * EARTH_RADIUS_METRES * math.asin(math.sqrt(min(1.0, h)))


def initial_bearing(a: LatLng, b: LatLng) -> float:
    """Initial great-circle bearing from a to b, degrees in [0, 360)."""
    phi1 = math.radians(a.lat)
    phi2 = math.radians(b.lat)
    d_lon = math.radians(b.lng - a.lng)

    y = math.sin(d_lon) * math.cos(phi2)
    x = math.cos(phi1) * math.sin(phi2) - math.sin(phi1) * math.cos(phi2) * math.cos(d_lon)
    return normalize_degrees(math.degrees(math.atan2(y, x)))


def normalize_degrees(degrees: float) -> float:
    """Wrap an angle into [0, 360)."""
    wrapped = degrees % 360.0
    # -1e-15 % 360 gives 360.0 in floating point
    return 0.0 if wrapped >= 360.0 else wrapped


def normalize_heading(heading: float | None) -> float | None:
    """
    Validate a compass reading.

    Non-finite or missing headings mean the compass is unavailable or
    uncalibrated and are returned as None. Finite headings are wrapped
    into [0, 360).
    """
    if heading is None or not math.isfinite(heading):
        return None
    return normalize_degrees(heading)


def normalized_rssi(rssi: float, floor: float, ceiling: float) -> float:
    """Map rssi linearly from [floor, ceiling] onto [0, 1], clamped."""
    if ceiling <= floor:
        return 0.0
    return clamp((rssi - floor) / (ceiling - floor), 0.0, 1.0)


def signal_percent(rssi: float) -> int:
    """
    Signal strength as a 0-100 display percentage.

    The normalised value is raised to SIGNAL_PERCENT_EXPONENT so that
    mid-range readings, where most indoor beacons live, are not crowded
    at the bottom of the scale.
    """
    normalized = normalized_rssi(rssi, SIGNAL_PERCENT_FLOOR, SIGNAL_PERCENT_CEILING)
    return int(clamp(round((normalized**SIGNAL_PERCENT_EXPONENT) * 100), 0, 100))


@lru_cache(1024)
def rssi_to_metres(rssi: float, ref_power: float = REF_POWER, attenuation: float = PATH_LOSS_EXPONENT) -> float:
    """
    Convert an rssi value to a distance in metres (log-distance path loss).

    attenuation:    a factor representing environmental attenuation
                    along the path. Will vary by humidity, walls etc.
    ref_power:      dBm measured when at 1m distance from the beacon.

    Returns a minimum of MIN_DISTANCE so very strong signals never read "0m".
    """
    if attenuation <= 0:
        message = "attenuation must be positive to compute distance"
        raise ValueError(message)
    distance = 10 ** ((ref_power - rssi) / (10 * attenuation))
    return max(MIN_DISTANCE, distance)


def signal_quality_label(quality: float) -> str:
    """Human label for a 0..1 quality score."""
    for lower, label in QUALITY_LABELS:
        if quality >= lower:
            return label
    return QUALITY_LABEL_POOR


@lru_cache(256)
def normalize_uuid(identifier: str) -> str | None:
    """
    Canonicalise a UUID string to lower-case 8-4-4-4-12 form.

    Returns None when the input is not a UUID.
    """
    to_test = identifier.strip()
    if not UUID_PATTERN.fullmatch(to_test):
        return None
    hexed = to_test.replace("-", "").lower()
    return f"{hexed[0:8]}-{hexed[8:12]}-{hexed[12:16]}-{hexed[16:20]}-{hexed[20:32]}"
