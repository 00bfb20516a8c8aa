"""Bearing to the destination relative to the device heading."""

from __future__ import annotations

from .const import GuidanceStatus
from .models import Destination, FilteredPosition, Guidance
from .util import initial_bearing, normalize_degrees, normalize_heading


def compute_guidance(
    position: FilteredPosition | None,
    heading: float | None,
    destination: Destination,
) -> Guidance:
    """
    Direction for the on-screen indicator.

    relative = (bearing - heading + 360) mod 360, where bearing is the
    initial great-circle bearing from position to destination. A missing
    position or heading is reported through the status, never guessed.
    """
    if position is None:
        return Guidance(GuidanceStatus.POSITION_UNKNOWN)

    bearing = initial_bearing(position.latlng, destination.latlng)
    heading = normalize_heading(heading)
    if heading is None:
        return Guidance(GuidanceStatus.HEADING_UNAVAILABLE, bearing_degrees=bearing)

    return Guidance(
        GuidanceStatus.OK,
        bearing_degrees=bearing,
        relative_degrees=normalize_degrees(bearing - heading + 360.0),
    )
