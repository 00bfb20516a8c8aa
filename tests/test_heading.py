"""Tests for bearing and relative heading guidance."""

from __future__ import annotations

import math

import pytest

from wayfinder.const import GuidanceStatus
from wayfinder.heading import compute_guidance
from wayfinder.models import Destination, FilteredPosition

from .conftest import DEST_LAT, DEST_LNG, offset

DESTINATION = Destination(DEST_LAT, DEST_LNG)


def south_of_destination(metres: float = 100.0) -> FilteredPosition:
    lat, lng = offset(north=-metres)
    return FilteredPosition(lat, lng, 0.0)


class TestComputeGuidance:
    """Relative bearing = (bearing - heading + 360) mod 360."""

    def test_position_unknown(self) -> None:
        guidance = compute_guidance(None, 90.0, DESTINATION)
        assert guidance.status is GuidanceStatus.POSITION_UNKNOWN
        assert guidance.bearing_degrees is None
        assert guidance.relative_degrees is None
        assert guidance.available is False

    def test_heading_unavailable_distinct_from_zero(self) -> None:
        """Missing heading reports unavailable; facing the target reports zero."""
        here = south_of_destination()
        missing = compute_guidance(here, None, DESTINATION)
        assert missing.status is GuidanceStatus.HEADING_UNAVAILABLE
        assert missing.relative_degrees is None
        assert missing.bearing_degrees == pytest.approx(0.0, abs=1e-6)

        facing = compute_guidance(here, 0.0, DESTINATION)
        assert facing.status is GuidanceStatus.OK
        assert facing.relative_degrees == pytest.approx(0.0, abs=1e-6)

    def test_nan_heading_is_unavailable(self) -> None:
        guidance = compute_guidance(south_of_destination(), math.nan, DESTINATION)
        assert guidance.status is GuidanceStatus.HEADING_UNAVAILABLE

    @pytest.mark.parametrize(
        ("heading", "relative"),
        [(90.0, 270.0), (270.0, 90.0), (180.0, 180.0), (450.0, 270.0), (-90.0, 90.0)],
    )
    def test_relative_bearing(self, heading: float, relative: float) -> None:
        guidance = compute_guidance(south_of_destination(), heading, DESTINATION)
        assert guidance.relative_degrees == pytest.approx(relative, abs=1e-6)
        assert guidance.relative_radians == pytest.approx(math.radians(relative), abs=1e-6)

    def test_relative_always_in_range(self) -> None:
        here = FilteredPosition(*offset(north=50.0, east=-50.0), 0.0)
        for heading in range(0, 360, 15):
            relative = compute_guidance(here, float(heading), DESTINATION).relative_degrees
            assert 0.0 <= relative < 360.0
