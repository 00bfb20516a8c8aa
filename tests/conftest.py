"""Global fixtures for Wayfinder tests."""

from __future__ import annotations

import math
from collections.abc import Callable, Generator
from typing import Any

import pytest

from wayfinder.config import NavigationConfig, route_from_dict
from wayfinder.const import EARTH_RADIUS_METRES
from wayfinder.models import BeaconSample, GeoFix, Route
from wayfinder.session import NavigationSession

DEST_LAT = 51.5007
DEST_LNG = -0.1246

METRES_PER_DEGREE = EARTH_RADIUS_METRES * math.pi / 180


def offset(north: float = 0.0, east: float = 0.0) -> tuple[float, float]:
    """Coordinate `north`/`east` metres from the test destination (small offsets only)."""
    lat = DEST_LAT + north / METRES_PER_DEGREE
    lng = DEST_LNG + east / (METRES_PER_DEGREE * math.cos(math.radians(DEST_LAT)))
    return lat, lng


@pytest.fixture
def route_config() -> dict[str, Any]:
    """Three waypoints, W3 being the last before the destination."""
    return {
        "waypoints": [
            {"id": "W1", "label": "Main Gate", "ordinal": 1},
            {"id": "W2", "label": "Corridor", "ordinal": 2},
            {"id": "W3", "label": "Feeding Zone", "ordinal": 3},
        ],
        "destination": {"latitude": DEST_LAT, "longitude": DEST_LNG, "name": "Feeding Zone"},
    }


@pytest.fixture
def route(route_config: dict[str, Any]) -> Route:
    return route_from_dict(route_config)


@pytest.fixture
def make_fix() -> Callable[..., GeoFix]:
    """Factory for fixes relative to the destination."""

    def _make(north: float = 0.0, east: float = 0.0, t: float = 0.0, accuracy: float = 5.0) -> GeoFix:
        lat, lng = offset(north, east)
        return GeoFix(latitude=lat, longitude=lng, accuracy=accuracy, timestamp=t)

    return _make


@pytest.fixture
def make_samples() -> Callable[..., list[BeaconSample]]:
    """Factory for a run of samples from one beacon, one per second from `start`."""

    def _make(identifier: str, rssi: list[int] | int, count: int = 1, start: float = 0.0) -> list[BeaconSample]:
        values = rssi if isinstance(rssi, list) else [rssi] * count
        return [BeaconSample(identifier, value, start + i) for i, value in enumerate(values)]

    return _make


@pytest.fixture
def config() -> NavigationConfig:
    return NavigationConfig()


@pytest.fixture
def session(config: NavigationConfig, route: Route) -> Generator[NavigationSession, None, None]:
    """A started session without an event loop; tests drive sweeps by hand."""
    nav = NavigationSession(config, clock=lambda: 0.0)
    nav.start(route)
    yield nav
    nav.stop()
