"""Tests for configuration dataclasses and route validation."""

from __future__ import annotations

import math
from pathlib import Path
from typing import Any

import pytest

from wayfinder.config import (
    DEFAULT_MOVEMENT_PROFILES,
    NavigationConfig,
    PositionFilterConfig,
    RouteConfigError,
    async_load_route,
    route_from_dict,
    validate_route,
)
from wayfinder.const import MovementState
from wayfinder.models import Destination, Route, Waypoint


class TestProfiles:
    """Movement profile table."""

    def test_every_state_has_a_profile(self) -> None:
        assert set(DEFAULT_MOVEMENT_PROFILES) == set(MovementState)

    def test_profiles_get_more_reactive_with_speed(self) -> None:
        stationary = DEFAULT_MOVEMENT_PROFILES[MovementState.STATIONARY]
        walking = DEFAULT_MOVEMENT_PROFILES[MovementState.WALKING]
        running = DEFAULT_MOVEMENT_PROFILES[MovementState.RUNNING]
        assert stationary.history_size > walking.history_size > running.history_size
        assert stationary.smoothing_factor < walking.smoothing_factor < running.smoothing_factor
        assert stationary.gps_reach_threshold < walking.gps_reach_threshold < running.gps_reach_threshold

    def test_missing_profile_rejected(self) -> None:
        partial = {MovementState.STATIONARY: DEFAULT_MOVEMENT_PROFILES[MovementState.STATIONARY]}
        with pytest.raises(ValueError, match="walking"):
            NavigationConfig(profiles=partial)

    def test_unordered_speed_thresholds_rejected(self) -> None:
        with pytest.raises(ValueError, match="thresholds"):
            NavigationConfig(stationary_speed=3.0, walking_speed=1.0)

    def test_position_presets(self) -> None:
        fast = PositionFilterConfig.fast_response()
        smooth = PositionFilterConfig.smooth()
        assert fast.alpha > smooth.alpha
        assert fast.moving_average_window < smooth.moving_average_window
        assert fast.max_human_speed == 3.0


class TestRouteFromDict:
    """Voluptuous validation and ordinal checks."""

    def test_valid_route(self, route_config: dict[str, Any]) -> None:
        route = route_from_dict(route_config)
        assert [w.id for w in route.waypoints] == ["W1", "W2", "W3"]
        assert route.get("W2").label == "Corridor"
        assert route.destination.name == "Feeding Zone"
        assert route.final_waypoint.id == "W3"

    def test_label_defaults_to_id(self, route_config: dict[str, Any]) -> None:
        del route_config["waypoints"][0]["label"]
        assert route_from_dict(route_config).get("W1").label == "W1"

    def test_route_without_waypoints(self, route_config: dict[str, Any]) -> None:
        del route_config["waypoints"]
        route = route_from_dict(route_config)
        assert len(route) == 0
        assert route.is_complete is False

    def test_not_a_mapping(self) -> None:
        with pytest.raises(RouteConfigError, match="mapping"):
            route_from_dict(["W1"])

    def test_missing_destination(self, route_config: dict[str, Any]) -> None:
        del route_config["destination"]
        with pytest.raises(RouteConfigError, match="destination"):
            route_from_dict(route_config)

    def test_missing_destination_coordinate(self, route_config: dict[str, Any]) -> None:
        del route_config["destination"]["longitude"]
        with pytest.raises(RouteConfigError):
            route_from_dict(route_config)

    def test_destination_out_of_range(self, route_config: dict[str, Any]) -> None:
        route_config["destination"]["latitude"] = 91.0
        with pytest.raises(RouteConfigError):
            route_from_dict(route_config)

    def test_duplicate_ordinal(self, route_config: dict[str, Any]) -> None:
        route_config["waypoints"][1]["ordinal"] = 1
        with pytest.raises(RouteConfigError, match="strictly increasing"):
            route_from_dict(route_config)

    def test_decreasing_ordinal(self, route_config: dict[str, Any]) -> None:
        route_config["waypoints"][2]["ordinal"] = 2
        route_config["waypoints"][1]["ordinal"] = 5
        with pytest.raises(RouteConfigError, match="strictly increasing"):
            route_from_dict(route_config)

    def test_duplicate_id(self, route_config: dict[str, Any]) -> None:
        route_config["waypoints"][2]["id"] = "W1"
        with pytest.raises(RouteConfigError, match="Duplicate waypoint id"):
            route_from_dict(route_config)

    def test_ordinal_must_be_positive(self, route_config: dict[str, Any]) -> None:
        route_config["waypoints"][0]["ordinal"] = 0
        with pytest.raises(RouteConfigError):
            route_from_dict(route_config)


class TestValidateRoute:
    """Checks on Route objects built in code."""

    def test_duplicate_ordinals(self) -> None:
        route = Route([Waypoint("A", "A", 1), Waypoint("B", "B", 1)], Destination(1.0, 2.0))
        with pytest.raises(RouteConfigError, match="Duplicate waypoint ordinal"):
            validate_route(route)

    def test_non_finite_destination(self) -> None:
        route = Route([Waypoint("A", "A", 1)], Destination(math.nan, 2.0))
        with pytest.raises(RouteConfigError, match="missing or invalid"):
            validate_route(route)

    def test_out_of_order_route_rejected(self) -> None:
        """Sorting on construction must not hide a route listed with decreasing ordinals."""
        route = Route([Waypoint("B", "B", 2), Waypoint("A", "A", 1)], Destination(1.0, 2.0))
        assert [w.id for w in route.waypoints] == ["A", "B"]
        with pytest.raises(RouteConfigError, match="strictly increasing"):
            validate_route(route)

    def test_listed_in_order_route_accepted(self) -> None:
        route = Route([Waypoint("A", "A", 1), Waypoint("B", "B", 3)], Destination(1.0, 2.0))
        validate_route(route)
        assert route.listed_in_order is True


ROUTE_YAML = """\
waypoints:
  - id: W1
    label: Main Gate
    ordinal: 1
  - id: W2
    ordinal: 2
destination:
  latitude: 51.5007
  longitude: -0.1246
"""


@pytest.mark.asyncio
async def test_async_load_route(tmp_path: Path) -> None:
    path = tmp_path / "route.yaml"
    path.write_text(ROUTE_YAML, encoding="utf-8")
    route = await async_load_route(str(path))
    assert [w.id for w in route.waypoints] == ["W1", "W2"]
    assert route.get("W2").label == "W2"
    assert route.destination.latitude == pytest.approx(51.5007)


@pytest.mark.asyncio
async def test_async_load_route_bad_yaml(tmp_path: Path) -> None:
    path = tmp_path / "route.yaml"
    path.write_text("waypoints: [\n", encoding="utf-8")
    with pytest.raises(RouteConfigError, match="not valid YAML"):
        await async_load_route(str(path))
