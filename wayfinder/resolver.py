"""
Matching of raw BLE advertisements to waypoint ids.

This is an adapter for scan sources: the navigation core only consumes
already-resolved BeaconSamples. Matching is tried in order:

1. Explicit device address map.
2. Proximity UUID from iBeacon (Apple, 0x004C, prefix 02 15) or AltBeacon
   (prefix BE AC) manufacturer data, looked up in the UUID map.
3. Advertised local name containing a waypoint id or label.
4. Advertised service UUIDs, looked up in the UUID map.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping

from .const import (
    _LOGGER,
    ALTBEACON_PREFIX,
    APPLE_COMPANY_ID,
    BEACON_PAYLOAD_MIN_LEN,
    IBEACON_PREFIX,
)
from .models import BeaconSample, Route
from .util import normalize_uuid


def extract_beacon_uuid(manufacturer_data: Mapping[int, bytes]) -> str | None:
    """Proximity UUID of an iBeacon or AltBeacon payload, lower-case 8-4-4-4-12."""
    man_data = manufacturer_data.get(APPLE_COMPANY_ID)
    if man_data is not None and len(man_data) >= BEACON_PAYLOAD_MIN_LEN and man_data[:2] == IBEACON_PREFIX:
        return normalize_uuid(man_data[2:18].hex())

    # AltBeacon can be sent under any company id
    for man_data in manufacturer_data.values():
        if len(man_data) >= BEACON_PAYLOAD_MIN_LEN and man_data[:2] == ALTBEACON_PREFIX:
            return normalize_uuid(man_data[2:18].hex())
    return None


class AdvertisementResolver:
    """Resolves advertisements for one route into BeaconSamples."""

    def __init__(
        self,
        route: Route,
        device_map: Mapping[str, str] | None = None,
        uuid_map: Mapping[str, str] | None = None,
    ) -> None:
        self.route = route
        self.device_map = {address.upper(): wp_id for address, wp_id in (device_map or {}).items()}
        self.uuid_map: dict[str, str] = {}
        for uuid, wp_id in (uuid_map or {}).items():
            normal = normalize_uuid(uuid)
            if normal is None:
                msg = f"Not a valid beacon UUID: {uuid}"
                raise ValueError(msg)
            self.uuid_map[normal] = wp_id

    def match(
        self,
        address: str,
        manufacturer_data: Mapping[int, bytes] | None = None,
        service_uuids: Iterable[str] = (),
        name: str | None = None,
    ) -> str | None:
        """Waypoint id for an advertisement, or None if it belongs to nothing on the route."""
        wp_id = self.device_map.get(address.upper())
        if wp_id is not None:
            return wp_id

        if manufacturer_data:
            uuid = extract_beacon_uuid(manufacturer_data)
            if uuid is not None and uuid in self.uuid_map:
                return self.uuid_map[uuid]

        if name:
            name_upper = name.upper()
            for waypoint in self.route.waypoints:
                if waypoint.id.upper() in name_upper or waypoint.label.upper().replace(" ", "") in name_upper:
                    return waypoint.id

        for service_uuid in service_uuids:
            normal = normalize_uuid(service_uuid)
            if normal is not None and normal in self.uuid_map:
                return self.uuid_map[normal]
        return None

    def resolve(
        self,
        address: str,
        rssi: int,
        timestamp: float,
        manufacturer_data: Mapping[int, bytes] | None = None,
        service_uuids: Iterable[str] = (),
        name: str | None = None,
    ) -> BeaconSample | None:
        wp_id = self.match(address, manufacturer_data, service_uuids, name)
        if wp_id is None or wp_id not in self.route:
            return None
        _LOGGER.debug("Advertisement from %s matched waypoint %s at %d dBm", address, wp_id, rssi)
        return BeaconSample(identifier=wp_id, rssi=rssi, timestamp=timestamp)
