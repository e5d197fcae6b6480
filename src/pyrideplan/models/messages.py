"""Dispatch channel message models and inbound frame parsing."""

from __future__ import annotations

import json
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, ValidationError

from pyrideplan._constants import MSG_NEARBY_DRIVERS, MSG_REQUEST_RIDE, ROLE_USER
from pyrideplan.exceptions import ParseError
from pyrideplan.models.driver import DriverCandidateRef
from pyrideplan.models.geo import GeoPoint


class RideRequestMessage(BaseModel):
    """Outbound request asking the dispatch service for nearby drivers."""

    model_config = ConfigDict(frozen=True)

    type: Literal["requestRide"] = MSG_REQUEST_RIDE
    role: Literal["user"] = ROLE_USER
    latitude: float
    longitude: float

    @classmethod
    def at(cls, location: GeoPoint) -> RideRequestMessage:
        return cls(latitude=location.latitude, longitude=location.longitude)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json")


class NearbyDriversMessage(BaseModel):
    """Inbound broadcast listing candidate drivers for the pending request."""

    model_config = ConfigDict(frozen=True)

    type: Literal["nearbyDrivers"] = MSG_NEARBY_DRIVERS
    drivers: tuple[DriverCandidateRef, ...] = ()


class DispatchMessage(BaseModel):
    """Any decoded inbound frame: its ``type`` plus the full object."""

    model_config = ConfigDict(frozen=True)

    type: str
    payload: dict[str, Any]


def parse_dispatch_message(text: str | bytes) -> DispatchMessage:
    """Decode one inbound frame.

    Raises
    ------
    ParseError
        If the frame is not a JSON object or lacks a string ``type``.
    """
    try:
        decoded = json.loads(text)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise ParseError(f"Dispatch frame is not JSON: {str(text)[:64]!r}") from exc
    if not isinstance(decoded, dict):
        raise ParseError(f"Dispatch frame is not an object: {type(decoded).__name__}")
    msg_type = decoded.get("type")
    if not isinstance(msg_type, str) or not msg_type:
        raise ParseError("Dispatch frame is missing 'type'")
    return DispatchMessage(type=msg_type, payload=decoded)


def parse_nearby_drivers(message: DispatchMessage) -> NearbyDriversMessage:
    """Interpret a ``nearbyDrivers`` frame.

    Raises
    ------
    ParseError
        If ``drivers`` is missing, not a list, or holds unreadable entries.
    """
    drivers = message.payload.get("drivers")
    if not isinstance(drivers, list):
        raise ParseError("nearbyDrivers frame has no 'drivers' list")
    try:
        return NearbyDriversMessage(drivers=tuple(DriverCandidateRef.model_validate(item) for item in drivers))
    except ValidationError as exc:
        raise ParseError(f"nearbyDrivers frame has invalid driver entries: {exc.error_count()} error(s)") from exc
