"""Data models for dispatch, backend and notification payloads."""

from pyrideplan.models._base import RideBaseModel
from pyrideplan.models.driver import DriverCandidateRef, DriverProfile
from pyrideplan.models.geo import GeoPoint
from pyrideplan.models.messages import (
    DispatchMessage,
    NearbyDriversMessage,
    RideRequestMessage,
    parse_dispatch_message,
    parse_nearby_drivers,
)
from pyrideplan.models.notification import (
    MalformedOrderData,
    OrderDataVariant,
    RawOrderData,
    StructuredOrderData,
    classify_order_data,
    resolve_order_data,
)
from pyrideplan.models.order import OrderPayload, OrderSource, UserSummary, driver_parse_error
from pyrideplan.models.route import FareEstimate, RouteEstimate, RouteGeometry, TravelTimes

__all__ = [
    "DispatchMessage",
    "DriverCandidateRef",
    "DriverProfile",
    "FareEstimate",
    "GeoPoint",
    "MalformedOrderData",
    "NearbyDriversMessage",
    "OrderDataVariant",
    "OrderPayload",
    "OrderSource",
    "RawOrderData",
    "RideBaseModel",
    "RideRequestMessage",
    "RouteEstimate",
    "RouteGeometry",
    "StructuredOrderData",
    "TravelTimes",
    "UserSummary",
    "classify_order_data",
    "driver_parse_error",
    "parse_dispatch_message",
    "parse_nearby_drivers",
    "resolve_order_data",
]
