"""Order handoff coordinator.

Both ways an order can come into being, a local confirmation and an
inbound push notification, end in the same :class:`OrderPayload` shape so
the ride-detail view has a single consumer path.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Awaitable, Callable, Mapping
from typing import Any

from pydantic import ValidationError

from pyrideplan._normalize import safe_float, safe_str
from pyrideplan._redact import redact_for_log
from pyrideplan.exceptions import NotificationParseError, RetrievalError
from pyrideplan.models.driver import DriverProfile
from pyrideplan.models.geo import GeoPoint
from pyrideplan.models.notification import (
    StructuredOrderData,
    classify_order_data,
    resolve_order_data,
)
from pyrideplan.models.order import OrderPayload, OrderSource, UserSummary, driver_parse_error

_logger = logging.getLogger(__name__)

GeocodeLookup = Callable[[GeoPoint], Awaitable[str | None]]


def _point_or_none(value: Any) -> GeoPoint | None:
    if isinstance(value, GeoPoint):
        return value
    if not isinstance(value, Mapping):
        return None
    try:
        return GeoPoint.model_validate(
            {
                "latitude": safe_float(value.get("latitude", value.get("lat"))),
                "longitude": safe_float(value.get("longitude", value.get("lng"))),
            }
        )
    except ValidationError:
        return None


def _user_or_none(value: Any) -> UserSummary | None:
    if isinstance(value, UserSummary):
        return value
    if not isinstance(value, Mapping):
        return None
    try:
        return UserSummary.model_validate(dict(value))
    except ValidationError:
        return None


def _notification_body(raw_payload: Any) -> dict[str, Any]:
    """Return the payload as a dict, decoding JSON text when needed."""
    if isinstance(raw_payload, Mapping):
        return dict(raw_payload)
    if isinstance(raw_payload, (str, bytes)):
        try:
            decoded = json.loads(raw_payload)
        except ValueError as exc:
            raise NotificationParseError("Notification payload is not JSON") from exc
        if isinstance(decoded, dict):
            return decoded
        raise NotificationParseError(f"Notification payload decoded to {type(decoded).__name__}, expected object")
    raise NotificationParseError(f"Unsupported notification payload type {type(raw_payload).__name__}")


class OrderHandoffCoordinator:
    """Assemble :class:`OrderPayload` values.

    Parameters
    ----------
    geocode : callable, optional
        ``point -> formatted address``; enables
        :meth:`resolve_location_names`.
    """

    def __init__(
        self,
        geocode: GeocodeLookup | None = None,
        *,
        logger: logging.Logger | None = None,
    ) -> None:
        self._geocode = geocode
        self._logger = logger or _logger

    def confirm(
        self,
        user: UserSummary | Mapping[str, Any] | None,
        origin: GeoPoint,
        destination: GeoPoint,
        distance_km: float,
        driver: DriverProfile | None,
        *,
        current_location_name: str | None = None,
        destination_location_name: str | None = None,
    ) -> OrderPayload:
        """Build the order for a locally confirmed ride.

        Raises
        ------
        ValueError
            If no driver was selected.
        """
        if driver is None:
            raise ValueError("A driver must be selected to confirm an order")
        order = OrderPayload(
            user=_user_or_none(user),
            current_location=origin,
            destination=destination,
            distance_km=round(distance_km, 2),
            driver=driver.to_wire(),
            current_location_name=current_location_name,
            destination_location_name=destination_location_name,
            source=OrderSource.LOCAL,
        )
        self._logger.debug("Order confirmed %s", redact_for_log(order.to_wire()))
        return order

    def from_notification(self, raw_payload: Any) -> OrderPayload:
        """Build the order carried by an inbound push notification.

        Never raises: unreadable driver data becomes the sentinel driver
        value and unreadable locations become ``None``.
        """
        try:
            body = _notification_body(raw_payload)
        except NotificationParseError as exc:
            self._logger.warning("Unreadable notification payload: %s", exc)
            body = {}

        variant = resolve_order_data(classify_order_data(body.get("orderData")))
        if isinstance(variant, StructuredOrderData):
            driver = variant.value
        else:
            self._logger.warning("Notification driver data degraded: %s", variant.reason)
            driver = driver_parse_error()

        distance = safe_float(body.get("distance"))
        order = OrderPayload(
            user=_user_or_none(body.get("user")),
            current_location=_point_or_none(body.get("currentLocation")),
            destination=_point_or_none(body.get("marker")),
            distance_km=distance if distance is not None and distance >= 0 else 0.0,
            driver=driver,
            current_location_name=safe_str(body.get("currentLocationName")),
            destination_location_name=safe_str(body.get("destinationLocation")),
            source=OrderSource.NOTIFICATION,
        )
        self._logger.debug("Order from notification %s", redact_for_log(order.to_wire()))
        return order

    async def resolve_location_names(
        self, origin: GeoPoint, destination: GeoPoint
    ) -> tuple[str | None, str | None]:
        """Reverse-geocode pickup and destination; failures yield ``None``."""
        if self._geocode is None:
            return None, None
        geocode = self._geocode
        names = await asyncio.gather(
            self._name_for(geocode, origin),
            self._name_for(geocode, destination),
        )
        return names[0], names[1]

    async def _name_for(self, geocode: GeocodeLookup, point: GeoPoint) -> str | None:
        try:
            return await geocode(point)
        except RetrievalError as exc:
            self._logger.warning("Reverse geocode failed: %s", exc)
            return None
