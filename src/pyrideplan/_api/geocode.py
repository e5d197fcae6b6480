"""Reverse geocoding endpoint (proxied).

Endpoint:
  - /api/v1/geocode?latlng=lat,lng
"""

from __future__ import annotations

from pyrideplan._api._common import first_item, unwrap_success
from pyrideplan._normalize import safe_str
from pyrideplan._transport import Transport
from pyrideplan.config import RidePlanConfig
from pyrideplan.models.geo import GeoPoint


async def reverse_geocode(
    config: RidePlanConfig,
    transport: Transport,
    point: GeoPoint,
) -> str | None:
    """Return the formatted address of the best match for *point*."""
    endpoint = config.geocode_endpoint
    body = await transport.get_json(endpoint, {"latlng": point.as_query()})
    data = unwrap_success(endpoint, body)
    result = first_item(data.get("results"))
    if result is None:
        return None
    return safe_str(result.get("formatted_address"))
