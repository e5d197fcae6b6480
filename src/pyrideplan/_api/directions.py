"""Directions endpoint (proxied).

Endpoint:
  - /api/v1/directions?origin=lat,lng&destination=lat,lng
"""

from __future__ import annotations

import logging

from pyrideplan._api._common import first_item, unwrap_success
from pyrideplan._transport import Transport
from pyrideplan.config import RidePlanConfig
from pyrideplan.models.geo import GeoPoint

_logger = logging.getLogger(__name__)


async def fetch_overview_polyline(
    config: RidePlanConfig,
    transport: Transport,
    origin: GeoPoint,
    destination: GeoPoint,
) -> str | None:
    """Fetch the encoded overview polyline of the first route.

    Returns
    -------
    str or None
        The encoded polyline, or ``None`` when the proxy found no route.

    Raises
    ------
    RetrievalError
        If the lookup fails or the proxy reports ``success: false``.
    """
    endpoint = config.directions_endpoint
    body = await transport.get_json(
        endpoint,
        {"origin": origin.as_query(), "destination": destination.as_query()},
    )
    data = unwrap_success(endpoint, body)

    route = first_item(data.get("routes"))
    if route is None:
        _logger.debug("Directions returned no routes")
        return None
    overview = route.get("overview_polyline")
    points = overview.get("points") if isinstance(overview, dict) else None
    if not isinstance(points, str):
        _logger.debug("Directions route has no overview_polyline.points")
        return None
    return points
