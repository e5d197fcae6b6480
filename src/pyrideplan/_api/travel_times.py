"""Travel-time matrix endpoint (proxied).

Endpoint:
  - /api/v1/distance-matrix?origins=lat,lng&destinations=lat,lng&mode=<mode>

One request is made per travel mode. A failing mode leaves its duration
unset instead of failing the whole lookup.
"""

from __future__ import annotations

import logging
from typing import Any

from pyrideplan._api._common import first_item, unwrap_success
from pyrideplan._normalize import safe_str
from pyrideplan._transport import Transport
from pyrideplan.config import RidePlanConfig
from pyrideplan.exceptions import RetrievalError
from pyrideplan.models.geo import GeoPoint
from pyrideplan.models.route import TravelTimes

_logger = logging.getLogger(__name__)


def _duration_text(data: dict[str, Any]) -> str | None:
    row = first_item(data.get("rows"))
    element = first_item(row.get("elements")) if row is not None else None
    if element is None:
        return None
    if element.get("status", "OK") != "OK":
        _logger.debug("Distance matrix element status=%s", element.get("status"))
        return None
    duration = element.get("duration")
    return safe_str(duration.get("text")) if isinstance(duration, dict) else None


async def fetch_travel_times(
    config: RidePlanConfig,
    transport: Transport,
    origin: GeoPoint,
    destination: GeoPoint,
) -> TravelTimes:
    """Fetch duration text for every configured travel mode."""
    endpoint = config.distance_matrix_endpoint
    durations: dict[str, str | None] = {}
    for mode in config.travel_modes:
        params = {
            "origins": origin.as_query(),
            "destinations": destination.as_query(),
            "mode": mode,
        }
        if mode == "driving":
            params["departure_time"] = "now"
        try:
            body = await transport.get_json(endpoint, params)
            durations[mode] = _duration_text(unwrap_success(endpoint, body))
        except RetrievalError as exc:
            _logger.warning("Travel time lookup failed mode=%s: %s", mode, exc)
            durations[mode] = None
    return TravelTimes.model_validate({k: v for k, v in durations.items() if k in TravelTimes.model_fields})
