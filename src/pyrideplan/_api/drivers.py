"""Driver profile endpoint.

Endpoint:
  - /driver/get-drivers-data?ids=<csv>
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

from pydantic import ValidationError

from pyrideplan._transport import Transport
from pyrideplan.config import RidePlanConfig
from pyrideplan.exceptions import RetrievalError
from pyrideplan.models.driver import DriverProfile

_logger = logging.getLogger(__name__)


def _profile_items(endpoint: str, body: Any) -> list[Any]:
    if isinstance(body, list):
        return body
    # Tolerate enveloped variants of the same list.
    if isinstance(body, dict):
        for key in ("drivers", "data"):
            nested = body.get(key)
            if isinstance(nested, list):
                return nested
    raise RetrievalError(f"{endpoint} returned {type(body).__name__}, expected a list of drivers", endpoint=endpoint)


async def fetch_driver_profiles(
    config: RidePlanConfig,
    transport: Transport,
    driver_ids: Sequence[str],
) -> list[DriverProfile]:
    """Resolve driver ids into profiles with a single batched request.

    Entries that fail validation are skipped and logged; the order of the
    backend response is preserved.
    """
    endpoint = config.drivers_endpoint
    body = await transport.get_json(endpoint, {"ids": ",".join(driver_ids)})

    profiles: list[DriverProfile] = []
    for item in _profile_items(endpoint, body):
        try:
            profiles.append(DriverProfile.model_validate(item))
        except ValidationError:
            _logger.warning("Skipping unreadable driver profile from %s", endpoint, exc_info=True)
    _logger.debug("Resolved %d of %d driver ids", len(profiles), len(driver_ids))
    return profiles
