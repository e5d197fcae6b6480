"""Centralized geographic and time-estimate calculations.

Distances are straight-line (great-circle) estimates; they intentionally do
not follow the road route returned by the directions collaborator.
"""

from __future__ import annotations

import logging
import math
import re
from datetime import datetime, timedelta

from pyrideplan._constants import ARRIVAL_TIME_FORMAT, DURATION_UNIT_MINUTES, EARTH_RADIUS_KM
from pyrideplan.exceptions import ParseError
from pyrideplan.models.geo import GeoPoint

_logger = logging.getLogger(__name__)

_DEG_TO_RAD = math.pi / 180.0

# "<number> <unit>" pairs, e.g. "1 hour 5 mins", "2h30m", "1.5 hours"
_DURATION_TOKEN = re.compile(r"\s*(\d+(?:\.\d+)?)\s*([A-Za-z]+)\.?\s*,?")


def distance_km(a: GeoPoint, b: GeoPoint) -> float:
    """Great-circle distance between two points in kilometers.

    Uses the cosine form of the haversine formula with Earth radius
    6371 km.
    """
    lat1, lon1 = a.latitude, a.longitude
    lat2, lon2 = b.latitude, b.longitude
    h = (
        0.5
        - math.cos((lat2 - lat1) * _DEG_TO_RAD) / 2
        + math.cos(lat1 * _DEG_TO_RAD) * math.cos(lat2 * _DEG_TO_RAD) * (1 - math.cos((lon2 - lon1) * _DEG_TO_RAD)) / 2
    )
    # Float rounding can push h marginally outside [0, 1].
    h = min(1.0, max(0.0, h))
    return 2 * EARTH_RADIUS_KM * math.asin(math.sqrt(h))


def parse_duration_minutes(text: str) -> float:
    """Parse a human-readable duration (``"1 hour 5 mins"``) into minutes.

    Raises
    ------
    ParseError
        If the text is empty, has an unknown unit, or contains anything
        other than ``<number> <unit>`` pairs.
    """
    if not isinstance(text, str) or not text.strip():
        raise ParseError("Duration text is empty")

    total = 0.0
    position = 0
    stripped = text.strip()
    while position < len(stripped):
        match = _DURATION_TOKEN.match(stripped, position)
        if match is None or match.end() == position:
            raise ParseError(f"Unrecognized duration text {text!r} at position {position}")
        amount, unit = match.groups()
        factor = DURATION_UNIT_MINUTES.get(unit.lower())
        if factor is None:
            raise ParseError(f"Unrecognized duration unit {unit!r} in {text!r}")
        total += float(amount) * factor
        position = match.end()
    return total


def estimated_arrival(now: datetime, duration_text: str) -> str:
    """Arrival clock time (``"hh:mm AM"``) after *duration_text* from *now*.

    Timezone-aware *now* values are converted to local time. Unparseable
    duration text counts as zero minutes.
    """
    try:
        minutes = parse_duration_minutes(duration_text)
    except ParseError:
        _logger.warning("Cannot parse travel duration %r; assuming 0 minutes", duration_text)
        minutes = 0.0
    local_now = now.astimezone() if now.tzinfo is not None else now
    return (local_now + timedelta(minutes=minutes)).strftime(ARRIVAL_TIME_FORMAT)
