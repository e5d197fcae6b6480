"""Encoded polyline codec (precision 5).

Thin wrapper over the ``polyline`` package that validates input up front
and reports malformed strings as :class:`~pyrideplan.exceptions.DecodeError`
instead of ``IndexError`` or silently wrong points.
"""

from __future__ import annotations

from collections.abc import Iterable

import polyline as polyline_codec
from pydantic import ValidationError

from pyrideplan.exceptions import DecodeError
from pyrideplan.models.geo import GeoPoint

_PRECISION = 5
# Valid chunk characters are '?' (63) .. '~' (126).
_MIN_CHAR = 63
_MAX_CHAR = 126


def _check_characters(encoded: str) -> None:
    for index, char in enumerate(encoded):
        if not _MIN_CHAR <= ord(char) <= _MAX_CHAR:
            raise DecodeError(f"Invalid polyline character {char!r} at position {index}", position=index)


def decode(encoded: str) -> list[GeoPoint]:
    """Decode a polyline string into an ordered list of points.

    Raises
    ------
    DecodeError
        If the string ends inside a value or between a latitude and its
        longitude, contains a character outside ``?``..``~``, or yields a
        coordinate outside the valid latitude/longitude range.
    """
    _check_characters(encoded)
    try:
        pairs = polyline_codec.decode(encoded, _PRECISION)
    except IndexError as exc:
        # The codec only runs off the end of the string, so truncation is at len().
        raise DecodeError(f"Truncated polyline at position {len(encoded)}", position=len(encoded)) from exc

    points: list[GeoPoint] = []
    for lat, lng in pairs:
        try:
            points.append(GeoPoint(latitude=lat, longitude=lng))
        except ValidationError as exc:
            raise DecodeError(f"Polyline point {len(points)} is out of range") from exc
    return points


def encode(points: Iterable[GeoPoint]) -> str:
    """Encode points into a polyline string (inverse of :func:`decode`)."""
    return polyline_codec.encode([(p.latitude, p.longitude) for p in points], _PRECISION)
