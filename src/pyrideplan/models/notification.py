"""Tagged representation of a push notification's ``orderData`` field.

The driver-side app sends ``orderData`` either as an object, as a JSON
string, or (observed in the wild) as a JSON string of a JSON string. The
value is classified once at the boundary into one of three variants so the
handoff coordinator never re-inspects raw types.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any

from pyrideplan.exceptions import NotificationParseError


@dataclass(frozen=True)
class RawOrderData:
    """``orderData`` arrived as serialized text (not yet decoded)."""

    text: str


@dataclass(frozen=True)
class StructuredOrderData:
    """``orderData`` is (or decoded to) a JSON object."""

    value: dict[str, Any]


@dataclass(frozen=True)
class MalformedOrderData:
    """``orderData`` is missing or could not be decoded."""

    reason: str


OrderDataVariant = RawOrderData | StructuredOrderData | MalformedOrderData


def classify_order_data(value: Any) -> OrderDataVariant:
    """Tag a raw ``orderData`` value without decoding it."""
    if isinstance(value, str):
        return RawOrderData(value)
    if isinstance(value, dict):
        return StructuredOrderData(dict(value))
    if value is None:
        return MalformedOrderData("orderData is missing")
    return MalformedOrderData(f"orderData has unsupported type {type(value).__name__}")


def _decode_text(text: str) -> dict[str, Any]:
    try:
        decoded: Any = json.loads(text)
        # Double-encoded payloads decode to a string holding the object.
        if isinstance(decoded, str):
            decoded = json.loads(decoded)
    except json.JSONDecodeError as exc:
        raise NotificationParseError(f"orderData is not JSON: {text[:64]!r}") from exc
    if not isinstance(decoded, dict):
        raise NotificationParseError(f"orderData decoded to {type(decoded).__name__}, expected object")
    return decoded


def resolve_order_data(variant: OrderDataVariant) -> StructuredOrderData | MalformedOrderData:
    """Decode a :class:`RawOrderData` variant; other variants pass through."""
    if isinstance(variant, RawOrderData):
        try:
            return StructuredOrderData(_decode_text(variant.text))
        except NotificationParseError as exc:
            return MalformedOrderData(str(exc))
    return variant
