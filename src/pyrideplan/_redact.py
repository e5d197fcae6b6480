"""Helpers for safe debug logging.

Order payloads and driver profiles carry phone numbers and precise rider
coordinates; backend responses may echo API keys. This module produces a
redacted copy of such structures before they reach DEBUG logs.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

_SENSITIVE_VALUE_KEYS: frozenset[str] = frozenset(
    {
        "phone_number",
        "phonenumber",
        "accesstoken",
        "token",
        "authorization",
        "key",
        "apikey",
        "pushtoken",
        "to",
    }
)

_COORDINATE_KEYS: frozenset[str] = frozenset({"latitude", "longitude", "lat", "lng", "lon"})


def redact_for_log(
    value: Any,
    *,
    max_string: int = 256,
    coordinate_digits: int = 3,
    _depth: int = 0,
) -> Any:
    """Return a redacted copy of *value* suitable for debug logs.

    Sensitive keys are replaced with ``"<redacted>"``, coordinates are
    rounded to *coordinate_digits* decimals and long strings truncated.
    """
    if _depth > 20:
        return "<max-depth>"

    if value is None:
        return None

    if isinstance(value, str):
        if len(value) > max_string:
            return f"{value[:max_string]}…<truncated>"
        return value

    if isinstance(value, (int, float, bool)):
        return value

    if isinstance(value, bytes):
        return f"<bytes:{len(value)}b>"

    if isinstance(value, Mapping):
        redacted: dict[str, Any] = {}
        for k, v in value.items():
            key = str(k)
            lowered = key.lower()
            if lowered in _SENSITIVE_VALUE_KEYS:
                redacted[key] = "<redacted>"
            elif lowered in _COORDINATE_KEYS and isinstance(v, (int, float)) and not isinstance(v, bool):
                redacted[key] = round(float(v), coordinate_digits)
            else:
                redacted[key] = redact_for_log(
                    v,
                    max_string=max_string,
                    coordinate_digits=coordinate_digits,
                    _depth=_depth + 1,
                )
        return redacted

    if isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray)):
        return [
            redact_for_log(v, max_string=max_string, coordinate_digits=coordinate_digits, _depth=_depth + 1)
            for v in value
        ]

    model_dump = getattr(value, "model_dump", None)
    if callable(model_dump):
        return redact_for_log(
            model_dump(exclude={"raw"}),
            max_string=max_string,
            coordinate_digits=coordinate_digits,
            _depth=_depth + 1,
        )

    # Fallback: represent unknown objects without dumping internals.
    return repr(value)
