"""Normalization helpers.

Centralizes defensive parsing of the loosely typed values the backend and
push notifications carry (numbers as strings, placeholder values).
"""

from __future__ import annotations

import math
from typing import Any

# Placeholder strings treated as "not available".
PLACEHOLDERS = frozenset({"", "--", "NaN", "nan", "null", "undefined"})


def is_placeholder(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str) and value.strip() in PLACEHOLDERS:
        return True
    return isinstance(value, float) and math.isnan(value)


def safe_float(value: Any) -> float | None:
    if isinstance(value, bool) or is_placeholder(value):
        return None
    try:
        result = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(result) or math.isinf(result):
        return None
    return result


def safe_str(value: Any) -> str | None:
    if value is None or isinstance(value, (dict, list)):
        return None
    text = str(value).strip()
    return text if text else None


def prune_placeholders(values: dict[str, Any]) -> dict[str, Any]:
    """Drop top-level placeholder values so model defaults apply."""
    return {key: value for key, value in values.items() if not is_placeholder(value)}
