"""Shared helpers for the REST endpoint modules.

The backend proxies wrap third-party responses as
``{"success": bool, "data": {...}}``. This module centralizes unwrapping
that envelope and mapping failures to :class:`RetrievalError`.

It is internal to pyrideplan and may change at any time.
"""

from __future__ import annotations

from typing import Any

from pyrideplan.exceptions import RetrievalError


def unwrap_success(endpoint: str, body: Any) -> dict[str, Any]:
    """Return ``body["data"]`` for a successful proxy envelope."""
    if not isinstance(body, dict):
        raise RetrievalError(f"{endpoint} returned {type(body).__name__}, expected object", endpoint=endpoint)
    if body.get("success") is not True:
        message = body.get("message") or body.get("error") or "success=false"
        raise RetrievalError(f"{endpoint} failed: {message}", endpoint=endpoint)
    data = body.get("data")
    if not isinstance(data, dict):
        raise RetrievalError(f"{endpoint} response missing 'data' object", endpoint=endpoint)
    return data


def first_item(value: Any) -> dict[str, Any] | None:
    """First element of a list when it is an object, else ``None``."""
    if isinstance(value, list) and value and isinstance(value[0], dict):
        return value[0]
    return None
