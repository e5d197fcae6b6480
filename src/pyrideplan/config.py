"""Client configuration for pyrideplan."""

from __future__ import annotations

import dataclasses
import os
from typing import Any

from pyrideplan._constants import (
    DIRECTIONS_ENDPOINT,
    DISTANCE_MATRIX_ENDPOINT,
    DRIVERS_ENDPOINT,
    GEOCODE_ENDPOINT,
    RECONNECT_DELAY_SECONDS,
    TRAVEL_MODES,
)
from pyrideplan.exceptions import RidePlanConfigError


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


def _env_float(env_key: str, value: str) -> float:
    try:
        return float(value)
    except ValueError as exc:
        raise RidePlanConfigError(f"{env_key} must be numeric, got {value!r}") from exc


@dataclasses.dataclass(frozen=True)
class RidePlanConfig:
    """Client configuration.

    Parameters
    ----------
    server_uri : str
        Base URL of the backend that proxies directions, driver profiles,
        reverse geocoding and travel-time lookups.
    dispatch_url : str
        WebSocket URL of the dispatch service.
    reconnect_delay : float
        Seconds to wait after a dispatch socket loss before reconnecting.
    request_timeout : float
        Total timeout in seconds for a single REST lookup.
    ws_heartbeat : float
        WebSocket ping interval in seconds. ``0`` disables heartbeats.
    directions_endpoint, drivers_endpoint, geocode_endpoint, distance_matrix_endpoint : str
        Paths of the proxied collaborators, relative to ``server_uri``.
    travel_modes : tuple of str
        Modes queried from the travel-time matrix.
    fetch_travel_times : bool
        Query per-mode travel times (and derive an ETA) with every estimate.
    resolve_location_names : bool
        Reverse-geocode pickup/destination names when confirming an order.
    """

    server_uri: str = "http://localhost:3000"
    dispatch_url: str = "ws://localhost:8080"
    reconnect_delay: float = RECONNECT_DELAY_SECONDS
    request_timeout: float = 10.0
    ws_heartbeat: float = 30.0
    directions_endpoint: str = DIRECTIONS_ENDPOINT
    drivers_endpoint: str = DRIVERS_ENDPOINT
    geocode_endpoint: str = GEOCODE_ENDPOINT
    distance_matrix_endpoint: str = DISTANCE_MATRIX_ENDPOINT
    travel_modes: tuple[str, ...] = TRAVEL_MODES
    fetch_travel_times: bool = True
    resolve_location_names: bool = True

    def __post_init__(self) -> None:
        if not self.server_uri.strip():
            raise RidePlanConfigError("server_uri must not be empty")
        if not self.dispatch_url.startswith(("ws://", "wss://")):
            raise RidePlanConfigError(f"dispatch_url must be a ws:// or wss:// URL, got {self.dispatch_url!r}")
        if self.reconnect_delay < 0:
            raise RidePlanConfigError("reconnect_delay must be >= 0")
        if self.request_timeout <= 0:
            raise RidePlanConfigError("request_timeout must be > 0")
        # Normalise trailing slash so endpoint joins stay predictable.
        object.__setattr__(self, "server_uri", self.server_uri.rstrip("/"))

    @classmethod
    def from_env(cls, **overrides: Any) -> RidePlanConfig:
        """Create configuration from environment variables.

        Reads optional ``RIDEPLAN_*`` variables. Explicit keyword arguments
        override environment values.

        Parameters
        ----------
        **overrides
            Explicit field values that take precedence over env vars.

        Returns
        -------
        RidePlanConfig
            Populated configuration.
        """
        env = os.environ

        _ENV_CONFIG_MAP = {
            "RIDEPLAN_SERVER_URI": "server_uri",
            "RIDEPLAN_DISPATCH_URL": "dispatch_url",
            "RIDEPLAN_DIRECTIONS_ENDPOINT": "directions_endpoint",
            "RIDEPLAN_DRIVERS_ENDPOINT": "drivers_endpoint",
            "RIDEPLAN_GEOCODE_ENDPOINT": "geocode_endpoint",
            "RIDEPLAN_DISTANCE_MATRIX_ENDPOINT": "distance_matrix_endpoint",
        }
        config_kwargs: dict[str, Any] = {}
        for env_key, field_name in _ENV_CONFIG_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        _ENV_FLOAT_MAP = {
            "RIDEPLAN_RECONNECT_DELAY": "reconnect_delay",
            "RIDEPLAN_REQUEST_TIMEOUT": "request_timeout",
            "RIDEPLAN_WS_HEARTBEAT": "ws_heartbeat",
        }
        for env_key, field_name in _ENV_FLOAT_MAP.items():
            val = env.get(env_key)
            if val is not None and field_name not in overrides:
                config_kwargs[field_name] = _env_float(env_key, val)

        modes_env = env.get("RIDEPLAN_TRAVEL_MODES")
        if modes_env is not None and "travel_modes" not in overrides:
            config_kwargs["travel_modes"] = tuple(m.strip() for m in modes_env.split(",") if m.strip())

        if "fetch_travel_times" not in overrides:
            config_kwargs["fetch_travel_times"] = _env_bool(env.get("RIDEPLAN_FETCH_TRAVEL_TIMES"), True)

        if "resolve_location_names" not in overrides:
            config_kwargs["resolve_location_names"] = _env_bool(env.get("RIDEPLAN_RESOLVE_LOCATION_NAMES"), True)

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
