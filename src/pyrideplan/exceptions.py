"""Custom exception hierarchy for pyrideplan."""

from __future__ import annotations


class RidePlanError(Exception):
    """Base exception for all pyrideplan errors."""


class RidePlanConfigError(RidePlanError):
    """Invalid or missing configuration."""


class DecodeError(RidePlanError):
    """Malformed polyline (truncated chunk sequence or invalid character)."""

    def __init__(self, message: str, *, position: int | None = None) -> None:
        self.position = position
        super().__init__(message)


class ParseError(RidePlanError):
    """Malformed duration text or inbound dispatch message."""


class NotConnectedError(RidePlanError):
    """Send attempted while the dispatch connection is not connected."""


class DispatchConnectionError(RidePlanError):
    """The dispatch socket could not be opened or failed while reading."""


class RetrievalError(RidePlanError):
    """Lookup against a REST collaborator failed (network, non-200, invalid body)."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        endpoint: str = "",
    ) -> None:
        self.status_code = status_code
        self.endpoint = endpoint
        super().__init__(message)


class NotificationParseError(RidePlanError):
    """Inbound push-notification payload could not be interpreted.

    Never propagated out of :meth:`OrderHandoffCoordinator.from_notification`;
    it is logged and the order degrades to a sentinel driver value.
    """
