"""Ride request protocol over the dispatch connection.

Outbound: ``{"type": "requestRide", "role": "user", latitude, longitude}``.
Inbound: ``{"type": "nearbyDrivers", "drivers": [{"id": ...}, ...]}``.

A ride request needs two independent readiness signals, a connected socket
and a known location. :meth:`RideRequestProtocol.request_when_ready`
re-evaluates both every time either one changes, so the request goes out
whichever arrives last.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable

from pyrideplan._constants import MSG_NEARBY_DRIVERS
from pyrideplan._signals import Subscription
from pyrideplan.connection import ConnectionState, DispatchConnection
from pyrideplan.exceptions import NotConnectedError, ParseError
from pyrideplan.location import LocationTracker
from pyrideplan.models.driver import DriverCandidateRef
from pyrideplan.models.geo import GeoPoint
from pyrideplan.models.messages import RideRequestMessage, parse_dispatch_message, parse_nearby_drivers

_logger = logging.getLogger(__name__)

CandidateCallback = Callable[[list[DriverCandidateRef]], Awaitable[object] | object]


class RideRequestProtocol:
    """Send ride requests and forward candidate broadcasts.

    Parameters
    ----------
    connection : DispatchConnection
        The session's dispatch connection (requests sends, observes state).
    location : LocationTracker
        Source of the rider's current location.
    on_candidates : callable
        Receives every ``nearbyDrivers`` list; may be a coroutine function.
    """

    def __init__(
        self,
        connection: DispatchConnection,
        location: LocationTracker,
        on_candidates: CandidateCallback,
        *,
        logger: logging.Logger | None = None,
    ) -> None:
        self._connection = connection
        self._location = location
        self._on_candidates = on_candidates
        self._logger = logger or _logger
        self._pending = False
        # Set once a ride was requested; every later (re)connect requests again.
        self._requesting = False
        self._handler_subscription: Subscription | None = None
        self._evaluate_task: asyncio.Task[None] | None = None
        self._subscriptions = [
            connection.subscribe_state(self._on_state_changed),
            location.subscribe(self._on_location_changed),
        ]
        self._closed = False

    @property
    def pending(self) -> bool:
        """Whether a requested ride is still waiting for readiness."""
        return self._pending

    # ------------------------------------------------------------------
    # Outbound
    # ------------------------------------------------------------------

    async def request_nearby_drivers(self, location: GeoPoint | None = None) -> bool:
        """Send one ride request if connected and located.

        Returns ``False`` (and sends nothing) otherwise; callers rely on
        reconnection and :meth:`request_when_ready` rather than retrying.
        """
        point = location if location is not None else self._location.current
        if self._closed or point is None or not self._connection.is_connected:
            self._logger.debug(
                "Ride request skipped connected=%s located=%s",
                self._connection.is_connected,
                point is not None,
            )
            return False

        self._install_handler()
        try:
            await self._connection.send(RideRequestMessage.at(point))
        except NotConnectedError:
            self._logger.debug("Ride request dropped, connection went away")
            return False
        self._logger.debug("Ride request sent")
        return True

    def request_when_ready(self) -> None:
        """Request nearby drivers as soon as both readiness signals hold.

        The request is repeated after every reconnect until
        :meth:`cancel_pending` or :meth:`close`.
        """
        if self._closed:
            return
        self._pending = True
        self._requesting = True
        self._schedule_evaluate()

    def cancel_pending(self) -> None:
        self._pending = False
        self._requesting = False

    def _on_state_changed(self, state: ConnectionState) -> None:
        if state == ConnectionState.CONNECTED:
            if self._requesting:
                self._pending = True
            self._schedule_evaluate()

    def _on_location_changed(self, _point: GeoPoint | None) -> None:
        self._schedule_evaluate()

    def _schedule_evaluate(self) -> None:
        if not self._pending or self._closed:
            return
        task = self._evaluate_task
        if task is not None and not task.done():
            return
        self._evaluate_task = asyncio.create_task(self._evaluate())

    async def _evaluate(self) -> None:
        # Loops when request_when_ready() was called again during the send.
        while self._pending and not self._closed:
            self._pending = False
            if not await self.request_nearby_drivers():
                # Still waiting; the next readiness signal re-evaluates.
                self._pending = not self._closed
                return

    # ------------------------------------------------------------------
    # Inbound
    # ------------------------------------------------------------------

    def _install_handler(self) -> None:
        self._handler_subscription = self._connection.set_message_handler(self._on_message)

    async def _on_message(self, text: str) -> None:
        try:
            message = parse_dispatch_message(text)
            if message.type != MSG_NEARBY_DRIVERS:
                self._logger.debug("Ignoring dispatch message type=%s", message.type)
                return
            candidates = parse_nearby_drivers(message)
        except ParseError as exc:
            self._logger.warning("Dropping malformed dispatch message: %s", exc)
            return

        if self._closed:
            return
        refs = list(candidates.drivers)
        self._logger.debug("Received %d nearby driver(s)", len(refs))
        result = self._on_candidates(refs)
        if inspect.isawaitable(result):
            await result

    # ------------------------------------------------------------------
    # Teardown
    # ------------------------------------------------------------------

    def close(self) -> None:
        self._closed = True
        self._pending = False
        self._requesting = False
        for subscription in self._subscriptions:
            subscription.unsubscribe()
        self._subscriptions.clear()
        if self._handler_subscription is not None:
            self._handler_subscription.unsubscribe()
            self._handler_subscription = None
        task = self._evaluate_task
        if task is not None and not task.done():
            task.cancel()
