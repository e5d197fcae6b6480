"""High-level async client for ride planning."""

from __future__ import annotations

import asyncio
import functools
import logging
from collections.abc import Mapping
from datetime import datetime
from typing import Any

import aiohttp

from pyrideplan._api.directions import fetch_overview_polyline
from pyrideplan._api.drivers import fetch_driver_profiles
from pyrideplan._api.geocode import reverse_geocode
from pyrideplan._api.travel_times import fetch_travel_times
from pyrideplan._signals import Signal
from pyrideplan._transport import HttpTransport, Transport
from pyrideplan._websocket import AiohttpSocketOpener, SocketOpener
from pyrideplan.config import RidePlanConfig
from pyrideplan.connection import ConnectionState, DispatchConnection
from pyrideplan.estimator import RouteFareEstimator
from pyrideplan.exceptions import RetrievalError, RidePlanError
from pyrideplan.geo import distance_km
from pyrideplan.handoff import OrderHandoffCoordinator
from pyrideplan.location import LocationTracker
from pyrideplan.models.driver import DriverCandidateRef, DriverProfile
from pyrideplan.models.geo import GeoPoint
from pyrideplan.models.order import OrderPayload, UserSummary
from pyrideplan.models.route import RouteEstimate
from pyrideplan.protocol import RideRequestProtocol
from pyrideplan.resolver import DriverCandidateResolver

_logger = logging.getLogger(__name__)


class RidePlanClient:
    """Async client wiring the ride-planning components into one session.

    Usage::

        async with RidePlanClient(config) as client:
            client.candidates.subscribe(show_drivers)
            client.update_location(GeoPoint.of(23.8103, 90.4125))
            await client.select_destination(GeoPoint.of(23.8, 90.4))

    Observable state is exposed as signals: ``connection_state``,
    ``candidates``, ``estimates``, ``notices`` (transient user-visible
    messages) and ``orders``.
    """

    def __init__(
        self,
        config: RidePlanConfig,
        *,
        session: aiohttp.ClientSession | None = None,
        transport: Transport | None = None,
        socket_opener: SocketOpener | None = None,
    ) -> None:
        self._config = config
        self._external_session = session is not None
        self._http_session = session
        self._transport = transport
        self._socket_opener = socket_opener

        self.connection_state: Signal[ConnectionState] = Signal("connection_state", logger=_logger)
        self.candidates: Signal[tuple[DriverProfile, ...]] = Signal("candidates", logger=_logger)
        self.estimates: Signal[RouteEstimate] = Signal("estimates", logger=_logger)
        self.notices: Signal[str] = Signal("notices", logger=_logger)
        self.orders: Signal[OrderPayload] = Signal("orders", logger=_logger)

        self._location = LocationTracker()
        self._destination: GeoPoint | None = None
        self._selected: DriverProfile | None = None
        self._connection: DispatchConnection | None = None
        self._protocol: RideRequestProtocol | None = None
        self._resolver: DriverCandidateResolver | None = None
        self._estimator: RouteFareEstimator | None = None
        self._handoff: OrderHandoffCoordinator | None = None
        self._refresh_tasks: set[asyncio.Task[RouteEstimate | None]] = set()
        self._closed = False

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> RidePlanClient:
        await self.start()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    async def start(self) -> None:
        """Build the components and open the dispatch connection."""
        config = self._config
        if self._http_session is None and (self._transport is None or self._socket_opener is None):
            self._http_session = aiohttp.ClientSession()
        if self._transport is None:
            assert self._http_session is not None  # noqa: S101
            self._transport = HttpTransport(config, self._http_session)
        if self._socket_opener is None:
            assert self._http_session is not None  # noqa: S101
            self._socket_opener = AiohttpSocketOpener(
                self._http_session,
                config.dispatch_url,
                heartbeat=config.ws_heartbeat,
                timeout=config.request_timeout,
            )
        transport = self._transport
        self._closed = False

        self._connection = DispatchConnection(self._socket_opener, reconnect_delay=config.reconnect_delay)
        self._connection.subscribe_state(self.connection_state.emit)

        self._resolver = DriverCandidateResolver(functools.partial(fetch_driver_profiles, config, transport))
        self._resolver.subscribe(self._on_candidates_changed)

        self._estimator = RouteFareEstimator(
            functools.partial(fetch_overview_polyline, config, transport),
            functools.partial(fetch_travel_times, config, transport) if config.fetch_travel_times else None,
        )
        self._estimator.subscribe(self.estimates.emit)

        self._handoff = OrderHandoffCoordinator(
            functools.partial(reverse_geocode, config, transport) if config.resolve_location_names else None
        )
        self._protocol = RideRequestProtocol(self._connection, self._location, self._on_nearby_drivers)

        self._protocol.request_when_ready()
        await self._connection.connect()

    async def close(self) -> None:
        """Tear down; results that arrive afterwards are discarded."""
        self._closed = True
        if self._protocol is not None:
            self._protocol.close()
        if self._connection is not None:
            await self._connection.close()
        if self._resolver is not None:
            self._resolver.close()
        if self._estimator is not None:
            self._estimator.close()
        self._location.clear_subscribers()
        for signal in (self.connection_state, self.candidates, self.estimates, self.notices, self.orders):
            signal.clear()

        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def config(self) -> RidePlanConfig:
        return self._config

    @property
    def connection(self) -> DispatchConnection:
        return self._require(self._connection)

    @property
    def location(self) -> GeoPoint | None:
        return self._location.current

    @property
    def destination(self) -> GeoPoint | None:
        return self._destination

    @property
    def selected_driver(self) -> DriverProfile | None:
        return self._selected

    @property
    def current_candidates(self) -> tuple[DriverProfile, ...]:
        return self._resolver.candidates if self._resolver is not None else ()

    @property
    def latest_estimate(self) -> RouteEstimate | None:
        return self._estimator.latest if self._estimator is not None else None

    def ranked_candidates(self, vehicle_type: str | None = None) -> list[DriverProfile]:
        """Candidates nearest to the rider first, optionally of one vehicle type."""
        return self._require(self._resolver).ranked(self._location.current, vehicle_type)

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def update_location(self, point: GeoPoint | None) -> None:
        """Record the rider's location, request nearby drivers and re-estimate the trip."""
        previous = self._location.current
        self._location.update(point)
        if point is None or self._closed:
            return
        if self._protocol is not None:
            self._protocol.request_when_ready()
        if point != previous and self._destination is not None and self._estimator is not None:
            # Route and fares always follow the latest location/destination pair.
            self._spawn_refresh()

    async def select_destination(self, point: GeoPoint, *, now: datetime | None = None) -> RouteEstimate | None:
        self._destination = point
        return await self.refresh_estimate(now=now)

    async def refresh_estimate(self, *, now: datetime | None = None) -> RouteEstimate | None:
        """Estimate route and fares for the current trip.

        Returns ``None`` while the location or the destination is unknown.
        """
        origin = self._location.current
        destination = self._destination
        if origin is None or destination is None or self._closed:
            return None
        estimator = self._require(self._estimator)
        return await estimator.estimate(origin, destination, self.current_candidates, now=now)

    def select_driver(self, driver_id: str) -> DriverProfile | None:
        """Select a candidate for the order; unknown ids clear the selection."""
        self._selected = self._require(self._resolver).get(driver_id)
        if self._selected is None:
            _logger.debug("Driver %s is not among the current candidates", driver_id)
        return self._selected

    async def confirm_order(self, user: UserSummary | Mapping[str, Any] | None = None) -> OrderPayload:
        """Assemble the order for the selected driver and publish it.

        Raises
        ------
        ValueError
            If the location, the destination or the driver is missing.
        """
        origin = self._location.current
        destination = self._destination
        if origin is None or destination is None:
            raise ValueError("Location and destination are required to confirm an order")
        if self._selected is None:
            raise ValueError("Select a driver before confirming an order")
        handoff = self._require(self._handoff)

        estimate = self.latest_estimate
        if estimate is not None and estimate.origin == origin and estimate.destination == destination:
            distance = estimate.distance_km
        else:
            distance = distance_km(origin, destination)

        origin_name, destination_name = await handoff.resolve_location_names(origin, destination)
        order = handoff.confirm(
            user,
            origin,
            destination,
            distance,
            self._selected,
            current_location_name=origin_name,
            destination_location_name=destination_name,
        )
        if not self._closed:
            self.orders.emit(order)
        return order

    def handle_notification(self, payload: Any) -> OrderPayload:
        """Turn an inbound push-notification payload into an order and publish it."""
        order = self._require(self._handoff).from_notification(payload)
        if not self._closed:
            self.orders.emit(order)
        return order

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _require(self, component: Any) -> Any:
        if component is None:
            raise RidePlanError("Client not started. Use 'async with RidePlanClient(...) as client:'")
        return component

    async def _on_nearby_drivers(self, refs: list[DriverCandidateRef]) -> None:
        resolver = self._require(self._resolver)
        try:
            await resolver.resolve(refs)
        except RetrievalError as exc:
            if not self._closed:
                self.notices.emit(f"Could not load nearby drivers: {exc}")

    def _on_candidates_changed(self, profiles: tuple[DriverProfile, ...]) -> None:
        self.candidates.emit(profiles)
        if self._selected is not None and self._resolver is not None:
            self._selected = self._resolver.get(self._selected.id)
        if self._destination is not None and self._location.current is not None:
            # Fares depend on the candidate rates.
            self._spawn_refresh()

    def _spawn_refresh(self) -> None:
        task = asyncio.create_task(self.refresh_estimate())
        self._refresh_tasks.add(task)
        task.add_done_callback(self._on_refresh_done)

    def _on_refresh_done(self, task: asyncio.Task[RouteEstimate | None]) -> None:
        self._refresh_tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            _logger.warning("Estimate refresh failed", exc_info=exc)
