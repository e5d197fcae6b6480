"""Route and fare estimation for a selected destination."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from datetime import datetime

from pyrideplan import polyline
from pyrideplan._signals import Signal, Subscription
from pyrideplan.exceptions import DecodeError, RetrievalError
from pyrideplan.geo import distance_km, estimated_arrival
from pyrideplan.models.driver import DriverProfile
from pyrideplan.models.geo import GeoPoint
from pyrideplan.models.route import FareEstimate, RouteEstimate, RouteGeometry, TravelTimes

_logger = logging.getLogger(__name__)

DirectionsLookup = Callable[[GeoPoint, GeoPoint], Awaitable[str | None]]
TravelTimesLookup = Callable[[GeoPoint, GeoPoint], Awaitable[TravelTimes]]


class RouteFareEstimator:
    """Build :class:`RouteEstimate` values and publish the latest one.

    Parameters
    ----------
    directions : callable
        ``(origin, destination) -> encoded polyline or None``.
    travel_times : callable, optional
        ``(origin, destination) -> TravelTimes``. Without it no travel
        times and no ETA are produced.

    Notes
    -----
    The distance and the fares are always the straight-line estimate
    between origin and destination; the route geometry is only drawn.
    """

    def __init__(
        self,
        directions: DirectionsLookup,
        travel_times: TravelTimesLookup | None = None,
        *,
        logger: logging.Logger | None = None,
    ) -> None:
        self._directions = directions
        self._travel_times = travel_times
        self._logger = logger or _logger
        self._changed: Signal[RouteEstimate] = Signal("estimates", logger=self._logger)
        self._latest: RouteEstimate | None = None
        self._issued = 0
        self._closed = False

    @property
    def latest(self) -> RouteEstimate | None:
        """The most recently published estimate."""
        return self._latest

    def subscribe(self, callback: Callable[[RouteEstimate], None]) -> Subscription:
        return self._changed.subscribe(callback)

    async def estimate(
        self,
        origin: GeoPoint,
        destination: GeoPoint,
        drivers: Sequence[DriverProfile],
        *,
        now: datetime | None = None,
    ) -> RouteEstimate:
        """Estimate route, distance, fares and travel times.

        The result is always returned. It is published to subscribers only
        when no newer estimate was started meanwhile and the estimator is
        still open.
        """
        self._issued += 1
        token = self._issued

        lookup = self._travel_times
        if lookup is not None:
            geometry, times = await asyncio.gather(
                self._fetch_geometry(origin, destination),
                self._fetch_travel_times(lookup, origin, destination),
            )
        else:
            geometry, times = await self._fetch_geometry(origin, destination), TravelTimes()

        distance = distance_km(origin, destination)
        fares = tuple(FareEstimate.for_rate(driver.id, distance, driver.rate) for driver in drivers)
        eta = estimated_arrival(now or datetime.now(), times.driving) if times.driving else None

        result = RouteEstimate(
            origin=origin,
            destination=destination,
            geometry=geometry,
            distance_km=distance,
            fares=fares,
            travel_times=times,
            eta=eta,
        )
        self._publish(token, result)
        return result

    async def _fetch_geometry(self, origin: GeoPoint, destination: GeoPoint) -> RouteGeometry:
        try:
            encoded = await self._directions(origin, destination)
            if not encoded:
                return ()
            return tuple(polyline.decode(encoded))
        except RetrievalError as exc:
            self._logger.warning("Directions lookup failed, estimating without a route: %s", exc)
        except DecodeError as exc:
            self._logger.warning("Directions polyline is malformed, estimating without a route: %s", exc)
        return ()

    async def _fetch_travel_times(
        self, lookup: TravelTimesLookup, origin: GeoPoint, destination: GeoPoint
    ) -> TravelTimes:
        try:
            return await lookup(origin, destination)
        except RetrievalError as exc:
            self._logger.warning("Travel time lookup failed: %s", exc)
            return TravelTimes()

    def _publish(self, token: int, result: RouteEstimate) -> None:
        if self._closed:
            self._logger.debug("Discarding route estimate after close")
            return
        if token != self._issued:
            self._logger.debug("Discarding stale route estimate token=%d latest=%d", token, self._issued)
            return
        self._latest = result
        self._changed.emit(result)

    def close(self) -> None:
        self._closed = True
        self._changed.clear()
