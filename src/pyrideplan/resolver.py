"""Driver candidate resolver.

Turns the driver ids of a ``nearbyDrivers`` broadcast into full profiles
with one batched lookup. The candidate list is replaced wholesale on every
successful resolution and kept as-is on failure (last known good).

Each resolution takes a sequence token. When lookups overlap, only the
result of the most recently started one is applied; older responses are
discarded when they arrive.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Sequence

from pyrideplan._signals import Signal, Subscription
from pyrideplan.exceptions import RetrievalError
from pyrideplan.geo import distance_km
from pyrideplan.models.driver import DriverCandidateRef, DriverProfile
from pyrideplan.models.geo import GeoPoint

_logger = logging.getLogger(__name__)

ProfileLookup = Callable[[Sequence[str]], Awaitable[list[DriverProfile]]]


class DriverCandidateResolver:
    def __init__(self, lookup: ProfileLookup, *, logger: logging.Logger | None = None) -> None:
        self._lookup = lookup
        self._logger = logger or _logger
        self._candidates: tuple[DriverProfile, ...] = ()
        self._changed: Signal[tuple[DriverProfile, ...]] = Signal("candidates", logger=self._logger)
        self._issued = 0
        self._closed = False

    @property
    def candidates(self) -> tuple[DriverProfile, ...]:
        return self._candidates

    def subscribe(self, callback: Callable[[tuple[DriverProfile, ...]], None]) -> Subscription:
        return self._changed.subscribe(callback)

    async def resolve(self, refs: Sequence[DriverCandidateRef]) -> tuple[DriverProfile, ...]:
        """Resolve *refs* and replace the candidate list.

        Returns the candidate list in effect after this call, which is the
        previous list when this response turned out to be stale.

        Raises
        ------
        RetrievalError
            If the profile lookup fails; the previous candidates are kept.
        """
        self._issued += 1
        token = self._issued

        # Duplicate ids within one broadcast are looked up once.
        ids = list(dict.fromkeys(ref.id for ref in refs))
        if not ids:
            self._apply(token, ())
            return self._candidates

        try:
            profiles = await self._lookup(ids)
        except RetrievalError:
            if token == self._issued and not self._closed:
                self._logger.warning("Driver lookup failed; keeping %d previous candidate(s)", len(self._candidates))
            raise

        self._apply(token, tuple(profiles))
        return self._candidates

    def _apply(self, token: int, profiles: tuple[DriverProfile, ...]) -> None:
        if self._closed:
            self._logger.debug("Discarding driver lookup result after close")
            return
        if token != self._issued:
            self._logger.debug("Discarding stale driver lookup token=%d latest=%d", token, self._issued)
            return
        self._candidates = profiles
        self._changed.emit(profiles)

    def get(self, driver_id: str) -> DriverProfile | None:
        for profile in self._candidates:
            if profile.id == driver_id:
                return profile
        return None

    def ranked(self, origin: GeoPoint | None = None, vehicle_type: str | None = None) -> list[DriverProfile]:
        """Candidates filtered by vehicle type and sorted by distance to *origin*.

        Drivers without a known location sort last, keeping backend order.
        """
        wanted = vehicle_type.strip().lower() if vehicle_type else None
        pool = [p for p in self._candidates if wanted is None or p.vehicle_type.strip().lower() == wanted]
        if origin is None:
            return pool

        def _key(profile: DriverProfile) -> tuple[int, float]:
            if profile.current_location is None:
                return (1, 0.0)
            return (0, distance_km(origin, profile.current_location))

        return sorted(pool, key=_key)

    def close(self) -> None:
        self._closed = True
        self._changed.clear()
