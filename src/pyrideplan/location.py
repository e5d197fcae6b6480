"""Current rider location, passed explicitly to the components that need it."""

from __future__ import annotations

import logging
from collections.abc import Callable

from pyrideplan._signals import Signal, Subscription
from pyrideplan.models.geo import GeoPoint

_logger = logging.getLogger(__name__)


class LocationTracker:
    """Holds the latest known rider location and notifies on change."""

    def __init__(self, initial: GeoPoint | None = None, *, logger: logging.Logger | None = None) -> None:
        self._logger = logger or _logger
        self._current = initial
        self._changed: Signal[GeoPoint | None] = Signal("location", logger=self._logger)

    @property
    def current(self) -> GeoPoint | None:
        return self._current

    def update(self, point: GeoPoint | None) -> None:
        if point == self._current:
            return
        self._current = point
        self._changed.emit(point)

    def subscribe(self, callback: Callable[[GeoPoint | None], None]) -> Subscription:
        return self._changed.subscribe(callback)

    def clear_subscribers(self) -> None:
        self._changed.clear()
