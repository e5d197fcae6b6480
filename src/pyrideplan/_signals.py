"""Observer plumbing for UI-facing state.

Each observable category (connection state, candidates, estimates, ...) is a
:class:`Signal`. Subscribing returns a :class:`Subscription` whose
``unsubscribe()`` is idempotent, so owners can tear down unconditionally.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Generic, TypeVar

T = TypeVar("T")

_logger = logging.getLogger(__name__)


class Subscription:
    """Handle returned by :meth:`Signal.subscribe`."""

    def __init__(self, cancel: Callable[[], None]) -> None:
        self._cancel: Callable[[], None] | None = cancel

    @property
    def active(self) -> bool:
        return self._cancel is not None

    def unsubscribe(self) -> None:
        cancel = self._cancel
        self._cancel = None
        if cancel is not None:
            cancel()


class Signal(Generic[T]):
    """Synchronous fan-out of values to subscribed callbacks.

    Callback failures are logged and never interrupt delivery to the
    remaining subscribers.
    """

    def __init__(self, name: str, *, logger: logging.Logger | None = None) -> None:
        self.name = name
        self._logger = logger or _logger
        self._callbacks: list[Callable[[T], None]] = []

    def __len__(self) -> int:
        return len(self._callbacks)

    def subscribe(self, callback: Callable[[T], None]) -> Subscription:
        self._callbacks.append(callback)

        def _cancel() -> None:
            try:
                self._callbacks.remove(callback)
            except ValueError:
                pass

        return Subscription(_cancel)

    def emit(self, value: T) -> None:
        for callback in list(self._callbacks):
            try:
                callback(value)
            except Exception:
                self._logger.warning("%s subscriber failed", self.name, exc_info=True)

    def clear(self) -> None:
        self._callbacks.clear()
