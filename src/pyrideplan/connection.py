"""Dispatch connection manager.

Owns the single dispatch socket of a client session:

- opening it (``disconnected -> connecting -> connected``),
- reading inbound frames and handing them to the one registered handler,
- detecting loss and reconnecting after a fixed delay, indefinitely,
- explicit teardown that never reconnects.

Other components only observe the state or ask for sends; nothing else
touches the socket.
"""

from __future__ import annotations

import asyncio
import contextlib
import inspect
import json
import logging
from collections.abc import Awaitable, Callable, Mapping
from enum import StrEnum
from typing import Any

from pydantic import BaseModel

from pyrideplan._constants import RECONNECT_DELAY_SECONDS
from pyrideplan._redact import redact_for_log
from pyrideplan._signals import Signal, Subscription
from pyrideplan._websocket import DispatchSocket, SocketOpener
from pyrideplan.exceptions import DispatchConnectionError, NotConnectedError

_logger = logging.getLogger(__name__)

MessageHandler = Callable[[str], Awaitable[None] | None]


class ConnectionState(StrEnum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


def _serialize(message: Mapping[str, Any] | BaseModel) -> str:
    if isinstance(message, BaseModel):
        to_wire = getattr(message, "to_wire", None)
        payload = to_wire() if callable(to_wire) else message.model_dump(mode="json", by_alias=True)
    else:
        payload = dict(message)
    return json.dumps(payload, separators=(",", ":"))


class DispatchConnection:
    """Self-healing dispatch connection.

    Usage::

        conn = DispatchConnection(AiohttpSocketOpener(http, url))
        conn.subscribe_state(on_state)
        conn.set_message_handler(on_frame)
        await conn.connect()
        ...
        await conn.close()
    """

    def __init__(
        self,
        opener: SocketOpener,
        *,
        reconnect_delay: float = RECONNECT_DELAY_SECONDS,
        logger: logging.Logger | None = None,
    ) -> None:
        self._opener = opener
        self._reconnect_delay = reconnect_delay
        self._logger = logger or _logger
        self._state = ConnectionState.DISCONNECTED
        self._state_signal: Signal[ConnectionState] = Signal("connection_state", logger=self._logger)
        self._socket: DispatchSocket | None = None
        self._reader_task: asyncio.Task[None] | None = None
        self._reconnect_task: asyncio.Task[None] | None = None
        self._handler: MessageHandler | None = None
        self._handler_tasks: set[asyncio.Task[None]] = set()
        # Bumped by close(); opens that finish under an older generation are discarded.
        self._generation = 0
        self._closed = False
        self._open_count = 0

    # ------------------------------------------------------------------
    # Observation
    # ------------------------------------------------------------------

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def is_connected(self) -> bool:
        return self._state == ConnectionState.CONNECTED

    @property
    def reconnect_pending(self) -> bool:
        task = self._reconnect_task
        return task is not None and not task.done()

    @property
    def open_count(self) -> int:
        """Number of successfully opened sockets over the manager's lifetime."""
        return self._open_count

    def subscribe_state(self, callback: Callable[[ConnectionState], None]) -> Subscription:
        return self._state_signal.subscribe(callback)

    def set_message_handler(self, handler: MessageHandler) -> Subscription:
        """Install the single inbound frame handler, replacing any previous one."""
        self._handler = handler

        def _cancel() -> None:
            if self._handler is handler:
                self._handler = None

        return Subscription(_cancel)

    def _set_state(self, state: ConnectionState) -> None:
        if state == self._state:
            return
        self._logger.debug("Dispatch connection %s -> %s", self._state, state)
        self._state = state
        self._state_signal.emit(state)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def connect(self) -> None:
        """Open the socket unless already connecting or connected."""
        if self._state != ConnectionState.DISCONNECTED:
            return
        self._closed = False
        self._cancel_reconnect()
        generation = self._generation
        self._set_state(ConnectionState.CONNECTING)

        try:
            socket = await self._opener()
        except asyncio.CancelledError:
            if generation == self._generation:
                self._set_state(ConnectionState.DISCONNECTED)
            raise
        except (DispatchConnectionError, OSError) as exc:
            if generation != self._generation:
                return
            self._logger.warning("Dispatch connect failed: %s", exc)
            self._on_socket_lost(None)
            return

        if generation != self._generation or self._closed:
            self._logger.debug("Discarding dispatch socket opened after close()")
            await socket.close()
            return

        self._socket = socket
        self._open_count += 1
        self._reader_task = asyncio.create_task(self._read_loop(socket))
        self._set_state(ConnectionState.CONNECTED)

    async def send(self, message: Mapping[str, Any] | BaseModel) -> None:
        """Serialize and transmit *message*.

        Raises
        ------
        NotConnectedError
            If the connection is not in the ``connected`` state or the
            socket failed during the send.
        """
        socket = self._socket
        if self._state != ConnectionState.CONNECTED or socket is None:
            raise NotConnectedError(f"Cannot send while {self._state}")
        text = _serialize(message)
        try:
            await socket.send_str(text)
        except (DispatchConnectionError, OSError) as exc:
            self._logger.warning("Dispatch send failed: %s", exc)
            self._on_socket_lost(socket)
            raise NotConnectedError("Dispatch socket failed during send") from exc
        self._logger.debug("Dispatch sent %s", redact_for_log(json.loads(text)))

    async def close(self) -> None:
        """Tear down without reconnecting and drop all observers."""
        self._closed = True
        self._generation += 1
        self._cancel_reconnect()

        reader = self._reader_task
        self._reader_task = None
        if reader is not None and not reader.done() and reader is not asyncio.current_task():
            reader.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await reader

        socket = self._socket
        self._socket = None
        if socket is not None:
            try:
                await socket.close()
            except (DispatchConnectionError, OSError):
                self._logger.debug("Dispatch socket close failed", exc_info=True)

        self._set_state(ConnectionState.DISCONNECTED)
        self._handler = None
        self._state_signal.clear()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _read_loop(self, socket: DispatchSocket) -> None:
        try:
            while True:
                text = await socket.receive_text()
                if text is None:
                    break
                self._dispatch(text)
        except asyncio.CancelledError:
            raise
        except (DispatchConnectionError, OSError) as exc:
            self._logger.warning("Dispatch socket failed: %s", exc)
        self._on_socket_lost(socket)

    def _dispatch(self, text: str) -> None:
        handler = self._handler
        if handler is None:
            self._logger.debug("Dropping dispatch frame, no handler installed")
            return
        try:
            result = handler(text)
        except Exception:
            self._logger.warning("Dispatch message handler failed", exc_info=True)
            return
        if inspect.isawaitable(result):
            task = asyncio.ensure_future(result)
            self._handler_tasks.add(task)
            task.add_done_callback(self._on_handler_done)

    def _on_handler_done(self, task: asyncio.Future[None]) -> None:
        self._handler_tasks.discard(task)  # type: ignore[arg-type]
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            self._logger.warning("Dispatch message handler failed", exc_info=exc)

    def _on_socket_lost(self, socket: DispatchSocket | None) -> None:
        """Mark the connection lost and schedule exactly one reconnect."""
        if socket is not None and socket is not self._socket:
            # A replaced socket reporting late; the current one is unaffected.
            return
        self._socket = None
        if socket is not None and self._reader_task is not None and self._reader_task is not asyncio.current_task():
            self._reader_task.cancel()
        self._reader_task = None
        if socket is not None:
            asyncio.ensure_future(self._close_quietly(socket))
        self._set_state(ConnectionState.DISCONNECTED)
        if self._closed:
            return
        if self.reconnect_pending:
            return
        self._logger.info("Dispatch connection lost; reconnecting in %.1fs", self._reconnect_delay)
        self._reconnect_task = asyncio.create_task(self._reconnect_after(self._reconnect_delay))

    async def _reconnect_after(self, delay: float) -> None:
        await asyncio.sleep(delay)
        # Clear the handle first so connect() does not cancel this task.
        self._reconnect_task = None
        await self.connect()

    def _cancel_reconnect(self) -> None:
        task = self._reconnect_task
        self._reconnect_task = None
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()

    async def _close_quietly(self, socket: DispatchSocket) -> None:
        try:
            await socket.close()
        except (DispatchConnectionError, OSError):
            self._logger.debug("Dispatch socket close failed", exc_info=True)
