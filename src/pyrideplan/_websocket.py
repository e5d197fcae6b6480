"""aiohttp WebSocket adapter for the dispatch connection."""

from __future__ import annotations

import asyncio
import logging
from typing import Protocol

import aiohttp

from pyrideplan._constants import USER_AGENT
from pyrideplan.exceptions import DispatchConnectionError

_logger = logging.getLogger(__name__)


class DispatchSocket(Protocol):
    """One open dispatch socket.

    ``receive_text`` returns ``None`` once the peer has closed the socket
    and raises :class:`DispatchConnectionError` on transport errors.
    """

    async def send_str(self, data: str) -> None:
        ...

    async def receive_text(self) -> str | None:
        ...

    async def close(self) -> None:
        ...


class SocketOpener(Protocol):
    async def __call__(self) -> DispatchSocket:
        ...


class AiohttpDispatchSocket:
    """Wrap ``aiohttp.ClientWebSocketResponse`` as a :class:`DispatchSocket`."""

    def __init__(self, ws: aiohttp.ClientWebSocketResponse) -> None:
        self._ws = ws

    async def send_str(self, data: str) -> None:
        try:
            await self._ws.send_str(data)
        except (aiohttp.ClientError, ConnectionError) as exc:
            raise DispatchConnectionError(f"Dispatch send failed: {exc}") from exc

    async def receive_text(self) -> str | None:
        while True:
            msg = await self._ws.receive()
            if msg.type == aiohttp.WSMsgType.TEXT:
                return str(msg.data)
            if msg.type == aiohttp.WSMsgType.BINARY:
                return bytes(msg.data).decode("utf-8", errors="replace")
            if msg.type in (aiohttp.WSMsgType.CLOSE, aiohttp.WSMsgType.CLOSING, aiohttp.WSMsgType.CLOSED):
                _logger.debug("Dispatch socket closed code=%s", self._ws.close_code)
                return None
            if msg.type == aiohttp.WSMsgType.ERROR:
                raise DispatchConnectionError(f"Dispatch socket error: {self._ws.exception()}")
            # PING/PONG are answered by aiohttp (autoping); skip anything else.

    async def close(self) -> None:
        if not self._ws.closed:
            await self._ws.close()


class AiohttpSocketOpener:
    """Open dispatch sockets on a shared ``aiohttp.ClientSession``."""

    def __init__(
        self,
        http_session: aiohttp.ClientSession,
        url: str,
        *,
        heartbeat: float | None = 30.0,
        timeout: float = 10.0,
    ) -> None:
        self._http = http_session
        self._url = url
        self._heartbeat = heartbeat if heartbeat else None
        self._timeout = timeout

    async def __call__(self) -> DispatchSocket:
        _logger.debug("Opening dispatch socket url=%s", self._url)
        # ws_connect has no per-call handshake timeout; bound the whole open instead.
        try:
            ws = await asyncio.wait_for(
                self._http.ws_connect(
                    self._url,
                    heartbeat=self._heartbeat,
                    timeout=aiohttp.ClientWSTimeout(ws_close=self._timeout),
                    headers={"user-agent": USER_AGENT},
                ),
                self._timeout,
            )
        except asyncio.TimeoutError as exc:
            raise DispatchConnectionError(
                f"Opening dispatch socket {self._url} timed out after {self._timeout}s"
            ) from exc
        except (aiohttp.ClientError, OSError) as exc:
            raise DispatchConnectionError(f"Cannot open dispatch socket {self._url}: {exc}") from exc
        return AiohttpDispatchSocket(ws)
