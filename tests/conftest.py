from __future__ import annotations

import asyncio
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

import pytest

from pyrideplan.exceptions import DispatchConnectionError, RetrievalError


class FakeSocket:
    """In-memory dispatch socket; the test plays the server."""

    def __init__(self) -> None:
        self.sent: list[str] = []
        self.closed = False
        self.fail_send = False
        self._inbox: asyncio.Queue[str | None] = asyncio.Queue()

    async def send_str(self, data: str) -> None:
        if self.fail_send:
            raise DispatchConnectionError("send failed")
        self.sent.append(data)

    async def receive_text(self) -> str | None:
        return await self._inbox.get()

    async def close(self) -> None:
        self.closed = True
        self._inbox.put_nowait(None)

    def feed(self, text: str) -> None:
        self._inbox.put_nowait(text)

    def drop(self) -> None:
        """Simulate the server closing the socket."""
        self._inbox.put_nowait(None)


class FakeOpener:
    """Socket opener handing out :class:`FakeSocket` instances."""

    def __init__(self) -> None:
        self.sockets: list[FakeSocket] = []
        self.attempts = 0
        self.fail_next = 0
        self.gate: asyncio.Event | None = None

    @property
    def last(self) -> FakeSocket:
        return self.sockets[-1]

    async def __call__(self) -> FakeSocket:
        self.attempts += 1
        if self.gate is not None:
            await self.gate.wait()
        if self.fail_next > 0:
            self.fail_next -= 1
            raise DispatchConnectionError("connection refused")
        socket = FakeSocket()
        self.sockets.append(socket)
        return socket


@dataclass
class FakeTransport:
    """Transport double answering by endpoint path."""

    responses: dict[str, Any] = field(default_factory=dict)
    failures: dict[str, RetrievalError] = field(default_factory=dict)
    calls: list[tuple[str, dict[str, str]]] = field(default_factory=list)

    async def get_json(self, endpoint: str, params: Mapping[str, str]) -> Any:
        self.calls.append((endpoint, dict(params)))
        if endpoint in self.failures:
            raise self.failures[endpoint]
        response = self.responses.get(endpoint)
        if callable(response):
            return response(dict(params))
        return response

    def calls_to(self, endpoint: str) -> list[dict[str, str]]:
        return [params for called, params in self.calls if called == endpoint]


async def settle(rounds: int = 10) -> None:
    """Let scheduled tasks run."""
    for _ in range(rounds):
        await asyncio.sleep(0)


@pytest.fixture
def opener() -> FakeOpener:
    return FakeOpener()
