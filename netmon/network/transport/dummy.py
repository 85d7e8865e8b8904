"""In-memory transport for offline testing."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Optional, Union

from netmon.network.errors import TransportClosed, TransportError
from .base import BaseTransport, Frame

LOGGER = logging.getLogger(__name__)


class DummyTransport(BaseTransport):
    """Scriptable transport: frames are fed in by the caller, sends are recorded."""

    def __init__(
        self,
        endpoint: str = "dummy://netmon",
        settings: Any = None,
        *,
        auto_pong: bool = True,
        connect_error: Optional[Exception] = None,
        open_gate: Optional[asyncio.Event] = None,
    ) -> None:
        self.endpoint = endpoint
        self._settings = settings
        self.auto_pong = auto_pong
        self.connect_error = connect_error
        self.open_gate = open_gate
        self.sent: list[Frame] = []
        self.pings: list[float] = []
        self.opened = False
        self.closed = False
        self._inbound: asyncio.Queue[Union[Frame, Exception]] = asyncio.Queue()
        self._pong_waiters: list[asyncio.Future[None]] = []

    async def connect(self) -> None:
        LOGGER.debug("Dummy transport connect(%s)", self.endpoint)
        if self.open_gate is not None:
            await self.open_gate.wait()
        if self.connect_error is not None:
            raise self.connect_error
        self.opened = True

    async def send(self, data: Frame) -> None:
        if self.closed:
            raise TransportClosed(1000, "closed")
        LOGGER.debug("Dummy transport send(): %r", data)
        self.sent.append(data)

    async def receive(self) -> Frame:
        item = await self._inbound.get()
        if isinstance(item, Exception):
            raise item
        return item

    async def ping(self) -> Awaitable[object]:
        loop = asyncio.get_running_loop()
        self.pings.append(loop.time())
        waiter: asyncio.Future[None] = loop.create_future()
        if self.auto_pong:
            waiter.set_result(None)
        else:
            self._pong_waiters.append(waiter)
        return waiter

    async def close(self) -> None:
        LOGGER.debug("Dummy transport close()")
        if not self.closed:
            self.closed = True
            self._inbound.put_nowait(TransportClosed(1000, "closed"))

    # Test helpers
    def feed(self, data: Frame) -> None:
        self._inbound.put_nowait(data)

    def fail(self, exc: Optional[Exception] = None) -> None:
        self._inbound.put_nowait(exc or TransportError("socket error"))

    def close_remote(self, code: int = 1001, reason: str = "going away") -> None:
        self._inbound.put_nowait(TransportClosed(code, reason))

    def pong(self) -> None:
        waiters, self._pong_waiters = self._pong_waiters, []
        for waiter in waiters:
            if not waiter.done():
                waiter.set_result(None)
