"""WebSocket transport implementation."""

from __future__ import annotations

import logging
from typing import Awaitable, Optional

from websockets.asyncio.client import ClientConnection, connect
from websockets.exceptions import ConnectionClosed

from netmon.config import MonitorSettings
from netmon.network.errors import TransportClosed, TransportError
from netmon.network.transport.base import BaseTransport, Frame

LOGGER = logging.getLogger(__name__)


class WebSocketTransport(BaseTransport):
    """WebSocket-based monitor transport.

    The library keepalive is disabled; liveness is driven by the connection's
    own heartbeat through :meth:`ping`.
    """

    def __init__(self, endpoint: str, settings: MonitorSettings) -> None:
        self._endpoint = endpoint
        self._settings = settings
        self._ws: Optional[ClientConnection] = None

    async def connect(self) -> None:
        LOGGER.info("Connecting to network monitor at %s", self._endpoint)
        self._ws = await connect(
            self._endpoint,
            ping_interval=None,
            open_timeout=self._settings.open_timeout_seconds,
            max_size=None,
        )

    async def send(self, data: Frame) -> None:
        ws = self._require()
        LOGGER.debug("WebSocket send: %r", data)
        try:
            await ws.send(data)
        except ConnectionClosed as exc:
            raise self._closed(exc) from exc

    async def receive(self) -> Frame:
        ws = self._require()
        try:
            raw = await ws.recv()
        except ConnectionClosed as exc:
            raise self._closed(exc) from exc
        LOGGER.debug("WebSocket receive: %d bytes", len(raw))
        return raw

    async def ping(self) -> Awaitable[object]:
        ws = self._require()
        try:
            return await ws.ping()
        except ConnectionClosed as exc:
            raise self._closed(exc) from exc

    async def close(self) -> None:
        if self._ws:
            LOGGER.info("Closing network monitor WebSocket")
            ws, self._ws = self._ws, None
            await ws.close()

    def _require(self) -> ClientConnection:
        if not self._ws:
            raise TransportError("WebSocket transport not connected")
        return self._ws

    @staticmethod
    def _closed(exc: ConnectionClosed) -> TransportClosed:
        frame = exc.rcvd or exc.sent
        if frame is None:
            return TransportClosed(1006, "")
        return TransportClosed(frame.code, frame.reason)
