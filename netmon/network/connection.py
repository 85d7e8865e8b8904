"""Connection state machine for the network monitor link.

One :class:`MonitorConnection` represents the logical link to an instance's
network monitor. It survives any number of physical reconnects:

- every open attempt and every teardown bumps ``generation``; background work
  (receive loop, heartbeat, async handler completions) captures the generation
  it was started for and goes inert once it no longer matches;
- ``pending`` belongs to the current transport and is failed exactly once when
  that transport goes away;
- concurrent ``connect``/``reconnect`` callers share a single reconnect task.
"""

from __future__ import annotations

import asyncio
import contextlib
import enum
import inspect
import logging
from itertools import count
from typing import Any, Awaitable, Callable, Coroutine, Dict, Optional, Union

from netmon.config import MonitorSettings
from netmon.instance import MonitorInstance
from netmon.network.errors import (
    ConnectionCancelledError,
    DisconnectedError,
    EndpointResolutionError,
    HeartbeatTimeoutError,
    MonitorError,
    ReconnectExhaustedError,
    TransportClosed,
    TransportError,
)
from netmon.network.transport.base import BaseTransport, Frame
from netmon.network.transport.websocket import WebSocketTransport
from netmon.protocol import FrameDecodeError, decode_frame, encode_text
from netmon.protocol.frames import Message

LOGGER = logging.getLogger(__name__)

MessageHandler = Callable[[Any], Union[Optional[bool], Awaitable[Optional[bool]]]]
PendingCallback = Callable[[Exception], Union[None, Awaitable[None]]]
TransportFactory = Callable[[str, MonitorSettings], BaseTransport]


class ConnectionState(enum.Enum):
    IDLE = "IDLE"
    CONNECTING = "CONNECTING"
    OPEN = "OPEN"
    CLOSED = "CLOSED"


class MonitorConnection:
    """Maintains the monitor link: reconnects, heartbeat, dispatch and pending requests."""

    def __init__(
        self,
        instance: MonitorInstance,
        settings: MonitorSettings,
        transport_factory: Optional[TransportFactory] = None,
    ) -> None:
        self._instance = instance
        self._settings = settings
        self._transport_factory: TransportFactory = transport_factory or WebSocketTransport
        self._transport: Optional[BaseTransport] = None
        self._generation = 0
        self._desired = False
        self._connected = False
        self._started = False
        self._stopped = asyncio.Event()
        self._pending: Dict[int, PendingCallback] = {}
        self._handler: Optional[MessageHandler] = None
        self._reconnect_task: Optional[asyncio.Task[None]] = None
        self._recv_task: Optional[asyncio.Task[None]] = None
        self._heartbeat_task: Optional[asyncio.Task[None]] = None
        self._background: set[asyncio.Task[Any]] = set()
        self._ids = count(1)
        self.last_ping_at: Optional[float] = None
        self.last_pong_at: Optional[float] = None

    @property
    def connected(self) -> bool:
        return self._connected

    @property
    def desired(self) -> bool:
        return self._desired

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def state(self) -> ConnectionState:
        if self._connected:
            return ConnectionState.OPEN
        if self._reconnect_task is not None and not self._reconnect_task.done():
            return ConnectionState.CONNECTING
        if self._started:
            return ConnectionState.CLOSED
        return ConnectionState.IDLE

    @property
    def handler(self) -> Optional[MessageHandler]:
        return self._handler

    def pending_ids(self) -> tuple[int, ...]:
        return tuple(self._pending)

    def set_handler(self, handler: Optional[MessageHandler]) -> None:
        """Replace the message subscriber; the last registration wins."""

        self._handler = handler

    async def connect(self) -> None:
        """Ensure the link is connected.

        Returns once a transport is open, or once :meth:`disconnect` cancels the
        attempt. Open failures are retried indefinitely unless a cap is configured.
        """

        self._desired = True
        self._started = True
        self._stopped.clear()
        if not self._connected:
            await self.reconnect()

    async def reconnect(self) -> None:
        """Drop the current transport (if any) and connect again.

        Callers arriving while an attempt is in flight share its outcome.
        """

        if self._connected:
            await self._force_close(DisconnectedError("reconnecting"))
        task = self._reconnect_task
        if task is None or task.done():
            task = asyncio.create_task(self._reconnect_loop(), name="netmon-reconnect")
            self._reconnect_task = task
        try:
            await asyncio.shield(task)
        except asyncio.CancelledError:
            # only disconnect() cancels the shared task
            if task.cancelled():
                return
            raise

    async def disconnect(self) -> None:
        """Tear the link down and stop reconnecting. Safe to call repeatedly."""

        self._desired = False
        self._stopped.set()
        self._handler = None
        task, self._reconnect_task = self._reconnect_task, None
        await self._force_close(DisconnectedError("disconnected"))
        await self._cancel_task(task)

    async def send(self, data: Union[Frame, Message]) -> None:
        """Send a frame on the current transport; dicts and models go out as JSON text."""

        transport = self._transport
        if not self._connected or transport is None:
            raise DisconnectedError("netmon is not connected")
        if not isinstance(data, (str, bytes)):
            data = encode_text(data)
        await transport.send(data)

    async def request(self, message: Dict[str, Any], on_failure: PendingCallback) -> int:
        """Send ``message`` stamped with a fresh correlation id and track it as pending.

        ``on_failure`` is invoked once with the error if the transport goes away
        before the message handler reports the id as resolved.
        """

        if not self._connected:
            raise DisconnectedError("netmon is not connected")
        message_id = next(self._ids)
        self._pending[message_id] = on_failure
        try:
            await self.send({**message, "id": message_id})
        except Exception:
            self._pending.pop(message_id, None)
            raise
        return message_id

    async def _reconnect_loop(self) -> None:
        attempt = 0
        delay = float(self._settings.reconnect_delay_seconds)
        try:
            while self._desired:
                attempt += 1
                try:
                    await self._open(attempt)
                    return
                except asyncio.CancelledError:
                    raise
                except Exception as exc:  # noqa: BLE001
                    if not self._desired:
                        LOGGER.debug("Netmon connect abandoned: %s", exc)
                        return
                    max_attempts = self._settings.reconnect_max_attempts
                    if max_attempts and attempt >= max_attempts:
                        raise ReconnectExhaustedError(
                            f"Giving up on netmon after {attempt} attempt(s)"
                        ) from exc
                    LOGGER.warning(
                        "Netmon connect failed (attempt %s): %s: %s; retrying in %.2fs",
                        attempt,
                        type(exc).__name__,
                        exc,
                        delay,
                    )
                    await self._backoff(delay)
                    factor = float(self._settings.reconnect_backoff_factor)
                    if factor > 1.0:
                        delay = min(float(self._settings.reconnect_max_delay_seconds), delay * factor)
        finally:
            if self._reconnect_task is asyncio.current_task():
                self._reconnect_task = None

    async def _backoff(self, delay: float) -> None:
        # wakes early on disconnect()
        with contextlib.suppress(asyncio.TimeoutError):
            await asyncio.wait_for(self._stopped.wait(), timeout=delay)

    async def _open(self, attempt: int) -> None:
        self._generation += 1
        generation = self._generation
        try:
            endpoint = await self._instance.netmon_endpoint()
        except asyncio.CancelledError:
            raise
        except Exception as exc:  # noqa: BLE001
            raise EndpointResolutionError(f"Failed to resolve netmon endpoint: {exc}") from exc

        if not self._desired or generation != self._generation:
            raise ConnectionCancelledError("connection cancelled")

        transport = self._transport_factory(endpoint, self._settings)
        self._transport = transport
        try:
            await transport.connect()
        except asyncio.CancelledError:
            await self._detach(generation, transport)
            raise
        except Exception as exc:  # noqa: BLE001
            await self._detach(generation, transport)
            if isinstance(exc, MonitorError):
                raise
            raise TransportError(f"Failed to open netmon transport: {exc}") from exc

        if generation != self._generation:
            await self._close_quietly(transport)
            raise ConnectionCancelledError("connection cancelled")

        self._fail_pending(DisconnectedError("superseded by a new connection"))
        self._connected = True
        self.last_ping_at = None
        self.last_pong_at = None
        self._recv_task = asyncio.create_task(self._receive_loop(generation, transport), name="netmon-recv")
        self._heartbeat_task = asyncio.create_task(
            self._heartbeat_loop(generation, transport), name="netmon-heartbeat"
        )
        LOGGER.info("Netmon connected to %s after %s attempt(s)", endpoint, attempt)

    async def _detach(self, generation: int, transport: BaseTransport) -> None:
        if generation == self._generation and self._transport is transport:
            self._transport = None
        await self._close_quietly(transport)

    async def _force_close(self, reason: Exception) -> None:
        # All shared state is reset before the first await.
        self._generation += 1
        self._connected = False
        transport, self._transport = self._transport, None
        heartbeat, self._heartbeat_task = self._heartbeat_task, None
        recv, self._recv_task = self._recv_task, None
        self._fail_pending(reason)

        await self._cancel_task(heartbeat)
        await self._cancel_task(recv)
        if transport is not None:
            await self._close_quietly(transport)

    async def _handle_link_failure(self, generation: int, transport: BaseTransport, error: Exception) -> None:
        if generation != self._generation:
            await self._close_quietly(transport)
            return
        await self._force_close(error)
        if self._desired:
            LOGGER.info("Netmon link lost (%s), reconnecting", error)
            self._spawn(self.reconnect(), name="netmon-reconnect-after-failure")

    def _fail_pending(self, error: Exception) -> None:
        pending, self._pending = self._pending, {}
        for message_id, callback in pending.items():
            try:
                result = callback(error)
            except Exception:  # noqa: BLE001
                LOGGER.exception("Pending callback for message %s failed", message_id)
                continue
            if inspect.isawaitable(result):
                self._spawn(self._await_callback(message_id, result), name=f"netmon-pending-{message_id}")

    async def _await_callback(self, message_id: int, result: Awaitable[Any]) -> None:
        try:
            await result
        except asyncio.CancelledError:
            raise
        except Exception:  # noqa: BLE001
            LOGGER.exception("Pending callback for message %s failed", message_id)

    async def _receive_loop(self, generation: int, transport: BaseTransport) -> None:
        while generation == self._generation:
            try:
                data = await transport.receive()
            except asyncio.CancelledError:
                raise
            except TransportClosed as exc:
                await self._handle_link_failure(
                    generation, transport, DisconnectedError(f"disconnected {exc.reason}".rstrip())
                )
                return
            except Exception as exc:  # noqa: BLE001
                LOGGER.error("Error in netmon socket: %s", exc)
                error = exc if isinstance(exc, TransportError) else TransportError(str(exc))
                await self._handle_link_failure(generation, transport, error)
                return
            if generation != self._generation:
                return
            self._dispatch(generation, data)

    def _dispatch(self, generation: int, data: Frame) -> None:
        try:
            frame = decode_frame(data)
        except FrameDecodeError as exc:
            LOGGER.warning("Dropping netmon frame: %s", exc)
            return
        handler = self._handler
        if handler is None:
            return
        try:
            result = handler(frame.payload)
        except Exception:  # noqa: BLE001
            LOGGER.exception("Error in netmon message handler")
            return
        if inspect.isawaitable(result):
            self._spawn(self._finish_dispatch(generation, frame.id, result), name="netmon-dispatch")
        else:
            self._resolve(generation, frame.id, result)

    async def _finish_dispatch(self, generation: int, message_id: Optional[int], result: Awaitable[Any]) -> None:
        try:
            done = await result
        except asyncio.CancelledError:
            raise
        except Exception:  # noqa: BLE001
            LOGGER.exception("Error in netmon message handler")
            return
        self._resolve(generation, message_id, done)

    def _resolve(self, generation: int, message_id: Optional[int], done: Any) -> None:
        if done and generation == self._generation:
            self._pending.pop(message_id, None)  # type: ignore[arg-type]

    async def _heartbeat_loop(self, generation: int, transport: BaseTransport) -> None:
        loop = asyncio.get_running_loop()
        timeout = float(self._settings.heartbeat_timeout_seconds)
        while generation == self._generation:
            self.last_ping_at = loop.time()
            try:
                await asyncio.wait_for(self._ping(transport), timeout=timeout)
            except asyncio.TimeoutError:
                message = f"Netmon did not get a pong within {timeout:g} seconds, disconnecting."
                LOGGER.error(message)
                await self._handle_link_failure(generation, transport, HeartbeatTimeoutError(message))
                return
            except asyncio.CancelledError:
                raise
            except Exception as exc:  # noqa: BLE001
                error = exc if isinstance(exc, TransportError) else TransportError(str(exc))
                await self._handle_link_failure(generation, transport, error)
                return
            if generation != self._generation:
                return
            self.last_pong_at = loop.time()
            await asyncio.sleep(float(self._settings.heartbeat_interval_seconds))

    @staticmethod
    async def _ping(transport: BaseTransport) -> None:
        waiter = await transport.ping()
        await waiter

    def _spawn(self, coro: Coroutine[Any, Any, Any], *, name: str) -> None:
        task = asyncio.create_task(coro, name=name)
        self._background.add(task)
        task.add_done_callback(self._on_background_done)

    def _on_background_done(self, task: asyncio.Task[Any]) -> None:
        self._background.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            LOGGER.error("Netmon background task %s failed: %s", task.get_name(), exc, exc_info=exc)

    @staticmethod
    async def _cancel_task(task: Optional[asyncio.Task[Any]]) -> None:
        if task is None or task.done() or task is asyncio.current_task():
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    @staticmethod
    async def _close_quietly(transport: BaseTransport) -> None:
        try:
            await transport.close()
        except Exception:  # noqa: BLE001
            LOGGER.debug("Suppress netmon transport close error", exc_info=True)
