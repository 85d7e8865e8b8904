import asyncio
import logging

import pytest

from netmon.config import MonitorSettings
from netmon.network.connection import MonitorConnection
from netmon.network.errors import HeartbeatTimeoutError
from netmon.network.transport.dummy import DummyTransport

# asyncio timers may fire up to one clock tick early
TOLERANCE = 0.005


class _Instance:
    project_id = "proj-1"
    instance_id = "inst-1"

    async def netmon_endpoint(self) -> str:
        return "dummy://netmon"


async def _wait_for(predicate, *, timeout: float = 1.0, interval: float = 0.005) -> bool:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while loop.time() < deadline:
        if predicate():
            return True
        await asyncio.sleep(interval)
    return predicate()


@pytest.mark.asyncio
async def test_ping_sent_on_open_and_repeated_after_idle_interval():
    settings = MonitorSettings(heartbeat_interval_seconds=0.05, heartbeat_timeout_seconds=0.5)
    transport = DummyTransport(auto_pong=True)
    conn = MonitorConnection(_Instance(), settings, lambda endpoint, _: transport)
    try:
        await conn.connect()
        assert await _wait_for(lambda: len(transport.pings) >= 1)
        assert await _wait_for(lambda: len(transport.pings) >= 2)

        assert transport.pings[1] - transport.pings[0] >= 0.05 - TOLERANCE
        assert conn.last_pong_at is not None
        assert conn.connected
    finally:
        await conn.disconnect()


@pytest.mark.asyncio
async def test_next_ping_waits_for_ack_then_idle_interval():
    settings = MonitorSettings(heartbeat_interval_seconds=0.05, heartbeat_timeout_seconds=0.5)
    transport = DummyTransport(auto_pong=False)
    conn = MonitorConnection(_Instance(), settings, lambda endpoint, _: transport)
    loop = asyncio.get_running_loop()
    try:
        await conn.connect()
        assert await _wait_for(lambda: len(transport.pings) == 1)

        await asyncio.sleep(0.1)
        assert len(transport.pings) == 1

        transport.auto_pong = True
        transport.pong()
        acked_at = loop.time()

        assert await _wait_for(lambda: len(transport.pings) == 2)
        assert transport.pings[1] - acked_at >= 0.05 - TOLERANCE
        assert conn.connected
    finally:
        await conn.disconnect()


@pytest.mark.asyncio
async def test_missing_pong_fails_pending_and_reconnects(caplog):
    settings = MonitorSettings(
        heartbeat_interval_seconds=10,
        heartbeat_timeout_seconds=0.05,
        reconnect_delay_seconds=0.01,
    )
    transports: list[DummyTransport] = []

    def factory(endpoint: str, _settings: MonitorSettings) -> DummyTransport:
        # only the first transport is half-open
        transport = DummyTransport(endpoint, _settings, auto_pong=bool(transports))
        transports.append(transport)
        return transport

    conn = MonitorConnection(_Instance(), settings, factory)
    errors = []
    caplog.set_level(logging.ERROR)
    try:
        await conn.connect()
        await conn.request({"type": "probe"}, errors.append)

        assert await _wait_for(lambda: len(transports) == 2 and conn.connected)
        assert len(errors) == 1
        assert isinstance(errors[0], HeartbeatTimeoutError)
        assert transports[0].closed
        assert any("did not get a pong" in record.getMessage() for record in caplog.records)

        # a late pong on the superseded transport changes nothing
        generation = conn.generation
        transports[0].pong()
        await asyncio.sleep(0.02)
        assert conn.generation == generation
        assert conn.connected
    finally:
        await conn.disconnect()


@pytest.mark.asyncio
async def test_missing_pong_after_disconnect_requested_does_not_reconnect():
    settings = MonitorSettings(heartbeat_timeout_seconds=0.05, reconnect_delay_seconds=0.01)
    transports: list[DummyTransport] = []

    def factory(endpoint: str, _settings: MonitorSettings) -> DummyTransport:
        transport = DummyTransport(endpoint, _settings, auto_pong=False)
        transports.append(transport)
        return transport

    conn = MonitorConnection(_Instance(), settings, factory)
    await conn.connect()
    await conn.disconnect()
    await asyncio.sleep(0.1)

    assert len(transports) == 1
    assert not conn.connected


class _StalledPingTransport(DummyTransport):
    """Ping write never completes, as on a half-open socket with a full send buffer."""

    async def ping(self):
        self.pings.append(asyncio.get_running_loop().time())
        await asyncio.Event().wait()


@pytest.mark.asyncio
async def test_stalled_ping_write_counts_against_pong_deadline():
    settings = MonitorSettings(heartbeat_timeout_seconds=0.05, reconnect_delay_seconds=0.01)
    transports: list[DummyTransport] = []

    def factory(endpoint: str, _settings: MonitorSettings) -> DummyTransport:
        cls = DummyTransport if transports else _StalledPingTransport
        transport = cls(endpoint, _settings)
        transports.append(transport)
        return transport

    conn = MonitorConnection(_Instance(), settings, factory)
    try:
        await conn.connect()

        assert await _wait_for(lambda: len(transports) == 2 and conn.connected)
        assert transports[0].closed
        assert len(transports[0].pings) == 1
    finally:
        await conn.disconnect()
