"""Network stack (transport/connection) for the monitor link."""

from netmon.network.connection import ConnectionState, MonitorConnection
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
from netmon.network.transport.base import BaseTransport
from netmon.network.transport.dummy import DummyTransport
from netmon.network.transport.websocket import WebSocketTransport

__all__ = [
    "MonitorConnection",
    "ConnectionState",
    "BaseTransport",
    "WebSocketTransport",
    "DummyTransport",
    "MonitorError",
    "EndpointResolutionError",
    "ConnectionCancelledError",
    "TransportError",
    "TransportClosed",
    "HeartbeatTimeoutError",
    "DisconnectedError",
    "ReconnectExhaustedError",
]
