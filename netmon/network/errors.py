"""Error types raised by the monitor connection."""

from __future__ import annotations

from typing import Optional


class MonitorError(RuntimeError):
    """Base error for network monitor connection failures."""


class EndpointResolutionError(MonitorError):
    """Raised when the monitor endpoint could not be resolved."""


class ConnectionCancelledError(MonitorError):
    """Raised when an open attempt was superseded or the connection is no longer wanted."""


class TransportError(MonitorError):
    """Raised for socket-level failures."""


class TransportClosed(TransportError):
    """Raised when the peer (or the network) closed the transport."""

    def __init__(self, code: Optional[int] = None, reason: str = "") -> None:
        self.code = code
        self.reason = reason
        super().__init__(f"transport closed (code={code}) {reason}".rstrip())


class HeartbeatTimeoutError(MonitorError):
    """Raised when a ping is not acknowledged before the heartbeat deadline."""


class DisconnectedError(MonitorError):
    """Raised when the transport goes away while requests are pending."""


class ReconnectExhaustedError(MonitorError):
    """Raised when a configured reconnect attempt cap has been reached."""
