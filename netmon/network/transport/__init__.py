"""Transport implementations for the network monitor link."""

from .base import BaseTransport, Frame
from .dummy import DummyTransport
from .websocket import WebSocketTransport

__all__ = ["BaseTransport", "Frame", "DummyTransport", "WebSocketTransport"]
