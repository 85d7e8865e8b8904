"""Transport abstractions for the network monitor link."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Awaitable, Union

Frame = Union[str, bytes]


class BaseTransport(ABC):
    """Abstract message-oriented duplex socket used by the monitor connection.

    ``receive`` raises :class:`~netmon.network.errors.TransportClosed` once the
    peer closes the socket; any other exception is treated as a transport error.
    """

    @abstractmethod
    async def connect(self) -> None:
        """Perform the open handshake."""

    @abstractmethod
    async def send(self, data: Frame) -> None:
        ...

    @abstractmethod
    async def receive(self) -> Frame:
        ...

    @abstractmethod
    async def ping(self) -> Awaitable[object]:
        """Send a liveness probe and return an awaitable that resolves on pong."""

    @abstractmethod
    async def close(self) -> None:
        ...
