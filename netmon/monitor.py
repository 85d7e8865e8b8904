"""Network monitor facade: capture control on top of the monitor connection."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Optional

from netmon.config import MonitorSettings
from netmon.control_plane import ControlPlaneClient
from netmon.instance import MonitorInstance
from netmon.network.connection import MessageHandler, MonitorConnection, TransportFactory
from netmon.protocol import ClearLogCommand

LOGGER = logging.getLogger(__name__)


@dataclass
class NetworkMonitor:
    """A connection to the network monitor running on an instance.

    Captured traffic is delivered to the handler registered with
    :meth:`handle_message`; capture itself is toggled through the control plane.
    """

    instance: MonitorInstance
    settings: MonitorSettings
    control_plane: ControlPlaneClient
    transport_factory: Optional[TransportFactory] = None

    connection: MonitorConnection = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self.connection = MonitorConnection(self.instance, self.settings, self.transport_factory)

    @property
    def connected(self) -> bool:
        return self.connection.connected

    async def start(self) -> None:
        """Connect to the monitor and enable capture on the instance."""

        await self.connection.connect()
        await self._fetch("/sslsplit/enable", method="POST")
        LOGGER.info("Network monitor capture enabled on instance %s", self.instance.instance_id)

    async def stop(self) -> None:
        """Disable capture on the instance and disconnect."""

        await self._fetch("/sslsplit/disable", method="POST")
        await self.connection.disconnect()
        LOGGER.info("Network monitor capture disabled on instance %s", self.instance.instance_id)

    def handle_message(self, handler: Optional[MessageHandler]) -> None:
        """Set the message handler, replacing any previous one."""

        self.connection.set_handler(handler)

    async def clear_log(self) -> None:
        """Clear the monitor log.

        An existing connection is reused and left open; otherwise a short-lived
        connection is opened just for the command.
        """

        disconnect_after = False
        if not self.connection.connected:
            await self.connection.connect()
            disconnect_after = True
        try:
            await self.connection.send(ClearLogCommand())
        finally:
            if disconnect_after:
                await self.connection.disconnect()

    async def disconnect(self) -> None:
        """Disconnect from the monitor without touching capture state."""

        await self.connection.disconnect()

    async def close(self) -> None:
        """Disconnect and release the control-plane HTTP session."""

        await self.connection.disconnect()
        self.control_plane.close()

    async def _fetch(self, endpoint: str = "", *, method: str = "GET") -> Any:
        # calls are scoped to the project that owns the instance
        path = f"/instances/{self.instance.instance_id}{endpoint}"
        params = {"project": self.instance.project_id}
        return await asyncio.to_thread(self.control_plane.request_json, method, path, params=params)
