"""Wiring helpers for running a network monitor."""

from __future__ import annotations

import logging
from typing import Optional

from netmon.config import MonitorSettings, get_settings
from netmon.control_plane import ControlPlaneClient
from netmon.instance import MonitorInstance, StaticInstance
from netmon.monitor import NetworkMonitor
from netmon.network.connection import TransportFactory


def configure_logging(settings: Optional[MonitorSettings] = None) -> None:
    settings = settings or get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


def build_monitor(
    settings: Optional[MonitorSettings] = None,
    *,
    instance: Optional[MonitorInstance] = None,
    control_plane: Optional[ControlPlaneClient] = None,
    transport_factory: Optional[TransportFactory] = None,
) -> NetworkMonitor:
    """Create a :class:`NetworkMonitor` from settings, filling in default collaborators."""

    settings = settings or get_settings()
    return NetworkMonitor(
        instance=instance or StaticInstance.from_settings(settings),
        settings=settings,
        control_plane=control_plane or ControlPlaneClient.from_settings(settings),
        transport_factory=transport_factory,
    )
