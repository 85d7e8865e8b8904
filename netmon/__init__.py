"""Connection-lifecycle manager for a live network-traffic monitor."""

from netmon.config import MonitorSettings, get_settings
from netmon.instance import MonitorInstance, StaticInstance
from netmon.monitor import NetworkMonitor
from netmon.network import ConnectionState, MonitorConnection
from netmon.runtime import build_monitor, configure_logging

__all__ = [
    "MonitorSettings",
    "get_settings",
    "MonitorInstance",
    "StaticInstance",
    "NetworkMonitor",
    "MonitorConnection",
    "ConnectionState",
    "build_monitor",
    "configure_logging",
]
