"""Configuration primitives for the network monitor."""

from .settings import MonitorSettings, get_settings

__all__ = ["MonitorSettings", "get_settings"]
