"""Endpoint resolution for the instance hosting the network monitor."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from netmon.config import MonitorSettings


@runtime_checkable
class MonitorInstance(Protocol):
    """Instance that owns the monitor and knows where to reach it."""

    project_id: str
    instance_id: str

    async def netmon_endpoint(self) -> str:
        """Return the WebSocket URL of the instance's network monitor."""
        ...


@dataclass
class StaticInstance:
    """Instance whose monitor endpoint is known up front."""

    project_id: str
    instance_id: str
    endpoint: str

    @classmethod
    def from_settings(cls, settings: MonitorSettings) -> StaticInstance:
        if not settings.endpoint_url:
            raise ValueError("endpoint_url must be configured for a static instance")
        return cls(
            project_id=settings.project_id,
            instance_id=settings.instance_id,
            endpoint=settings.endpoint_url,
        )

    async def netmon_endpoint(self) -> str:
        return self.endpoint
