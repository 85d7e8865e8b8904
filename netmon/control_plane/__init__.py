"""Control-plane access for capture commands."""

from .client import (
    ControlPlaneClient,
    ControlPlaneError,
    ControlPlaneNotFoundError,
    ControlPlaneRequestError,
    ControlPlaneUnauthorizedError,
)

__all__ = [
    "ControlPlaneClient",
    "ControlPlaneError",
    "ControlPlaneNotFoundError",
    "ControlPlaneRequestError",
    "ControlPlaneUnauthorizedError",
]
