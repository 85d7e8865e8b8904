"""Control messages sent to the network monitor over the transport."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel


class ClearLogCommand(BaseModel):
    """Ask the monitor to drop its captured log."""

    type: Literal["clear"] = "clear"
