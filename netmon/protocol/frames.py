"""Helpers for encoding/decoding network monitor frames.

Two wire shapes arrive from the monitor:

- text frames carry a JSON object whose ``id`` field is the correlation id;
- binary frames start with an 8-byte header whose first four bytes are the
  little-endian correlation id (the other four are reserved), followed by the
  raw capture payload.
"""

from __future__ import annotations

import json
import struct
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel

BINARY_HEADER = struct.Struct("<II")
BINARY_HEADER_SIZE = BINARY_HEADER.size

Message = Union[Dict[str, Any], BaseModel]


class FrameDecodeError(ValueError):
    """Raised when an inbound frame cannot be decoded."""


@dataclass(frozen=True)
class DecodedFrame:
    id: Optional[int]
    payload: Any


def decode_frame(data: Union[str, bytes, bytearray, memoryview]) -> DecodedFrame:
    """Split an inbound frame into its correlation id and payload."""

    if isinstance(data, str):
        return _decode_text(data)
    raw = bytes(data)
    if len(raw) < BINARY_HEADER_SIZE:
        raise FrameDecodeError(f"Binary frame too short ({len(raw)} bytes)")
    message_id, _reserved = BINARY_HEADER.unpack_from(raw)
    return DecodedFrame(id=message_id, payload=raw[BINARY_HEADER_SIZE:])


def _decode_text(data: str) -> DecodedFrame:
    try:
        message = json.loads(data)
    except json.JSONDecodeError as exc:
        raise FrameDecodeError("Text frame is not valid JSON") from exc
    message_id = message.get("id") if isinstance(message, dict) else None
    return DecodedFrame(id=message_id, payload=message)


def encode_text(message: Message) -> str:
    """Serialize a control message as a JSON text frame."""

    if isinstance(message, BaseModel):
        return message.model_dump_json(exclude_none=True, by_alias=True)
    return json.dumps(message)


def encode_binary(message_id: int, payload: bytes, *, reserved: int = 0) -> bytes:
    """Build a binary frame with the standard 8-byte header."""

    return BINARY_HEADER.pack(message_id, reserved) + payload
