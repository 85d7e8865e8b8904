from .frames import (
    BINARY_HEADER_SIZE,
    DecodedFrame,
    FrameDecodeError,
    decode_frame,
    encode_binary,
    encode_text,
)
from .models import ClearLogCommand

__all__ = [
    "BINARY_HEADER_SIZE",
    "ClearLogCommand",
    "DecodedFrame",
    "FrameDecodeError",
    "decode_frame",
    "encode_binary",
    "encode_text",
]
