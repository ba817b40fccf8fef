"""
Protocol layer for DELPHY communication.

This module contains the low-level protocol handling:
- Packet types, status codes and protocol constants
- Packet id allocation
- Frame encoding and decoding
- Stream reassembly and resynchronization
"""

from delphyconnect.protocol.constants import PacketType, ProtocolConstants, StatusCode
from delphyconnect.protocol.frame_codec import (
    DecodeResult,
    DecodeStatus,
    Frame,
    FrameCodec,
    pack_frame,
    try_decode,
)
from delphyconnect.protocol.packet_id import PacketIdAllocator
from delphyconnect.protocol.stream_decoder import StreamDecoder

__all__ = [
    # Constants
    "PacketType",
    "StatusCode",
    "ProtocolConstants",
    # Packet ids
    "PacketIdAllocator",
    # Frames
    "Frame",
    "FrameCodec",
    "DecodeResult",
    "DecodeStatus",
    "pack_frame",
    "try_decode",
    # Stream
    "StreamDecoder",
]
