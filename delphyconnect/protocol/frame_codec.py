"""
DELPHY frame encoding and decoding.

Every frame, in both directions, has the same layout (big-endian):

    +--------+--------+--------+--------------+------------+--------+---------+
    |  sync  |  type  |   id   | session time | frame time | length | payload |
    | 4 byte | 4 byte | 4 byte |  8 (double)  | 8 (double) | 4 byte | N bytes |
    +--------+--------+--------+--------------+------------+--------+---------+

- sync is always 0xDEADBEEF and is the only resynchronization point
- there is no checksum or terminator
- length is the exact payload size in bytes

Decoding is pure: try_decode() never mutates its input. It reports how many
bytes form the next frame and how many leading bytes are garbage that can be
dropped, and leaves the buffer management to the StreamDecoder.
"""

from __future__ import annotations

import struct
import time
from dataclasses import dataclass
from enum import Enum, auto
from typing import Callable

from delphyconnect.exceptions import FrameError
from delphyconnect.protocol.constants import PacketType, ProtocolConstants
from delphyconnect.protocol.packet_id import PacketIdAllocator

_HEADER = struct.Struct(ProtocolConstants.HEADER_FORMAT)
_SYNC_TAIL = len(ProtocolConstants.SYNC_BYTES) - 1


class DecodeStatus(Enum):
    """
    Result codes for frame decoding operations.
    """

    FRAME = auto()
    """A complete frame was decoded."""

    NEED_MORE_DATA = auto()
    """No complete frame is available yet."""

    MALFORMED = auto()
    """The header declares more than the configured payload cap (false sync)."""


@dataclass(frozen=True)
class Frame:
    """
    One complete protocol frame.

    Attributes:
        packet_type: Type tag from the header.
        packet_id: Sender-assigned 32-bit id.
        session_time: Session timestamp, seconds since epoch.
        frame_time: Frame timestamp, seconds since epoch.
        payload: Raw payload bytes.
    """

    packet_type: int
    packet_id: int
    session_time: float
    frame_time: float
    payload: bytes = b""

    @property
    def payload_length(self) -> int:
        """Payload length as carried in the header."""
        return len(self.payload)

    @property
    def type(self) -> PacketType | int:
        """
        Get packet type as PacketType enum if recognized, else raw int.
        """
        try:
            return PacketType(self.packet_type)
        except ValueError:
            return self.packet_type

    def to_bytes(self) -> bytes:
        """Serialize the frame to its wire representation."""
        return pack_frame(
            self.packet_type,
            self.packet_id,
            self.payload,
            session_time=self.session_time,
            frame_time=self.frame_time,
        )

    def __repr__(self) -> str:
        kind = self.type.name if isinstance(self.type, PacketType) else str(self.packet_type)
        return f"Frame({kind}, id={self.packet_id}, payload={self.payload_length} bytes)"


@dataclass(frozen=True)
class DecodeResult:
    """
    Outcome of one try_decode() call.

    Attributes:
        status: What was found at the front of the buffer.
        frame: The decoded frame when status is FRAME.
        bytes_consumed: Bytes to remove from the buffer front for this frame,
            including any garbage before the sync marker.
        discard: Leading bytes that can never be part of a frame.
        message: Diagnostic text.
    """

    status: DecodeStatus
    frame: Frame | None = None
    bytes_consumed: int = 0
    discard: int = 0
    message: str = ""


def pack_frame(
    packet_type: int,
    packet_id: int,
    payload: bytes = b"",
    *,
    session_time: float,
    frame_time: float,
) -> bytes:
    """
    Serialize header fields and payload.

    Raises:
        FrameError: If a field does not fit its wire representation.
    """
    payload = bytes(payload)
    if len(payload) > 0xFFFFFFFF:
        raise FrameError(f"Payload too large: {len(payload)} bytes")
    try:
        header = _HEADER.pack(
            ProtocolConstants.SYNC,
            packet_type,
            packet_id,
            session_time,
            frame_time,
            len(payload),
        )
    except struct.error as e:
        raise FrameError(f"Cannot encode frame header: {e}") from e
    return header + payload


class FrameCodec:
    """
    DELPHY frame encoder/decoder.

    Encoding allocates packet ids from the injected allocator and stamps
    the current wall-clock time. Decoding is stateless.

    Example:
        >>> codec = FrameCodec(PacketIdAllocator())
        >>> packet_id, data = codec.encode(PacketType.IDENTITY, b"\\x00\\x00\\x00\\x0e")
        >>> result = codec.try_decode(data)
        >>> assert result.status == DecodeStatus.FRAME
        >>> assert result.frame.packet_id == packet_id
    """

    def __init__(
        self,
        allocator: PacketIdAllocator | None = None,
        clock: Callable[[], float] = time.time,
        max_payload_length: int | None = None,
    ) -> None:
        self._allocator = allocator if allocator is not None else PacketIdAllocator()
        self._clock = clock
        self._max_payload_length = max_payload_length

    @property
    def allocator(self) -> PacketIdAllocator:
        """Get the packet id allocator."""
        return self._allocator

    def encode(self, packet_type: int, payload: bytes = b"") -> tuple[int, bytes]:
        """
        Build an outbound frame.

        A single clock read is used for both the session and frame time.

        Args:
            packet_type: Packet type tag.
            payload: Payload bytes.

        Returns:
            Tuple of (packet_id, frame bytes).

        Raises:
            FrameError: If the frame cannot be encoded.
        """
        packet_id = self._allocator.next()
        now = self._clock()
        data = pack_frame(
            packet_type,
            packet_id,
            payload,
            session_time=now,
            frame_time=now,
        )
        return packet_id, data

    def try_decode(self, buffer: bytes | bytearray | memoryview) -> DecodeResult:
        """
        Decode the first complete frame in the buffer.

        Args:
            buffer: Accumulated inbound bytes.

        Returns:
            DecodeResult describing the frame found or why none was.
        """
        return try_decode(buffer, max_payload_length=self._max_payload_length)


def try_decode(
    buffer: bytes | bytearray | memoryview,
    max_payload_length: int | None = None,
) -> DecodeResult:
    """
    Decode the first complete frame in the buffer.

    Finds the earliest sync marker; bytes before it are garbage. The
    buffer itself is never modified.

    Args:
        buffer: Accumulated inbound bytes.
        max_payload_length: Optional cap; header lengths above it mark a
            false sync. None waits for any declared length.

    Returns:
        DecodeResult describing the frame found or why none was.
    """
    view = buffer if isinstance(buffer, (bytes, bytearray)) else bytes(buffer)
    sync_pos = view.find(ProtocolConstants.SYNC_BYTES)

    if sync_pos < 0:
        # Keep a tail that could be the start of a split sync marker
        return DecodeResult(
            status=DecodeStatus.NEED_MORE_DATA,
            discard=max(0, len(view) - _SYNC_TAIL),
            message="Sync marker not found",
        )

    available = len(view) - sync_pos
    if available < ProtocolConstants.HEADER_SIZE:
        return DecodeResult(
            status=DecodeStatus.NEED_MORE_DATA,
            discard=sync_pos,
            message=f"Incomplete header (need {ProtocolConstants.HEADER_SIZE}, have {available})",
        )

    _, packet_type, packet_id, session_time, frame_time, length = _HEADER.unpack_from(
        view, sync_pos
    )

    if max_payload_length is not None and length > max_payload_length:
        return DecodeResult(
            status=DecodeStatus.MALFORMED,
            discard=sync_pos + 1,
            message=f"Implausible payload length {length} at offset {sync_pos}",
        )

    total = ProtocolConstants.HEADER_SIZE + length
    if available < total:
        return DecodeResult(
            status=DecodeStatus.NEED_MORE_DATA,
            discard=sync_pos,
            message=f"Incomplete frame (need {total}, have {available})",
        )

    payload_start = sync_pos + ProtocolConstants.HEADER_SIZE
    frame = Frame(
        packet_type=packet_type,
        packet_id=packet_id,
        session_time=session_time,
        frame_time=frame_time,
        payload=bytes(view[payload_start:payload_start + length]),
    )
    return DecodeResult(
        status=DecodeStatus.FRAME,
        frame=frame,
        bytes_consumed=sync_pos + total,
        discard=sync_pos,
    )
