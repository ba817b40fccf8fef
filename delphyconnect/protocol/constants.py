"""
DELPHY protocol packet types, status codes and constants.

Every frame on the wire starts with the same 32-byte big-endian header;
the packet type selects the payload layout.
"""

from __future__ import annotations

from enum import IntEnum
from typing import Final


class PacketType(IntEnum):
    """
    Packet type tags carried in the frame header.

    IDENTITY, CONTROL and SCRIPT are sent by the host. MESSAGE,
    ACKNOWLEDGE and COMPLETE are sent by the device.
    """

    ACKNOWLEDGE = 0
    """Immediate reply to a command, keyed by the command's packet id."""

    MESSAGE = 4
    """Free-form log message from the device (level + text)."""

    SCRIPT = 6
    """Run a named device script: UTF-8 text ``run(<name>(), <parameter>)``."""

    CONTROL = 8
    """Control command."""

    IDENTITY = 10
    """Host identity announcement sent right after connecting."""

    COMPLETE = 12
    """Completion of a long-running command. Carries no packet id."""


class StatusCode(IntEnum):
    """Status codes carried by ACKNOWLEDGE and COMPLETE packets."""

    SUCCESSFUL = 0
    ABORTED = 1
    EXCEPTION = 2


class ProtocolConstants:
    """
    DELPHY protocol constants.

    Contains the frame layout, timing defaults and limits used throughout
    the protocol implementation.
    """

    # ===== Frame Layout =====

    SYNC: Final[int] = 0xDEADBEEF
    """Sync marker at the start of every frame."""

    SYNC_BYTES: Final[bytes] = b"\xde\xad\xbe\xef"
    """Sync marker as it appears on the wire (big-endian)."""

    HEADER_FORMAT: Final[str] = ">IIIddI"
    """struct format: sync, type, id, session time, frame time, payload length."""

    HEADER_SIZE: Final[int] = 32
    """Fixed header size in bytes."""

    MAX_PACKET_ID: Final[int] = 0xFFFFFFFF
    """Largest packet id representable in the 32-bit id field."""

    # ===== Timing Constants (seconds) =====

    DEFAULT_ACK_TIMEOUT: Final[float] = 5.0
    """Default time to wait for an acknowledgment."""

    DEFAULT_COMPLETION_TIMEOUT: Final[float] = 10.0
    """Default time to wait for a completion notification."""

    POLL_INTERVAL: Final[float] = 0.25
    """Telemetry store polling cadence while awaiting replies."""

    DEFAULT_CONNECT_TIMEOUT: Final[float] = 5.0
    """Default time allowed for establishing the byte stream."""

    # ===== Connection =====

    DEFAULT_MACHINE_ID: Final[int] = 14
    """Machine id announced in the IDENTITY packet."""

    READ_CHUNK_SIZE: Final[int] = 4096
    """Maximum bytes requested from the transport per read."""

    DEFAULT_BAUD_RATE: Final[int] = 115200
    """Default baud rate for serial links."""


HOST_PACKET_TYPES: Final[frozenset[int]] = frozenset({
    PacketType.IDENTITY,
    PacketType.CONTROL,
    PacketType.SCRIPT,
})
"""Packet types only the host sends."""
