"""
Payload layouts for each DELPHY packet type.

All integers are 32-bit unsigned big-endian. Text fields follow the fixed
fields and run to the end of the payload; the declared length is reported
but the actual text is the remainder, with trailing NUL padding removed.

Device packets:
    MESSAGE      [level][text_len][text]
    ACKNOWLEDGE  [acked_id][code][text_len][text]
    COMPLETE     [code][text_len][text]

Host packets:
    IDENTITY     [machine_id]
    SCRIPT       UTF-8 "run(<script_name>(), <parameter>)"
"""

from __future__ import annotations

import struct

from delphyconnect.exceptions import ParseError
from delphyconnect.models.records import (
    AcknowledgeRecord,
    CompletionRecord,
    MachineId,
    MessageRecord,
    ScriptCommand,
)
from delphyconnect.protocol.constants import PacketType

_U32 = struct.Struct(">I")
_MESSAGE_HEADER = struct.Struct(">II")
_ACK_HEADER = struct.Struct(">III")
_COMPLETE_HEADER = struct.Struct(">II")


def _decode_text(raw: bytes) -> str:
    return raw.rstrip(b"\x00").decode("utf-8", errors="replace")


def _encode_text(text: str) -> bytes:
    return text.encode("utf-8")


def _require(payload: bytes, size: int, packet_type: PacketType) -> None:
    if len(payload) < size:
        raise ParseError(
            f"{packet_type.name} payload too short (need {size}, have {len(payload)})",
            packet_type=int(packet_type),
            raw_data=bytes(payload),
        )


# ===== Device packets =====


def decode_message(payload: bytes) -> MessageRecord:
    """
    Decode a MESSAGE payload.

    Raises:
        ParseError: If the payload is shorter than its fixed fields.
    """
    _require(payload, _MESSAGE_HEADER.size, PacketType.MESSAGE)
    level, text_len = _MESSAGE_HEADER.unpack_from(payload)
    return MessageRecord(
        level=level,
        declared_length=text_len,
        message=_decode_text(payload[_MESSAGE_HEADER.size:]),
    )


def decode_acknowledge(payload: bytes) -> AcknowledgeRecord:
    """
    Decode an ACKNOWLEDGE payload.

    Raises:
        ParseError: If the payload is shorter than its fixed fields.
    """
    _require(payload, _ACK_HEADER.size, PacketType.ACKNOWLEDGE)
    acked_id, code, text_len = _ACK_HEADER.unpack_from(payload)
    return AcknowledgeRecord(
        id=acked_id,
        code=code,
        declared_length=text_len,
        message=_decode_text(payload[_ACK_HEADER.size:]),
    )


def decode_completion(payload: bytes) -> CompletionRecord:
    """
    Decode a COMPLETE payload.

    Raises:
        ParseError: If the payload is shorter than its fixed fields.
    """
    _require(payload, _COMPLETE_HEADER.size, PacketType.COMPLETE)
    code, text_len = _COMPLETE_HEADER.unpack_from(payload)
    return CompletionRecord(
        code=code,
        declared_length=text_len,
        message=_decode_text(payload[_COMPLETE_HEADER.size:]),
    )


def encode_message(level: int, text: str) -> bytes:
    """Build a MESSAGE payload (used by simulated devices and tests)."""
    raw = _encode_text(text)
    return _MESSAGE_HEADER.pack(level, len(raw)) + raw


def encode_acknowledge(acked_id: int, code: int, text: str = "") -> bytes:
    """Build an ACKNOWLEDGE payload (used by simulated devices and tests)."""
    raw = _encode_text(text)
    return _ACK_HEADER.pack(acked_id, code, len(raw)) + raw


def encode_completion(code: int, text: str = "") -> bytes:
    """Build a COMPLETE payload (used by simulated devices and tests)."""
    raw = _encode_text(text)
    return _COMPLETE_HEADER.pack(code, len(raw)) + raw


# ===== Host packets =====


def encode_identity(machine_id: int | MachineId) -> bytes:
    """
    Build an IDENTITY payload.

    Raises:
        pydantic.ValidationError: If the id does not fit in 32 bits.
    """
    if not isinstance(machine_id, MachineId):
        machine_id = MachineId(value=machine_id)
    return _U32.pack(machine_id.value)


def decode_identity(payload: bytes) -> MachineId:
    """Decode an IDENTITY payload."""
    _require(payload, _U32.size, PacketType.IDENTITY)
    (value,) = _U32.unpack_from(payload)
    return MachineId(value=value)


def encode_script(command: ScriptCommand) -> bytes:
    """Build a SCRIPT payload from a validated command."""
    return _encode_text(command.text)


def decode_script(payload: bytes) -> str:
    """Decode a SCRIPT payload to its command text."""
    return _decode_text(payload)
