"""
Payload parsers and builders for DELPHY packets.

Converts between raw frame payloads and the typed records in
delphyconnect.models.
"""

from delphyconnect.parsers.payloads import (
    decode_acknowledge,
    decode_completion,
    decode_identity,
    decode_message,
    decode_script,
    encode_acknowledge,
    encode_completion,
    encode_identity,
    encode_message,
    encode_script,
)

__all__ = [
    # Device packets
    "decode_message",
    "decode_acknowledge",
    "decode_completion",
    "encode_message",
    "encode_acknowledge",
    "encode_completion",
    # Host packets
    "encode_identity",
    "decode_identity",
    "encode_script",
    "decode_script",
]
