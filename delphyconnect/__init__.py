"""
delphyconnect - Python library for commanding DELPHY motion devices.

This library provides async communication with a DELPHY device over a TCP
(or serial) byte stream: framing, stream resynchronization, routing of
device telemetry, and correlation of script commands with their
acknowledgments and completions.

Example:
    >>> from delphyconnect import DelphyClient
    >>> from delphyconnect.transport import AsyncTcpTransport
    >>>
    >>> async def main():
    ...     transport = AsyncTcpTransport("192.168.1.40", 5000)
    ...     async with DelphyClient(transport) as client:
    ...         await client.connect(machine_id=14)
    ...         result = await client.run_script_command("inner_rotation_script", 45)
    ...         result.raise_for_status()
"""

from delphyconnect.client import ClientState, DelphyClient
from delphyconnect.exceptions import (
    AcknowledgeTimeoutError,
    CompletionTimeoutError,
    ConnectionError,
    DelphyError,
    FrameError,
    NonSuccessStatusError,
    ParseError,
    ProtocolError,
    TimeoutError,
    TransportError,
)
from delphyconnect.models.records import (
    AcknowledgeRecord,
    CompletionRecord,
    MachineId,
    MessageRecord,
    ScriptCommand,
    ScriptOutcome,
    ScriptResult,
)
from delphyconnect.protocol import Frame, FrameCodec, PacketIdAllocator, PacketType, StatusCode, StreamDecoder
from delphyconnect.router import PacketRouter
from delphyconnect.telemetry import TelemetryCategory, TelemetryStore
from delphyconnect.transport import AbstractTransport, AsyncSerialTransport, AsyncTcpTransport

__version__ = "0.1.0"
__all__ = [
    # Client
    "DelphyClient",
    "ClientState",
    # Protocol
    "PacketType",
    "StatusCode",
    "Frame",
    "FrameCodec",
    "PacketIdAllocator",
    "StreamDecoder",
    # Routing and telemetry
    "PacketRouter",
    "TelemetryCategory",
    "TelemetryStore",
    # Models
    "MessageRecord",
    "AcknowledgeRecord",
    "CompletionRecord",
    "MachineId",
    "ScriptCommand",
    "ScriptOutcome",
    "ScriptResult",
    # Exceptions
    "DelphyError",
    "ProtocolError",
    "FrameError",
    "ParseError",
    "TimeoutError",
    "AcknowledgeTimeoutError",
    "CompletionTimeoutError",
    "ConnectionError",
    "TransportError",
    "NonSuccessStatusError",
    # Transport
    "AbstractTransport",
    "AsyncTcpTransport",
    "AsyncSerialTransport",
    # Version
    "__version__",
]
