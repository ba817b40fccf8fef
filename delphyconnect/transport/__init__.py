"""
Transport layer for DELPHY protocol communication.

This package provides byte-stream transports for reaching the device.

Available transports:
- AsyncTcpTransport: asyncio TCP socket (the usual link)
- AsyncSerialTransport: serial port using pyserial-asyncio
- MockTransport: mock transport for testing without hardware

Example:
    >>> from delphyconnect.transport import AsyncTcpTransport
    >>> async with AsyncTcpTransport("192.168.1.40", 5000) as transport:
    ...     await transport.write(frame_data)
    ...     chunk = await transport.read_chunk()

Testing Example:
    >>> from delphyconnect.transport import MockTransport
    >>> mock = MockTransport()
    >>> mock.inject(ack_frame_bytes)
"""

from delphyconnect.transport.abc import AbstractTransport
from delphyconnect.transport.mock import MockTransport
from delphyconnect.transport.serial_async import AsyncSerialTransport
from delphyconnect.transport.tcp import AsyncTcpTransport

__all__ = [
    "AbstractTransport",
    "AsyncTcpTransport",
    "AsyncSerialTransport",
    "MockTransport",
]
