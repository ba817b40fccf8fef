"""
Abstract transport interface for DELPHY communication.

This module defines the abstract base class for all transport implementations.
A transport carries the persistent byte stream to and from the device; it
knows nothing about frames.

The transport layer is responsible for:
- Opening/closing the physical connection
- Writing raw bytes
- Delivering inbound bytes in whatever chunks arrive

Implementations:
- AsyncTcpTransport: asyncio TCP socket
- AsyncSerialTransport: pyserial-asyncio serial port
- MockTransport: for testing without hardware
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from delphyconnect.protocol.constants import ProtocolConstants

if TYPE_CHECKING:
    from types import TracebackType


class AbstractTransport(ABC):
    """
    Abstract base class for DELPHY byte-stream transports.

    Transports support async context manager protocol for safe resource
    management:

        async with AsyncTcpTransport("delphy.local", 5000) as transport:
            await transport.write(frame)
            chunk = await transport.read_chunk()

    Attributes:
        is_open: Whether the transport connection is currently open.
        port_name: Identifier for the transport (e.g., "tcp://host:port").
    """

    @property
    @abstractmethod
    def is_open(self) -> bool:
        """
        Check if the transport connection is currently open.

        Returns:
            True if connected and ready for I/O, False otherwise.
        """
        ...

    @property
    @abstractmethod
    def port_name(self) -> str:
        """
        Get the transport identifier.

        Returns:
            Endpoint string (e.g., "tcp://10.0.0.5:5000", "/dev/ttyUSB0").
        """
        ...

    @abstractmethod
    async def open(self) -> None:
        """
        Open the transport connection.

        Raises:
            TransportError: If the connection cannot be established.
        """
        ...

    @abstractmethod
    async def close(self) -> None:
        """
        Close the transport connection.

        Safe to call multiple times (idempotent). A pending read_chunk()
        returns empty bytes or raises TransportError.
        """
        ...

    @abstractmethod
    async def write(self, data: bytes) -> None:
        """
        Write a complete frame to the transport.

        Args:
            data: Bytes to send.

        Raises:
            TransportError: If the transport is not open or the write fails.
                The frame must be considered not sent.
        """
        ...

    @abstractmethod
    async def read_chunk(
        self,
        max_bytes: int = ProtocolConstants.READ_CHUNK_SIZE,
        timeout: float | None = None,
    ) -> bytes:
        """
        Read whatever inbound bytes are available.

        Waits until at least one byte arrives. The chunk boundaries carry
        no meaning; frames may be split across chunks.

        Args:
            max_bytes: Upper bound on the returned size.
            timeout: Read timeout in seconds. None waits indefinitely.

        Returns:
            One or more bytes, or empty bytes at end of stream.

        Raises:
            TimeoutError: If timeout expires before any data arrives.
            TransportError: If the transport is not open or the read fails.
        """
        ...

    async def __aenter__(self) -> AbstractTransport:
        """Async context manager entry - opens the transport."""
        await self.open()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Async context manager exit - closes the transport."""
        await self.close()
