"""
Async TCP transport.

The usual way to reach the device: a single persistent TCP connection
carrying frames in both directions.

Example:
    >>> transport = AsyncTcpTransport("192.168.1.40", 5000)
    >>> async with transport:
    ...     await transport.write(frame)
    ...     chunk = await transport.read_chunk()
"""

from __future__ import annotations

import asyncio
import logging

from delphyconnect.exceptions import TimeoutError, TransportError
from delphyconnect.protocol.constants import ProtocolConstants
from delphyconnect.transport.abc import AbstractTransport

logger = logging.getLogger(__name__)


class AsyncTcpTransport(AbstractTransport):
    """
    Async TCP transport using asyncio streams.

    Attributes:
        host: Device hostname or address.
        port: Device TCP port.
        is_open: Whether the socket is currently connected.
    """

    def __init__(
        self,
        host: str,
        port: int,
        connect_timeout: float = ProtocolConstants.DEFAULT_CONNECT_TIMEOUT,
        default_timeout: float | None = None,
    ) -> None:
        """
        Initialize the TCP transport.

        Args:
            host: Device hostname or address.
            port: Device TCP port.
            connect_timeout: Seconds allowed for the connection to open.
            default_timeout: Read timeout used when read_chunk() gets None.
                None means wait indefinitely.
        """
        self._host = host
        self._port = port
        self._connect_timeout = connect_timeout
        self._default_timeout = default_timeout
        self._reader: asyncio.StreamReader | None = None
        self._writer: asyncio.StreamWriter | None = None

    @property
    def is_open(self) -> bool:
        """Check if the socket is currently connected."""
        return (
            self._writer is not None
            and not self._writer.is_closing()
            and self._reader is not None
        )

    @property
    def port_name(self) -> str:
        """Get the endpoint URL."""
        return f"tcp://{self._host}:{self._port}"

    @property
    def host(self) -> str:
        """Get the device host."""
        return self._host

    @property
    def port(self) -> int:
        """Get the device port."""
        return self._port

    async def open(self) -> None:
        """
        Connect to the device.

        Raises:
            TransportError: If the connection cannot be established.
        """
        if self.is_open:
            return

        logger.debug("Connecting to %s", self.port_name)
        try:
            self._reader, self._writer = await asyncio.wait_for(
                asyncio.open_connection(self._host, self._port),
                timeout=self._connect_timeout,
            )
        except asyncio.TimeoutError:
            raise TransportError(
                f"Timed out connecting to {self.port_name} after {self._connect_timeout:.1f}s"
            ) from None
        except OSError as e:
            raise TransportError(f"Failed to connect to {self.port_name}: {e}") from e

        logger.info("Connected to %s", self.port_name)

    async def close(self) -> None:
        """
        Close the connection.

        Safe to call multiple times.
        """
        writer = self._writer
        self._reader = None
        self._writer = None
        if writer is None:
            return

        writer.close()
        try:
            await writer.wait_closed()
        except OSError as e:
            logger.debug("Error while closing %s: %s", self.port_name, e)
        logger.info("Disconnected from %s", self.port_name)

    async def write(self, data: bytes) -> None:
        """
        Send data to the device.

        Raises:
            TransportError: If the socket is not open or the write fails.
        """
        if not self.is_open:
            raise TransportError("TCP connection is not open")

        try:
            self._writer.write(data)
            await self._writer.drain()
        except (OSError, RuntimeError) as e:
            raise TransportError(f"Write failed: {e}") from e

    async def read_chunk(
        self,
        max_bytes: int = ProtocolConstants.READ_CHUNK_SIZE,
        timeout: float | None = None,
    ) -> bytes:
        """
        Read available bytes from the socket.

        Returns:
            One or more bytes, or empty bytes when the device closes the connection.

        Raises:
            TimeoutError: If timeout expires before data arrives.
            TransportError: If the socket is not open or the read fails.
        """
        if not self.is_open:
            raise TransportError("TCP connection is not open")

        effective_timeout = timeout if timeout is not None else self._default_timeout

        try:
            if effective_timeout is None:
                return await self._reader.read(max_bytes)
            return await asyncio.wait_for(self._reader.read(max_bytes), timeout=effective_timeout)
        except asyncio.TimeoutError:
            raise TimeoutError(
                "Timeout waiting for inbound data",
                timeout_seconds=effective_timeout,
            ) from None
        except OSError as e:
            raise TransportError(f"Read failed: {e}") from e

    def __repr__(self) -> str:
        status = "open" if self.is_open else "closed"
        return f"AsyncTcpTransport({self._host!r}, {self._port}, {status})"
