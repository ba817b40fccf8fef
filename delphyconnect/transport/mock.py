"""
Mock transport for testing.

This module provides a mock transport implementation that allows testing
the DELPHY client without actual hardware. Inbound data can be injected
directly or generated from each write by a callback that plays the device.

Example:
    >>> from delphyconnect.transport import MockTransport
    >>> from delphyconnect import DelphyClient
    >>>
    >>> mock = MockTransport()
    >>> mock.set_response_callback(lambda data: ack_for(data))
    >>>
    >>> async with DelphyClient(mock) as client:
    ...     await client.connect()
"""

from __future__ import annotations

import asyncio
from typing import Callable

from delphyconnect.exceptions import TimeoutError, TransportError
from delphyconnect.protocol.constants import ProtocolConstants
from delphyconnect.transport.abc import AbstractTransport

_EOF = b""


class MockTransport(AbstractTransport):
    """
    Mock transport for testing without hardware.

    Written frames are recorded for verification. Inbound bytes are served
    to read_chunk() in the order they were injected, one injected chunk per
    read (split further if larger than max_bytes).

    Attributes:
        written_data: List of all bytes written to the transport.

    Example:
        >>> mock = MockTransport()
        >>> async with mock:
        ...     mock.inject(ack_frame_bytes)
        ...     await mock.write(b"test")
        ...     chunk = await mock.read_chunk()
        ...     assert mock.written_data == [b"test"]
    """

    def __init__(
        self,
        port_name: str = "mock://delphy",
        fail_writes: bool = False,
    ) -> None:
        """
        Initialize the mock transport.

        Args:
            port_name: Identifier for the mock transport.
            fail_writes: Make every write raise TransportError.
        """
        self._port_name = port_name
        self._is_open = False
        self._inbound: asyncio.Queue[bytes] = asyncio.Queue()
        self._pending = bytearray()
        self._written_data: list[bytes] = []
        self._response_callback: Callable[[bytes], bytes | None] | None = None
        self.fail_writes = fail_writes

    @property
    def is_open(self) -> bool:
        """Check if the mock transport is open."""
        return self._is_open

    @property
    def port_name(self) -> str:
        """Get the mock port name."""
        return self._port_name

    @property
    def written_data(self) -> list[bytes]:
        """Get all data written to the transport."""
        return self._written_data.copy()

    @property
    def last_written(self) -> bytes | None:
        """Get the most recently written data."""
        return self._written_data[-1] if self._written_data else None

    def inject(self, *chunks: bytes) -> None:
        """
        Queue inbound data as if the device had sent it.

        Each chunk is delivered by a separate read, so tests control how
        frames are split.

        Args:
            *chunks: Byte chunks to deliver, in order.
        """
        for chunk in chunks:
            if chunk:
                self._inbound.put_nowait(bytes(chunk))

    def set_response_callback(
        self,
        callback: Callable[[bytes], bytes | None] | None,
    ) -> None:
        """
        Set a callback that plays the device side.

        The callback receives each written frame and returns the bytes the
        device sends back, or None for no reply.

        Args:
            callback: Function that takes written bytes and returns inbound bytes.
        """
        self._response_callback = callback

    def clear_written(self) -> None:
        """Clear only the written data history."""
        self._written_data.clear()

    async def open(self) -> None:
        """Open the mock transport."""
        if self._is_open:
            raise TransportError("Mock transport already open")
        self._is_open = True

    async def close(self) -> None:
        """Close the mock transport, ending the stream for any pending reader."""
        if self._is_open:
            self._is_open = False
            self._inbound.put_nowait(_EOF)

    async def write(self, data: bytes) -> None:
        """
        Record written data and optionally trigger the response callback.

        Raises:
            TransportError: If transport is not open or fail_writes is set.
        """
        if not self._is_open:
            raise TransportError("Mock transport not open")
        if self.fail_writes:
            raise TransportError("Simulated write failure")

        self._written_data.append(bytes(data))

        if self._response_callback:
            response = self._response_callback(bytes(data))
            if response:
                self.inject(response)

    async def read_chunk(
        self,
        max_bytes: int = ProtocolConstants.READ_CHUNK_SIZE,
        timeout: float | None = None,
    ) -> bytes:
        """
        Read the next injected chunk.

        Returns:
            Up to max_bytes bytes, or empty bytes once the transport is closed.

        Raises:
            TimeoutError: If timeout expires with nothing injected.
            TransportError: If transport is not open and nothing is pending.
        """
        if not self._pending:
            if not self._is_open and self._inbound.empty():
                raise TransportError("Mock transport not open")
            try:
                if timeout is None:
                    chunk = await self._inbound.get()
                else:
                    chunk = await asyncio.wait_for(self._inbound.get(), timeout=timeout)
            except asyncio.TimeoutError:
                raise TimeoutError("No mock data available", timeout_seconds=timeout) from None
            if chunk == _EOF:
                return _EOF
            self._pending.extend(chunk)

        result = bytes(self._pending[:max_bytes])
        del self._pending[:max_bytes]
        return result

    def assert_write_count(self, expected: int) -> None:
        """
        Assert number of write operations.

        Raises:
            AssertionError: If count doesn't match.
        """
        actual = len(self._written_data)
        if actual != expected:
            raise AssertionError(f"Write count mismatch: expected {expected}, got {actual}")
