"""Tests for MockTransport."""

import pytest

from delphyconnect.exceptions import TimeoutError, TransportError
from delphyconnect.transport.mock import MockTransport


class TestMockTransport:
    """Tests for MockTransport class."""

    @pytest.fixture
    def transport(self):
        """Create a MockTransport instance."""
        return MockTransport()

    @pytest.mark.asyncio
    async def test_open_close(self, transport):
        """Test opening and closing transport."""
        assert not transport.is_open
        await transport.open()
        assert transport.is_open
        await transport.close()
        assert not transport.is_open

    @pytest.mark.asyncio
    async def test_double_open_raises(self, transport):
        """Test that opening twice raises error."""
        await transport.open()
        with pytest.raises(TransportError):
            await transport.open()

    @pytest.mark.asyncio
    async def test_write_records_data(self, transport):
        """Test that write records data."""
        await transport.open()
        await transport.write(b"hello")
        await transport.write(b"world")
        assert transport.written_data == [b"hello", b"world"]
        assert transport.last_written == b"world"
        transport.assert_write_count(2)

    @pytest.mark.asyncio
    async def test_write_when_closed_raises(self, transport):
        """Test that writing to closed transport raises."""
        with pytest.raises(TransportError):
            await transport.write(b"test")

    @pytest.mark.asyncio
    async def test_fail_writes(self):
        """Test simulated write failures record nothing."""
        transport = MockTransport(fail_writes=True)
        await transport.open()

        with pytest.raises(TransportError):
            await transport.write(b"test")
        assert transport.written_data == []

    @pytest.mark.asyncio
    async def test_read_injected_chunks_in_order(self, transport):
        """Test each injected chunk is served by its own read."""
        await transport.open()
        transport.inject(b"abc", b"de")

        assert await transport.read_chunk() == b"abc"
        assert await transport.read_chunk() == b"de"

    @pytest.mark.asyncio
    async def test_read_respects_max_bytes(self, transport):
        """Test a large chunk is split across reads."""
        await transport.open()
        transport.inject(b"0123456789")

        assert await transport.read_chunk(max_bytes=4) == b"0123"
        assert await transport.read_chunk(max_bytes=4) == b"4567"
        assert await transport.read_chunk(max_bytes=4) == b"89"

    @pytest.mark.asyncio
    async def test_read_no_data_raises(self, transport):
        """Test that reading with no data raises timeout."""
        await transport.open()
        with pytest.raises(TimeoutError):
            await transport.read_chunk(timeout=0.05)

    @pytest.mark.asyncio
    async def test_close_signals_end_of_stream(self, transport):
        """Test a read after close returns empty bytes once."""
        await transport.open()
        await transport.close()

        assert await transport.read_chunk() == b""
        with pytest.raises(TransportError):
            await transport.read_chunk()

    @pytest.mark.asyncio
    async def test_response_callback(self, transport):
        """Test the callback reply is queued for reading."""
        transport.set_response_callback(lambda data: data.upper())
        await transport.open()

        await transport.write(b"ping")
        assert await transport.read_chunk() == b"PING"

    @pytest.mark.asyncio
    async def test_response_callback_no_reply(self, transport):
        """Test a callback returning None queues nothing."""
        transport.set_response_callback(lambda data: None)
        await transport.open()

        await transport.write(b"ping")
        with pytest.raises(TimeoutError):
            await transport.read_chunk(timeout=0.05)

    @pytest.mark.asyncio
    async def test_context_manager(self, transport):
        """Test async context manager opens and closes."""
        async with transport:
            assert transport.is_open
        assert not transport.is_open

    def test_assert_write_count_mismatch(self, transport):
        """Test write count assertion failure."""
        with pytest.raises(AssertionError):
            transport.assert_write_count(1)

    def test_clear_written(self, transport):
        """Test clearing the write history."""
        transport._written_data.append(b"x")
        transport.clear_written()
        assert transport.last_written is None
