"""Tests for AsyncTcpTransport against a local asyncio server."""

import asyncio

import pytest

from delphyconnect import DelphyClient
from delphyconnect.exceptions import TransportError
from delphyconnect.parsers.payloads import encode_acknowledge, encode_completion
from delphyconnect.protocol.constants import PacketType
from delphyconnect.protocol.frame_codec import Frame
from delphyconnect.protocol.stream_decoder import StreamDecoder
from delphyconnect.transport.tcp import AsyncTcpTransport


async def echo_handler(reader, writer):
    """Echo everything back until the client disconnects."""
    while data := await reader.read(1024):
        writer.write(data)
        await writer.drain()
    writer.close()


async def device_handler(reader, writer):
    """Acknowledge every frame and complete every SCRIPT, one byte per write."""
    decoder = StreamDecoder()
    while data := await reader.read(1024):
        for frame in decoder.feed(data):
            reply = Frame(
                PacketType.ACKNOWLEDGE, 500, 0.0, 0.0, encode_acknowledge(frame.packet_id, 0, "OK")
            ).to_bytes()
            if frame.packet_type == PacketType.SCRIPT:
                reply += Frame(PacketType.COMPLETE, 501, 0.0, 0.0, encode_completion(0)).to_bytes()
            for i in range(len(reply)):
                writer.write(reply[i:i + 1])
                await writer.drain()
    writer.close()


async def start(handler):
    """Start a server on an ephemeral localhost port."""
    server = await asyncio.start_server(handler, "127.0.0.1", 0)
    port = server.sockets[0].getsockname()[1]
    return server, port


class TestAsyncTcpTransport:
    """Tests for AsyncTcpTransport class."""

    @pytest.mark.asyncio
    async def test_write_and_read(self):
        """Test bytes round trip through an echo server."""
        server, port = await start(echo_handler)
        async with server:
            async with AsyncTcpTransport("127.0.0.1", port) as transport:
                assert transport.is_open
                assert transport.port_name == f"tcp://127.0.0.1:{port}"

                await transport.write(b"ping")
                received = b""
                while len(received) < 4:
                    received += await transport.read_chunk(timeout=1.0)
                assert received == b"ping"

            assert not transport.is_open

    @pytest.mark.asyncio
    async def test_write_when_closed_raises(self):
        """Test that writing before open raises."""
        transport = AsyncTcpTransport("127.0.0.1", 1)
        with pytest.raises(TransportError):
            await transport.write(b"x")

    @pytest.mark.asyncio
    async def test_connection_refused_raises(self):
        """Test that an unreachable endpoint raises TransportError."""
        server, port = await start(echo_handler)
        server.close()
        await server.wait_closed()

        transport = AsyncTcpTransport("127.0.0.1", port, connect_timeout=1.0)
        with pytest.raises(TransportError):
            await transport.open()

    @pytest.mark.asyncio
    async def test_client_over_tcp(self):
        """Test a script command against a device replying byte by byte."""
        server, port = await start(device_handler)
        async with server:
            transport = AsyncTcpTransport("127.0.0.1", port)
            async with DelphyClient(transport, ack_timeout=2.0, completion_timeout=2.0, poll_interval=0.01) as client:
                await client.connect(wait_for_ack=True)
                result = await client.send_vertical_motion(5)

        assert result.ok
        assert result.command == "run(vertical_motion_script(), 5)"
