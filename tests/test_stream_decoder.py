"""Tests for StreamDecoder."""

import struct

import pytest

from delphyconnect.parsers.payloads import encode_acknowledge, encode_completion, encode_message
from delphyconnect.protocol.constants import PacketType
from delphyconnect.protocol.frame_codec import pack_frame
from delphyconnect.protocol.stream_decoder import StreamDecoder


def make_frame(packet_type, packet_id, payload=b""):
    """Build frame bytes with fixed timestamps."""
    return pack_frame(packet_type, packet_id, payload, session_time=5.0, frame_time=6.0)


@pytest.fixture
def stream():
    """Three back-to-back device frames."""
    return b"".join([
        make_frame(PacketType.MESSAGE, 1, encode_message(1, "booting")),
        make_frame(PacketType.ACKNOWLEDGE, 2, encode_acknowledge(7, 0, "OK")),
        make_frame(PacketType.COMPLETE, 3, encode_completion(0, "done")),
    ])


class TestStreamDecoder:
    """Tests for StreamDecoder class."""

    def test_single_feed(self, stream):
        """Test that one feed yields every frame in order."""
        decoder = StreamDecoder()
        frames = decoder.feed(stream)

        assert [f.packet_id for f in frames] == [1, 2, 3]
        assert decoder.buffered == 0
        assert decoder.frames_decoded == 3

    def test_byte_at_a_time(self, stream):
        """Test that one-byte feeds yield the same frames as one feed."""
        expected = StreamDecoder().feed(stream)

        decoder = StreamDecoder()
        frames = []
        for i in range(len(stream)):
            frames.extend(decoder.feed(stream[i:i + 1]))

        assert frames == expected
        assert decoder.buffered == 0

    @pytest.mark.parametrize("chunk_size", [2, 7, 31, 33, 50])
    def test_arbitrary_chunking(self, stream, chunk_size):
        """Test that chunk boundaries do not change the decoded frames."""
        expected = StreamDecoder().feed(stream)

        decoder = StreamDecoder()
        frames = []
        for i in range(0, len(stream), chunk_size):
            frames.extend(decoder.feed(stream[i:i + chunk_size]))

        assert frames == expected

    def test_callback_called_once_per_frame(self, stream):
        """Test that on_frame sees each frame exactly once."""
        seen = []
        decoder = StreamDecoder(on_frame=seen.append)

        decoder.feed(stream[:40])
        decoder.feed(stream[40:])
        decoder.feed(b"")

        assert [f.packet_id for f in seen] == [1, 2, 3]

    def test_truncated_then_completed(self):
        """Test that a truncated frame is emitted once its tail arrives."""
        data = make_frame(PacketType.ACKNOWLEDGE, 10, encode_acknowledge(4, 0, "accepted"))
        decoder = StreamDecoder()

        assert decoder.feed(data[:-5]) == []
        assert decoder.buffered == len(data) - 5

        frames = decoder.feed(data[-5:])
        assert len(frames) == 1
        assert frames[0].packet_id == 10
        assert decoder.feed(b"") == []

    def test_garbage_between_frames(self):
        """Test that noise between frames is dropped."""
        first = make_frame(PacketType.MESSAGE, 1, encode_message(0, "a"))
        second = make_frame(PacketType.MESSAGE, 2, encode_message(0, "b"))
        decoder = StreamDecoder()

        frames = decoder.feed(b"\x00\xff" + first + b"noise" + second)

        assert [f.packet_id for f in frames] == [1, 2]
        assert decoder.dropped_bytes == 7

    def test_no_sync_keeps_tail(self):
        """Test that garbage without a sync marker keeps a 3-byte tail."""
        decoder = StreamDecoder()
        assert decoder.feed(b"hello world") == []
        assert decoder.buffered == 3
        assert decoder.dropped_bytes == 8

    def test_sync_split_across_feeds(self):
        """Test a sync marker split between two chunks."""
        data = make_frame(PacketType.COMPLETE, 8, encode_completion(1))
        decoder = StreamDecoder()

        assert decoder.feed(b"garbage" + data[:2]) == []
        frames = decoder.feed(data[2:])

        assert len(frames) == 1
        assert frames[0].packet_id == 8

    def test_frame_over_16_mib(self):
        """Test a frame larger than 16 MiB is delivered whole by default."""
        inner = make_frame(PacketType.ACKNOWLEDGE, 99, encode_acknowledge(99, 0))
        payload = inner + b"\x5a" * (16 * 1024 * 1024 + 1 - len(inner))
        data = make_frame(PacketType.MESSAGE, 4, payload)
        decoder = StreamDecoder()

        frames = []
        step = 1024 * 1024
        for i in range(0, len(data), step):
            frames.extend(decoder.feed(data[i:i + step]))

        assert len(frames) == 1
        assert frames[0].packet_id == 4
        assert frames[0].payload_length == 16 * 1024 * 1024 + 1
        assert frames[0].payload == payload
        assert decoder.dropped_bytes == 0
        assert decoder.buffered == 0

    def test_false_sync_recovery(self):
        """Test resynchronization past a header above the configured cap."""
        bogus = struct.pack(">IIIddI", 0xDEADBEEF, 0, 1, 0.0, 0.0, 0xFFFFFFFF)
        real = make_frame(PacketType.ACKNOWLEDGE, 2, encode_acknowledge(1, 0))
        decoder = StreamDecoder(max_payload_length=1024)

        frames = decoder.feed(bogus + real)

        assert [f.packet_id for f in frames] == [2]
        assert decoder.dropped_bytes == len(bogus)

    def test_reset(self, stream):
        """Test that reset clears the buffer and counters."""
        decoder = StreamDecoder()
        decoder.feed(b"xx" + stream[:20])
        decoder.reset()

        assert decoder.buffered == 0
        assert decoder.frames_decoded == 0
        assert decoder.dropped_bytes == 0

    def test_repr(self):
        """Test string representation."""
        assert "buffered=0" in repr(StreamDecoder())
