"""
Stream reassembly for the DELPHY byte stream.

The transport delivers data in arbitrary chunks: a chunk may hold several
frames, part of one frame, or bytes that belong to no frame at all. The
StreamDecoder accumulates chunks and extracts complete frames in order.

Buffer rules:
- bytes are removed only when a whole frame is consumed, or when they can
  never be part of a frame (garbage before a sync marker, a false sync)
- bytes from a candidate sync marker onward are kept verbatim across calls
- each frame is forwarded exactly once

The decoder is not re-entrant. The transport side must serialize calls
to feed().
"""

from __future__ import annotations

import logging
from typing import Callable

from delphyconnect.protocol.frame_codec import DecodeStatus, Frame, try_decode

logger = logging.getLogger(__name__)

FrameCallback = Callable[[Frame], object]


class StreamDecoder:
    """
    Stateful frame extractor driven by data arrivals.

    Example:
        >>> frames = []
        >>> decoder = StreamDecoder(on_frame=frames.append)
        >>> decoder.feed(data[:10])   # partial frame, nothing forwarded
        []
        >>> decoder.feed(data[10:])   # rest arrives
        [Frame(ACKNOWLEDGE, id=3, payload=14 bytes)]
    """

    def __init__(
        self,
        on_frame: FrameCallback | None = None,
        max_payload_length: int | None = None,
    ) -> None:
        """
        Initialize the decoder.

        Args:
            on_frame: Called with each decoded frame, in stream order.
            max_payload_length: Optional cap; header lengths above it mark a
                false sync. None (default) buffers frames of any size.
        """
        self._on_frame = on_frame
        self._max_payload_length = max_payload_length
        self._buffer = bytearray()
        self._frames_decoded = 0
        self._dropped_bytes = 0

    @property
    def buffered(self) -> int:
        """Bytes currently held waiting for the rest of a frame."""
        return len(self._buffer)

    @property
    def frames_decoded(self) -> int:
        """Total frames extracted since creation or reset()."""
        return self._frames_decoded

    @property
    def dropped_bytes(self) -> int:
        """Total bytes discarded during resynchronization."""
        return self._dropped_bytes

    def feed(self, data: bytes | bytearray | memoryview) -> list[Frame]:
        """
        Append inbound bytes and extract every complete frame.

        Args:
            data: Newly received bytes (any length, including empty).

        Returns:
            Frames decoded by this call, in stream order.
        """
        self._buffer.extend(data)
        frames: list[Frame] = []

        while True:
            result = try_decode(self._buffer, self._max_payload_length)

            if result.status is DecodeStatus.FRAME:
                self._drop(result.discard, "before sync marker")
                del self._buffer[:result.bytes_consumed - result.discard]
                self._frames_decoded += 1
                frame = result.frame
                logger.debug("Decoded %r", frame)
                frames.append(frame)
                if self._on_frame is not None:
                    self._on_frame(frame)
                continue

            if result.status is DecodeStatus.MALFORMED:
                logger.warning("Resynchronizing: %s", result.message)
                self._drop(result.discard, "at false sync")
                continue

            self._drop(result.discard, "without sync marker")
            return frames

    def reset(self) -> None:
        """Discard buffered bytes and counters."""
        self._buffer.clear()
        self._frames_decoded = 0
        self._dropped_bytes = 0

    def _drop(self, count: int, reason: str) -> None:
        if count <= 0:
            return
        del self._buffer[:count]
        self._dropped_bytes += count
        logger.debug("Dropped %d bytes %s", count, reason)

    def __repr__(self) -> str:
        return (
            f"StreamDecoder(buffered={self.buffered}, frames={self._frames_decoded}, "
            f"dropped={self._dropped_bytes})"
        )
