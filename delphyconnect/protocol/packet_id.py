"""
Outbound packet id allocation.

Every frame the host sends carries a 32-bit id that the device echoes back
in its acknowledgment. Ids start at 1 and increase by one per frame. After
0xFFFFFFFF the counter wraps back to 1; 0 is never issued.
"""

from __future__ import annotations

import logging
import threading

from delphyconnect.protocol.constants import ProtocolConstants

logger = logging.getLogger(__name__)


class PacketIdAllocator:
    """
    Thread-safe monotonically increasing packet id source.

    Each client owns its own allocator; tests create a fresh one per case.

    Example:
        >>> ids = PacketIdAllocator()
        >>> ids.next(), ids.next()
        (1, 2)
    """

    def __init__(self, start: int = 1) -> None:
        if not 1 <= start <= ProtocolConstants.MAX_PACKET_ID:
            raise ValueError(f"Packet id must be 1-{ProtocolConstants.MAX_PACKET_ID}, got {start}")
        self._next = start
        self._lock = threading.Lock()

    def next(self) -> int:
        """Return the current id and advance the counter."""
        with self._lock:
            current = self._next
            if current == ProtocolConstants.MAX_PACKET_ID:
                logger.warning("Packet id counter wrapped after 0x%08X", current)
                self._next = 1
            else:
                self._next = current + 1
            return current

    def peek(self) -> int:
        """Return the id the next call to next() will issue."""
        with self._lock:
            return self._next

    def __repr__(self) -> str:
        return f"PacketIdAllocator(next={self.peek()})"
