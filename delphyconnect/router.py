"""
Routing of decoded device frames into the telemetry store.

Each device packet type maps to one telemetry category:

    MESSAGE      -> MESSAGE      {level, message}
    ACKNOWLEDGE  -> ACKNOWLEDGE  {id, code, message}
    COMPLETE     -> COMPLETE     {code, message}

Anything else is logged and dropped. Bad payloads never stop the stream.
"""

from __future__ import annotations

import logging
from typing import Callable

from delphyconnect.exceptions import ParseError
from delphyconnect.models.records import DeviceRecord
from delphyconnect.parsers.payloads import (
    decode_acknowledge,
    decode_completion,
    decode_message,
)
from delphyconnect.protocol.constants import HOST_PACKET_TYPES, PacketType
from delphyconnect.protocol.frame_codec import Frame
from delphyconnect.telemetry import TelemetryCategory, TelemetryStore

logger = logging.getLogger(__name__)

_ROUTES: dict[int, tuple[TelemetryCategory, Callable[[bytes], DeviceRecord]]] = {
    PacketType.MESSAGE: (TelemetryCategory.MESSAGE, decode_message),
    PacketType.ACKNOWLEDGE: (TelemetryCategory.ACKNOWLEDGE, decode_acknowledge),
    PacketType.COMPLETE: (TelemetryCategory.COMPLETE, decode_completion),
}


class PacketRouter:
    """
    Dispatches frames by packet type to the telemetry store.

    Example:
        >>> store = TelemetryStore()
        >>> router = PacketRouter(store)
        >>> decoder = StreamDecoder(on_frame=router.route)
        >>> decoder.feed(ack_bytes)
        >>> store.snapshot(TelemetryCategory.ACKNOWLEDGE)
        {'id': 3, 'code': 0, 'message': 'OK'}
    """

    def __init__(self, store: TelemetryStore) -> None:
        self._store = store
        self._routed = 0
        self._dropped = 0

    @property
    def store(self) -> TelemetryStore:
        """Get the telemetry store written by this router."""
        return self._store

    @property
    def routed(self) -> int:
        """Frames written to the store."""
        return self._routed

    @property
    def dropped(self) -> int:
        """Frames dropped as unknown or unparseable."""
        return self._dropped

    def route(self, frame: Frame) -> DeviceRecord | None:
        """
        Decode a frame's payload and publish it.

        Args:
            frame: A frame from the StreamDecoder.

        Returns:
            The decoded record, or None if the frame was dropped.
        """
        route = _ROUTES.get(frame.packet_type)
        if route is None:
            if frame.packet_type in HOST_PACKET_TYPES:
                logger.warning(
                    "Host-only packet %s (id=%d) received from device, dropped",
                    PacketType(frame.packet_type).name,
                    frame.packet_id,
                )
            else:
                logger.warning("Unknown packet type %s (id=%d), dropped", frame.packet_type, frame.packet_id)
            self._dropped += 1
            return None

        category, decode = route
        try:
            record = decode(frame.payload)
        except ParseError as e:
            logger.warning("Dropping malformed %s packet: %s", category.value, e)
            self._dropped += 1
            return None

        self._store.update(category, record.telemetry_fields())
        self._routed += 1

        if category is TelemetryCategory.MESSAGE:
            logger.debug("Device message (level %d): %s", record.level, record.message)
        else:
            logger.debug("%s %s", category.value, record.telemetry_fields())
        return record
