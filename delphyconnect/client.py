"""
DELPHY device client.

This module provides the main client interface for commanding and
monitoring a DELPHY device. It wires together the frame codec, the stream
decoder, the packet router and the telemetry store, and correlates each
command with the device's replies.

Command flow:
    send SCRIPT frame (id=N) -> ACKNOWLEDGE{id=N, code} -> ... -> COMPLETE{code}

Replies are not matched by callbacks. A background task feeds inbound
bytes through the decoder into the telemetry store, and the command side
polls the store at a fixed interval until the awaited value appears or
the deadline passes.

Only one command should be in flight at a time. The store keeps only the
latest acknowledgment and completion, and completions carry no packet id,
so overlapping commands can lose or misattribute replies.

The client implements a small state machine:
    DISCONNECTED -> connect() -> CONNECTED
    CONNECTED -> disconnect() -> DISCONNECTED
    CONNECTED -> stream ends or fails -> DISCONNECTED

Example:
    >>> from delphyconnect import DelphyClient
    >>> from delphyconnect.transport import AsyncTcpTransport
    >>>
    >>> async def main():
    ...     transport = AsyncTcpTransport("192.168.1.40", 5000)
    ...     async with DelphyClient(transport) as client:
    ...         await client.connect(machine_id=14)
    ...         result = await client.send_inner_rotation(45)
    ...         print(result.outcome)
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum, auto
from typing import TYPE_CHECKING, Any, Callable

from delphyconnect.exceptions import (
    AcknowledgeTimeoutError,
    CompletionTimeoutError,
    ConnectionError,
    DelphyError,
    TimeoutError,
    TransportError,
    raise_for_status,
)
from delphyconnect.models.records import MachineId, ScriptCommand, ScriptOutcome, ScriptResult
from delphyconnect.parsers.payloads import encode_identity, encode_script
from delphyconnect.protocol.constants import PacketType, ProtocolConstants, StatusCode
from delphyconnect.protocol.frame_codec import Frame, FrameCodec
from delphyconnect.protocol.packet_id import PacketIdAllocator
from delphyconnect.protocol.stream_decoder import StreamDecoder
from delphyconnect.router import PacketRouter
from delphyconnect.telemetry import TelemetryCategory, TelemetryStore

if TYPE_CHECKING:
    from delphyconnect.transport.abc import AbstractTransport

# Module logger
logger = logging.getLogger(__name__)


class ClientState(Enum):
    """Device client connection states."""

    DISCONNECTED = auto()
    """Not connected to the device."""

    CONNECTING = auto()
    """Byte stream open, identity being announced."""

    CONNECTED = auto()
    """Connected and ready for commands."""

    DISCONNECTING = auto()
    """Stopping the receive task."""


class DelphyClient:
    """
    Client for commanding a DELPHY device.

    Attributes:
        state: Current connection state.
        store: Telemetry store populated from inbound frames.
        transport: The underlying transport layer.

    Example:
        >>> client = DelphyClient(transport, ack_timeout=5.0, completion_timeout=10.0)
        >>> await client.connect()
        >>> packet_id = await client.send_command(PacketType.CONTROL, payload)
        >>> code = await client.await_acknowledge(packet_id)
    """

    def __init__(
        self,
        transport: AbstractTransport,
        store: TelemetryStore | None = None,
        allocator: PacketIdAllocator | None = None,
        ack_timeout: float = ProtocolConstants.DEFAULT_ACK_TIMEOUT,
        completion_timeout: float = ProtocolConstants.DEFAULT_COMPLETION_TIMEOUT,
        poll_interval: float = ProtocolConstants.POLL_INTERVAL,
        max_payload_length: int | None = None,
    ) -> None:
        """
        Initialize the device client.

        Args:
            transport: Transport layer for the byte stream.
            store: Telemetry store to publish into (new one if omitted).
            allocator: Packet id source (new one starting at 1 if omitted).
            ack_timeout: Default acknowledgment timeout in seconds.
            completion_timeout: Default completion timeout in seconds.
            poll_interval: Store polling cadence in seconds.
            max_payload_length: Optional inbound payload cap; larger declared
                lengths are treated as a false sync. None means no cap.
        """
        if poll_interval <= 0:
            raise ValueError(f"poll_interval must be positive, got {poll_interval}")

        self._transport = transport
        self._store = store if store is not None else TelemetryStore()
        self._codec = FrameCodec(allocator, max_payload_length=max_payload_length)
        self._router = PacketRouter(self._store)
        self._decoder = StreamDecoder(
            on_frame=self._router.route,
            max_payload_length=max_payload_length,
        )
        self._ack_timeout = ack_timeout
        self._completion_timeout = completion_timeout
        self._poll_interval = poll_interval
        self._state = ClientState.DISCONNECTED
        self._machine_id: int | None = None
        self._receive_task: asyncio.Task[None] | None = None
        self._lost_reason: str | None = None

    @property
    def state(self) -> ClientState:
        """Get the current connection state."""
        return self._state

    @property
    def is_connected(self) -> bool:
        """Check if the client is connected to the device."""
        return self._state == ClientState.CONNECTED

    @property
    def machine_id(self) -> int | None:
        """Machine id announced on connect."""
        return self._machine_id

    @property
    def transport(self) -> AbstractTransport:
        """Get the underlying transport."""
        return self._transport

    @property
    def store(self) -> TelemetryStore:
        """Get the telemetry store."""
        return self._store

    @property
    def allocator(self) -> PacketIdAllocator:
        """Get the packet id allocator."""
        return self._codec.allocator

    @property
    def decoder(self) -> StreamDecoder:
        """Get the inbound stream decoder."""
        return self._decoder

    @property
    def router(self) -> PacketRouter:
        """Get the packet router."""
        return self._router

    async def connect(
        self,
        machine_id: int = ProtocolConstants.DEFAULT_MACHINE_ID,
        wait_for_ack: bool = False,
    ) -> int:
        """
        Open the byte stream and announce this host.

        Opens the transport if needed, starts the receive task and sends an
        IDENTITY packet carrying the machine id.

        Args:
            machine_id: 32-bit machine id for the IDENTITY packet.
            wait_for_ack: Also wait for the device to acknowledge the identity.

        Returns:
            Packet id of the IDENTITY frame.

        Raises:
            ConnectionError: If the client is not disconnected.
            TransportError: If the transport cannot be opened or written.
            AcknowledgeTimeoutError: If wait_for_ack and no acknowledgment arrives.
            NonSuccessStatusError: If wait_for_ack and the device rejects the identity.
        """
        if self._state != ClientState.DISCONNECTED:
            raise ConnectionError(
                f"Cannot connect: client is in {self._state.name} state"
            )

        identity = MachineId(value=machine_id)

        if not self._transport.is_open:
            logger.debug("Opening transport for connection")
            await self._transport.open()

        self._state = ClientState.CONNECTING
        logger.info("Connecting to DELPHY at %s as machine %d", self._transport.port_name, identity.value)

        self._lost_reason = None
        try:
            self._decoder.reset()
            self._start_receiving()
            packet_id = await self._send(PacketType.IDENTITY, encode_identity(identity))

            if wait_for_ack:
                code = await self.await_acknowledge(packet_id)
                raise_for_status(code, "acknowledge", self._store.get(TelemetryCategory.ACKNOWLEDGE, "message"))
                logger.info("Identity acknowledged")

            if self._lost_reason is not None:
                raise ConnectionError(f"Stream lost while connecting: {self._lost_reason}")

        except Exception:
            await self._stop_receiving()
            self._state = ClientState.DISCONNECTED
            raise

        self._state = ClientState.CONNECTED
        self._machine_id = identity.value
        logger.info("Connected to DELPHY (identity packet id=%d)", packet_id)
        return packet_id

    async def disconnect(self) -> None:
        """
        Stop processing inbound data.

        Safe to call even if not connected. The transport stays open; use
        the async context manager or close it explicitly.
        """
        if self._state == ClientState.DISCONNECTED:
            return

        logger.info("Disconnecting from DELPHY")
        self._state = ClientState.DISCONNECTING
        try:
            await self._stop_receiving()
        finally:
            self._state = ClientState.DISCONNECTED
            self._machine_id = None
            logger.debug("Disconnected")

    def data_received(self, data: bytes) -> list[Frame]:
        """
        Feed inbound bytes into the decoder.

        Called by the receive task. Callers driving the stream themselves
        must not call this concurrently.

        Returns:
            Frames decoded from the data so far.
        """
        return self._decoder.feed(data)

    async def send_command(self, packet_type: int, payload: bytes = b"") -> int:
        """
        Encode and transmit a command frame.

        Args:
            packet_type: Packet type tag.
            payload: Payload bytes.

        Returns:
            Packet id assigned to the frame.

        Raises:
            ConnectionError: If not connected.
            TransportError: If the write fails. The command was not sent.
        """
        self._ensure_connected()
        return await self._send(packet_type, payload)

    async def await_acknowledge(self, packet_id: int, timeout: float | None = None) -> int:
        """
        Wait for the acknowledgment of a command.

        Polls the ACKNOWLEDGE category until its id equals packet_id. An
        acknowledgment overwritten by a later one before the next poll is
        missed; that is a limitation of the latest-value store.

        Args:
            packet_id: Packet id returned by send_command().
            timeout: Seconds to wait (client default if None).

        Returns:
            The acknowledgment status code.

        Raises:
            AcknowledgeTimeoutError: If the deadline passes first.
        """
        effective_timeout = timeout if timeout is not None else self._ack_timeout

        fields = await self._poll_until(
            TelemetryCategory.ACKNOWLEDGE,
            lambda sequence, ack: ack.get("id") == packet_id,
            effective_timeout,
        )
        if fields is None:
            logger.warning("Timeout waiting for ACK with ID=%d", packet_id)
            raise AcknowledgeTimeoutError(packet_id, timeout_seconds=effective_timeout)

        code = fields["code"]
        logger.info("ACK for packet %d, code=%d", packet_id, code)
        return code

    async def await_completion(
        self,
        timeout: float | None = None,
        *,
        after_sequence: int | None = None,
    ) -> int:
        """
        Wait for a completion notification.

        Without after_sequence, a completion is a COMPLETE record whose code
        is non-zero; code 0 reads as "nothing yet". With after_sequence, any
        COMPLETE update newer than that store sequence counts, so a
        successful (code 0) completion is seen too.

        Args:
            timeout: Seconds to wait (client default if None).
            after_sequence: COMPLETE store sequence captured before the command.

        Returns:
            The completion status code.

        Raises:
            CompletionTimeoutError: If the deadline passes first.
        """
        effective_timeout = timeout if timeout is not None else self._completion_timeout

        if after_sequence is None:
            def arrived(sequence: int, completion: dict[str, Any]) -> bool:
                return completion.get("code", 0) != 0
        else:
            def arrived(sequence: int, completion: dict[str, Any]) -> bool:
                return sequence > after_sequence

        fields = await self._poll_until(TelemetryCategory.COMPLETE, arrived, effective_timeout)
        if fields is None:
            logger.warning("Timeout waiting for COMPLETION")
            raise CompletionTimeoutError(timeout_seconds=effective_timeout)

        code = fields["code"]
        logger.info("COMPLETION code=%d", code)
        return code

    async def run_script_command(
        self,
        script_name: str,
        parameter: int | float | str,
        *,
        ack_timeout: float | None = None,
        completion_timeout: float | None = None,
    ) -> ScriptResult:
        """
        Run a device script and wait for it to finish.

        Sends ``run(<script_name>(), <parameter>)`` as a SCRIPT packet, waits
        for the acknowledgment and, if it succeeded, for the completion.

        Args:
            script_name: Device script identifier.
            parameter: Script argument, formatted with str().
            ack_timeout: Override the acknowledgment timeout.
            completion_timeout: Override the completion timeout.

        Returns:
            ScriptResult with one of the ScriptOutcome values.

        Raises:
            ConnectionError: If not connected.
            TransportError: If the SCRIPT frame could not be written.
            pydantic.ValidationError: If script_name is not an identifier.
        """
        command = ScriptCommand(script_name=script_name, parameter=parameter)
        self._ensure_connected()

        ack_timeout = ack_timeout if ack_timeout is not None else self._ack_timeout
        completion_timeout = (
            completion_timeout if completion_timeout is not None else self._completion_timeout
        )

        baseline = self._store.sequence(TelemetryCategory.COMPLETE)
        packet_id = await self._send(PacketType.SCRIPT, encode_script(command))

        def result(outcome: ScriptOutcome, **kwargs: Any) -> ScriptResult:
            return ScriptResult(command=command.text, packet_id=packet_id, outcome=outcome, **kwargs)

        try:
            ack_code = await self.await_acknowledge(packet_id, ack_timeout)
        except AcknowledgeTimeoutError as e:
            logger.error("Script '%s' => %s", command.text, e)
            return result(ScriptOutcome.ACK_TIMEOUT, timeout_seconds=ack_timeout)

        if ack_code != StatusCode.SUCCESSFUL:
            logger.error("Script '%s' => Non-successful ACK code=%d", command.text, ack_code)
            return result(ScriptOutcome.ACK_FAILED, ack_code=ack_code)

        try:
            completion_code = await self.await_completion(
                completion_timeout,
                after_sequence=baseline,
            )
        except CompletionTimeoutError as e:
            logger.error("Script '%s' => %s", command.text, e)
            return result(
                ScriptOutcome.COMPLETION_TIMEOUT,
                ack_code=ack_code,
                timeout_seconds=completion_timeout,
            )

        if completion_code != StatusCode.SUCCESSFUL:
            logger.error("Script '%s' => COMPLETED with code=%d", command.text, completion_code)
            return result(
                ScriptOutcome.COMPLETION_FAILED,
                ack_code=ack_code,
                completion_code=completion_code,
            )

        logger.info("Script '%s' => COMPLETED successfully", command.text)
        return result(ScriptOutcome.SUCCESS, ack_code=ack_code, completion_code=completion_code)

    async def send_inner_rotation(self, angle_degrees: float) -> ScriptResult:
        """Rotate the inner stage by angle_degrees."""
        return await self.run_script_command("inner_rotation_script", angle_degrees)

    async def send_outer_rotation(self, angle_degrees: float) -> ScriptResult:
        """Rotate the outer stage by angle_degrees."""
        return await self.run_script_command("outer_rotation_script", angle_degrees)

    async def send_horizontal_motion(self, distance_mm: float) -> ScriptResult:
        """Move horizontally by distance_mm."""
        return await self.run_script_command("horizontal_motion_script", distance_mm)

    async def send_vertical_motion(self, distance_mm: float) -> ScriptResult:
        """Move vertically by distance_mm."""
        return await self.run_script_command("vertical_motion_script", distance_mm)

    async def _send(self, packet_type: int, payload: bytes) -> int:
        """Encode a frame and write it to the transport."""
        packet_id, data = self._codec.encode(packet_type, payload)
        try:
            name = PacketType(packet_type).name
        except ValueError:
            name = f"type {packet_type}"

        try:
            await self._transport.write(data)
        except TransportError:
            logger.error("Failed to send %s packet id=%d", name, packet_id)
            raise

        logger.info("Sent %s packet id=%d (%d bytes)", name, packet_id, len(data))
        return packet_id

    async def _poll_until(
        self,
        category: TelemetryCategory,
        arrived: Callable[[int, dict[str, Any]], bool],
        timeout: float,
    ) -> dict[str, Any] | None:
        """
        Poll one store category until arrived(sequence, fields) holds.

        Returns:
            The matching fields, or None once the deadline has passed.
        """
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout

        while True:
            sequence, fields = self._store.read(category)
            if arrived(sequence, fields):
                return fields

            remaining = deadline - loop.time()
            if remaining <= 0:
                return None
            await asyncio.sleep(min(self._poll_interval, remaining))

    def _start_receiving(self) -> None:
        if self._receive_task is None or self._receive_task.done():
            self._receive_task = asyncio.create_task(self._receive_loop())

    async def _stop_receiving(self) -> None:
        task = self._receive_task
        self._receive_task = None
        if task is None:
            return

        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def _receive_loop(self) -> None:
        """Feed transport data into the decoder until the stream ends."""
        try:
            while True:
                try:
                    chunk = await self._transport.read_chunk()
                except TimeoutError:
                    # Transport-level read timeout; the stream is merely idle
                    continue
                if not chunk:
                    logger.warning("Device closed the stream")
                    self._stream_lost("device closed the stream")
                    return
                self.data_received(chunk)
        except DelphyError as e:
            logger.error("Receive loop stopped: %s", e)
            self._stream_lost(str(e))

    def _stream_lost(self, reason: str) -> None:
        """Drop to DISCONNECTED after the inbound stream ended on its own."""
        self._receive_task = None
        self._lost_reason = reason
        if self._state == ClientState.CONNECTED:
            self._state = ClientState.DISCONNECTED
            self._machine_id = None

    def _ensure_connected(self) -> None:
        """Verify client is in connected state."""
        if self._state != ClientState.CONNECTED:
            detail = f", stream lost: {self._lost_reason}" if self._lost_reason else ""
            raise ConnectionError(
                f"Not connected (state: {self._state.name}{detail})"
            )

    async def __aenter__(self) -> DelphyClient:
        """Async context manager entry."""
        if not self._transport.is_open:
            await self._transport.open()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit - disconnect and close transport."""
        try:
            if self._state != ClientState.DISCONNECTED:
                await self.disconnect()
        finally:
            if self._transport.is_open:
                await self._transport.close()

    def __repr__(self) -> str:
        machine = self._machine_id if self._machine_id is not None else "None"
        return f"DelphyClient(state={self._state.name}, machine_id={machine})"
