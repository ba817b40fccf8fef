"""
Exception hierarchy for delphyconnect.

All exceptions inherit from DelphyError, providing a clean hierarchy
for error handling. The design follows these principles:

1. Stream corruption is recovered inside the decoder and never raised
2. Transport failures mean the command was not sent
3. Acknowledge and completion timeouts are distinct types
4. Non-success device statuses are reported, and raised only on request
"""

from __future__ import annotations

from typing import Final


class DelphyError(Exception):
    """
    Base exception for all delphyconnect errors.

    All library-specific exceptions inherit from this class, allowing
    callers to catch all delphyconnect errors with a single except clause.
    """

    pass


class ProtocolError(DelphyError):
    """
    Protocol-level error.

    Raised when the protocol is violated, such as:
    - A frame that cannot be encoded
    - A payload shorter than its fixed fields
    """

    pass


class FrameError(ProtocolError):
    """
    Frame encoding error.

    Raised when an outbound frame cannot be represented on the wire,
    for example a payload longer than the 32-bit length field allows.
    """

    pass


class ParseError(ProtocolError):
    """
    Payload parsing error.

    Raised when an inbound payload cannot be decoded into a record.
    The router catches it, logs it and drops the frame.
    """

    def __init__(
        self,
        message: str,
        *,
        packet_type: int | None = None,
        raw_data: bytes | None = None,
    ) -> None:
        super().__init__(message)
        self.packet_type = packet_type
        self.raw_data = raw_data

    def __str__(self) -> str:
        parts = [super().__str__()]
        if self.packet_type is not None:
            parts.append(f"packet_type={self.packet_type}")
        if self.raw_data is not None:
            display_data = self.raw_data[:20].hex()
            if len(self.raw_data) > 20:
                display_data += "..."
            parts.append(f"data={display_data}")
        return " ".join(parts) if len(parts) > 1 else parts[0]


class TimeoutError(DelphyError):  # noqa: A001 - intentionally shadows builtin
    """
    Correlation timeout.

    Raised when an awaited acknowledgment or completion does not appear
    in the telemetry store before the deadline.
    """

    def __init__(
        self,
        message: str = "Timed out waiting for device",
        *,
        timeout_seconds: float | None = None,
    ) -> None:
        super().__init__(message)
        self.timeout_seconds = timeout_seconds

    def __str__(self) -> str:
        base = super().__str__()
        if self.timeout_seconds is not None:
            return f"{base} (after {self.timeout_seconds:.2f}s)"
        return base


class AcknowledgeTimeoutError(TimeoutError):
    """No acknowledgment for the given packet id arrived in time."""

    def __init__(
        self,
        packet_id: int,
        *,
        timeout_seconds: float | None = None,
    ) -> None:
        super().__init__(
            f"Timeout waiting for ACK with ID={packet_id}",
            timeout_seconds=timeout_seconds,
        )
        self.packet_id = packet_id


class CompletionTimeoutError(TimeoutError):
    """No completion notification arrived in time."""

    def __init__(
        self,
        message: str = "Timeout waiting for COMPLETION",
        *,
        timeout_seconds: float | None = None,
    ) -> None:
        super().__init__(message, timeout_seconds=timeout_seconds)


class ConnectionError(DelphyError):  # noqa: A001 - intentionally shadows builtin
    """
    Device connection error.

    Raised when:
    - A command is issued before connect()
    - connect() is called in the wrong state
    """

    pass


class TransportError(DelphyError):
    """
    Transport-level error.

    Raised for low-level transport issues:
    - Socket or serial port cannot be opened
    - Write failures (the command is considered not sent)
    - Read failures on the inbound stream
    """

    pass


class NonSuccessStatusError(DelphyError):
    """
    The device reported a recognized but non-success status.

    Not raised by the correlator on its own; callers opt in through
    ScriptResult.raise_for_status() or connect(wait_for_ack=True).
    """

    def __init__(self, code: int, phase: str, message: str | None = None) -> None:
        self.code = code
        self.phase = phase
        self.message = message or STATUS_MESSAGES.get(code, "Unknown status")
        super().__init__(f"{phase} status {code}: {self.message}")


# Status code to message mapping
STATUS_MESSAGES: Final[dict[int, str]] = {
    0: "Successful",
    1: "Aborted",
    2: "Exception",
}


def raise_for_status(code: int, phase: str, message: str | None = None) -> None:
    """
    Raise NonSuccessStatusError if the given code is not SUCCESSFUL.

    Args:
        code: Status code reported by the device.
        phase: Which reply carried the code ("acknowledge" or "completion").
        message: Optional device-provided text.

    Raises:
        NonSuccessStatusError: If the code is non-zero.
    """
    if code != 0:
        raise NonSuccessStatusError(code, phase, message)
