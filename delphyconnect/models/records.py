"""
Pydantic models for DELPHY protocol records.

This module defines the typed records decoded from device packets and the
validated inputs used to build host commands.

Design principles:
- All models are frozen (immutable)
- Wire constraints (32-bit fields, script identifiers) are validated on input
- Records expose the fields written to the telemetry store via telemetry_fields()
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Union

from pydantic import BaseModel, ConfigDict, Field

from delphyconnect.exceptions import (
    AcknowledgeTimeoutError,
    CompletionTimeoutError,
    raise_for_status,
)
from delphyconnect.protocol.constants import StatusCode

UINT32_MAX = 0xFFFFFFFF


class MessageRecord(BaseModel):
    """
    Log message emitted by the device (MESSAGE packet).

    Example:
        >>> record = MessageRecord(level=1, declared_length=5, message="ready")
        >>> record.telemetry_fields()
        {'level': 1, 'message': 'ready'}
    """

    model_config = ConfigDict(frozen=True)

    level: int = Field(ge=0, le=UINT32_MAX, description="Severity level")
    declared_length: int = Field(ge=0, le=UINT32_MAX, description="Text length from the payload")
    message: str = ""

    def telemetry_fields(self) -> dict[str, Any]:
        """Fields published to the MESSAGE category."""
        return {"level": self.level, "message": self.message}


class AcknowledgeRecord(BaseModel):
    """
    Immediate reply to a host command (ACKNOWLEDGE packet).

    The id field is the packet id of the command being acknowledged,
    not the id of the acknowledgment frame itself.
    """

    model_config = ConfigDict(frozen=True)

    id: int = Field(ge=0, le=UINT32_MAX, description="Acknowledged packet id")
    code: int = Field(ge=0, le=UINT32_MAX, description="Status code")
    declared_length: int = Field(ge=0, le=UINT32_MAX)
    message: str = ""

    @property
    def is_success(self) -> bool:
        """Check if the command was accepted."""
        return self.code == StatusCode.SUCCESSFUL

    def telemetry_fields(self) -> dict[str, Any]:
        """Fields published to the ACKNOWLEDGE category."""
        return {"id": self.id, "code": self.code, "message": self.message}


class CompletionRecord(BaseModel):
    """
    Completion of a long-running command (COMPLETE packet).

    Completions carry no packet id; they refer to the most recent
    script command by protocol convention.
    """

    model_config = ConfigDict(frozen=True)

    code: int = Field(ge=0, le=UINT32_MAX, description="Status code")
    declared_length: int = Field(ge=0, le=UINT32_MAX)
    message: str = ""

    @property
    def is_success(self) -> bool:
        """Check if the command finished successfully."""
        return self.code == StatusCode.SUCCESSFUL

    def telemetry_fields(self) -> dict[str, Any]:
        """Fields published to the COMPLETE category."""
        return {"code": self.code, "message": self.message}


DeviceRecord = Union[MessageRecord, AcknowledgeRecord, CompletionRecord]


class MachineId(BaseModel):
    """
    Host machine id announced in the IDENTITY packet.

    Example:
        >>> MachineId(value=14).value
        14
    """

    model_config = ConfigDict(frozen=True)

    value: int = Field(ge=0, le=UINT32_MAX, description="32-bit machine id")


class ScriptCommand(BaseModel):
    """
    A device script invocation.

    The device receives the text ``run(<script_name>(), <parameter>)``.

    Example:
        >>> ScriptCommand(script_name="inner_rotation_script", parameter=45).text
        'run(inner_rotation_script(), 45)'
    """

    model_config = ConfigDict(frozen=True)

    script_name: str = Field(
        min_length=1,
        pattern=r"^[A-Za-z_][A-Za-z0-9_]*$",
        description="Device script identifier",
    )
    parameter: Union[int, float, str]

    @property
    def text(self) -> str:
        """Command text as sent in the SCRIPT payload."""
        return f"run({self.script_name}(), {self.parameter})"

    def __str__(self) -> str:
        return self.text


class ScriptOutcome(Enum):
    """How a script command ended."""

    SUCCESS = "success"
    ACK_FAILED = "ack_failed"
    COMPLETION_FAILED = "completion_failed"
    ACK_TIMEOUT = "ack_timeout"
    COMPLETION_TIMEOUT = "completion_timeout"


class ScriptResult(BaseModel):
    """
    Result of DelphyClient.run_script_command().

    Every outcome is reported here rather than raised, so callers can
    branch on it. raise_for_status() converts a failure into the matching
    exception.
    """

    model_config = ConfigDict(frozen=True)

    command: str
    packet_id: int
    outcome: ScriptOutcome
    ack_code: int | None = None
    completion_code: int | None = None
    timeout_seconds: float | None = None

    @property
    def ok(self) -> bool:
        """Check if the script was acknowledged and completed successfully."""
        return self.outcome is ScriptOutcome.SUCCESS

    def raise_for_status(self) -> None:
        """
        Raise if the script did not succeed.

        Raises:
            NonSuccessStatusError: On a non-success acknowledgment or completion.
            AcknowledgeTimeoutError: If the acknowledgment never arrived.
            CompletionTimeoutError: If the completion never arrived.
        """
        if self.outcome is ScriptOutcome.ACK_TIMEOUT:
            raise AcknowledgeTimeoutError(self.packet_id, timeout_seconds=self.timeout_seconds)
        if self.outcome is ScriptOutcome.COMPLETION_TIMEOUT:
            raise CompletionTimeoutError(
                f"Timeout waiting for COMPLETION of '{self.command}'",
                timeout_seconds=self.timeout_seconds,
            )
        if self.outcome is ScriptOutcome.ACK_FAILED:
            raise_for_status(self.ack_code, "acknowledge")
        if self.outcome is ScriptOutcome.COMPLETION_FAILED:
            raise_for_status(self.completion_code, "completion")
