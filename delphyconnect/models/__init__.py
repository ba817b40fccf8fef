"""
Data models for DELPHY protocol records.

This module contains Pydantic models representing:

- Device records (message, acknowledgment, completion)
- Validated command inputs (machine id, script command)
- Script command results
"""

from delphyconnect.models.records import (
    AcknowledgeRecord,
    CompletionRecord,
    DeviceRecord,
    MachineId,
    MessageRecord,
    ScriptCommand,
    ScriptOutcome,
    ScriptResult,
)

__all__ = [
    # Device records
    "MessageRecord",
    "AcknowledgeRecord",
    "CompletionRecord",
    "DeviceRecord",
    # Command inputs
    "MachineId",
    "ScriptCommand",
    # Results
    "ScriptOutcome",
    "ScriptResult",
]
