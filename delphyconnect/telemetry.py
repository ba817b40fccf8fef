"""
Latest-value telemetry store.

The store maps (category, field) to the most recently observed value.
No history is kept: a new ACKNOWLEDGE replaces the previous one, exactly
like the device's last-value-wins telemetry model.

The PacketRouter is the only writer; the DelphyClient reads it while
waiting for replies. Whole-category updates are applied under a lock so
a reader never observes a half-written record. Each category also has an
update sequence number that increases on every write, which lets a reader
tell a fresh record from a stale one with identical contents.
"""

from __future__ import annotations

import threading
from collections.abc import Mapping
from enum import Enum
from typing import Any


class TelemetryCategory(str, Enum):
    """Categories published by the router."""

    MESSAGE = "MESSAGE"
    ACKNOWLEDGE = "ACKNOWLEDGE"
    COMPLETE = "COMPLETE"


def _key(category: str | TelemetryCategory) -> str:
    return category.value if isinstance(category, TelemetryCategory) else category


class TelemetryStore:
    """
    Thread-safe (category, field) -> latest value mapping.

    Example:
        >>> store = TelemetryStore()
        >>> store.update(TelemetryCategory.ACKNOWLEDGE, {"id": 3, "code": 0, "message": "OK"})
        1
        >>> store.get(TelemetryCategory.ACKNOWLEDGE, "id")
        3
        >>> store.get(TelemetryCategory.COMPLETE, "code") is None
        True
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._values: dict[str, dict[str, Any]] = {}
        self._sequences: dict[str, int] = {}

    def get(self, category: str | TelemetryCategory, field: str, default: Any = None) -> Any:
        """Get the latest value of one field, or default if never written."""
        with self._lock:
            return self._values.get(_key(category), {}).get(field, default)

    def set(self, category: str | TelemetryCategory, field: str, value: Any) -> None:
        """Write a single field."""
        self.update(category, {field: value})

    def update(self, category: str | TelemetryCategory, fields: Mapping[str, Any]) -> int:
        """
        Atomically write several fields of one category.

        Fields not named keep their previous value.

        Returns:
            The category's new update sequence number.
        """
        key = _key(category)
        with self._lock:
            self._values.setdefault(key, {}).update(fields)
            sequence = self._sequences.get(key, 0) + 1
            self._sequences[key] = sequence
            return sequence

    def snapshot(self, category: str | TelemetryCategory) -> dict[str, Any]:
        """Return a consistent copy of all fields in one category."""
        with self._lock:
            return dict(self._values.get(_key(category), {}))

    def read(self, category: str | TelemetryCategory) -> tuple[int, dict[str, Any]]:
        """Return (sequence, fields) for one category, read together."""
        key = _key(category)
        with self._lock:
            return self._sequences.get(key, 0), dict(self._values.get(key, {}))

    def sequence(self, category: str | TelemetryCategory) -> int:
        """Number of updates applied to a category (0 if never written)."""
        with self._lock:
            return self._sequences.get(_key(category), 0)

    def categories(self) -> list[str]:
        """Names of all categories written so far."""
        with self._lock:
            return list(self._values)

    def clear(self) -> None:
        """Forget every category."""
        with self._lock:
            self._values.clear()
            self._sequences.clear()

    def __repr__(self) -> str:
        return f"TelemetryStore(categories={self.categories()})"
