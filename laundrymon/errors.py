from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

# Violation kinds reported by the acquisition parser and sources.
UNPARSEABLE = "unparseable"
UNKNOWN_PIN = "unknown_pin"
BAD_VALUE = "bad_value"
MISSING_PIN = "missing_pin"
DUPLICATE_PIN = "duplicate_pin"

UNAVAILABLE = "unavailable"
EXIT_STATUS = "exit_status"
EMPTY = "empty"
TIMEOUT = "timeout"

# A timed-out acquisition call only costs one tick.
RECOVERABLE_KINDS = frozenset({TIMEOUT})
# Failures of the call itself stay fatal even when bad lines are skipped.
CALL_FAILURE_KINDS = frozenset({UNAVAILABLE, EXIT_STATUS, EMPTY})


class ConfigError(ValueError):
    """Invalid startup configuration. Reported before the poll loop starts."""


class AcquisitionError(RuntimeError):
    """The acquisition call itself failed (command missing, non-zero exit, no output, timeout)."""
    def __init__(self, kind: str, detail: str):
        super().__init__(f"{kind}: {detail}")
        self.kind = kind
        self.detail = detail


@dataclass(frozen=True)
class Violation:
    """One problem found in an acquisition batch."""
    kind: str
    detail: str
    pin: Optional[int] = None

    @property
    def recoverable(self) -> bool:
        return self.kind in RECOVERABLE_KINDS

    def as_dict(self) -> dict:
        return {"kind": self.kind, "detail": self.detail, "pin": self.pin}
