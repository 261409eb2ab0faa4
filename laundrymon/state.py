from __future__ import annotations

import enum
import threading
from dataclasses import dataclass, field
from typing import Dict, Iterable, Optional, Tuple


class Reading(enum.Enum):
    """One raw pin reading as reported by the acquisition command."""
    HIGH = "hi"
    LOW = "lo"

    @property
    def is_high(self) -> bool:
        return self is Reading.HIGH


@dataclass(frozen=True)
class PinStatus:
    """Published classification of one pin. filtered is None when the filter stage is off."""
    pin: int
    debounced: bool = False
    filtered: Optional[bool] = None

    @property
    def value(self) -> bool:
        """The value consumers should act on: filtered when available, else debounced."""
        return self.debounced if self.filtered is None else self.filtered

    def as_dict(self) -> dict:
        d = {"pin": self.pin, "debounced": self.debounced}
        if self.filtered is not None:
            d["filtered"] = self.filtered
        return d


@dataclass(frozen=True)
class StatusSnapshot:
    """Immutable view of every pin as of one completed tick."""
    tick: int = 0
    pins: Tuple[PinStatus, ...] = field(default_factory=tuple)

    def get(self, pin: int) -> Optional[PinStatus]:
        for status in self.pins:
            if status.pin == pin:
                return status
        return None

    def as_dict(self) -> dict:
        return {"tick": self.tick, "pins": [s.as_dict() for s in self.pins]}

    def __iter__(self):
        return iter(self.pins)

    def __len__(self) -> int:
        return len(self.pins)


class StatusTable:
    """Authoritative per-pin state table.

    Owned by the poll loop. A whole tick is published at once by swapping the
    snapshot reference, so readers only ever see complete ticks."""
    def __init__(self, initial: Iterable[PinStatus]):
        self._lock = threading.Lock()
        self._snapshot = StatusSnapshot(tick=0, pins=tuple(initial))

    def publish(self, statuses: Dict[int, PinStatus]) -> StatusSnapshot:
        """Replace the statuses of the given pins and bump the tick counter.

        Pins not in statuses keep their previous value. Pin order never changes.
        """
        with self._lock:
            current = self._snapshot
            pins = tuple(statuses.get(s.pin, s) for s in current.pins)
            self._snapshot = StatusSnapshot(tick=current.tick + 1, pins=pins)
            return self._snapshot

    def snapshot(self) -> StatusSnapshot:
        with self._lock:
            return self._snapshot


class StatusPublisher:
    """Read-only accessor handed to the reporting transport."""
    def __init__(self, table: StatusTable):
        self._table = table

    def snapshot(self) -> StatusSnapshot:
        return self._table.snapshot()

    def records(self):
        """Ordered (pin, debounced[, filtered]) tuples for transports that want plain records."""
        out = []
        for s in self._table.snapshot():
            if s.filtered is None:
                out.append((s.pin, s.debounced))
            else:
                out.append((s.pin, s.debounced, s.filtered))
        return out
