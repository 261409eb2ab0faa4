from __future__ import annotations

from .errors import ConfigError


class SampleWindow:
    """Fixed-capacity FIFO of 0/1 samples with a running sum.

    The ring is allocated once and pre-filled with zeros, so a fresh window
    never looks triggered. push() overwrites the oldest slot in place."""
    __slots__ = ("_ring", "_head", "_sum")

    def __init__(self, capacity: int):
        if int(capacity) < 1:
            raise ConfigError(f"window capacity must be >= 1 (got {capacity})")
        self._ring = [0] * int(capacity)
        self._head = 0  # index of the oldest sample
        self._sum = 0

    @property
    def capacity(self) -> int:
        return len(self._ring)

    @property
    def total(self) -> int:
        return self._sum

    def push(self, bit: int) -> int:
        """Evict the oldest sample, append bit, and return the new sum."""
        if bit not in (0, 1):
            raise ValueError(f"sample must be 0 or 1 (got {bit!r})")
        bit = int(bit)
        evicted = self._ring[self._head]
        self._ring[self._head] = bit
        self._head = (self._head + 1) % len(self._ring)
        self._sum += bit - evicted
        return self._sum

    def values(self) -> list:
        """Samples oldest first."""
        return self._ring[self._head:] + self._ring[:self._head]

    def __len__(self) -> int:
        return len(self._ring)

    def __repr__(self) -> str:
        return f"SampleWindow(capacity={self.capacity}, total={self._sum})"
