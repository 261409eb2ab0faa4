from __future__ import annotations

from typing import Optional

from .constants import MODE_THRESHOLD
from .debounce import DebounceClassifier, make_filter
from .logging import JsonLogger
from .state import PinStatus, Reading


class PinMonitor:
    """Debounce pipeline for a single pin.

    Owns the pin's sample window, classifier and optional unanimity filter.
    update() is the only mutation and always runs the full sequence: window
    push, sum, threshold test, then the filter push and test when configured."""
    def __init__(
        self,
        pin: int,
        window_size: int,
        threshold: int,
        mode: str = MODE_THRESHOLD,
        filter_size: int = 0,
        logger: Optional[JsonLogger] = None,
    ):
        self.pin = int(pin)
        self.classifier = DebounceClassifier(window_size, threshold, mode)
        self.filter = make_filter(filter_size)
        self.logger = logger
        self.status = self._current()

    def _current(self) -> PinStatus:
        filtered = self.filter.value if self.filter is not None else None
        return PinStatus(pin=self.pin, debounced=self.classifier.state, filtered=filtered)

    def update(self, reading: Reading) -> PinStatus:
        """Feed one raw reading and return the pin's new status."""
        debounced = self.classifier.push(reading.is_high)
        if self.filter is not None:
            self.filter.push(debounced)

        if self.logger is not None:
            if getattr(self.logger, "verbose", False):
                self.logger.emit(
                    "samples",
                    pin=self.pin,
                    reading=reading.value,
                    total=self.classifier.window.total,
                    window=self.classifier.window.capacity,
                )
            # Only real transitions are logged; the recomputation above runs every tick.
            if self.classifier.changed:
                self.logger.emit("state_changed", pin=self.pin, state=debounced)
            if self.filter is not None and self.filter.changed:
                self.logger.emit("filtered_changed", pin=self.pin, state=self.filter.value)

        self.status = self._current()
        return self.status
