from __future__ import annotations

from .constants import MODE_CHANGES, MODE_THRESHOLD
from .errors import ConfigError
from .window import SampleWindow


class DebounceClassifier:
    """Stage 1: turn raw high/low readings for one pin into a stable bool.

    threshold mode: push 1 for every high reading; output is
    ``window.total >= threshold``. Threshold 0 is always true, a threshold
    above the window size never triggers.

    changes mode: push 1 whenever the reading differs from the previous raw
    reading (the first reading is compared against low). This detects an
    oscillating signal, i.e. vibration, rather than a high level.
    """
    def __init__(self, window_size: int, threshold: int, mode: str = MODE_THRESHOLD):
        if mode not in (MODE_THRESHOLD, MODE_CHANGES):
            raise ConfigError(f"unknown debounce mode: {mode!r}")
        if int(threshold) < 0:
            raise ConfigError(f"threshold must be >= 0 (got {threshold})")
        self.window = SampleWindow(window_size)
        self.threshold = int(threshold)
        self.mode = mode
        self.last_raw = False
        self.state = False
        self.changed = False

    def push(self, high: bool) -> bool:
        """Feed one raw reading and return the (possibly unchanged) stable state."""
        high = bool(high)
        if self.mode == MODE_CHANGES:
            bit = 1 if high != self.last_raw else 0
            self.last_raw = high
        else:
            bit = 1 if high else 0
        total = self.window.push(bit)
        new_state = total >= self.threshold
        self.changed = new_state != self.state
        self.state = new_state
        return new_state


class MajorityFilter:
    """Stage 2: only follow the debounced value once it has been unanimous for a full window.

    Any mixed window keeps the previously published value, so short flips are
    dropped entirely instead of being smoothed.
    """
    def __init__(self, filter_size: int):
        self.window = SampleWindow(filter_size)
        self.value = False
        self.changed = False

    @property
    def size(self) -> int:
        return self.window.capacity

    def push(self, debounced: bool) -> bool:
        total = self.window.push(1 if debounced else 0)
        new_value = self.value
        if total == 0:
            new_value = False
        elif total == self.window.capacity:
            new_value = True
        self.changed = new_value != self.value
        self.value = new_value
        return new_value


def make_filter(filter_size: int):
    """Return a MajorityFilter, or None when the stage is disabled (size 0)."""
    if int(filter_size) < 0:
        raise ConfigError(f"filter size must be >= 0 (got {filter_size})")
    if int(filter_size) == 0:
        return None
    return MajorityFilter(filter_size)
