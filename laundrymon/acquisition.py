from __future__ import annotations

import random
import re
import shlex
import subprocess
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .constants import DEFAULT_COMMAND_TIMEOUT_S, SOURCE_GPIO, SOURCE_MOCK
from .errors import (
    AcquisitionError,
    BAD_VALUE,
    DUPLICATE_PIN,
    EMPTY,
    EXIT_STATUS,
    MISSING_PIN,
    TIMEOUT,
    UNAVAILABLE,
    UNKNOWN_PIN,
    UNPARSEABLE,
    Violation,
)
from .state import Reading

# pinctrl output, e.g. " 3: ip    -- | lo // GPIO3 = input". The value is a word;
# the "//" comment may follow it without a space.
_LINE_RE = re.compile(r"^\s*(\d+)\s*:[^|]*\|\s*(\w+)")


def render_line(pin: int, high: bool) -> str:
    """Format one pin the way `pinctrl get` prints an input pin."""
    value = "hi" if high else "lo"
    return f"{str(pin).rjust(2)}: ip    -- | {value} // GPIO{pin} = input"


def parse_line(line: str) -> Tuple[Optional[int], Optional[Reading], Optional[Violation]]:
    """Parse a single pinctrl line into (pin, reading, violation)."""
    m = _LINE_RE.match(line)
    if not m:
        return None, None, Violation(UNPARSEABLE, f"cannot parse line: {line.strip()!r}")
    pin = int(m.group(1))
    raw = m.group(2)
    try:
        reading = Reading(raw)
    except ValueError:
        return pin, None, Violation(BAD_VALUE, f"unexpected pin value: {raw!r}", pin=pin)
    return pin, reading, None


def parse_batch(output: str, pins: Sequence[int]) -> Tuple[Dict[int, Reading], List[Violation]]:
    """Parse one acquisition response for the configured pins.

    Returns the readings that validated and every violation found. Blank lines
    are ignored. A pin outside the configured set, a repeated pin, or a
    configured pin with no line are all violations.
    """
    wanted = set(pins)
    readings: Dict[int, Reading] = {}
    violations: List[Violation] = []

    for line in output.splitlines():
        if not line.strip():
            continue
        pin, reading, violation = parse_line(line)
        if violation is not None:
            violations.append(violation)
            continue
        if pin not in wanted:
            violations.append(Violation(UNKNOWN_PIN, f"unexpected pin: {pin}", pin=pin))
            continue
        if pin in readings:
            violations.append(Violation(DUPLICATE_PIN, f"pin reported twice: {pin}", pin=pin))
            continue
        readings[pin] = reading

    reported = set(readings) | {v.pin for v in violations if v.pin is not None}
    for pin in pins:
        if pin not in reported:
            violations.append(Violation(MISSING_PIN, f"no reading for pin {pin}", pin=pin))
    return readings, violations


class CommandSource:
    """Runs an external pinctrl-compatible command: ``<command> get 14,4``."""
    def __init__(self, command: str, timeout_s: Optional[float] = DEFAULT_COMMAND_TIMEOUT_S):
        self.command = command
        self.argv = shlex.split(command)
        if not self.argv:
            raise ValueError("acquisition command is empty")
        self.timeout_s = timeout_s if timeout_s and timeout_s > 0 else None

    def read(self, pins: Iterable[int]) -> str:
        argv = self.argv + ["get", ",".join(str(p) for p in pins)]
        try:
            proc = subprocess.run(argv, capture_output=True, text=True, timeout=self.timeout_s)
        except subprocess.TimeoutExpired:
            raise AcquisitionError(TIMEOUT, f"{self.command} did not answer within {self.timeout_s}s")
        except OSError as e:
            raise AcquisitionError(UNAVAILABLE, f"{self.command}: {e}")
        if proc.returncode != 0:
            err = (proc.stderr or "").strip()
            raise AcquisitionError(EXIT_STATUS, f"{self.command} exited with {proc.returncode}: {err}")
        if not proc.stdout.strip():
            raise AcquisitionError(EMPTY, f"{self.command} produced no output")
        return proc.stdout


class GpioSource:
    """Reads pins directly through gpiozero and renders pinctrl-style lines."""
    def __init__(self, pins: Iterable[int], device_factory=None):
        if device_factory is None:
            # gpiozero is only needed when actually reading hardware.
            from gpiozero import DigitalInputDevice
            device_factory = DigitalInputDevice
        self.devices = {int(p): device_factory(int(p), pull_up=False) for p in pins}

    def read(self, pins: Iterable[int]) -> str:
        lines = []
        for pin in pins:
            dev = self.devices.get(int(pin))
            if dev is None:
                raise AcquisitionError(UNAVAILABLE, f"pin {pin} was not opened")
            lines.append(render_line(pin, dev.value == 1))
        return "\n".join(lines) + "\n"

    def close(self):
        for dev in self.devices.values():
            close = getattr(dev, "close", None)
            if close is not None:
                close()


class MockSource:
    """In-process simulator: each pin reads hi roughly one time in ten."""
    def __init__(self, rng: Optional[random.Random] = None, high_one_in: int = 10):
        self.rng = rng or random.Random()
        self.high_one_in = int(high_one_in)

    def read(self, pins: Iterable[int]) -> str:
        lines = [render_line(p, self.rng.randint(1, self.high_one_in) == 1) for p in sorted(pins)]
        return "\n".join(lines) + "\n"


def make_source(settings):
    """Build the acquisition source selected by settings.source."""
    if settings.source == SOURCE_GPIO:
        return GpioSource(settings.pins)
    if settings.source == SOURCE_MOCK:
        return MockSource()
    return CommandSource(settings.command, settings.command_timeout)
