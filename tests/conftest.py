import shlex
import sys
from pathlib import Path

import pytest

REPO_ROOT = Path(__file__).resolve().parents[1]


class CapturingLogger:
    """Minimal logger that matches the monitor's .emit(event, **fields) contract."""
    def __init__(self, verbose=False):
        self.verbose = verbose
        self.events = []

    def emit(self, event: str, **fields):
        self.events.append((event, fields))

    def debug(self, event: str, **fields):
        if self.verbose:
            self.emit(event, **fields)

    def names(self):
        return [e for e, _ in self.events]


class ScriptedSource:
    """Acquisition stub that replays prepared outputs (or raises prepared errors)."""
    def __init__(self, outputs):
        self.outputs = list(outputs)
        self.calls = []

    def read(self, pins):
        self.calls.append(list(pins))
        item = self.outputs.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


def pinctrl(**values):
    """Build pinctrl output from pin=value pairs, e.g. pinctrl(p14="hi", p4="lo")."""
    lines = []
    for key, value in values.items():
        pin = int(key.lstrip("p"))
        lines.append(f"{str(pin).rjust(2)}: ip    -- | {value} // GPIO{pin} = input")
    return "\n".join(lines) + "\n"


def python_command(code=None, module=None):
    """A shell-style command string running the current interpreter."""
    exe = shlex.quote(sys.executable)
    if module:
        return f"{exe} -m {module}"
    return f"{exe} -c {shlex.quote(code)}"


@pytest.fixture
def logger():
    return CapturingLogger()


@pytest.fixture
def verbose_logger():
    return CapturingLogger(verbose=True)
