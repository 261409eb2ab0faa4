from __future__ import annotations

import sys

from .acquisition import make_source, parse_batch, parse_line
from .errors import AcquisitionError


def run_doctor(settings, source=None, out=None) -> int:
    """Run one acquisition and print how every line parses.

    Returns 0 when the batch is clean, 1 otherwise. Never touches pin state.
    """
    out = out or sys.stdout

    def say(msg=""):
        print(msg, file=out)

    say("Doctor Mode (read-only):")
    say(f"  source={settings.source} command={settings.command!r} pins={settings.pins}")
    say()

    owned = source is None
    if owned:
        source = make_source(settings)
    try:
        output = source.read(settings.pins)
    except AcquisitionError as e:
        say(f"  FAIL: acquisition call failed ({e.kind}): {e.detail}")
        return 1
    finally:
        close = getattr(source, "close", None)
        if owned and close is not None:
            close()

    for line in output.splitlines():
        if not line.strip():
            continue
        pin, reading, violation = parse_line(line)
        if violation is not None:
            say(f"  {line.rstrip()}")
            say(f"      -> WARN {violation.kind}: {violation.detail}")
        else:
            say(f"  {line.rstrip()}")
            say(f"      -> pin={pin} value={reading.value}")

    _, violations = parse_batch(output, settings.pins)
    say()
    if violations:
        for v in violations:
            say(f"  FAIL: {v.kind}: {v.detail}")
        return 1
    say(f"  OK: all {len(settings.pins)} pin(s) reported a valid value")
    return 0
