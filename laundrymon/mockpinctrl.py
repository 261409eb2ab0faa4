"""Simulates the `pinctrl` utility from the Pi for running without hardware.

Usage:
  mock-pinctrl get 14,8,25

Each requested pin reads `hi` roughly one time in ten.
"""

from __future__ import annotations

import random
import sys

from .acquisition import render_line


def main(argv=None, rng=None) -> int:
    argv = sys.argv[1:] if argv is None else list(argv)
    if len(argv) != 2 or argv[0] != "get":
        print("usage: mock-pinctrl get PIN1,PIN2,...", file=sys.stderr)
        return 2
    try:
        pins = sorted(int(p) for p in argv[1].split(",") if p.strip())
    except ValueError:
        print(f"invalid pin list: {argv[1]}", file=sys.stderr)
        return 2

    rng = rng or random.Random()
    for pin in pins:
        print(render_line(pin, rng.randint(1, 10) == 1))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
