from __future__ import annotations

VERSION = "1.0.0"

DEFAULT_COMMAND = "pinctrl"
DEFAULT_CHECK_PERIOD_MS = 100
DEFAULT_SAMPLES_COUNT = 10
DEFAULT_POSITIVE_SAMPLES_NEEDED = 2
DEFAULT_FILTER_SIZE = 0
DEFAULT_HTTP_PORT = 8080
DEFAULT_HTTP_BIND = "0.0.0.0"
DEFAULT_COMMAND_TIMEOUT_S = 5.0

MODE_THRESHOLD = "threshold"
MODE_CHANGES = "changes"

SOURCE_COMMAND = "command"
SOURCE_GPIO = "gpio"
SOURCE_MOCK = "mock"


USAGE_EXAMPLES = """\
Usage examples:
  # Watch two pins through pinctrl, report on http://<ip>:8080/
  laundry-monitor -p 14,4

  # Vibration mode: count raw state changes instead of high samples
  laundry-monitor -p 14 --samples-count 1000 --state-changes-needed 20

  # Suppress short flips: output changes only after 50 unanimous ticks
  laundry-monitor -p 14 --filter-size 50 --verbose --json

  # Try it without hardware using the bundled pinctrl simulator
  laundry-monitor -p 14,8,25 --command mock-pinctrl

  # One-shot check of the acquisition command
  laundry-monitor --doctor -p 14,4
"""
