#!/usr/bin/env python3
#
# Laundry vibration monitor
#
# Polls GPIO pins through a pinctrl-compatible command and uses a rolling
# window to decide whether each pin should be considered active. It is meant
# to clean up the output of a noisy vibration sensor. The computed value is
# served over HTTP, by default on http://<ip>:8080/ as:
#
#   Pin 14: false
#   Pin 4: true
#

from laundrymon.cli import main

if __name__ == "__main__":
    raise SystemExit(main())
