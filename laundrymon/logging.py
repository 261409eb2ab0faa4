from __future__ import annotations

import json
import sys
import threading
import time


class JsonLogger:
    """Minimal structured logger.

    Emits single-line events for pin state transitions and acquisition problems
    so logs are easy to grep and machine-parse. The poll loop and the status
    server threads share one instance, so writes are serialised."""
    def __init__(self, enable_json: bool = False, verbose: bool = False, stream=None):
        """Create a logger.

        Args:
            enable_json: Emit JSON lines instead of human-readable text.
            verbose: Let debug() events through.
            stream: A file-like object (defaults to stdout) used for event output.
        """
        self.enable_json = enable_json
        self.verbose = bool(verbose)
        self._stream = stream
        self._lock = threading.Lock()

    def emit(self, event: str, **fields):
        """Emit an event with a name and optional key/value fields."""
        t = time.time()
        # ts_iso is a human-friendly local timestamp with milliseconds.
        ts_iso = time.strftime('%Y-%m-%d %H:%M:%S', time.localtime(t)) + f'.{int((t - int(t))*1000):03d}'
        if self.enable_json:
            payload = {"ts": t, "ts_iso": ts_iso, "event": event, **fields}
            line = json.dumps(payload, sort_keys=True)
        else:
            line = f"[{ts_iso}] {event}"
            if fields:
                line += " " + " ".join(f"{k}={v}" for k, v in fields.items())
        stream = self._stream if self._stream is not None else sys.stdout
        with self._lock:
            print(line, file=stream, flush=True)

    def debug(self, event: str, **fields):
        """Emit only when verbose output was requested."""
        if self.verbose:
            self.emit(event, **fields)
