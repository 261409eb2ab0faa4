from __future__ import annotations
import threading
from typing import Optional
import requests

PUSHOVER_URL = "https://api.pushover.net/1/messages.json"


class Notifier:
    """Pushover push notifications for pin state changes.

    Sending happens on a short-lived daemon thread so a slow network never
    stalls the poll loop. Failures are reported to the logger, never raised."""
    def __init__(self, enabled: bool, pushover_token: Optional[str], pushover_user: Optional[str],
                 timeout_s: float = 5.0, logger=None, title: str = "Laundry monitor"):
        self.enabled = enabled and bool(pushover_token and pushover_user)
        self._token = pushover_token
        self._user = pushover_user
        self._timeout = timeout_s
        self._logger = logger
        self.title = title

    def pin_changed(self, pin: int, value: bool):
        self.send(self.title, f"Pin {pin} is now {'active' if value else 'idle'}")

    def send(self, title: str, message: str, priority: int = 0):
        if not self.enabled:
            return
        threading.Thread(target=self._send_sync, args=(title, message, priority), daemon=True).start()

    def _send_sync(self, title: str, message: str, priority: int):
        try:
            resp = requests.post(
                PUSHOVER_URL,
                data={
                    "token": self._token,
                    "user": self._user,
                    "title": title,
                    "message": message,
                    "priority": priority,
                },
                timeout=self._timeout,
            )
            resp.raise_for_status()
        except Exception as e:
            if self._logger is not None:
                self._logger.emit("notify_error", error=str(e))
