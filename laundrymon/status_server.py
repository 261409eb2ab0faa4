from __future__ import annotations

import json
import socket
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Optional, Tuple

from .constants import VERSION
from .state import StatusPublisher, StatusSnapshot
from .util import fmt_bool

# ---------------- HTTP status server ----------------
# Minimal HTTP/1.x responder. Each connection is handled by a bounded worker
# pool with a per-connection socket timeout; when every worker is busy new
# clients get a 503 instead of queueing, so a slow client cannot starve others.

BUSY_TIMEOUT_S = 0.2

_REASONS = {200: "OK", 400: "Bad Request", 404: "Not Found", 405: "Method Not Allowed", 503: "Service Unavailable"}


def render_text(snapshot: StatusSnapshot) -> str:
    """`Pin 14: false` lines, with the filtered value appended when the filter is on."""
    lines = []
    for s in snapshot:
        line = f"Pin {s.pin}: {fmt_bool(s.debounced)}"
        if s.filtered is not None:
            line += f" filtered={fmt_bool(s.filtered)}"
        lines.append(line)
    return "\n".join(lines) + ("\n" if lines else "")


def render_json(snapshot: StatusSnapshot) -> str:
    payload = snapshot.as_dict()
    payload["version"] = VERSION
    return json.dumps(payload, sort_keys=True) + "\n"


def parse_request_line(data: bytes) -> Optional[Tuple[str, str]]:
    """Return (method, path) from the first request line, or None if malformed."""
    first = data.split(b"\r\n", 1)[0].split(b"\n", 1)[0]
    try:
        text = first.decode("ascii")
    except UnicodeDecodeError:
        return None
    parts = text.split()
    if len(parts) != 3 or not parts[2].startswith("HTTP/"):
        return None
    return parts[0].upper(), parts[1]


def build_response(status: int, body: str, content_type: str = "text/plain; charset=utf-8") -> bytes:
    raw = body.encode("utf-8")
    head = (
        f"HTTP/1.1 {status} {_REASONS.get(status, '')}\r\n"
        f"Content-Type: {content_type}\r\n"
        f"Content-Length: {len(raw)}\r\n"
        "Connection: close\r\n"
        "\r\n"
    )
    return head.encode("ascii") + raw


class StatusServer:
    """Serves StatusPublisher snapshots over HTTP.

    GET /       plain text, one `Pin N: bool` line per pin
    GET /json   JSON document with the tick counter and every pin
    """
    def __init__(
        self,
        publisher: StatusPublisher,
        logger,
        port: int,
        bind: str = "0.0.0.0",
        max_workers: int = 4,
        conn_timeout_s: float = 2.0,
    ):
        self.publisher = publisher
        self.logger = logger
        self.port = int(port)
        self.bind = bind
        self.conn_timeout_s = float(conn_timeout_s)
        self._slots = threading.BoundedSemaphore(max_workers)
        self._pool = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="status")
        self._stop_evt = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._sock: Optional[socket.socket] = None
        self.address: Optional[Tuple[str, int]] = None

    def start(self):
        """Bind and start accepting. Binding errors propagate to the caller."""
        srv = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        srv.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        try:
            srv.bind((self.bind, self.port))
            srv.listen(16)
        except OSError:
            srv.close()
            raise
        srv.settimeout(0.5)
        self._sock = srv
        self.address = srv.getsockname()[:2]
        t = threading.Thread(target=self._accept_loop, daemon=True)
        t.start()
        self._thread = t
        self.logger.emit("status_server_started", bind=self.address[0], port=self.address[1])

    def stop(self):
        self._stop_evt.set()
        if self._thread is not None:
            self._thread.join(timeout=2.0)
        self._pool.shutdown(wait=False)

    def _accept_loop(self):
        srv = self._sock
        while not self._stop_evt.is_set():
            try:
                conn, _ = srv.accept()
            except socket.timeout:
                continue
            except OSError as e:
                self.logger.emit("status_server_error", error=str(e))
                break

            if not self._slots.acquire(blocking=False):
                self._reply_busy(conn)
                continue
            try:
                self._pool.submit(self._serve, conn)
            except RuntimeError:
                # Pool already shut down.
                self._slots.release()
                conn.close()
                break

        srv.close()

    def _reply_busy(self, conn):
        # Runs on the accept thread, so every wait here is short and bounded.
        # The request is read before replying and drained after SHUT_WR: closing
        # with unread bytes makes the kernel send RST, which can discard the 503.
        try:
            conn.settimeout(BUSY_TIMEOUT_S)
            try:
                conn.recv(8192)
            except socket.timeout:
                pass
            conn.sendall(build_response(503, "busy\n"))
            conn.shutdown(socket.SHUT_WR)
            for _ in range(4):
                if not conn.recv(8192):
                    break
        except OSError:
            # Includes socket.timeout while draining; the reply is already out.
            pass
        finally:
            conn.close()

    def _serve(self, conn):
        try:
            conn.settimeout(self.conn_timeout_s)
            data = b""
            while b"\n" not in data and len(data) < 8192:
                chunk = conn.recv(4096)
                if not chunk:
                    break
                data += chunk
            conn.sendall(self.handle(data))
        except OSError as e:
            # Client timeouts and resets stay here; the poll loop never sees them.
            self.logger.emit("status_server_error", error=str(e))
        finally:
            conn.close()
            self._slots.release()

    def handle(self, data: bytes) -> bytes:
        """Build the full HTTP response for raw request bytes."""
        req = parse_request_line(data)
        if req is None:
            return build_response(400, "bad request\n")
        method, path = req
        if method != "GET":
            return build_response(405, "method not allowed\n")
        path = path.split("?", 1)[0]
        snapshot = self.publisher.snapshot()
        if path in ("/", "/status"):
            return build_response(200, render_text(snapshot))
        if path == "/json":
            return build_response(200, render_json(snapshot), "application/json")
        return build_response(404, "not found\n")
