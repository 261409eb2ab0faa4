"""Command-line client for a running laundry-monitor.

Commands:
  status       print the current pin classification
  test-notify  send a test push notification with the configured Pushover keys

Server URL:
  - default: http://127.0.0.1:8080
  - override: --url URL or LAUNDRYMON_URL env var
"""

from __future__ import annotations

import argparse
import json
import os
import sys

import requests

from .config import get_notifier_config
from .notify import PUSHOVER_URL
from .util import fmt_bool

DEFAULT_URL = "http://127.0.0.1:8080"


def fetch_status(url: str, timeout_s: float = 5.0) -> dict:
    """GET <url>/json and return the decoded document, or an error dict."""
    try:
        resp = requests.get(url.rstrip("/") + "/json", timeout=timeout_s)
        resp.raise_for_status()
    except requests.RequestException as e:
        return {"ok": False, "error": str(e)}
    try:
        doc = resp.json()
    except ValueError:
        return {"ok": False, "error": "non-json response", "raw": resp.text}
    doc["ok"] = True
    return doc


def format_status(doc: dict) -> str:
    lines = [f"ok  version={doc.get('version', '')} tick={doc.get('tick')}"]
    for p in doc.get("pins", []):
        line = f"Pin {p.get('pin')}: {fmt_bool(p.get('debounced'))}"
        if "filtered" in p:
            line += f" filtered={fmt_bool(p['filtered'])}"
        lines.append(line)
    return "\n".join(lines)


def _test_notify(timeout_s: float) -> int:
    cfg = get_notifier_config()
    if not cfg["pushover_token"] or not cfg["pushover_user"]:
        print("error: PUSHOVER_TOKEN and PUSHOVER_USER must be set", file=sys.stderr)
        return 2
    try:
        resp = requests.post(
            PUSHOVER_URL,
            data={
                "token": cfg["pushover_token"],
                "user": cfg["pushover_user"],
                "title": "Laundry monitor",
                "message": "Test notification from laundrymonctl",
            },
            timeout=timeout_s,
        )
        resp.raise_for_status()
    except requests.RequestException as e:
        print(f"error: {e}", file=sys.stderr)
        return 2
    print("ok")
    return 0


def main(argv=None) -> int:
    ap = argparse.ArgumentParser(description="Query a running laundry-monitor over HTTP")
    ap.add_argument("command", choices=["status", "test-notify"], help="Command to run")
    ap.add_argument("--url", default=os.environ.get("LAUNDRYMON_URL", DEFAULT_URL),
                    help=f"Base URL of the monitor's HTTP server (default: {DEFAULT_URL})")
    ap.add_argument("--timeout", type=float, default=5.0, help="Request timeout in seconds")
    ap.add_argument("--json", action="store_true", help="Print raw JSON response")
    args = ap.parse_args(argv)

    if args.command == "test-notify":
        return _test_notify(args.timeout)

    doc = fetch_status(args.url, args.timeout)
    if not doc.get("ok"):
        print(f"error: {doc.get('error', 'unknown error')}", file=sys.stderr)
        raw = doc.get("raw")
        if raw:
            print(raw, file=sys.stderr)
        return 2
    if args.json:
        print(json.dumps(doc, indent=2, sort_keys=True))
    else:
        print(format_status(doc))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
