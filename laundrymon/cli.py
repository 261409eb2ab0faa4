from __future__ import annotations

import json
import signal
import sys

from .acquisition import make_source
from .config import build_arg_parser, get_notifier_config, resolve_settings, resolved_config_dict
from .constants import SOURCE_COMMAND, VERSION
from .doctor import run_doctor
from .errors import ConfigError
from .logging import JsonLogger
from .notify import Notifier
from .poller import PollLoop
from .status_server import StatusServer


def print_banner(settings):
    print(f"laundry-monitor {VERSION}")
    print("Listener started.")
    if settings.source == SOURCE_COMMAND:
        print(f"Command: {settings.command}")
    else:
        print(f"Source: {settings.source}")
    print(f"Pins: {settings.pins}")
    print(f"Check period: {settings.check_period} milliseconds")
    print(f"Samples count: {settings.samples_count}")
    if settings.state_changes_needed is None:
        print(f"Positive samples needed: {settings.positive_samples_needed}")
    else:
        print(f"State changes needed: {settings.state_changes_needed}")
    if settings.filter_size:
        print(f"Filter size: {settings.filter_size}")
    print()


def main(argv=None):
    """CLI entry point. Parses args, builds the pipeline, and polls until stopped."""
    ap = build_arg_parser()
    args = ap.parse_args(argv)

    if args.version:
        print(VERSION)
        return 0

    # CLI arguments take precedence over the TOML file, which takes precedence over defaults.
    try:
        settings = resolve_settings(args)
    except (OSError, ValueError) as e:
        print(f"ERROR: cannot load configuration: {e}", file=sys.stderr)
        return 2

    if args.print_config:
        print(json.dumps(resolved_config_dict(settings), indent=2, sort_keys=True))
        return 0

    if not settings.pins:
        ap.print_help()
        return 1

    try:
        settings.validate()
    except ConfigError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 2

    if args.doctor:
        return run_doctor(settings)

    logger = JsonLogger(enable_json=settings.json, verbose=settings.verbose)
    for w in settings.warnings():
        logger.emit("config_warning", message=w)

    try:
        source = make_source(settings)
    except ImportError as e:  # pragma: no cover
        print(f"ERROR: {e}. Install it with: pip install gpiozero", file=sys.stderr)
        return 2

    notifier = Notifier(logger=logger, **get_notifier_config())
    loop = PollLoop.from_settings(settings, source, logger, notifier=notifier)

    if not settings.no_banner:
        print_banner(settings)
        # Structured startup event for log scraping
        logger.emit(
            "startup",
            version=VERSION,
            source=settings.source,
            command=settings.command,
            pins=",".join(str(p) for p in settings.pins),
            check_period_ms=settings.check_period,
            samples_count=settings.samples_count,
            mode=settings.mode,
            threshold=settings.threshold,
            filter_size=settings.filter_size,
            strict=not settings.skip_bad_lines,
            port=settings.port,
            notify=notifier.enabled,
        )

    server = None
    if settings.port != 0:
        server = StatusServer(loop.publisher, logger, settings.port, bind=settings.bind)
        try:
            server.start()
        except OSError as e:
            print(f"ERROR: could not open socket on port {settings.port}: {e}", file=sys.stderr)
            return 2

    signal.signal(signal.SIGINT, lambda *_: loop.stop())
    signal.signal(signal.SIGTERM, lambda *_: loop.stop())

    try:
        exit_code = loop.run()
    finally:
        if server is not None:
            server.stop()
        close = getattr(source, "close", None)
        if close is not None:
            close()
    return exit_code


if __name__ == "__main__":
    raise SystemExit(main())
