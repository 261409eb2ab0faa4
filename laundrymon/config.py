from __future__ import annotations

import argparse
import os
from argparse import RawDescriptionHelpFormatter
from dataclasses import asdict, dataclass, field
from typing import List, Optional

try:
    import tomllib  # py3.11+
except ModuleNotFoundError:  # pragma: no cover
    import tomli as tomllib

from .constants import (
    DEFAULT_CHECK_PERIOD_MS,
    DEFAULT_COMMAND,
    DEFAULT_COMMAND_TIMEOUT_S,
    DEFAULT_FILTER_SIZE,
    DEFAULT_HTTP_BIND,
    DEFAULT_HTTP_PORT,
    DEFAULT_POSITIVE_SAMPLES_NEEDED,
    DEFAULT_SAMPLES_COUNT,
    MODE_CHANGES,
    MODE_THRESHOLD,
    SOURCE_COMMAND,
    SOURCE_GPIO,
    SOURCE_MOCK,
    USAGE_EXAMPLES,
)
from .errors import ConfigError


def get_bool_env(name: str, default: bool = False) -> bool:
    val = os.getenv(name)
    if val is None:
        return default
    val = val.lower()
    if val in ("1", "true", "yes", "on"):
        return True
    if val in ("0", "false", "no", "off"):
        return False
    return default


def get_notifier_config():
    return {
        "enabled": get_bool_env("LAUNDRYMON_NOTIFY", False),
        "pushover_token": os.getenv("PUSHOVER_TOKEN"),
        "pushover_user": os.getenv("PUSHOVER_USER"),
    }


def parse_pins(value) -> List[int]:
    """Accept "14,4", ["14", 4] or 14 and return a list of ints."""
    if isinstance(value, int) and not isinstance(value, bool):
        return [value]
    if isinstance(value, str):
        items = [x.strip() for x in value.split(",") if x.strip()]
    elif isinstance(value, (list, tuple)):
        items = list(value)
    else:
        raise ConfigError(f"pins must be integers (got {value!r})")
    if any(isinstance(x, (bool, float)) for x in items):
        raise ConfigError(f"pins must be integers (got {value!r})")
    try:
        return [int(x) for x in items]
    except (TypeError, ValueError):
        raise ConfigError(f"pins must be integers (got {value!r})")


def _argparse_pins(value: str) -> List[int]:
    try:
        return parse_pins(value)
    except ConfigError as e:
        raise argparse.ArgumentTypeError(str(e))


@dataclass
class Settings:
    """Resolved runtime configuration."""
    pins: List[int] = field(default_factory=list)
    command: str = DEFAULT_COMMAND
    source: str = SOURCE_COMMAND
    command_timeout: float = DEFAULT_COMMAND_TIMEOUT_S
    check_period: int = DEFAULT_CHECK_PERIOD_MS
    samples_count: int = DEFAULT_SAMPLES_COUNT
    positive_samples_needed: int = DEFAULT_POSITIVE_SAMPLES_NEEDED
    state_changes_needed: Optional[int] = None
    filter_size: int = DEFAULT_FILTER_SIZE
    skip_bad_lines: bool = False
    port: int = DEFAULT_HTTP_PORT
    bind: str = DEFAULT_HTTP_BIND
    verbose: bool = False
    json: bool = False
    no_banner: bool = False

    @property
    def mode(self) -> str:
        """Change counting is selected by giving --state-changes-needed."""
        return MODE_THRESHOLD if self.state_changes_needed is None else MODE_CHANGES

    @property
    def threshold(self) -> int:
        return self.positive_samples_needed if self.state_changes_needed is None else self.state_changes_needed

    def validate(self) -> "Settings":
        """Raise ConfigError for anything that must stop startup."""
        self._check_types()
        if not self.pins:
            raise ConfigError("at least one pin must be specified")
        if len(set(self.pins)) != len(self.pins):
            raise ConfigError(f"pins must be unique (got {self.pins})")
        if any(p < 0 for p in self.pins):
            raise ConfigError(f"pins must be non-negative (got {self.pins})")
        if self.source not in (SOURCE_COMMAND, SOURCE_GPIO, SOURCE_MOCK):
            raise ConfigError(f"unknown source: {self.source!r}")
        if self.source == SOURCE_COMMAND and not (self.command or "").strip():
            raise ConfigError("an acquisition command is required")
        if self.check_period <= 0:
            raise ConfigError(f"check period must be > 0 ms (got {self.check_period})")
        if self.samples_count < 1:
            raise ConfigError(f"samples count must be >= 1 (got {self.samples_count})")
        if self.threshold < 0:
            raise ConfigError(f"threshold must be >= 0 (got {self.threshold})")
        if self.filter_size < 0:
            raise ConfigError(f"filter size must be >= 0 (got {self.filter_size})")
        if not 0 <= self.port <= 65535:
            raise ConfigError(f"port must be between 0 and 65535 (got {self.port})")
        if self.command_timeout < 0:
            raise ConfigError(f"command timeout must be >= 0 s (got {self.command_timeout})")
        return self

    def _check_types(self):
        """Config files can carry any TOML type; only the right ones get past here."""
        ints = ["check_period", "samples_count", "positive_samples_needed", "filter_size", "port"]
        if self.state_changes_needed is not None:
            ints.append("state_changes_needed")
        for name in ints:
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise ConfigError(f"{name} must be an integer (got {value!r})")
        if not isinstance(self.pins, list) or any(isinstance(p, bool) or not isinstance(p, int) for p in self.pins):
            raise ConfigError(f"pins must be a list of integers (got {self.pins!r})")
        if isinstance(self.command_timeout, bool) or not isinstance(self.command_timeout, (int, float)):
            raise ConfigError(f"command_timeout must be a number (got {self.command_timeout!r})")
        for name in ("command", "source", "bind"):
            if not isinstance(getattr(self, name), str):
                raise ConfigError(f"{name} must be a string (got {getattr(self, name)!r})")
        for name in ("skip_bad_lines", "verbose", "json", "no_banner"):
            if not isinstance(getattr(self, name), bool):
                raise ConfigError(f"{name} must be true or false (got {getattr(self, name)!r})")

    def warnings(self) -> List[str]:
        """Legal but degenerate settings worth mentioning at startup."""
        out = []
        if self.threshold == 0:
            out.append("threshold is 0: every pin will always read true")
        elif self.threshold > self.samples_count:
            out.append(f"threshold {self.threshold} exceeds samples count {self.samples_count}: pins will never trigger")
        return out

    def as_dict(self) -> dict:
        return asdict(self)


def load_toml_config(path: str) -> dict:
    """Load TOML configuration from path."""
    with open(path, "rb") as f:
        return tomllib.load(f)


def _get_cfg(cfg: dict, section: str, key: str, default=None):
    sec = cfg.get(section, {})
    if not isinstance(sec, dict):
        return default
    return sec.get(key, default)


def config_defaults_from(cfg: dict) -> dict:
    """Map TOML config (possibly empty) onto Settings field values."""
    pins = _get_cfg(cfg, "acquisition", "pins", None)
    return {
        "pins": parse_pins(pins) if pins is not None else [],
        "command": _get_cfg(cfg, "acquisition", "command", DEFAULT_COMMAND),
        "source": _get_cfg(cfg, "acquisition", "source", SOURCE_COMMAND),
        "command_timeout": _get_cfg(cfg, "acquisition", "command_timeout", DEFAULT_COMMAND_TIMEOUT_S),
        "check_period": _get_cfg(cfg, "sampling", "check_period", DEFAULT_CHECK_PERIOD_MS),
        "samples_count": _get_cfg(cfg, "sampling", "samples_count", DEFAULT_SAMPLES_COUNT),
        "positive_samples_needed": _get_cfg(cfg, "sampling", "positive_samples_needed", DEFAULT_POSITIVE_SAMPLES_NEEDED),
        "state_changes_needed": _get_cfg(cfg, "sampling", "state_changes_needed", None),
        "filter_size": _get_cfg(cfg, "sampling", "filter_size", DEFAULT_FILTER_SIZE),
        "skip_bad_lines": _get_cfg(cfg, "sampling", "skip_bad_lines", False),
        "port": _get_cfg(cfg, "http", "port", DEFAULT_HTTP_PORT),
        "bind": _get_cfg(cfg, "http", "bind", DEFAULT_HTTP_BIND),
        "verbose": _get_cfg(cfg, "logging", "verbose", False),
        "json": _get_cfg(cfg, "logging", "json", False),
        "no_banner": _get_cfg(cfg, "logging", "no_banner", False),
    }


def resolve_settings(args) -> Settings:
    """Merge CLI args over TOML config over built-in defaults.

    Every settings flag on the parser defaults to None, so anything the user
    did not pass on the command line is backfilled from the config file.
    """
    cfg = load_toml_config(args.config) if getattr(args, "config", None) else {}
    values = config_defaults_from(cfg)
    for k in values:
        v = getattr(args, k, None)
        if v is not None:
            values[k] = v
    return Settings(**values)


def resolved_config_dict(settings: Settings) -> dict:
    return {
        "acquisition": {
            "command": settings.command,
            "source": settings.source,
            "command_timeout": settings.command_timeout,
            "pins": settings.pins,
        },
        "sampling": {
            "check_period": settings.check_period,
            "samples_count": settings.samples_count,
            "positive_samples_needed": settings.positive_samples_needed,
            "state_changes_needed": settings.state_changes_needed,
            "filter_size": settings.filter_size,
            "skip_bad_lines": settings.skip_bad_lines,
            "mode": settings.mode,
        },
        "http": {"port": settings.port, "bind": settings.bind},
        "logging": {
            "verbose": settings.verbose,
            "json": settings.json,
            "no_banner": settings.no_banner,
        },
    }


def build_arg_parser():
    """Construct the CLI argument parser for the daemon."""
    ap = argparse.ArgumentParser(
        description="Periodically queries a set of GPIO pins and reports their debounced status over HTTP.",
        epilog=USAGE_EXAMPLES,
        formatter_class=RawDescriptionHelpFormatter,
    )
    ap.add_argument("-c", "--command",
                    help=f"App used to check pin status, called as '<command> get <pins>'. Defaults to '{DEFAULT_COMMAND}'.")
    ap.add_argument("-p", "--pins", type=_argparse_pins, metavar="PIN1,PIN2",
                    help="Set of pins to monitor. At least one pin must be specified.")
    ap.add_argument("--source", choices=[SOURCE_COMMAND, SOURCE_GPIO, SOURCE_MOCK],
                    help="Where readings come from: an external command (default), gpiozero, or a built-in simulator.")
    ap.add_argument("--command-timeout", type=float,
                    help=f"Seconds to wait for the command before skipping the tick. Defaults to {DEFAULT_COMMAND_TIMEOUT_S}. 0 waits forever.")
    ap.add_argument("--check-period", type=int, metavar="MS",
                    help=f"Rate, in milliseconds, at which checks are made. Defaults to {DEFAULT_CHECK_PERIOD_MS}.")
    ap.add_argument("--samples-count", type=int,
                    help=f"Number of samples combined together. Defaults to {DEFAULT_SAMPLES_COUNT}.")
    ap.add_argument("--positive-samples-needed", type=int,
                    help=f"Samples that need to be 'high' for the output to be true. Defaults to {DEFAULT_POSITIVE_SAMPLES_NEEDED}.")
    ap.add_argument("--state-changes-needed", type=int,
                    help="Count raw state changes instead of high samples; output is true once this many changes are in the window.")
    ap.add_argument("--filter-size", type=int,
                    help="Only change the reported value after this many unanimous ticks. 0 disables the filter (default).")
    ap.add_argument("--skip-bad-lines", action="store_true", default=None,
                    help="Log and skip malformed or unexpected acquisition lines instead of exiting.")
    ap.add_argument("--port", type=int,
                    help=f"Port on which the results are offered. 0 disables the HTTP server. Defaults to {DEFAULT_HTTP_PORT}.")
    ap.add_argument("--bind", help=f"Address the HTTP server binds to. Defaults to {DEFAULT_HTTP_BIND}.")
    ap.add_argument("-v", "--verbose", action="store_true", default=None, help="Log more to the screen.")
    ap.add_argument("--json", action="store_true", default=None, help="Emit JSON log events.")
    ap.add_argument("--no-banner", action="store_true", default=None, help="Disable the startup banner.")
    ap.add_argument("--config", help="Path to a TOML config file. CLI args override config values.")
    ap.add_argument("--print-config", action="store_true", help="Print the resolved configuration and exit.")
    ap.add_argument("--doctor", action="store_true", help="Run the acquisition once, show how each line parses, and exit.")
    ap.add_argument("--version", action="store_true", help="Print version and exit.")
    return ap
