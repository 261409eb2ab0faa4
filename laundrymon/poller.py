from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from .acquisition import parse_batch
from .errors import CALL_FAILURE_KINDS, AcquisitionError, Violation
from .logging import JsonLogger
from .monitor import PinMonitor
from .state import PinStatus, StatusPublisher, StatusSnapshot, StatusTable

IDLE = "idle"
POLLING = "polling"


@dataclass
class TickOutcome:
    """Result of one poll tick.

    snapshot is the table published by this tick, or None when the tick was
    rejected and no pin state changed."""
    snapshot: Optional[StatusSnapshot] = None
    violations: List[Violation] = field(default_factory=list)
    updated: int = 0

    @property
    def ok(self) -> bool:
        return self.snapshot is not None and not self.violations

    def is_fatal(self, strict: bool = True) -> bool:
        for v in self.violations:
            if v.kind in CALL_FAILURE_KINDS:
                return True
            if strict and not v.recoverable:
                return True
        return False


class PollLoop:
    """Periodic driver: one acquisition call per tick, dispatched to every PinMonitor.

    strict=True is the default contract: any protocol violation rejects
    the whole tick and run() stops. With strict=False bad lines are logged
    and skipped, and the pins that did read cleanly are still updated."""
    def __init__(
        self,
        pins: Sequence[int],
        monitors: Dict[int, PinMonitor],
        source,
        logger: JsonLogger,
        check_period_ms: int,
        strict: bool = True,
        notifier=None,
    ):
        self.pins = [int(p) for p in pins]
        self.monitors = monitors
        self.source = source
        self.logger = logger
        self.period_s = float(check_period_ms) / 1000.0
        self.strict = bool(strict)
        self.notifier = notifier
        self.table = StatusTable(monitors[p].status for p in self.pins)
        self.publisher = StatusPublisher(self.table)
        self.phase = IDLE
        self.exit_code: Optional[int] = None
        self._stop_evt = threading.Event()

    @classmethod
    def from_settings(cls, settings, source, logger: JsonLogger, notifier=None) -> "PollLoop":
        monitors = {
            pin: PinMonitor(
                pin,
                window_size=settings.samples_count,
                threshold=settings.threshold,
                mode=settings.mode,
                filter_size=settings.filter_size,
                logger=logger,
            )
            for pin in settings.pins
        }
        return cls(
            settings.pins,
            monitors,
            source,
            logger,
            settings.check_period,
            strict=not settings.skip_bad_lines,
            notifier=notifier,
        )

    def tick(self) -> TickOutcome:
        """Run one POLLING phase and return to IDLE."""
        self.phase = POLLING
        try:
            return self._tick()
        finally:
            self.phase = IDLE

    def _tick(self) -> TickOutcome:
        try:
            output = self.source.read(self.pins)
        except AcquisitionError as e:
            return TickOutcome(violations=[Violation(e.kind, e.detail)])

        if getattr(self.logger, "verbose", False):
            for line in output.splitlines():
                self.logger.debug("raw_line", line=line.strip())

        readings, violations = parse_batch(output, self.pins)
        if violations and self.strict:
            # Reject the whole batch: no pin sees a partial tick.
            return TickOutcome(violations=violations)

        previous = self.table.snapshot()
        statuses: Dict[int, PinStatus] = {}
        for pin in self.pins:
            reading = readings.get(pin)
            if reading is None:
                continue
            statuses[pin] = self.monitors[pin].update(reading)

        snapshot = self.table.publish(statuses)
        self._notify_changes(previous, snapshot)
        return TickOutcome(snapshot=snapshot, violations=violations, updated=len(statuses))

    def _notify_changes(self, previous: StatusSnapshot, current: StatusSnapshot):
        if self.notifier is None:
            return
        for before, after in zip(previous, current):
            if before.value != after.value:
                self.notifier.pin_changed(after.pin, after.value)

    def run(self) -> int:
        """Poll until stop() or a fatal tick. Returns a process exit code."""
        while not self._stop_evt.is_set():
            outcome = self.tick()
            if self._stop_evt.is_set():
                # A signal during acquisition usually kills the child too; not a failure.
                break
            for v in outcome.violations:
                if v.recoverable:
                    self.logger.emit("acquisition_timeout", detail=v.detail)
                else:
                    self.logger.emit("protocol_violation", **v.as_dict())
            if outcome.is_fatal(self.strict):
                self.logger.emit("fatal", violations=len(outcome.violations))
                self.exit_code = 1
                return 1
            self._stop_evt.wait(self.period_s)
        self.logger.emit("stopped")
        self.exit_code = 0
        return 0

    def stop(self):
        """Ask run() to exit before the next tick. A tick in progress completes,
        but its outcome is not judged: run() still returns 0."""
        self._stop_evt.set()

    @property
    def stopped(self) -> bool:
        return self._stop_evt.is_set()
