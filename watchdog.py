# watchdog.py
import logging
import threading
from enum import Enum
from typing import Callable, Protocol

from errors import HttpError
from outcome import Outcome

log = logging.getLogger(__name__)


class Cancellable(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    def call_later(self, delay_s: float, fn: Callable[[], None]) -> Cancellable: ...


class ThreadingScheduler:
    """One daemon timer thread per armed watchdog."""

    def call_later(self, delay_s: float, fn: Callable[[], None]) -> Cancellable:
        t = threading.Timer(delay_s, fn)
        t.daemon = True
        t.name = "http-watchdog"
        t.start()
        return t


class WatchdogState(Enum):
    RUNNING = "running"
    CANCELED = "canceled"
    FIRED = "fired"


class Watchdog:
    """
    Application-side deadline for one attempt.
    RUNNING -> CANCELED (transport finished first) | FIRED (deadline hit first).
    Firing settles the outcome with a timeout error; it does not abort the
    transport call, whose late result is then dropped by the outcome.
    """

    def __init__(self, outcome: Outcome, timeout_ms: int, scheduler: Scheduler):
        self.outcome = outcome
        self.timeout_ms = timeout_ms
        self.state = WatchdogState.RUNNING
        self._lock = threading.Lock()
        self._handle = scheduler.call_later(timeout_ms / 1000.0, self._fire)

    def _transition(self, to: WatchdogState) -> bool:
        with self._lock:
            if self.state is not WatchdogState.RUNNING:
                return False
            self.state = to
            return True

    def cancel(self) -> bool:
        """True if this call stopped a running watchdog."""
        if not self._transition(WatchdogState.CANCELED):
            return False
        self._handle.cancel()
        log.debug(f"[WATCHDOG] {self.outcome.what} canceled")
        return True

    def _fire(self) -> None:
        if not self._transition(WatchdogState.FIRED):
            return
        log.warning(f"[WATCHDOG] {self.outcome.what} timed out after {self.timeout_ms}ms")
        self.outcome.settle(None, HttpError.timeout())
