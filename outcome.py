# outcome.py
import logging
import threading
import time
from typing import Any, Callable, Optional, Tuple

from errors import HttpError

log = logging.getLogger(__name__)

# callback(result, error): exactly one of the two is not None
Callback = Callable[[Any, Optional[HttpError]], None]
# maps the raw (response, error) pair into what the caller receives
Transform = Callable[[Any, Optional[HttpError]], Tuple[Any, Optional[HttpError]]]


def _transform_error(result: Any, exc: Exception) -> HttpError:
    status = getattr(result, "status", None)
    if status is not None:
        return HttpError.status(status, result.text)
    return HttpError.transport(str(exc) or type(exc).__name__)


class Outcome:
    """
    Single-assignment result for one logical request.
    Watchdog and worker both call settle(); only the first one is delivered.
    """

    def __init__(self, what: str, callback: Optional[Callback] = None,
                 transform: Optional[Transform] = None,
                 clock: Callable[[], float] = time.monotonic):
        self.what = what
        self._callback = callback
        self._transform = transform
        self._clock = clock
        self._lock = threading.Lock()
        self._done = threading.Event()
        self._settled = False
        self._result: Any = None
        self._error: Optional[HttpError] = None
        self.started = clock()
        self.finished: Optional[float] = None
        self.attempts = 0

    @property
    def settled(self) -> bool:
        return self._settled

    @property
    def elapsed(self) -> float:
        end = self.finished if self.finished is not None else self._clock()
        return end - self.started

    def settle(self, result: Any, error: Optional[HttpError]) -> bool:
        with self._lock:
            if self._settled:
                log.debug(f"[HTTP] {self.what} already settled, discard late outcome err={error}")
                return False
            self._settled = True

        try:
            if self._transform is not None and error is None:
                try:
                    result, error = self._transform(result, error)
                except Exception as e:
                    log.exception(f"[HTTP] {self.what} decode failed")
                    error = _transform_error(result, e)
            if error is not None:
                result = None

            self._result, self._error = result, error
            self.finished = self._clock()
            if self._callback is not None:
                self._callback(result, error)
        except Exception:
            log.exception(f"[HTTP] {self.what} callback raised")
        finally:
            self._done.set()
        return True

    def done(self) -> bool:
        return self._done.is_set()

    def wait(self, timeout: Optional[float] = None) -> Tuple[Any, Optional[HttpError]]:
        if not self._done.wait(timeout):
            raise TimeoutError(f"{self.what} not settled within {timeout}s")
        return self._result, self._error
