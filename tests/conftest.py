import threading
import time
from typing import Any, Callable, Dict, List, Optional

import pytest
import requests
from requests.structures import CaseInsensitiveDict

from config import Config
from net import Http


def make_response(status: int, body: bytes = b"", headers: Optional[Dict[str, str]] = None) -> requests.Response:
    r = requests.Response()
    r.status_code = status
    r._content = body
    r.headers = CaseInsensitiveDict(headers or {})
    return r


class FakeSession:
    """Stands in for requests.Session; plays back a shared script of responses."""

    def __init__(self, script: "Script"):
        self.script = script
        self.closed = False

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.closed = True
        return False

    def request(self, method: str, url: str, **kwargs: Any) -> requests.Response:
        return self.script.next(method, url, kwargs)


class Script:
    """
    Ordered steps; each step is a requests.Response, an exception to raise,
    or a callable(method, url, kwargs) returning a response.
    """

    def __init__(self, *steps: Any):
        self.steps: List[Any] = list(steps)
        self.calls: List[tuple] = []
        self.call_times: List[float] = []
        self.sessions: List[FakeSession] = []
        self._lock = threading.Lock()

    def session(self) -> FakeSession:
        s = FakeSession(self)
        self.sessions.append(s)
        return s

    def next(self, method: str, url: str, kwargs: Dict[str, Any]) -> requests.Response:
        with self._lock:
            self.calls.append((method, url, kwargs))
            self.call_times.append(time.monotonic())
            step = self.steps.pop(0) if len(self.steps) > 1 else self.steps[0]
        if isinstance(step, BaseException):
            raise step
        if callable(step):
            return step(method, url, kwargs)
        return step


class _Handle:
    def __init__(self, fn: Callable[[], None], delay_s: float):
        self.fn = fn
        self.delay_s = delay_s
        self.canceled = False

    def cancel(self) -> None:
        self.canceled = True


class ManualScheduler:
    """Watchdog timers only fire when the test says so."""

    def __init__(self):
        self.handles: List[_Handle] = []

    def call_later(self, delay_s: float, fn: Callable[[], None]) -> _Handle:
        h = _Handle(fn, delay_s)
        self.handles.append(h)
        return h

    def fire_all(self) -> None:
        for h in list(self.handles):
            if not h.canceled:
                h.fn()


class ImmediateExecutor:
    """Runs submitted work inline on the calling thread."""

    def submit(self, fn, *args, **kwargs):
        fn(*args, **kwargs)

    def shutdown(self, wait: bool = True) -> None:
        pass


class DeferredExecutor:
    """Queues submitted work until run_all(); models a saturated worker pool."""

    def __init__(self):
        self.jobs: List[tuple] = []

    def submit(self, fn, *args, **kwargs):
        self.jobs.append((fn, args, kwargs))

    def run_all(self) -> None:
        while self.jobs:
            fn, args, kwargs = self.jobs.pop(0)
            fn(*args, **kwargs)

    def shutdown(self, wait: bool = True) -> None:
        self.run_all()


class Recorder:
    """Callback that remembers every delivery."""

    def __init__(self):
        self.calls: List[tuple] = []
        self.event = threading.Event()

    def __call__(self, result, error) -> None:
        self.calls.append((result, error))
        self.event.set()


@pytest.fixture
def cfg() -> Config:
    return Config(http_timeout_ms=60000, http_max_workers=4,
                  http_transport_timeout_sec=None, http_max_retries=None, http_user_agent="")


@pytest.fixture
def sleeps() -> List[float]:
    return []


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def make_http(cfg, sleeps, scheduler):
    """Http wired to a script, running inline with a manual watchdog clock."""

    def _make(script: Script, config: Optional[Config] = None, **overrides: Any) -> Http:
        kw: Dict[str, Any] = dict(
            executor=ImmediateExecutor(),
            scheduler=scheduler,
            session_factory=script.session,
            sleep=sleeps.append,
        )
        kw.update(overrides)
        return Http(config or cfg, **kw)

    return _make
