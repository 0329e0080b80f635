# net.py
import logging
import time
import concurrent.futures
from typing import Any, Callable, Dict, Iterable, Optional, Tuple, Union

import requests

from config import CFG, Config
from decode import as_json_array, as_json_object, parse_json
from errors import HttpError
from http_types import Body, Header, Request, Response, header_value
from outcome import Callback, Outcome, Transform
from retry import RetryPolicy
from watchdog import Scheduler, ThreadingScheduler, Watchdog

log = logging.getLogger(__name__)

HeadersIn = Optional[Union[Dict[str, str], Iterable[Header]]]


class Http:
    """
    Async GET/POST with an application-side timeout and transparent
    Retry-After handling; every call settles exactly once.

    Each attempt runs on a worker from `executor` with its own requests.Session.
    When timeout_ms > 0 a Watchdog is armed on `scheduler` per attempt.
    """

    def __init__(self, cfg: Config = CFG, *,
                 executor: Optional[concurrent.futures.Executor] = None,
                 scheduler: Optional[Scheduler] = None,
                 session_factory: Callable[[], requests.Session] = requests.Session,
                 sleep: Callable[[float], None] = time.sleep,
                 clock: Callable[[], float] = time.monotonic):
        self.cfg = cfg
        self.executor = executor or concurrent.futures.ThreadPoolExecutor(
            max_workers=cfg.http_max_workers, thread_name_prefix="http")
        self.scheduler = scheduler or ThreadingScheduler()
        self.session_factory = session_factory
        self.retry = RetryPolicy(cfg.http_max_retries, sleep=sleep)
        self.clock = clock

    # ---------- async ----------

    def get(self, url: str, callback: Optional[Callback] = None,
            timeout_ms: Optional[int] = None) -> Outcome:
        return self._dispatch("GET", url, None, None, callback, timeout_ms)

    def get_json_object(self, url: str, callback: Optional[Callback] = None,
                        timeout_ms: Optional[int] = None) -> Outcome:
        return self._dispatch("GET", url, None, None, callback, timeout_ms, as_json_object)

    def get_json_array(self, url: str, callback: Optional[Callback] = None,
                       timeout_ms: Optional[int] = None) -> Outcome:
        return self._dispatch("GET", url, None, None, callback, timeout_ms, as_json_array)

    def post(self, url: str, body: Body, headers: HeadersIn = None,
             callback: Optional[Callback] = None, timeout_ms: Optional[int] = None) -> Outcome:
        return self._dispatch("POST", url, body, headers, callback, timeout_ms)

    def post_json_object(self, url: str, body: Body, headers: HeadersIn = None,
                         callback: Optional[Callback] = None,
                         timeout_ms: Optional[int] = None) -> Outcome:
        return self._dispatch("POST", url, body, headers, callback, timeout_ms, as_json_object)

    # ---------- blocking ----------

    def post_sync(self, url: str, body: Body,
                  headers: HeadersIn = None) -> Tuple[bool, Optional[Response]]:
        """
        POST on the calling thread, no application timeout.
        Returns (True, response) on 2xx, (False, response) on a final non-2xx,
        (False, None) when the transport failed.
        """
        what = f"POST {url}"
        try:
            req = self._prepare("POST", url, body, headers, 0)
        except Exception as e:
            log.warning(f"[HTTP] {what} rejected: {e}")
            return False, None

        attempt = 1
        while True:
            resp, err = self._attempt(req, what)
            if err is not None:
                return False, None
            if resp.ok:
                return True, resp
            if not self.retry.should_retry(resp, what=what, attempt=attempt):
                log.warning(f"[HTTP] {what} failed status={resp.status}")
                return False, resp
            attempt += 1

    def post_json_sync(self, url: str, body: Body, headers: HeadersIn = None) -> Tuple[bool, Any]:
        ok, resp = self.post_sync(url, body, headers)
        if not ok:
            return False, None
        obj = parse_json(resp)
        if not isinstance(obj, dict):
            log.warning(f"[HTTP] POST {url} returned non-object JSON body")
            return False, None
        return True, obj

    def close(self, wait: bool = True) -> None:
        self.executor.shutdown(wait=wait)

    # ---------- internals ----------

    def _prepare(self, method: str, url: str, body: Optional[Body],
                 headers: HeadersIn, timeout_ms: Optional[int]) -> Request:
        pairs = headers.items() if isinstance(headers, dict) else (headers or ())
        hdrs = tuple((str(k), str(v)) for k, v in pairs)
        if self.cfg.http_user_agent and header_value(list(hdrs), "User-Agent") is None:
            hdrs += (("User-Agent", self.cfg.http_user_agent),)
        if timeout_ms is None:
            timeout_ms = self.cfg.http_timeout_ms
        req = Request(method=method, url=url, body=body, headers=hdrs, timeout_ms=int(timeout_ms))
        req.validate()
        return req

    def _arm(self, req: Request, outcome: Outcome) -> Optional[Watchdog]:
        if req.timeout_ms <= 0:
            return None
        return Watchdog(outcome, req.timeout_ms, self.scheduler)

    def _dispatch(self, method: str, url: str, body: Optional[Body], headers: HeadersIn,
                  callback: Optional[Callback], timeout_ms: Optional[int],
                  transform: Optional[Transform] = None) -> Outcome:
        outcome = Outcome(f"{method} {url}", callback, transform, clock=self.clock)
        watchdog = None
        try:
            req = self._prepare(method, url, body, headers, timeout_ms)
            watchdog = self._arm(req, outcome)
            self.executor.submit(self._run, req, outcome, watchdog)
            log.debug(f"[HTTP] {outcome.what} dispatched timeout={req.timeout_ms}ms")
        except Exception as e:
            if watchdog is not None:
                watchdog.cancel()
            log.warning(f"[HTTP] {outcome.what} dispatch failed: {e}")
            outcome.settle(None, HttpError.transport(str(e)))
        return outcome

    def _attempt(self, req: Request, what: str) -> Tuple[Optional[Response], Optional[HttpError]]:
        try:
            with self.session_factory() as sess:
                r = sess.request(req.method, req.url,
                                 timeout=self.cfg.http_transport_timeout_sec,
                                 **req.transport_kwargs())
                return Response.from_requests(r), None
        except Exception as e:
            log.warning(f"[HTTP] {what} transport error: {e}")
            return None, HttpError.transport(str(e) or type(e).__name__)

    def _run(self, req: Request, outcome: Outcome, watchdog: Optional[Watchdog]) -> None:
        attempt = 1
        try:
            while True:
                # timed out while queued or before this reissue
                if outcome.settled:
                    log.debug(f"[HTTP] {outcome.what} settled before attempt={attempt}, skip")
                    return
                outcome.attempts = attempt
                resp, err = self._attempt(req, outcome.what)

                # a fired watchdog owns delivery; this late result is dropped
                if watchdog is not None and not watchdog.cancel():
                    log.debug(f"[HTTP] {outcome.what} finished after timeout, dropped")
                    return

                if err is not None:
                    outcome.settle(None, err)
                    return
                log.debug(f"[HTTP] {outcome.what} status={resp.status} attempt={attempt}")
                if resp.ok:
                    outcome.settle(resp, None)
                    return
                if not self.retry.should_retry(resp, what=outcome.what, attempt=attempt):
                    log.warning(f"[HTTP] {outcome.what} failed status={resp.status}")
                    outcome.settle(None, HttpError.status(resp.status, resp.text))
                    return

                attempt += 1
                watchdog = self._arm(req, outcome)
        except Exception as e:
            log.exception(f"[HTTP] {outcome.what} worker failed")
            if watchdog is not None:
                watchdog.cancel()
            outcome.settle(None, HttpError.transport(str(e)))


HTTP = Http()
