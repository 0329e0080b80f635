# retry.py
import time
import logging
from typing import Callable, Optional

from http_types import Response

log = logging.getLogger(__name__)

RATE_LIMITED = 429


def retry_after(resp: Response) -> Optional[int]:
    """
    Seconds to wait before reissuing, or None for "no retry".
    Only a 429 with a base-10 integer Retry-After > 0 qualifies.
    """
    if resp.status != RATE_LIMITED:
        return None
    raw = resp.header("Retry-After")
    if raw is None:
        return None
    raw = raw.strip()
    if not raw.isascii() or not raw.isdigit():
        return None
    n = int(raw)
    return n if n > 0 else None


class RetryPolicy:
    """
    Decides whether a response is reissued, and sleeps the Retry-After delay.
    max_retries=None keeps retrying for as long as the server asks.
    """

    def __init__(self, max_retries: Optional[int] = None,
                 sleep: Callable[[float], None] = time.sleep):
        self.max_retries = max_retries
        self.sleep = sleep

    def should_retry(self, resp: Response, *, what: str, attempt: int) -> bool:
        """attempt is 1-based; sleeps before returning True."""
        delay = retry_after(resp)
        if delay is None:
            return False
        if self.max_retries is not None and attempt > self.max_retries:
            log.warning(f"[RETRY] {what} still rate limited after {attempt} attempts, giving up")
            return False
        log.info(f"[RETRY] {what} rate limited, retry in {delay}s (attempt={attempt})")
        try:
            self.sleep(delay)
        except (OverflowError, ValueError) as e:
            log.warning(f"[RETRY] {what} cannot wait Retry-After={delay}s: {e}")
            return False
        return True
