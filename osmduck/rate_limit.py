"""
Minimum-interval rate limiting shared across clients of one upstream service
"""

import threading
import time
from typing import Callable, Dict

from loguru import logger


class RateLimiter:
    """
    Blocks callers so that grants are at least `min_interval` seconds apart.

    The check-and-update of the last grant time happens under a lock, so
    concurrent threads sharing one limiter never dispatch closer together
    than the interval.
    """

    def __init__(
        self,
        min_interval: float,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.min_interval = min_interval
        self._clock = clock
        self._sleep = sleep
        self._lock = threading.Lock()
        self._last_request_time = None

    def acquire(self) -> float:
        """Wait until the interval has elapsed, then record and return the grant time"""
        with self._lock:
            if self._last_request_time is not None:
                elapsed = self._clock() - self._last_request_time
                if elapsed < self.min_interval:
                    wait = self.min_interval - elapsed
                    logger.debug(f"Rate limit: sleeping {wait:.2f}s")
                    self._sleep(wait)
            self._last_request_time = self._clock()
            return self._last_request_time


_limiters: Dict[str, RateLimiter] = {}
_limiters_lock = threading.Lock()


def get_rate_limiter(name: str, min_interval: float) -> RateLimiter:
    """Get the process-wide limiter for an upstream service, creating it on first use"""
    with _limiters_lock:
        limiter = _limiters.get(name)
        if limiter is None:
            limiter = RateLimiter(min_interval)
            _limiters[name] = limiter
        return limiter
