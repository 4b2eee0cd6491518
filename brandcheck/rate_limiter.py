"""
Domain-aware request pacing.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from urllib.parse import urlparse


class DomainRateLimiter:
    """
    Enforces a minimum interval between requests per domain.
    """

    def __init__(
        self,
        *,
        min_interval_seconds: float,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._min_interval_seconds = max(0.0, min_interval_seconds)
        self._clock = clock
        self._sleep = sleep
        self._last_request_by_domain: dict[str, float] = {}
        self._lock = threading.Lock()

    def wait(self, *, url: str) -> float:
        """
        Sleep as needed so requests to the URL's domain respect the interval.

        Returns the number of seconds slept.
        """

        parsed = urlparse(url)
        domain = parsed.netloc.lower() or parsed.path.lower()
        if not domain or self._min_interval_seconds <= 0:
            return 0.0

        with self._lock:
            last_time = self._last_request_by_domain.get(domain)
            waited = 0.0
            if last_time is not None:
                wait_seconds = self._min_interval_seconds - (self._clock() - last_time)
                if wait_seconds > 0:
                    self._sleep(wait_seconds)
                    waited = wait_seconds
            self._last_request_by_domain[domain] = self._clock()
            return waited


class FixedDelay:
    """
    Fixed pause inserted between marketplace checks of one brand.
    """

    def __init__(self, *, delay_ms: int, sleep: Callable[[float], None] = time.sleep) -> None:
        self._delay_seconds = max(0, delay_ms) / 1000.0
        self._sleep = sleep

    def pause(self) -> None:
        if self._delay_seconds > 0:
            self._sleep(self._delay_seconds)
