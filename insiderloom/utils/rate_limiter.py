"""
Rate limiter for SEC archive requests.

Token bucket shared by every request a fetcher makes. SEC's fair-access policy
allows at most 10 requests per second; the default of 9 with a burst of 1
spaces requests evenly instead of letting them clump.

One instance is shared by every worker thread, so the pacing is global to the
run rather than per worker.
"""

import threading
import time
from typing import Optional

from .config import get_settings
from .logger import get_logger

logger = get_logger("insiderloom.utils.rate_limiter")

# Longest single sleep while waiting, so timeouts are checked regularly
MAX_SLEEP = 0.1


class RateLimiter:
    """
    Thread-safe token bucket.

    Attributes:
        rate: Tokens added per second.
        burst: Bucket capacity.
    """

    def __init__(
        self,
        rate: Optional[float] = None,
        burst: Optional[int] = None,
    ) -> None:
        """
        Args:
            rate: Requests per second. Defaults to ``sec_api.rate_limit_per_second``.
            burst: Bucket capacity. Defaults to twice the rate.
        """
        if rate is None:
            rate = get_settings().sec_api.rate_limit_per_second
        if rate <= 0:
            raise ValueError(f"Rate must be positive, got {rate}")

        self.rate = rate
        self.burst = burst or max(1, int(rate * 2))

        self._tokens = float(self.burst)
        self._last_update = time.monotonic()
        self._lock = threading.Lock()

        logger.debug(f"Rate limiter initialized: rate={self.rate}/sec, burst={self.burst}")

    def _refill_tokens(self) -> None:
        now = time.monotonic()
        self._tokens = min(self.burst, self._tokens + (now - self._last_update) * self.rate)
        self._last_update = now

    def _take(self) -> float:
        """Take a token if one is available; otherwise the seconds until one is."""
        with self._lock:
            self._refill_tokens()
            if self._tokens >= 1:
                self._tokens -= 1
                return 0.0
            return (1 - self._tokens) / self.rate

    def acquire(self, timeout: Optional[float] = None) -> bool:
        """
        Block until a token is taken.

        Args:
            timeout: Seconds to wait at most; None waits indefinitely.

        Returns:
            False if the token could not be taken within timeout.
        """
        deadline = None if timeout is None else time.monotonic() + timeout

        while True:
            wait_time = self._take()
            if wait_time == 0.0:
                return True
            if deadline is not None and time.monotonic() + wait_time > deadline:
                return False
            time.sleep(min(wait_time, MAX_SLEEP))

    def wait(self) -> None:
        """Wait until a request may be issued."""
        self.acquire(timeout=None)


class AdaptiveRateLimiter(RateLimiter):
    """
    Rate limiter that slows down after HTTP 429 and recovers on success.

    A 429 carrying Retry-After pauses every caller until that moment; one
    without halves the rate (down to min_rate). Each success then raises the
    rate by 10% until the configured rate is reached again.
    """

    def __init__(
        self,
        rate: Optional[float] = None,
        burst: Optional[int] = None,
        min_rate: float = 1.0,
    ) -> None:
        super().__init__(rate, burst)
        self.min_rate = min(min_rate, self.rate)
        self._original_rate = self.rate
        self._backoff_until: Optional[float] = None

    def report_rate_limit(self, retry_after: Optional[float] = None) -> None:
        """
        Record a 429 response.

        Args:
            retry_after: Seconds from the Retry-After header, if any.
        """
        with self._lock:
            if retry_after:
                until = time.monotonic() + retry_after
                # A shorter Retry-After never cuts an active pause short
                if self._backoff_until is None or until > self._backoff_until:
                    self._backoff_until = until
                logger.warning(f"Rate limit hit, backing off for {retry_after}s")
            else:
                self.rate = max(self.min_rate, self.rate * 0.5)
                logger.warning(f"Rate limit hit, reducing rate to {self.rate}/sec")

    def report_success(self) -> None:
        with self._lock:
            if self.rate < self._original_rate:
                self.rate = min(self._original_rate, self.rate * 1.1)

    def acquire(self, timeout: Optional[float] = None) -> bool:
        """Wait out any Retry-After pause, then take a token."""
        deadline = None if timeout is None else time.monotonic() + timeout

        while True:
            with self._lock:
                backoff_until = self._backoff_until
            if backoff_until is None:
                break

            remaining = backoff_until - time.monotonic()
            if remaining > 0:
                if deadline is not None and backoff_until > deadline:
                    return False
                time.sleep(remaining)

            with self._lock:
                # Another caller may have extended the pause while we slept
                if self._backoff_until == backoff_until:
                    self._backoff_until = None

        if deadline is not None:
            timeout = max(0.0, deadline - time.monotonic())
        return super().acquire(timeout)
