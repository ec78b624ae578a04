"""Tests for rate limiter."""

import threading
import time

import pytest

from insiderloom.core.protocols import RateLimiterProtocol
from insiderloom.utils.rate_limiter import AdaptiveRateLimiter, RateLimiter


class TestRateLimiter:
    """Tests for RateLimiter class."""

    def test_init(self):
        """Test rate limiter initialization."""
        limiter = RateLimiter(rate=9, burst=1)
        assert limiter.rate == 9
        assert limiter.burst == 1
        assert isinstance(limiter, RateLimiterProtocol)

    def test_default_rate_from_config(self):
        """Rate defaults to the configured 9 requests/second."""
        limiter = RateLimiter()
        assert limiter.rate == 9.0

    def test_invalid_rate(self):
        with pytest.raises(ValueError):
            RateLimiter(rate=0)

    def test_acquire_immediate(self):
        """Test immediate token acquisition."""
        limiter = RateLimiter(rate=10, burst=10)

        start = time.monotonic()
        assert limiter.acquire(timeout=1.0) is True
        elapsed = time.monotonic() - start

        assert elapsed < 0.1

    def test_acquire_waits(self):
        """Test that acquire waits when no tokens."""
        limiter = RateLimiter(rate=10, burst=1)

        limiter.acquire()

        start = time.monotonic()
        limiter.acquire()
        elapsed = time.monotonic() - start

        assert elapsed >= 0.05

    def test_acquire_timeout(self):
        """Test acquire with timeout."""
        limiter = RateLimiter(rate=1, burst=1)

        limiter.acquire()

        assert limiter.acquire(timeout=0.01) is False

    def test_shared_across_threads(self):
        """Concurrent callers together stay under the rate."""
        limiter = RateLimiter(rate=20, burst=1)

        def worker():
            for _ in range(3):
                limiter.wait()

        start = time.monotonic()
        threads = [threading.Thread(target=worker) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        elapsed = time.monotonic() - start

        # 12 acquisitions, 1 from the burst, 11 refilled at 20/s
        assert elapsed >= 0.5


class TestAdaptiveRateLimiter:
    """Tests for AdaptiveRateLimiter class."""

    def test_report_rate_limit(self):
        """Test rate reduction on limit hit."""
        limiter = AdaptiveRateLimiter(rate=9, burst=1, min_rate=1)

        limiter.report_rate_limit()

        assert limiter.rate == 4.5

    def test_rate_floor(self):
        limiter = AdaptiveRateLimiter(rate=9, burst=1, min_rate=2)

        for _ in range(10):
            limiter.report_rate_limit()

        assert limiter.rate == 2

    def test_report_success_recovers_to_original(self):
        """Test rate increase on success, capped at the configured rate."""
        limiter = AdaptiveRateLimiter(rate=9, burst=1, min_rate=1)
        limiter.report_rate_limit()

        for _ in range(20):
            limiter.report_success()

        assert limiter.rate == 9

    def test_retry_after_backoff(self):
        limiter = AdaptiveRateLimiter(rate=100, burst=5)
        limiter.report_rate_limit(retry_after=0.2)

        start = time.monotonic()
        limiter.wait()
        elapsed = time.monotonic() - start

        assert elapsed >= 0.15
        assert limiter.rate == 100

    def test_backoff_longer_than_timeout(self):
        limiter = AdaptiveRateLimiter(rate=100, burst=5)
        limiter.report_rate_limit(retry_after=5)

        assert limiter.acquire(timeout=0.01) is False

    def test_longer_pause_survives_earlier_waiter(self):
        """A Retry-After reported while another caller sleeps is still honoured."""
        limiter = AdaptiveRateLimiter(rate=100, burst=5)
        limiter.report_rate_limit(retry_after=0.3)
        waited = []

        def timed_wait():
            start = time.monotonic()
            limiter.wait()
            waited.append(time.monotonic() - start)

        waiter = threading.Thread(target=timed_wait)
        waiter.start()
        time.sleep(0.1)
        limiter.report_rate_limit(retry_after=1.0)
        waiter.join()

        # The sleeping caller wakes after 0.3s and then waits out the new pause
        assert waited[0] >= 0.9
        assert limiter._backoff_until is None

    def test_shorter_retry_after_keeps_active_pause(self):
        limiter = AdaptiveRateLimiter(rate=100, burst=5)
        limiter.report_rate_limit(retry_after=5)
        until = limiter._backoff_until

        limiter.report_rate_limit(retry_after=0.1)

        assert limiter._backoff_until == until
