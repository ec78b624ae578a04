"""
Retry logic with a constant delay between attempts.

The SEC fetcher retries transport errors and HTTP 429 a fixed number of times,
each attempt going back through the shared rate limiter.
"""

import time
from typing import Callable, Tuple, Type

from .logger import get_logger

logger = get_logger("insiderloom.utils.retry")


class RetryStrategy:
    """
    Retry strategy for programmatic use.

    Usage:
        strategy = RetryStrategy(max_retries=5, delay=0.1, exceptions=(TransportError,))
        result = strategy.execute(risky_function, arg1, arg2)
    """

    def __init__(
        self,
        max_retries: int = 5,
        delay: float = 0.1,
        exceptions: Tuple[Type[Exception], ...] = (Exception,),
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Args:
            max_retries: Attempts after the first one.
            delay: Seconds between attempts.
            exceptions: Exception types that trigger a retry.
            sleep: Sleep function, replaceable in tests.
        """
        self.max_retries = max_retries
        self.delay = delay
        self.exceptions = exceptions
        self._sleep = sleep

    def execute(self, func: Callable, *args, **kwargs):
        """
        Execute function with retry logic.

        Returns:
            Function result.

        Raises:
            Last exception if all retries fail. Exceptions outside
            ``self.exceptions`` propagate immediately.
        """
        name = getattr(func, "__name__", repr(func))

        for attempt in range(self.max_retries + 1):
            try:
                return func(*args, **kwargs)
            except self.exceptions as e:
                if attempt == self.max_retries:
                    logger.error(
                        f"{name} failed after {self.max_retries} retries: {e}"
                    )
                    raise

                logger.warning(
                    f"{name} attempt {attempt + 1}/{self.max_retries} "
                    f"failed: {e}. Retrying in {self.delay:.2f}s"
                )
                self._sleep(self.delay)

        raise RuntimeError("Retry logic failed unexpectedly")
