"""
Rate-limited, retrying HTTP fetcher for the SEC EDGAR archives.

Every attempt takes a token from the shared rate limiter, sends a GET with a
fresh User-Agent token, classifies the response status and returns the
decompressed body.
"""

import gzip
import time
import uuid
from typing import Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from ..core.exceptions import (
    ForbiddenError,
    NotFoundError,
    RateLimitError,
    TransportError,
    UnexpectedStatusError,
)
from ..core.protocols import RateLimiterProtocol
from ..utils.logger import get_logger
from ..utils.retry import RetryStrategy

logger = get_logger("insiderloom.ingestion.fetcher")

GZIP_MAGIC = b"\x1f\x8b"


class SECFetcher:
    """
    HTTP client for www.sec.gov archive files.

    Attributes:
        rate_limiter: Shared limiter; one token per attempt.
        timeout: Per-request timeout in seconds.
    """

    def __init__(
        self,
        rate_limiter: RateLimiterProtocol,
        timeout: float = 30.0,
        max_retries: int = 5,
        retry_delay: float = 0.1,
        user_agent_template: str = "InsiderLoom Research {token}@example.com",
        accept_language: str = "en-US,en;q=0.9",
        pool_size: int = 10,
        session: Optional[requests.Session] = None,
        retry_strategy: Optional[RetryStrategy] = None,
    ) -> None:
        """
        Initialize the fetcher.

        Args:
            rate_limiter: Limiter shared by every request of the run.
            timeout: Request timeout in seconds.
            max_retries: Retries after the first attempt for transport
                errors and HTTP 429.
            retry_delay: Constant delay between attempts in seconds.
            user_agent_template: User-Agent with a ``{token}`` placeholder
                that is replaced by a random id on every request.
            accept_language: Accept-Language header value.
            pool_size: Connection pool size (at least the worker count).
            session: Preconfigured session, mainly for tests.
            retry_strategy: Overrides the constant strategy built from
                max_retries/retry_delay.
        """
        self.rate_limiter = rate_limiter
        self.timeout = timeout
        self.user_agent_template = user_agent_template

        self.retry_strategy = retry_strategy or RetryStrategy(
            max_retries=max_retries,
            delay=retry_delay,
            exceptions=(TransportError, RateLimitError),
        )

        if session is None:
            session = requests.Session()
            # Retries happen in RetryStrategy so each attempt is rate limited
            adapter = HTTPAdapter(
                pool_connections=pool_size,
                pool_maxsize=pool_size,
                max_retries=Retry(total=0, read=False),
            )
            session.mount("https://", adapter)
            session.mount("http://", adapter)
        self.session = session

        self.session.headers.update({
            "Accept-Language": accept_language,
            "Accept-Encoding": "gzip, deflate",
        })

    def _user_agent(self) -> str:
        """User-Agent with a unique token for this request."""
        return self.user_agent_template.format(token=uuid.uuid4().hex)

    def fetch(self, url: str) -> bytes:
        """
        Fetch a URL and return the decompressed body.

        Args:
            url: Absolute URL.

        Returns:
            Raw response bytes.

        Raises:
            NotFoundError: HTTP 404.
            ForbiddenError: HTTP 403.
            RateLimitError: HTTP 429 on every attempt.
            UnexpectedStatusError: Any other status above 299.
            TransportError: Connection/timeout failures after all retries.
        """
        start = time.monotonic()
        content = self.retry_strategy.execute(self._get_once, url)
        elapsed_ms = (time.monotonic() - start) * 1000

        logger.debug(f"Downloaded {url} ({len(content):,} bytes, {elapsed_ms:.0f}ms)")
        return content

    def _get_once(self, url: str) -> bytes:
        """Single rate-limited attempt."""
        self.rate_limiter.wait()

        try:
            response = self.session.get(
                url,
                headers={"User-Agent": self._user_agent()},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise TransportError(f"Request failed: {e}", url) from e

        status = response.status_code

        if status == 404:
            logger.info(f"File not found {url}")
            raise NotFoundError(url)
        if status == 403:
            logger.info(f"Access forbidden {url}")
            raise ForbiddenError(url)
        if status == 429:
            logger.warning(f"Getting rate limited at url {url}")
            retry_after = _parse_retry_after(response.headers.get("Retry-After"))
            report = getattr(self.rate_limiter, "report_rate_limit", None)
            if report is not None:
                report(retry_after)
            raise RateLimitError(url, retry_after)
        if status > 299:
            logger.warning(f"Got status code {status} for url {url}")
            raise UnexpectedStatusError(url, status)

        report_success = getattr(self.rate_limiter, "report_success", None)
        if report_success is not None:
            report_success()

        return _decompress(response.content, url)

    def close(self) -> None:
        """Close the session."""
        self.session.close()

    def __enter__(self) -> "SECFetcher":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


def _decompress(content: bytes, url: str) -> bytes:
    """
    Return the plain body.

    requests already undoes ``Content-Encoding: gzip``; bodies that are still
    gzip framed (served without the header) are inflated here.
    """
    if not content.startswith(GZIP_MAGIC):
        return content
    try:
        return gzip.decompress(content)
    except (OSError, EOFError) as e:
        raise TransportError(f"Failed to decompress body: {e}", url) from e


def _parse_retry_after(value: Optional[str]) -> Optional[float]:
    if not value:
        return None
    try:
        return float(value)
    except ValueError:
        return None
