"""
Core exception hierarchy for InsiderLoom.

All custom exceptions inherit from InsiderLoomError for consistent error handling.

Propagation rules:
- FilingSkipped and FetchError raised for a single filing document are
  recovered by the pipeline (the filing is skipped).
- PeriodResolutionError and StorageError abort the run.
"""

from typing import Optional


class InsiderLoomError(Exception):
    """Base exception for all InsiderLoom errors."""

    def __init__(self, message: str, context: Optional[dict] = None):
        self.message = message
        self.context = context or {}
        super().__init__(message)

    def __str__(self) -> str:
        if self.context:
            return f"{self.message} | Context: {self.context}"
        return self.message


# Ingestion Errors
class IngestionError(InsiderLoomError):
    """Error during data ingestion from SEC."""
    pass


class FetchError(IngestionError):
    """A single HTTP fetch did not produce a usable body."""

    def __init__(self, message: str, url: str, context: Optional[dict] = None):
        self.url = url
        ctx = {"url": url}
        ctx.update(context or {})
        super().__init__(message, ctx)


class NotFoundError(FetchError):
    """HTTP 404. The resource does not exist; never retried."""

    def __init__(self, url: str):
        super().__init__("Resource not found", url, {"status_code": 404})


class ForbiddenError(FetchError):
    """HTTP 403. Treated as "does not exist", reported separately from 404."""

    def __init__(self, url: str):
        super().__init__("Access forbidden", url, {"status_code": 403})


class RateLimitError(FetchError):
    """Rate limited by SEC (HTTP 429)."""

    def __init__(self, url: str, retry_after: Optional[float] = None):
        self.retry_after = retry_after
        message = (
            f"Rate limited by SEC. Retry after: {retry_after}s"
            if retry_after else "Rate limited by SEC"
        )
        super().__init__(message, url, {"status_code": 429})


class UnexpectedStatusError(FetchError):
    """Any other status above 299."""

    def __init__(self, url: str, status_code: int):
        self.status_code = status_code
        super().__init__(
            f"Unexpected HTTP status {status_code}", url, {"status_code": status_code}
        )


class TransportError(FetchError):
    """Connection, timeout or body decoding failure."""
    pass


class PeriodResolutionError(IngestionError):
    """The filings of a year/quarter could not be materialized."""
    pass


# Parsing Errors
class ParsingError(InsiderLoomError):
    """Error during document parsing."""
    pass


class FilingSkipped(ParsingError):
    """A filing produced no row. Recovered locally, never aborts a run."""
    pass


class MalformedDocumentError(FilingSkipped):
    """Composite document lacks exactly one <XML> region, or the XML is invalid."""
    pass


class MissingFieldError(FilingSkipped):
    """A required XML node is absent."""

    def __init__(self, field_name: str, xpath: str, context: Optional[dict] = None):
        self.field_name = field_name
        self.xpath = xpath
        ctx = {"field": field_name, "xpath": xpath}
        ctx.update(context or {})
        super().__init__(f"Missing required field {field_name}", ctx)


# Storage Errors
class StorageError(InsiderLoomError):
    """Error during local storage operations."""
    pass


class PersistenceError(StorageError):
    """A freshly fetched artifact could not be written to the cache."""
    pass


class CacheReadError(StorageError):
    """An existing cache entry could not be read."""
    pass


# Configuration Errors
class ConfigurationError(InsiderLoomError):
    """Configuration error."""
    pass
