"""
Core domain layer for InsiderLoom.

This module provides:
- Exception hierarchy for consistent error handling
- Domain models for index rows and extracted transactions
- Service protocols for dependency injection

Usage:
    from insiderloom.core import FilingDescriptor, FilingSkipped, ContentStore
"""

from .exceptions import (
    CacheReadError,
    ConfigurationError,
    FetchError,
    FilingSkipped,
    ForbiddenError,
    IngestionError,
    InsiderLoomError,
    MalformedDocumentError,
    MissingFieldError,
    NotFoundError,
    ParsingError,
    PeriodResolutionError,
    PersistenceError,
    RateLimitError,
    StorageError,
    TransportError,
    UnexpectedStatusError,
)
from .models import (
    OUTPUT_COLUMNS,
    ExtractedFiling,
    FilingDescriptor,
    normalize_accession_number,
)
from .protocols import ContentStore, Fetcher, RateLimiterProtocol

__all__ = [
    # Exceptions
    "InsiderLoomError",
    "IngestionError",
    "FetchError",
    "NotFoundError",
    "ForbiddenError",
    "RateLimitError",
    "UnexpectedStatusError",
    "TransportError",
    "PeriodResolutionError",
    "ParsingError",
    "FilingSkipped",
    "MalformedDocumentError",
    "MissingFieldError",
    "StorageError",
    "PersistenceError",
    "CacheReadError",
    "ConfigurationError",
    # Models
    "OUTPUT_COLUMNS",
    "FilingDescriptor",
    "ExtractedFiling",
    "normalize_accession_number",
    # Protocols
    "ContentStore",
    "Fetcher",
    "RateLimiterProtocol",
]
