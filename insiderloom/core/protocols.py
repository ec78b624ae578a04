"""
Service protocols (interfaces) for the acquisition pipeline.

These protocols define the contract that concrete implementations must follow.
The pipeline depends on these abstractions so tests can substitute an
in-memory store, a scripted fetcher and an instant rate limiter.
"""

from typing import Optional, Protocol, runtime_checkable


@runtime_checkable
class RateLimiterProtocol(Protocol):
    """Shared pacing for all outbound requests."""

    def wait(self) -> None:
        """Block until a request may be issued."""
        ...


@runtime_checkable
class Fetcher(Protocol):
    """Fetches raw bytes for a URL."""

    def fetch(self, url: str) -> bytes:
        """Return the decompressed body or raise FetchError."""
        ...


@runtime_checkable
class ContentStore(Protocol):
    """Durable, write-once storage for fetched artifacts."""

    def read(self, key: str) -> Optional[bytes]:
        """Return stored bytes, or None when the key is absent."""
        ...

    def write(self, key: str, content: bytes) -> None:
        """Persist bytes under key."""
        ...
