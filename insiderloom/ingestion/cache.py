"""
Write-once content cache in front of the fetcher.

Filings and daily index files are immutable once published, so an existing
cache entry is trusted forever: there is no expiry and no revalidation
against the remote copy. Delete the cache directory to force a refetch.
"""

import os
import tempfile
import threading
from pathlib import Path
from typing import Optional

from ..core.exceptions import CacheReadError, PersistenceError, StorageError
from ..core.protocols import ContentStore, Fetcher
from ..utils.logger import get_logger

logger = get_logger("insiderloom.ingestion.cache")

# Unrelated keys that land on the same stripe only wait for each other
LOCK_STRIPES = 64


class FileSystemStore:
    """ContentStore backed by a directory tree; keys are relative paths."""

    def __init__(self, root: str | Path):
        self.root = Path(root)

    def _path_for(self, key: str) -> Path:
        path = (self.root / key).resolve()
        root = self.root.resolve()
        if path != root and root not in path.parents:
            raise StorageError(f"Cache key escapes cache root: {key}", {"root": str(root)})
        return path

    def exists(self, key: str) -> bool:
        return self._path_for(key).is_file()

    def read(self, key: str) -> Optional[bytes]:
        """Return stored bytes, or None when the key is absent."""
        path = self._path_for(key)
        if not path.is_file():
            return None
        try:
            return path.read_bytes()
        except OSError as e:
            raise CacheReadError(f"Error reading file on disk: {e}", {"path": str(path)}) from e

    def write(self, key: str, content: bytes) -> None:
        """Persist bytes atomically so a crash never leaves a truncated entry."""
        path = self._path_for(key)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
            try:
                with os.fdopen(fd, "wb") as f:
                    f.write(content)
                os.replace(tmp_name, path)
            except BaseException:
                if os.path.exists(tmp_name):
                    os.unlink(tmp_name)
                raise
        except OSError as e:
            raise PersistenceError(
                f"Failed to write file to disk: {e}", {"path": str(path)}
            ) from e


class ContentCache:
    """
    Fetch-through cache keyed by local path.

    At most one network fetch happens per key: concurrent callers asking for
    the same key serialize on that key's lock, and the second one reads what
    the first one stored. Keys share a fixed pool of LOCK_STRIPES locks, so
    memory stays flat however many filings a quarter holds.
    """

    def __init__(self, fetcher: Fetcher, store: ContentStore, name: str = "cache"):
        """
        Args:
            fetcher: Source of bytes on a miss.
            store: Durable storage for entries.
            name: Label used in log messages.
        """
        self.fetcher = fetcher
        self.store = store
        self.name = name

        self._locks = [threading.Lock() for _ in range(LOCK_STRIPES)]

        self.hits = 0
        self.misses = 0
        self._stats_lock = threading.Lock()

    def _lock_for(self, key: str) -> threading.Lock:
        return self._locks[hash(key) % LOCK_STRIPES]

    def get_or_fetch(self, remote_url: str, key: str) -> bytes:
        """
        Return the cached bytes for key, fetching and persisting on a miss.

        Args:
            remote_url: URL to fetch when the key is absent.
            key: Local cache key.

        Raises:
            FetchError: The fetch failed; nothing is stored.
            PersistenceError: The fetched bytes could not be stored.
            CacheReadError: An existing entry could not be read.
        """
        with self._lock_for(key):
            content = self.store.read(key)
            if content is not None:
                self._count(hit=True)
                logger.debug(f"{self.name} hit: {key}")
                return content

            self._count(hit=False)
            logger.debug(f"{self.name} miss: {key} <- {remote_url}")
            content = self.fetcher.fetch(remote_url)
            self.store.write(key, content)
            return content

    def _count(self, hit: bool) -> None:
        with self._stats_lock:
            if hit:
                self.hits += 1
            else:
                self.misses += 1
