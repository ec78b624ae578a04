"""Tests for the write-once content cache."""

import threading

import pytest

from fakes import InMemoryStore, ScriptedFetcher
from insiderloom.core.exceptions import (
    PersistenceError,
    StorageError,
    TransportError,
)
from insiderloom.core.protocols import ContentStore
from insiderloom.ingestion.cache import LOCK_STRIPES, ContentCache, FileSystemStore

URL = "https://www.sec.gov/Archives/edgar/daily-index/2022/QTR2/master.20220401.idx"


class TestFileSystemStore:
    """Tests for FileSystemStore."""

    def test_is_content_store(self, tmp_path):
        assert isinstance(FileSystemStore(tmp_path), ContentStore)

    def test_read_absent(self, tmp_path):
        assert FileSystemStore(tmp_path).read("missing.idx") is None

    def test_write_then_read(self, tmp_path):
        store = FileSystemStore(tmp_path)

        store.write("2022/QTR2/index.html", b"<html/>")

        assert store.read("2022/QTR2/index.html") == b"<html/>"
        assert store.exists("2022/QTR2/index.html")
        assert (tmp_path / "2022" / "QTR2" / "index.html").read_bytes() == b"<html/>"

    def test_no_temp_files_left(self, tmp_path):
        store = FileSystemStore(tmp_path)
        store.write("a.txt", b"a")

        assert [p.name for p in tmp_path.iterdir()] == ["a.txt"]

    def test_empty_content_is_an_entry(self, tmp_path):
        store = FileSystemStore(tmp_path)
        store.write("empty.txt", b"")

        assert store.read("empty.txt") == b""

    def test_key_escaping_root(self, tmp_path):
        with pytest.raises(StorageError):
            FileSystemStore(tmp_path / "cache").read("../outside.txt")

    def test_write_failure(self, tmp_path):
        """A file where a directory is needed cannot hold the entry."""
        blocker = tmp_path / "blocker"
        blocker.write_bytes(b"")

        with pytest.raises(PersistenceError):
            FileSystemStore(blocker).write("nested/entry.txt", b"data")


class TestContentCache:
    """Tests for ContentCache."""

    def test_miss_fetches_and_stores(self):
        fetcher = ScriptedFetcher({URL: b"index"})
        store = InMemoryStore()
        cache = ContentCache(fetcher, store)

        assert cache.get_or_fetch(URL, "master.20220401.idx") == b"index"
        assert store.data == {"master.20220401.idx": b"index"}
        assert cache.misses == 1

    def test_hit_skips_network(self):
        fetcher = ScriptedFetcher()
        cache = ContentCache(fetcher, InMemoryStore({"master.20220401.idx": b"cached"}))

        assert cache.get_or_fetch(URL, "master.20220401.idx") == b"cached"
        assert fetcher.calls == []
        assert cache.hits == 1

    def test_second_call_is_hit(self):
        fetcher = ScriptedFetcher({URL: b"index"})
        cache = ContentCache(fetcher, InMemoryStore())

        cache.get_or_fetch(URL, "k")
        cache.get_or_fetch(URL, "k")

        assert fetcher.calls == [URL]
        assert (cache.hits, cache.misses) == (1, 1)

    def test_fetch_error_stores_nothing(self):
        store = InMemoryStore()
        cache = ContentCache(ScriptedFetcher({URL: TransportError("reset", URL)}), store)

        with pytest.raises(TransportError):
            cache.get_or_fetch(URL, "k")
        assert store.data == {}

    def test_persistence_error_propagates(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_bytes(b"")
        cache = ContentCache(ScriptedFetcher({URL: b"index"}), FileSystemStore(blocker))

        with pytest.raises(PersistenceError):
            cache.get_or_fetch(URL, "sub/k")

    def test_concurrent_callers_fetch_once(self):
        fetcher = ScriptedFetcher({URL: b"index"}, delay=0.05)
        cache = ContentCache(fetcher, InMemoryStore())
        results = []

        def worker():
            results.append(cache.get_or_fetch(URL, "k"))

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert results == [b"index"] * 8
        assert len(fetcher.calls) == 1

    def test_distinct_keys_fetched_separately(self, tmp_path):
        other = URL.replace("20220401", "20220404")
        fetcher = ScriptedFetcher({URL: b"one", other: b"two"})
        cache = ContentCache(fetcher, FileSystemStore(tmp_path))

        assert cache.get_or_fetch(URL, "master.20220401.idx") == b"one"
        assert cache.get_or_fetch(other, "master.20220404.idx") == b"two"
        assert len(fetcher.calls) == 2

    def test_lock_pool_does_not_grow(self):
        """A quarter's worth of keys reuses the same fixed set of locks."""
        urls = {f"{URL}?n={i}": b"x" for i in range(500)}
        cache = ContentCache(ScriptedFetcher(urls), InMemoryStore())
        locks_before = list(cache._locks)

        for i, url in enumerate(urls):
            cache.get_or_fetch(url, f"k{i}")

        assert len(cache._locks) == LOCK_STRIPES
        assert cache._locks == locks_before
        assert cache._lock_for("k1") is cache._lock_for("k1")
