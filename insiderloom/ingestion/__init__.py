"""SEC archive ingestion: fetching, caching and period index resolution."""

from .cache import ContentCache, FileSystemStore
from .fetcher import SECFetcher
from .index_resolver import PeriodIndexResolver, find_master_file_links

__all__ = [
    "ContentCache",
    "FileSystemStore",
    "SECFetcher",
    "PeriodIndexResolver",
    "find_master_file_links",
]
