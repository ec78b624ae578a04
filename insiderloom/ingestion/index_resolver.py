"""
Resolution of all filings published in a year/quarter.

The EDGAR daily-index directory for a quarter is an HTML listing. Every
anchor whose text starts with ``master.`` links one daily master file; each
is fetched through the index cache and parsed in listing order.
"""

import time
from typing import Optional
from urllib.parse import urljoin

from bs4 import BeautifulSoup

from ..core.exceptions import FetchError, PeriodResolutionError
from ..core.models import FilingDescriptor
from ..core.protocols import Fetcher
from ..parsers.index_parser import parse_daily_index
from ..utils.logger import get_logger, log_operation
from .cache import ContentCache

logger = get_logger("insiderloom.ingestion.index_resolver")

MASTER_PREFIX = "master."


def find_master_file_links(listing_html: bytes | str, base_url: str) -> list[str]:
    """
    Absolute URLs of daily master files linked from a listing page.

    Args:
        listing_html: Listing page markup.
        base_url: URL the listing was served from; hrefs resolve against it.

    Returns:
        URLs in document order.
    """
    soup = BeautifulSoup(listing_html, "lxml")

    links = []
    for anchor in soup.find_all("a", href=True):
        if anchor.get_text().strip().startswith(MASTER_PREFIX):
            links.append(urljoin(base_url, anchor["href"]))
    return links


class PeriodIndexResolver:
    """
    Materializes the filing descriptors of one year/quarter.

    Any failure to fetch the listing aborts resolution. A failure on a
    single daily file aborts too unless skip_failed_index_files is set.
    """

    def __init__(
        self,
        index_cache: ContentCache,
        daily_index_url: str,
        listing_fetcher: Optional[Fetcher] = None,
        skip_failed_index_files: bool = False,
    ):
        """
        Args:
            index_cache: Cache for daily master files (and listing pages).
            daily_index_url: Template with ``{year}`` and ``{quarter}``.
            listing_fetcher: When given, listing pages bypass the cache and
                are fetched fresh on every run.
            skip_failed_index_files: Drop an unreachable daily file instead
                of failing the whole period.
        """
        self.index_cache = index_cache
        self.daily_index_url = daily_index_url
        self.listing_fetcher = listing_fetcher
        self.skip_failed_index_files = skip_failed_index_files

    def listing_url(self, year: int, quarter: int) -> str:
        return self.daily_index_url.format(year=year, quarter=quarter)

    def _fetch_listing(self, year: int, quarter: int) -> bytes:
        url = self.listing_url(year, quarter)
        if self.listing_fetcher is not None:
            return self.listing_fetcher.fetch(url)
        return self.index_cache.get_or_fetch(url, f"{year}/QTR{quarter}/index.html")

    def discover_master_files(self, year: int, quarter: int) -> list[str]:
        """
        URLs of the period's daily master files.

        Raises:
            PeriodResolutionError: The listing page could not be fetched.
        """
        try:
            listing = self._fetch_listing(year, quarter)
        except FetchError as e:
            logger.error(f"Failed to get master file listing for {year} QTR{quarter}: {e}")
            raise PeriodResolutionError(
                f"Failed to get master file listing for {year} QTR{quarter}",
                {"year": year, "quarter": quarter, "cause": str(e)},
            ) from e

        master_files = find_master_file_links(listing, self.listing_url(year, quarter))
        logger.info(f"Got {len(master_files)} master files for {year} QTR{quarter}")
        return master_files

    @staticmethod
    def cache_key_for(master_file_url: str, quarter: int) -> str:
        """Cache key: the URL path after the ``QTR{n}/`` marker."""
        marker = f"QTR{quarter}/"
        if marker in master_file_url:
            return master_file_url.split(marker, 1)[1]
        return master_file_url.rsplit("/", 1)[-1]

    def resolve_filings(self, year: int, quarter: int) -> list[FilingDescriptor]:
        """
        All filings listed for the period, in discovery order.

        Raises:
            PeriodResolutionError: Listing or daily file retrieval failed.
            StorageError: A fetched daily file could not be cached.
        """
        start = time.monotonic()
        master_files = self.discover_master_files(year, quarter)

        filings: list[FilingDescriptor] = []
        skipped_files = 0
        for master_file in master_files:
            key = self.cache_key_for(master_file, quarter)
            try:
                content = self.index_cache.get_or_fetch(master_file, key)
            except FetchError as e:
                if self.skip_failed_index_files:
                    logger.warning(f"Skipping master file {master_file}: {e}")
                    skipped_files += 1
                    continue
                logger.error(f"Error downloading master file {master_file}: {e}")
                raise PeriodResolutionError(
                    f"Error downloading master file {master_file}",
                    {"year": year, "quarter": quarter, "cause": str(e)},
                ) from e

            filings.extend(parse_daily_index(content))

        log_operation(
            logger,
            "resolve_filings",
            success=True,
            duration_ms=(time.monotonic() - start) * 1000,
            year=year,
            quarter=quarter,
            master_files=len(master_files),
            skipped_master_files=skipped_files,
            filings=len(filings),
        )
        return filings
