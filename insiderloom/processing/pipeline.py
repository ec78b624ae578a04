"""
End-to-end acquisition pipeline.

resolve period filings -> filter by form type -> extract each filing -> rows

Per-filing problems (malformed document, missing node, download failure) are
logged and counted; the run carries on. Period resolution and cache write
failures abort the run.
"""

import time
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Optional

from tqdm import tqdm

from ..core.exceptions import FetchError, FilingSkipped
from ..core.models import ExtractedFiling, FilingDescriptor
from ..ingestion.cache import ContentCache, FileSystemStore
from ..ingestion.fetcher import SECFetcher
from ..ingestion.index_resolver import PeriodIndexResolver
from ..parsers.ownership import OwnershipExtractor
from ..utils.config import AppConfig
from ..utils.logger import get_logger, log_operation
from ..utils.rate_limiter import AdaptiveRateLimiter
from .filters import FilingPredicate, filter_filings, form_type_predicate

logger = get_logger("insiderloom.processing.pipeline")


@dataclass(frozen=True)
class SkippedFiling:
    """A filing that produced no row."""
    document_key: str
    reason: str
    fetch_failed: bool = False


@dataclass
class PipelineResult:
    """Outcome of one pipeline run."""
    year: int
    quarter: int
    total_filings: int = 0
    matched_filings: int = 0
    rows: list[ExtractedFiling] = field(default_factory=list)
    skipped: list[SkippedFiling] = field(default_factory=list)
    duration_ms: float = 0.0

    @property
    def extracted_count(self) -> int:
        return len(self.rows)

    @property
    def skipped_count(self) -> int:
        return sum(1 for s in self.skipped if not s.fetch_failed)

    @property
    def failed_count(self) -> int:
        return sum(1 for s in self.skipped if s.fetch_failed)


class InsiderPipeline:
    """
    Runs resolution, filtering and extraction for one period.

    Attributes:
        resolver: Produces the period's filing descriptors.
        extractor: Produces one row per filing.
        predicate: Selects the filings to extract.
        max_workers: 1 extracts sequentially; more uses a thread pool that
            shares the extractor's rate limiter and cache.
    """

    def __init__(
        self,
        resolver: PeriodIndexResolver,
        extractor: OwnershipExtractor,
        predicate: Optional[FilingPredicate] = None,
        max_workers: int = 1,
        show_progress: bool = False,
        fetcher: Optional[SECFetcher] = None,
    ):
        self.resolver = resolver
        self.extractor = extractor
        self.predicate = predicate or form_type_predicate()
        self.max_workers = max(1, max_workers)
        self.show_progress = show_progress
        self.fetcher = fetcher

    def run(self, year: int, quarter: int) -> PipelineResult:
        """
        Extract all matching filings of a period.

        Rows come back in index order regardless of worker count.

        Raises:
            PeriodResolutionError: The period's filings could not be listed.
            StorageError: A fetched artifact could not be cached.
        """
        start = time.monotonic()
        result = PipelineResult(year=year, quarter=quarter)

        filings = self.resolver.resolve_filings(year, quarter)
        result.total_filings = len(filings)
        logger.info(f"Fetched {len(filings)} filings for {year} QTR{quarter}")

        filings = filter_filings(filings, self.predicate)
        result.matched_filings = len(filings)
        logger.info(f"Filtered down to {len(filings)} filings")

        if self.max_workers == 1:
            outcomes = self._run_sequential(filings)
        else:
            outcomes = self._run_parallel(filings)

        for outcome in outcomes:
            if isinstance(outcome, ExtractedFiling):
                result.rows.append(outcome)
            else:
                result.skipped.append(outcome)

        result.duration_ms = (time.monotonic() - start) * 1000
        log_operation(
            logger,
            "pipeline_run",
            success=True,
            duration_ms=result.duration_ms,
            year=year,
            quarter=quarter,
            filings=result.total_filings,
            matched=result.matched_filings,
            extracted=result.extracted_count,
            skipped=result.skipped_count,
            failed=result.failed_count,
        )
        return result

    def process_filing(self, filing: FilingDescriptor) -> ExtractedFiling | SkippedFiling:
        """Extract one filing, converting per-filing failures into a skip."""
        filing_logger = get_logger(
            logger.name,
            {"document": filing.document_key, "form_type": filing.form_type},
        )
        try:
            return self.extractor.extract(filing)
        except FilingSkipped as e:
            filing_logger.warning(f"Skipping {filing.document_key}: {e}")
            return SkippedFiling(filing.document_key, str(e))
        except FetchError as e:
            filing_logger.error(f"Error downloading {filing.document_key}: {e}")
            return SkippedFiling(filing.document_key, str(e), fetch_failed=True)

    def _run_sequential(
        self, filings: list[FilingDescriptor]
    ) -> list[ExtractedFiling | SkippedFiling]:
        logger.info(f"Processing {len(filings)} filings sequentially")
        outcomes = []
        for i, filing in enumerate(
            tqdm(filings, desc="Extracting", disable=not self.show_progress), start=1
        ):
            outcomes.append(self.process_filing(filing))
            logger.debug(f"Parsed {i}/{len(filings)}")
        return outcomes

    def _run_parallel(
        self, filings: list[FilingDescriptor]
    ) -> list[ExtractedFiling | SkippedFiling]:
        logger.info(f"Processing {len(filings)} filings with {self.max_workers} workers")
        outcomes: list[Optional[ExtractedFiling | SkippedFiling]] = [None] * len(filings)

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            futures: dict[Future, int] = {
                executor.submit(self.process_filing, filing): i
                for i, filing in enumerate(filings)
            }
            try:
                for future in tqdm(
                    as_completed(futures),
                    total=len(futures),
                    desc="Extracting",
                    disable=not self.show_progress,
                ):
                    outcomes[futures[future]] = future.result()
            except BaseException:
                for future in futures:
                    future.cancel()
                raise

        return [o for o in outcomes if o is not None]

    def close(self) -> None:
        if self.fetcher is not None:
            self.fetcher.close()

    def __enter__(self) -> "InsiderPipeline":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


def build_pipeline(
    config: AppConfig,
    form_types: Optional[list[str]] = None,
    max_workers: Optional[int] = None,
    show_progress: Optional[bool] = None,
) -> InsiderPipeline:
    """
    Wire a pipeline from configuration.

    One rate limiter and one fetcher are shared by the index cache, the
    document cache and every worker.
    """
    settings = config.settings
    sec = settings.sec_api
    workers = max_workers or settings.processing.max_workers

    rate_limiter = AdaptiveRateLimiter(
        rate=sec.rate_limit_per_second,
        burst=sec.rate_limit_burst,
    )
    fetcher = SECFetcher(
        rate_limiter,
        timeout=sec.timeout,
        max_retries=sec.max_retries,
        retry_delay=sec.retry_delay,
        user_agent_template=sec.user_agent_template,
        accept_language=sec.accept_language,
        pool_size=max(10, workers),
    )

    index_cache = ContentCache(
        fetcher, FileSystemStore(config.index_cache_path), name="index cache"
    )
    document_cache = ContentCache(
        fetcher, FileSystemStore(config.document_cache_path), name="document cache"
    )

    resolver = PeriodIndexResolver(
        index_cache,
        sec.daily_index_url,
        listing_fetcher=None if settings.storage.cache_listing_pages else fetcher,
        skip_failed_index_files=settings.processing.skip_failed_index_files,
    )
    extractor = OwnershipExtractor(document_cache, sec.base_url)

    logger.info(
        f"Pipeline initialized. Index cache: {config.index_cache_path}, "
        f"document cache: {config.document_cache_path}, workers: {workers}"
    )

    return InsiderPipeline(
        resolver=resolver,
        extractor=extractor,
        predicate=form_type_predicate(form_types or settings.extraction.form_types),
        max_workers=workers,
        show_progress=(
            settings.processing.show_progress if show_progress is None else show_progress
        ),
        fetcher=fetcher,
    )
