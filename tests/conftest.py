"""Pytest configuration and fixtures."""

import os
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

# Set up environment for testing
os.environ["INSIDERLOOM_ENV"] = "test"

from fakes import (  # noqa: E402
    InMemoryStore,
    InstantRateLimiter,
    ScriptedFetcher,
    make_form4_document,
    make_index,
)


@pytest.fixture(scope="session", autouse=True)
def setup_logging():
    """Set up logging for tests."""
    from insiderloom.utils.logger import setup_logging
    setup_logging(log_level="WARNING")


@pytest.fixture(scope="session")
def project_root():
    """Get project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def instant_limiter():
    """Rate limiter that never blocks."""
    return InstantRateLimiter()


@pytest.fixture
def memory_store():
    """Empty in-memory content store."""
    return InMemoryStore()


@pytest.fixture
def sample_index_row():
    """The Apple Form 4 row used throughout the docs."""
    return "320193|Apple Inc.|4|2022-04-01|edgar/data/320193/0000320193-22-000050.txt"


@pytest.fixture
def sample_master_file(sample_index_row):
    """Daily master file mixing ownership and other form types."""
    return make_index(
        "1000045|NICHOLAS FINANCIAL INC|10-Q|2022-04-01|edgar/data/1000045/0000950170-22-005015.txt",
        sample_index_row,
        "1214156|COOK TIMOTHY D|4|2022-04-01|edgar/data/1214156/0000320193-22-000050.txt",
        "789019|MICROSOFT CORP|4/A|2022-04-01|edgar/data/789019/0001062993-22-010101.txt",
        "789019|MICROSOFT CORP|3|2022-04-01|edgar/data/789019/0001062993-22-010102.txt",
    )


@pytest.fixture
def sample_form4_document():
    """Composite submission with a well-formed form4.xml payload."""
    return make_form4_document()


@pytest.fixture
def listing_html():
    """Daily-index directory listing for 2022 QTR2."""
    return b"""<html><body><table>
    <tr><td><a href="company.20220401.idx">company.20220401.idx</a></td></tr>
    <tr><td><a href="form.20220401.idx">form.20220401.idx</a></td></tr>
    <tr><td><a href="master.20220401.idx">master.20220401.idx</a></td></tr>
    <tr><td><a href="master.20220404.idx"> master.20220404.idx </a></td></tr>
    <tr><td><a href="/Archives/edgar/daily-index/2022/">Parent Directory</a></td></tr>
    </table></body></html>"""


@pytest.fixture
def scripted_fetcher():
    """Factory for fetchers answering from a URL table."""
    def factory(responses=None, delay=0.0):
        return ScriptedFetcher(responses, delay=delay)
    return factory
