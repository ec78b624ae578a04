"""
Parser for EDGAR daily master index files.

A daily master file (``master.YYYYMMDD.idx``) starts with a fixed seven line
preamble followed by pipe-delimited rows:

    CIK|Company Name|Form Type|Date Filed|File Name
"""

from ..core.models import FilingDescriptor
from ..utils.logger import get_logger

logger = get_logger("insiderloom.parsers.index_parser")

HEADER_LINES = 7
FIELD_COUNT = 5
DELIMITER = "|"


def _split_row(line: str) -> list[str]:
    parts = line.split(DELIMITER)
    # Some producers end each row with a delimiter; drop that one empty field
    if len(parts) == FIELD_COUNT + 1 and parts[-1] == "":
        parts = parts[:-1]
    return parts


def parse_daily_index(content: bytes | str) -> list[FilingDescriptor]:
    """
    Parse a daily master index file into filing descriptors.

    The preamble is discarded unconditionally. Rows that do not split into
    exactly five fields are logged and skipped.

    Args:
        content: Raw file bytes or decoded text. Bytes are read as UTF-8,
            or as latin-1 when they are not valid UTF-8, so no byte is lost.

    Returns:
        Descriptors in file order.
    """
    if isinstance(content, bytes):
        try:
            content = content.decode("utf-8")
        except UnicodeDecodeError:
            # Older files carry latin-1 company names
            content = content.decode("latin-1")

    rows = content.split("\n")[HEADER_LINES:]

    filings: list[FilingDescriptor] = []
    for row in rows:
        row = row.rstrip("\r")
        if row == "":
            continue

        parts = _split_row(row)
        if len(parts) != FIELD_COUNT:
            logger.warning(f"Row did not have correct amount of parts: {row!r}")
            continue

        cik, company_name, form_type, date_filed, file_name = parts
        filings.append(FilingDescriptor.from_index_fields(
            cik=cik,
            company_name=company_name,
            form_type=form_type,
            date_filed=date_filed,
            file_name=file_name,
        ))

    return filings
