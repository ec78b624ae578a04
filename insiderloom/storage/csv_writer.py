"""CSV export of extracted transaction rows."""

import csv
from pathlib import Path
from typing import Iterable

from ..core.exceptions import PersistenceError
from ..core.models import OUTPUT_COLUMNS, ExtractedFiling
from ..utils.logger import get_logger

logger = get_logger("insiderloom.storage.csv_writer")


def write_rows(rows: Iterable[ExtractedFiling], output_path: str | Path) -> int:
    """
    Write rows under the fixed header.

    Args:
        rows: Extracted filings.
        output_path: Destination file; parent directories are created.

    Returns:
        Number of data rows written.
    """
    path = Path(output_path)
    count = 0
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", newline="", encoding="utf-8") as f:
            writer = csv.writer(f)
            writer.writerow(OUTPUT_COLUMNS)
            for row in rows:
                writer.writerow(row.as_row())
                count += 1
    except OSError as e:
        raise PersistenceError(f"Failed to write CSV: {e}", {"path": str(path)}) from e

    logger.info(f"Wrote {count} rows to {path}")
    return count
