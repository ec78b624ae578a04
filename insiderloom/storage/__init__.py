"""Output storage."""

from .csv_writer import write_rows

__all__ = ["write_rows"]
