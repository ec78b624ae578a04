"""SEC filing parsers module."""

from .index_parser import parse_daily_index
from .ownership import FIELD_PATHS, OwnershipExtractor, extract_fields

__all__ = ["parse_daily_index", "FIELD_PATHS", "OwnershipExtractor", "extract_fields"]
