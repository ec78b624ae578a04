"""
InsiderLoom
===========

Insider transaction extraction from SEC EDGAR daily indexes.

Source code organization:
- core/        - Domain models, exceptions, service protocols
- ingestion/   - Rate-limited fetcher, content cache, period index resolution
- parsers/     - Daily index and ownership XML parsing
- processing/  - Filing filters and pipeline orchestration
- storage/     - CSV output
- utils/       - Shared utilities (config, logging, rate limiting, retry)
"""

__version__ = "0.1.0"
