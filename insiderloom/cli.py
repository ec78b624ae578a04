#!/usr/bin/env python3
"""
InsiderLoom CLI - insider transaction extraction from EDGAR daily indexes

Usage:
    insiderloom run --year 2022 --quarter 2           # Extract Form 4/4A rows to CSV
    insiderloom run --year 2022 --quarter 2 --workers 4 --output q2.csv
    insiderloom run --year 2022 --quarter 2 --forms 4  # Original Form 4 only
    insiderloom config show                           # Show configuration
    insiderloom config validate                       # Validate configuration
"""

import argparse
import sys
from typing import Optional

from .core.exceptions import InsiderLoomError
from .processing.pipeline import build_pipeline
from .storage.csv_writer import write_rows
from .utils.config import AppConfig, get_absolute_path, get_config
from .utils.logger import get_logger, setup_logging

logger = get_logger("insiderloom.cli")


class InsiderLoomCLI:
    """Command handlers for the InsiderLoom CLI."""

    def __init__(self, config: Optional[AppConfig] = None):
        self.config = config or get_config()

    def _apply_run_overrides(self, args) -> None:
        settings = self.config.settings
        if args.year is not None:
            settings.extraction.year = args.year
        if args.quarter is not None:
            settings.extraction.quarter = args.quarter
        if args.forms:
            settings.extraction.form_types = list(args.forms)
        if args.rate_limit is not None:
            settings.sec_api.rate_limit_per_second = args.rate_limit
        if args.workers is not None:
            settings.processing.max_workers = args.workers
        if args.skip_failed_index_files:
            settings.processing.skip_failed_index_files = True
        if args.output:
            settings.storage.output_path = args.output

    def cmd_run(self, args) -> int:
        """Resolve, filter, extract and write one period."""
        self._apply_run_overrides(args)

        errors = self.config.validate()
        if errors:
            print("\n❌ Configuration errors:")
            for error in errors:
                print(f"  • {error}")
            print()
            return 1

        extraction = self.config.settings.extraction
        output_path = get_absolute_path(self.config.settings.storage.output_path)

        print(
            f"\nExtracting {', '.join(extraction.form_types)} filings "
            f"for {extraction.year} QTR{extraction.quarter}\n"
        )

        with build_pipeline(
            self.config,
            show_progress=False if args.no_progress else None,
        ) as pipeline:
            result = pipeline.run(extraction.year, extraction.quarter)

        written = write_rows(result.rows, output_path)

        print()
        print("=" * 70)
        print(f"  Filings in period:   {result.total_filings:>10,}")
        print(f"  Matching form types: {result.matched_filings:>10,}")
        print(f"  ✅ Extracted:         {result.extracted_count:>10,}")
        print(f"  ⚠️  Skipped:           {result.skipped_count:>10,}")
        print(f"  ❌ Download failed:   {result.failed_count:>10,}")
        print(f"  Duration:            {result.duration_ms / 1000:>9.1f}s")
        print("=" * 70)
        print(f"\nWrote {written} rows to {output_path}\n")
        return 0

    def cmd_config(self, args) -> int:
        """Configuration operations."""
        if args.action == "show":
            print("\n⚙️  Current Configuration:\n")
            print(f"Environment: {self.config.environment.value}")

            print("\nSEC API Config:")
            for key, value in self.config.get_sec_api_config().items():
                print(f"  {key}: {value}")

            extraction = self.config.settings.extraction
            print("\nExtraction Config:")
            print(f"  year: {extraction.year}")
            print(f"  quarter: {extraction.quarter}")
            print(f"  form_types: {', '.join(extraction.form_types)}")

            print("\nStorage Config:")
            print(f"  index_cache_path: {self.config.index_cache_path}")
            print(f"  document_cache_path: {self.config.document_cache_path}")
            print(f"  output_path: {self.config.output_path}")
            print()
            return 0

        print("\n✅ Validating configuration...\n")
        errors = self.config.validate()
        if errors:
            print("⚠️  Configuration errors:")
            for error in errors:
                print(f"  • {error}")
            print()
            return 1

        print("✅ Configuration is valid!\n")
        return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="InsiderLoom - insider transaction extraction from SEC EDGAR",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--log-level", type=str, default=None,
                        help="Override log level (DEBUG, INFO, WARNING, ERROR)")

    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    run_parser = subparsers.add_parser("run", help="Extract filings for a year/quarter")
    run_parser.add_argument("--year", type=int, help="Filing year (default: from config)")
    run_parser.add_argument("--quarter", type=int, choices=[1, 2, 3, 4],
                            help="Filing quarter (default: from config)")
    run_parser.add_argument("--forms", nargs="+", metavar="FORM",
                            help="Form types to keep, exact match (default: 4 4/A)")
    run_parser.add_argument("--output", type=str, help="CSV output path")
    run_parser.add_argument("--workers", type=int,
                            help="Parallel document downloads (default: 1)")
    run_parser.add_argument("--rate-limit", type=float,
                            help="Requests per second across all workers")
    run_parser.add_argument("--skip-failed-index-files", action="store_true",
                            help="Skip unreachable daily index files instead of aborting")
    run_parser.add_argument("--no-progress", action="store_true",
                            help="Disable the progress bar")

    config_parser = subparsers.add_parser("config", help="Configuration operations")
    config_parser.add_argument("action", choices=["show", "validate"])

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    try:
        setup_logging(log_level=args.log_level)
        cli = InsiderLoomCLI()
        if args.command == "run":
            return cli.cmd_run(args)
        return cli.cmd_config(args)

    except KeyboardInterrupt:
        print("\n\n⚠️  Operation cancelled by user\n")
        return 130
    except InsiderLoomError as e:
        logger.error(f"Run aborted: {e}")
        print(f"\n❌ Error: {e}\n")
        return 1


if __name__ == "__main__":
    sys.exit(main())
