"""
Command line entry point.

    python -m app.cli import path/to/prices.csv
    python -m app.cli preview path/to/prices.csv --max-rows 20
"""
import argparse
import sys
from datetime import datetime
from typing import List, Optional

from app.core.config import settings
from app.core.logging import configure_logging
from app.db.connection import init_db
from app.models.enums import ImportResultType
from app.services.factory import build_import_service

SEPARATOR = "-" * 50


def positive_int(value: str) -> int:
    number = int(value)
    if number < 1:
        raise argparse.ArgumentTypeError("must be a positive integer")
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="app.cli", description="Import rental prices from CSV files.")
    parser.add_argument("--init-db", action="store_true", help="Create missing tables before running.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    import_parser = subparsers.add_parser("import", help="Import prices from a CSV file.")
    import_parser.add_argument("csv", help="Path to the CSV file.")

    preview_parser = subparsers.add_parser("preview", help="Validate a sample of a CSV file without saving.")
    preview_parser.add_argument("csv", help="Path to the CSV file.")
    preview_parser.add_argument(
        "--max-rows",
        type=positive_int,
        default=settings.PREVIEW_DEFAULT_MAX_ROWS,
        help="Number of rows to analyze (default: %(default)s).",
    )
    return parser


def print_report(report, error_limit: int = 3) -> None:
    summary = report.summary
    print("Summary:")
    print(f"  Total rows: {summary.total_rows}")
    print(f"  Successful: {summary.successful_rows}")
    print(f"  Failed: {summary.failed_rows}")
    print(f"  Created: {summary.created_prices}")
    print(f"  Updated: {summary.updated_prices}")
    print(f"  Success rate: {summary.success_rate}%")

    if report.errors_by_type:
        print("\nError breakdown:")
        for error_type, count in report.errors_by_type.items():
            print(f"  {error_type}: {count}")

    if report.detailed_errors:
        print("\nFirst errors:")
        for index, error in enumerate(report.detailed_errors[:error_limit], start=1):
            print(f"  {index}. Line {error.line}: {error.error}")
            for suggestion in error.suggestions:
                print(f"       - {suggestion}")


def run_import(service, csv_path: str) -> int:
    print(f"Starting price import from: {csv_path}")
    print(f"Timestamp: {datetime.now().isoformat(timespec='seconds')}")
    print(SEPARATOR)

    result = service.import_prices(csv_path)

    if result.result_type == ImportResultType.IMPORT_SUCCESS:
        print("\nIMPORT SUCCESSFUL")
        print(f"Processed: {result.processed_count} prices")
        print(f"Created: {result.created_count} new prices")
        print(f"Updated: {result.updated_count} existing prices")
    else:
        print(f"\nIMPORT FAILED ({result.result_type.value})")
        print(f"Error: {result.message}")
        report = getattr(result, "report", None)
        if report is not None:
            print_report(report)
        for detail in getattr(result, "errors", []):
            print(f"  {detail.error_type.value}: {detail.error_message}")

    print(SEPARATOR)
    return 0 if result.success else 1


def run_preview(service, csv_path: str, max_rows: int) -> int:
    print(f"Previewing import from: {csv_path}")
    print(f"Max rows to analyze: {max_rows}")
    print(SEPARATOR)

    result = service.preview(csv_path, max_rows)
    if result.result_type != ImportResultType.PREVIEW_SUCCESS:
        print(f"Error: {result.message}")
        return 1

    print("PREVIEW RESULTS")
    print(f"Sample size: {result.total_sample_size} rows")
    print(f"Estimated issues: {result.estimated_issues} rows")
    for index, row in enumerate(result.sample_rows, start=1):
        if row.success:
            print(f"  OK   {index} (Line {row.line}): {row.data.get('category_code')} at "
                  f"{row.data.get('rental_location_name')} -> {row.price_definition}")
        else:
            print(f"  FAIL {index} (Line {row.line}): {row.error}")

    print(f"\nEstimated success rate: {result.report.summary.success_rate}%")
    if result.report.detailed_errors:
        print()
        print_report(result.report)
    print(SEPARATOR)
    return 0


def main(argv: Optional[List[str]] = None, service=None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(settings.LOG_LEVEL, settings.LOG_FORMAT)

    if args.init_db:
        init_db()
    service = service or build_import_service()

    if args.command == "import":
        return run_import(service, args.csv)
    return run_preview(service, args.csv, args.max_rows)


if __name__ == "__main__":
    sys.exit(main())
