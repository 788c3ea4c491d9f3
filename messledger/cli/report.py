"""CLI entry point for exporting the billing summary.

Writes the member balance roster to a CSV or Excel file, in the same
order and with the same filter an operator would apply on screen.

Usage:
    python -m messledger.cli.report --format xlsx --sort name
    messledger-report --search "Silva" --output reports/

Exit Codes:
    0 - Success: Report written
    1 - Failure: Error encountered; no file written

Logging:
    INFO level logs to both stdout and LOG_FILE
"""

import argparse
import asyncio
import logging
import sys
from datetime import date
from pathlib import Path

from dotenv import load_dotenv

from messledger.config import get_settings
from messledger.errors import LedgerError
from messledger.services.logging import setup_server_logging

logger = logging.getLogger("messledger.cli.report")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Export the mess billing summary")
    parser.add_argument("--output", default=".", help="Directory or file path for the report")
    parser.add_argument("--format", choices=["csv", "xlsx"], default="csv", help="Report format")
    parser.add_argument("--sort", default="member_no", help="Column to sort by")
    parser.add_argument("--desc", action="store_true", help="Sort descending")
    parser.add_argument("--search", default="", help="Only members whose name or number contains this")
    parser.add_argument("--start", default=None, help="First day (YYYY-MM-DD)")
    parser.add_argument("--end", default=None, help="Last day (YYYY-MM-DD)")
    return parser


def resolve_output_path(output: str, filename: str) -> Path:
    """A directory (existing, or given with a trailing slash) gets the default filename."""
    path = Path(output)
    if path.is_dir() or output.endswith(("/", "\\")):
        return path / filename
    return path


async def run(args: argparse.Namespace) -> Path:
    """
    Compute the roster and write it to disk.

    Returns:
        Path of the written report

    Raises:
        LedgerError: Bad sort column or date range, or store failure
    """
    from messledger.services import close_store, get_store
    from messledger.services.date_range import DateRange
    from messledger.services.export_service import export_rollup, rollup_filename
    from messledger.services.rollup_service import RollupService, RollupView

    store = get_store()
    try:
        await store.create_schema()
        rows = await RollupService(store).rollup(DateRange.from_strings(args.start, args.end))
    finally:
        await close_store()

    view = RollupView(rows=rows, sort_key=args.sort, descending=args.desc, search_term=args.search)
    visible = view.visible_rows
    content = export_rollup(visible, args.format, currency=get_settings().currency)

    path = resolve_output_path(args.output, rollup_filename(date.today(), args.format))
    path.parent.mkdir(parents=True, exist_ok=True)
    if isinstance(content, bytes):
        path.write_bytes(content)
    else:
        path.write_text(content, encoding="utf-8")

    logger.info(
        "Billing summary written to %s: %d of %d member(s), total outstanding %s",
        path,
        len(visible),
        len(rows),
        view.grand_total,
    )
    return path


def main(argv: list[str] | None = None) -> int:
    """
    Main entry point for the report CLI.

    Returns:
        Exit code: 0 for success, 1 for failure
    """
    args = build_parser().parse_args(argv)
    load_dotenv()
    settings = get_settings()
    setup_server_logging(settings.log_file, settings.log_level)

    try:
        asyncio.run(run(args))
        return 0
    except KeyboardInterrupt:
        logger.warning("Report interrupted by user")
        return 1
    except LedgerError as e:
        logger.error(f"Report failed ({e.code}): {e.message}")
        return 1
    except OSError as e:
        logger.error(f"Could not write report: {e}", exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
