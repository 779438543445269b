"""
main.py – command-line entry point
==================================

Usage::

    fleet-update --airline AF                  # update Air France
    fleet-update --airline KL --bootstrap      # build the KLM catalog (7 days)
    fleet-update --airline KL --dry-run        # preview KLM changes

Environment (``.env`` is honoured):
    AFKLM_API_KEY   – single API key
    AFKLM_API_KEYS  – comma-separated API keys (rotated on 403/429)

Every fatal error is reported on one line and exits with status 1; pass
``--debug`` (or set ``DEBUG``) to get the traceback as well.
"""

from __future__ import annotations

import argparse
import datetime as dt
import logging
import os
import sys
from typing import Sequence

from dotenv import load_dotenv

from .airlines import AIRLINES
from .catalog_store import CatalogError
from .config import ConfigError, load_settings
from .crawl_service import (
    DEFAULT_BOOTSTRAP_DAYS,
    DEFAULT_STALE_DAYS,
    CrawlOptions,
    run,
)
from .flightstatus_client import ApiError

LOG = logging.getLogger("fleet_update")

LOG_FORMAT = "%(levelname)s:     %(name)s - %(message)s"


# Configure the root logger to output to stdout
_handler = logging.StreamHandler(sys.stdout)
_handler.setFormatter(logging.Formatter(LOG_FORMAT))


def configure_logging(verbose: bool = False) -> None:
    """Send every project logger to stdout (DEBUG when *verbose*)."""
    root = logging.getLogger()
    if _handler not in root.handlers:
        root.addHandler(_handler)
    root.setLevel(logging.DEBUG if verbose else logging.INFO)
    # httpx logs every request at INFO; extapi already does that
    logging.getLogger("httpx").setLevel(logging.WARNING)


def _iso_date(value: str) -> str:
    try:
        return dt.date.fromisoformat(value).isoformat()
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected YYYY-MM-DD, got {value!r}")


def _positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected an integer, got {value!r}")
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1, got {number}")
    return number


def _non_negative_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected an integer, got {value!r}")
    if number < 0:
        raise argparse.ArgumentTypeError(f"must not be negative, got {number}")
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="fleet-update",
        description="Air France / KLM fleet catalog updater",
        epilog="Environment: AFKLM_API_KEY or AFKLM_API_KEYS (comma-separated).",
    )
    parser.add_argument(
        "--airline",
        required=True,
        type=str.upper,
        choices=sorted(AIRLINES),
        help="Airline code: AF (Air France) or KL (KLM)",
    )
    parser.add_argument(
        "--dry-run", action="store_true", help="Preview changes without saving"
    )
    parser.add_argument(
        "--date",
        type=_iso_date,
        default=None,
        help="Use a specific date (YYYY-MM-DD) instead of today",
    )
    parser.add_argument(
        "--bootstrap",
        action="store_true",
        help="Build the catalog from scratch by crawling the last --days days",
    )
    parser.add_argument(
        "--days",
        type=_positive_int,
        default=DEFAULT_BOOTSTRAP_DAYS,
        help=f"Number of days for bootstrap (default: {DEFAULT_BOOTSTRAP_DAYS})",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Show detailed output"
    )
    parser.add_argument(
        "--output-changes",
        action="store_true",
        help="Export changes to <code>-changes.json",
    )
    parser.add_argument(
        "--stale-days",
        type=_non_negative_int,
        default=DEFAULT_STALE_DAYS,
        help=f"Days threshold for stale aircraft (default: {DEFAULT_STALE_DAYS})",
    )
    parser.add_argument(
        "--debug", action="store_true", help="Log tracebacks for fatal errors"
    )
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Parse *argv*, run the updater and return the process exit status."""
    load_dotenv()
    args = build_parser().parse_args(argv)
    configure_logging(args.verbose)
    debug = args.debug or bool(os.getenv("DEBUG"))

    options = CrawlOptions(
        airline_code=args.airline,
        dry_run=args.dry_run,
        date=args.date,
        bootstrap=args.bootstrap,
        days=args.days,
        verbose=args.verbose,
        output_changes=args.output_changes,
        stale_days=args.stale_days,
    )

    try:
        settings = load_settings()
        run(options, settings)
    except (ConfigError, ApiError, CatalogError, OSError) as exc:
        if debug:
            LOG.exception("Error: %s", exc)
        else:
            LOG.error("Error: %s", exc)
        return 1

    LOG.info("Done")
    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
