"""crawl_service.py
~~~~~~~~~~~~~~~~~~~
Drive one updater run: pick the dates, crawl them in order, reconcile every
observed tail against the in-memory catalog and persist once at the end.

Modes
-----
* **Single day** – the given ``date`` (default: today, UTC).
* **Bootstrap** – ``days`` consecutive days ending today, always starting
  from an empty catalog even if one exists on disk.

Outcomes are applied to the catalog as soon as they are computed (unless
``dry_run``), so a later date in the same run reconciles against what earlier
dates produced. Nothing is written before the whole crawl succeeded.
"""

from __future__ import annotations

import contextlib
import datetime as dt
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Final, Iterable, Protocol

from dateutil import parser as dtparser
from dateutil import tz

from .airlines import get_airline
from .catalog_store import (
    FleetCatalog,
    export_changes,
    load_catalog,
    new_catalog,
    save_catalog,
)
from .config import Settings
from .extractor import collect_observations
from .flightstatus_client import FlightStatusClient
from .reconciler import Action, reconcile
from .transformer import transform

UTC: Final = tz.UTC
LOG = logging.getLogger("crawl_service")

DEFAULT_BOOTSTRAP_DAYS: Final[int] = 7
DEFAULT_STALE_DAYS: Final[int] = 30
#: Stale tails listed individually in the summary
STALE_PREVIEW: Final[int] = 5


class FlightSource(Protocol):
    def fetch_flights_for_date(
        self, date: str, airline_code: str
    ) -> list[dict[str, Any]]: ...


@dataclass
class CrawlOptions:
    airline_code: str
    dry_run: bool = False
    date: str | None = None
    bootstrap: bool = False
    days: int = DEFAULT_BOOTSTRAP_DAYS
    verbose: bool = False
    output_changes: bool = False
    stale_days: int = DEFAULT_STALE_DAYS


@dataclass
class CrawlReport:
    dates: list[str]
    created: int = 0
    updated: int = 0
    seen: int = 0
    changes: list[dict[str, Any]] = field(default_factory=list)
    seen_registrations: set[str] = field(default_factory=set)
    stale: list[dict[str, Any]] = field(default_factory=list)
    total_requests: int = 0
    saved: bool = False
    changes_path: Path | None = None

    @property
    def touched(self) -> int:
        """Aircraft created, updated or re-seen during the run."""
        return self.created + self.updated + self.seen


# ── helpers ──────────────────────────────────────────────────────────────


def date_range(end: dt.date, days: int) -> list[str]:
    """*days* ISO dates ending at *end*, oldest first."""
    if days < 1:
        raise ValueError("days must be at least 1")
    return [(end - dt.timedelta(days=i)).isoformat() for i in range(days - 1, -1, -1)]


def _parse_last_seen(value: Any) -> dt.datetime | None:
    if not value or not isinstance(value, str):
        return None
    try:
        parsed = dtparser.isoparse(value)
    except (ValueError, OverflowError):
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)


def find_stale(
    aircraft: Iterable[dict[str, Any]],
    seen: set[str],
    stale_days: int,
    now: dt.datetime | None = None,
) -> list[dict[str, Any]]:
    """
    Return records not observed in this run whose ``last_seen`` is older than
    *stale_days* (or missing/unreadable). Reporting only; nothing is removed.
    """
    threshold = (now or dt.datetime.now(UTC)) - dt.timedelta(days=stale_days)
    stale = []
    for record in aircraft:
        if record.get("registration") in seen:
            continue
        last_seen = _parse_last_seen((record.get("tracking") or {}).get("last_seen"))
        if last_seen is None or last_seen < threshold:
            stale.append(record)
    return stale


def wifi_stats(aircraft: Iterable[dict[str, Any]]) -> dict[str, int]:
    """Count aircraft per wifi level (missing counts as ``none``)."""
    stats = {"none": 0, "low-speed": 0, "high-speed": 0}
    for record in aircraft:
        wifi = (record.get("connectivity") or {}).get("wifi") or "none"
        stats[wifi] = stats.get(wifi, 0) + 1
    return stats


def _pct(part: int, total: int) -> int:
    return round(part / total * 100) if total else 0


# ── crawl ────────────────────────────────────────────────────────────────


def crawl(
    client: FlightSource,
    catalog: FleetCatalog,
    dates: list[str],
    airline_code: str,
    *,
    dry_run: bool = False,
    verbose: bool = False,
    announce_new: bool = False,
    now: dt.datetime | None = None,
) -> CrawlReport:
    """
    Fetch, reconcile and (unless *dry_run*) apply every date in order.

    Errors from *client* propagate untouched; the catalog may then hold
    partial in-memory updates, but nothing has been written to disk.
    """
    report = CrawlReport(dates=list(dates))
    new_level = logging.INFO if (verbose or announce_new) else logging.DEBUG
    change_level = logging.INFO if verbose else logging.DEBUG

    for date in dates:
        LOG.info("Fetching %s flights for %s", airline_code, date)
        flights = client.fetch_flights_for_date(date, airline_code)
        observations = collect_observations(flights, airline_code)
        LOG.info("%s: %d unique %s aircraft", date, len(observations), airline_code)

        for reg, observation in observations.items():
            report.seen_registrations.add(reg)
            result = reconcile(
                catalog.get(reg), transform(observation, date, now=now), date, now=now
            )

            if result.action is Action.CREATE:
                report.created += 1
                LOG.log(new_level, "NEW: %s (%s)", reg, observation["type_name"] or "Unknown")
            elif result.action is Action.UPDATE:
                report.updated += 1
                LOG.log(change_level, "UPDATED: %s", reg)
                for change in result.changes:
                    LOG.log(
                        change_level,
                        "    %s: %s → %s",
                        change["property"],
                        change["old_value"],
                        change["new_value"],
                    )
                report.changes.extend(
                    {"registration": reg, **change} for change in result.changes
                )
            else:
                report.seen += 1

            if not dry_run:
                catalog.upsert(result.record)

    return report


def _log_summary(report: CrawlReport, catalog: FleetCatalog) -> None:
    LOG.info("Summary")
    LOG.info("  New aircraft:     %d", report.created)
    LOG.info("  Updated aircraft: %d", report.updated)
    LOG.info("  Seen (no change): %d", report.seen)
    LOG.info("  Total in catalog: %d", len(catalog))
    LOG.info("  Total changes:    %d", len(report.changes))
    LOG.info("  API requests:     %d", report.total_requests)


def _log_stale(stale: list[dict[str, Any]], stale_days: int) -> None:
    if not stale:
        return
    LOG.warning("Stale aircraft (not seen in %d+ days): %d", stale_days, len(stale))
    for record in stale[:STALE_PREVIEW]:
        last_seen = (record.get("tracking") or {}).get("last_seen") or "never"
        LOG.warning("  - %s (last: %s)", record["registration"], last_seen)
    if len(stale) > STALE_PREVIEW:
        LOG.warning("  ... and %d more", len(stale) - STALE_PREVIEW)


def _log_wifi(catalog: FleetCatalog) -> None:
    stats = wifi_stats(catalog)
    total = len(catalog)
    LOG.info("Fleet WiFi status:")
    LOG.info(
        "  High-speed (Starlink): %d (%d%%)",
        stats["high-speed"],
        _pct(stats["high-speed"], total),
    )
    LOG.info(
        "  Low-speed:             %d (%d%%)",
        stats["low-speed"],
        _pct(stats["low-speed"], total),
    )
    LOG.info(
        "  None:                  %d (%d%%)", stats["none"], _pct(stats["none"], total)
    )


def _open_catalog(path: Path, airline_code: str, bootstrap: bool) -> FleetCatalog:
    if bootstrap:
        LOG.info("Bootstrap mode: creating a new %s catalog", airline_code)
        return new_catalog(airline_code)
    try:
        return load_catalog(path)
    except FileNotFoundError:
        LOG.info("No existing catalog at %s, creating a new one", path)
        return new_catalog(airline_code)


def run(
    options: CrawlOptions,
    settings: Settings,
    *,
    client: FlightSource | None = None,
    today: dt.date | None = None,
    now: dt.datetime | None = None,
) -> CrawlReport:
    """
    Execute one full updater run and return its :class:`CrawlReport`.

    *client* defaults to a :class:`FlightStatusClient` built from *settings*
    (closed again before returning).
    """
    airline = get_airline(options.airline_code)
    code = airline["code"]
    path = settings.catalog_path(code)
    now = now or dt.datetime.now(UTC)
    today = today or now.date()

    LOG.info("%s fleet catalog updater", airline["name"])
    LOG.info("API keys loaded: %d", len(settings.api_keys))
    if options.dry_run:
        LOG.info("DRY RUN - no changes will be saved")

    catalog = _open_catalog(path, code, options.bootstrap)

    if options.bootstrap:
        dates = date_range(today, options.days)
        LOG.info("Crawling %d days: %s → %s", len(dates), dates[0], dates[-1])
    else:
        dates = [options.date or today.isoformat()]
        LOG.info("Processing: %s", dates[0])

    with contextlib.ExitStack() as stack:
        if client is None:
            client = stack.enter_context(FlightStatusClient.from_settings(settings))
        report = crawl(
            client,
            catalog,
            dates,
            code,
            dry_run=options.dry_run,
            verbose=options.verbose,
            announce_new=options.bootstrap,
            now=now,
        )
        state = getattr(client, "state", None)
        report.total_requests = getattr(state, "total_requests", 0)

    _log_summary(report, catalog)

    if not options.bootstrap:
        report.stale = find_stale(
            catalog, report.seen_registrations, options.stale_days, now=now
        )
        _log_stale(report.stale, options.stale_days)

    _log_wifi(catalog)

    if options.output_changes and report.changes:
        report.changes_path = settings.changes_path(code)
        export_changes(report.changes_path, code, report.changes, now=now)

    if options.dry_run:
        LOG.info("Dry run complete - no changes saved")
    elif report.touched > 0:
        save_catalog(path, catalog, now=now)
        report.saved = True
    else:
        LOG.info("No changes to save")

    return report


__all__ = [
    "CrawlOptions",
    "CrawlReport",
    "crawl",
    "date_range",
    "find_stale",
    "run",
    "wifi_stats",
]
