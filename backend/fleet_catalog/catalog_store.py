"""catalog_store.py
~~~~~~~~~~~~~~~~~~~
Load and save the per-airline fleet catalog (``airlines/<CODE>.json``).

Storage:
    One JSON document per airline, 2-space indented, aircraft sorted by
    (type IATA code, registration) so version-control diffs stay readable.

Writes go to a sibling temp file that is then ``os.replace``-d over the
target, so an interrupted run leaves the previous catalog intact.
"""

from __future__ import annotations

import datetime as dt
import json
import logging
import os
import stat
import tempfile
from pathlib import Path
from typing import Any, Final, Iterator

from dateutil import tz

from .airlines import get_airline
from .constants import SCHEMA_VERSION

UTC: Final = tz.UTC
LOG = logging.getLogger("catalog_store")


class CatalogError(Exception):
    """The catalog on disk cannot be used (corrupt JSON, wrong shape)."""


def _now_iso(now: dt.datetime | None = None) -> str:
    return (now or dt.datetime.now(UTC)).isoformat()


def sort_key(record: dict[str, Any]) -> tuple[str, str]:
    aircraft_type = record.get("aircraft_type") or {}
    return (aircraft_type.get("iata_code") or "", record.get("registration") or "")


class FleetCatalog:
    """
    A catalog document plus a registration index.

    The wrapped ``data`` dict is the exact JSON document; records handed out
    by :meth:`get` are the live entries inside ``data["aircraft"]``.
    """

    def __init__(self, data: dict[str, Any]) -> None:
        self.data = data
        self._by_reg: dict[str, int] = {}
        self.reindex()

    def reindex(self) -> None:
        """Rebuild the registration index after ``aircraft`` was reordered."""
        self._by_reg = {
            record["registration"]: idx for idx, record in enumerate(self.aircraft)
        }

    @property
    def aircraft(self) -> list[dict[str, Any]]:
        return self.data["aircraft"]

    @property
    def airline_code(self) -> str | None:
        return (self.data.get("airline") or {}).get("iata_code")

    def __len__(self) -> int:
        return len(self.aircraft)

    def __iter__(self) -> Iterator[dict[str, Any]]:
        return iter(self.aircraft)

    def __contains__(self, registration: object) -> bool:
        return registration in self._by_reg

    def registrations(self) -> set[str]:
        return set(self._by_reg)

    def get(self, registration: str) -> dict[str, Any] | None:
        idx = self._by_reg.get(registration)
        return None if idx is None else self.aircraft[idx]

    def upsert(self, record: dict[str, Any]) -> None:
        """Insert *record* or replace the entry with the same registration."""
        reg = record["registration"]
        idx = self._by_reg.get(reg)
        if idx is None:
            self._by_reg[reg] = len(self.aircraft)
            self.aircraft.append(record)
        else:
            self.aircraft[idx] = record


def new_catalog(airline_code: str, now: dt.datetime | None = None) -> FleetCatalog:
    """Return an empty catalog for *airline_code*."""
    airline = get_airline(airline_code)
    return FleetCatalog(
        {
            "schema_version": SCHEMA_VERSION,
            "airline": {
                "iata_code": airline["code"],
                "name": airline["name"],
                "country": airline["country"],
            },
            "generated_at": _now_iso(now),
            "aircraft_count": 0,
            "aircraft": [],
        }
    )


def load_catalog(path: Path) -> FleetCatalog:
    """
    Read the catalog at *path*.

    Raises:
        FileNotFoundError: no catalog yet; the caller decides what to create.
        CatalogError: the file is not a usable catalog.
    """
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except UnicodeDecodeError as exc:
        raise CatalogError(f"{path} is not UTF-8: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise CatalogError(f"{path} is not valid JSON: {exc}") from exc

    if not isinstance(data, dict) or not isinstance(data.get("aircraft"), list):
        raise CatalogError(f"{path} has no 'aircraft' list")
    for record in data["aircraft"]:
        if not isinstance(record, dict) or not record.get("registration"):
            raise CatalogError(f"{path} contains an aircraft without registration")

    LOG.info("Loaded %s (%d aircraft)", path, len(data["aircraft"]))
    return FleetCatalog(data)


def _file_mode(path: Path) -> int:
    """Mode for a rewritten file: keep the existing one, else honour the umask."""
    try:
        return stat.S_IMODE(path.stat().st_mode)
    except FileNotFoundError:
        umask = os.umask(0)
        os.umask(umask)
        return 0o666 & ~umask


def _write_json_atomic(path: Path, payload: dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    text = json.dumps(payload, indent=2, ensure_ascii=False) + "\n"
    fd, tmp_name = tempfile.mkstemp(
        dir=path.parent, prefix=f".{path.name}.", suffix=".tmp"
    )
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            fh.write(text)
        os.chmod(tmp_name, _file_mode(path))
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


def save_catalog(
    path: Path, catalog: FleetCatalog, now: dt.datetime | None = None
) -> None:
    """Sort, recount, timestamp and atomically write *catalog* to *path*."""
    path = Path(path)
    data = catalog.data
    data["aircraft"].sort(key=sort_key)
    data["aircraft_count"] = len(data["aircraft"])
    data["generated_at"] = _now_iso(now)
    catalog.reindex()

    _write_json_atomic(path, data)
    LOG.info("Saved %s (%d aircraft)", path, data["aircraft_count"])


def export_changes(
    path: Path,
    airline_code: str,
    changes: list[dict[str, Any]],
    now: dt.datetime | None = None,
) -> None:
    """Write the run's change list (each entry carries its registration)."""
    _write_json_atomic(
        Path(path),
        {
            "generated_at": _now_iso(now),
            "airline": airline_code,
            "changes": changes,
        },
    )
    LOG.info("Changes exported to %s (%d entries)", path, len(changes))


__all__ = [
    "CatalogError",
    "FleetCatalog",
    "export_changes",
    "load_catalog",
    "new_catalog",
    "save_catalog",
    "sort_key",
]
