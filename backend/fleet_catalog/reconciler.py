"""reconciler.py
~~~~~~~~~~~~~~~~
Decide what a fresh observation means for the catalog entry of the same tail.

* **CREATE** – registration not catalogued yet; the transformed record is
  stored as-is.
* **UPDATE** – one of the :data:`TRACKED_PROPERTIES` differs; the record is
  merged and a change entry per differing property is appended to history.
* **SEEN** – nothing tracked changed; only ``last_seen`` and
  ``total_flights`` move.

:func:`reconcile` never mutates its inputs. The returned ``record`` is a deep
copy with the merge applied, so a dry run can inspect outcomes without
touching the catalog.

Untracked fields (crew employers, type names, seat totals …) ride along on
an UPDATE and are overwritten without a history entry.
"""

from __future__ import annotations

import copy
import datetime as dt
import enum
import logging
from dataclasses import dataclass, field
from typing import Any, Final, Hashable, TypedDict

from dateutil import tz

from .constants import CHANGE_SOURCE

UTC: Final = tz.UTC
LOG = logging.getLogger("reconciler")

#: Dotted paths whose differences are recorded in history
TRACKED_PROPERTIES: Final[tuple[str, ...]] = (
    "connectivity.wifi",
    "connectivity.wifi_provider",
    "cabin.physical_configuration",
    "operator.sub_fleet_code",
)


class Action(str, enum.Enum):
    CREATE = "create"
    UPDATE = "update"
    SEEN = "seen"


class ChangeEntry(TypedDict):
    timestamp: str
    property: str
    old_value: Any
    new_value: Any
    source: str


@dataclass
class ReconcileResult:
    action: Action
    record: dict[str, Any]
    changes: list[ChangeEntry] = field(default_factory=list)


def get_path(record: dict[str, Any] | None, path: str) -> Any:
    """Resolve a dotted *path*; any missing hop yields ``None``."""
    node: Any = record
    for part in path.split("."):
        if not isinstance(node, dict):
            return None
        node = node.get(part)
    return node


def _freeze(value: Any) -> Hashable:
    """Make a JSON value usable inside a set key."""
    if isinstance(value, dict):
        return tuple(sorted((k, _freeze(v)) for k, v in value.items()))
    if isinstance(value, list):
        return tuple(_freeze(v) for v in value)
    return value


def change_key(change: dict[str, Any]) -> tuple[Hashable, ...]:
    """Structural identity of a history entry (source is not part of it)."""
    return (
        change.get("timestamp"),
        change.get("property"),
        _freeze(change.get("old_value")),
        _freeze(change.get("new_value")),
    )


def detect_changes(
    existing: dict[str, Any], new_data: dict[str, Any], date: str
) -> list[ChangeEntry]:
    """One :class:`ChangeEntry` per tracked property that differs."""
    changes: list[ChangeEntry] = []
    for prop in TRACKED_PROPERTIES:
        old = get_path(existing, prop)
        new = get_path(new_data, prop)
        if old != new:
            changes.append(
                ChangeEntry(
                    timestamp=date,
                    property=prop,
                    old_value=old,
                    new_value=new,
                    source=CHANGE_SOURCE,
                )
            )
    return changes


def _advance_tracking(record: dict[str, Any], date: str) -> None:
    tracking = record.setdefault("tracking", {})
    last_seen = tracking.get("last_seen")
    # ISO dates compare correctly as strings
    if not last_seen or date > last_seen:
        tracking["last_seen"] = date
    tracking["total_flights"] = (tracking.get("total_flights") or 0) + 1


def append_history(record: dict[str, Any], changes: list[ChangeEntry]) -> int:
    """Append *changes* not already in history; return how many were added."""
    history = record.setdefault("history", [])
    known = {change_key(entry) for entry in history}
    added = 0
    for change in changes:
        key = change_key(change)  # type: ignore[arg-type]
        if key in known:
            continue
        history.append(dict(change))
        known.add(key)
        added += 1
    return added


def merge_aircraft(
    existing: dict[str, Any],
    new_data: dict[str, Any],
    changes: list[ChangeEntry],
    date: str,
    now: dt.datetime | None = None,
) -> dict[str, Any]:
    """
    Fold *new_data* into *existing* **in place** and return it.

    Connectivity, operator and aircraft type are replaced wholesale; the cabin
    keeps its saleable/freight fields. ``first_seen``, ``created_at`` and
    recorded history are never touched. Re-applying the same *changes* is a
    no-op for history.
    """
    existing["connectivity"] = copy.deepcopy(new_data.get("connectivity"))
    cabin = existing.setdefault("cabin", {})
    new_cabin = new_data.get("cabin") or {}
    cabin["physical_configuration"] = new_cabin.get("physical_configuration")
    cabin["total_seats"] = new_cabin.get("total_seats")
    cabin["classes"] = copy.deepcopy(new_cabin.get("classes"))
    existing["operator"] = copy.deepcopy(new_data.get("operator"))
    existing["aircraft_type"] = copy.deepcopy(new_data.get("aircraft_type"))

    _advance_tracking(existing, date)
    existing.setdefault("metadata", {})["updated_at"] = (
        now or dt.datetime.now(UTC)
    ).isoformat()

    append_history(existing, changes)
    return existing


def mark_seen(existing: dict[str, Any], date: str) -> dict[str, Any]:
    """Bump ``last_seen``/``total_flights`` only (in place)."""
    _advance_tracking(existing, date)
    return existing


def reconcile(
    existing: dict[str, Any] | None,
    transformed: dict[str, Any],
    date: str,
    now: dt.datetime | None = None,
) -> ReconcileResult:
    """Compare *transformed* with *existing* and return the merged outcome."""
    if existing is None:
        return ReconcileResult(Action.CREATE, copy.deepcopy(transformed))

    record = copy.deepcopy(existing)
    changes = detect_changes(record, transformed, date)
    if changes:
        merge_aircraft(record, transformed, changes, date, now=now)
        return ReconcileResult(Action.UPDATE, record, changes)

    mark_seen(record, date)
    return ReconcileResult(Action.SEEN, record)


__all__ = [
    "Action",
    "ChangeEntry",
    "ReconcileResult",
    "TRACKED_PROPERTIES",
    "append_history",
    "change_key",
    "detect_changes",
    "get_path",
    "mark_seen",
    "merge_aircraft",
    "reconcile",
]
