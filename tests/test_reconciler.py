"""
tests/test_reconciler.py
~~~~~~~~~~~~~~~~~~~~~~~~
CREATE / UPDATE / SEEN decisions, merge semantics and history deduplication.
"""

from __future__ import annotations

import copy
import datetime as dt

import pytest

from fleet_catalog.extractor import extract_aircraft
from fleet_catalog.reconciler import (
    TRACKED_PROPERTIES,
    Action,
    append_history,
    detect_changes,
    get_path,
    merge_aircraft,
    reconcile,
)
from fleet_catalog.transformer import transform

LATER = dt.datetime(2025, 7, 1, 8, 30, tzinfo=dt.timezone.utc)


@pytest.fixture
def build(flight_factory, now):
    """Transform a flight built from overrides, observed on *date*."""

    def _build(date: str = "2025-06-01", registration: str = "F-HTYA", **aircraft):
        obs = extract_aircraft(flight_factory(registration, **aircraft), "AF")
        assert obs is not None
        return transform(obs, date, now=now)

    return _build


def test_new_registration_is_created(build) -> None:
    transformed = build("2025-06-03")

    result = reconcile(None, transformed, "2025-06-03")

    assert result.action is Action.CREATE
    assert result.changes == []
    assert result.record == transformed
    assert result.record["tracking"] == {
        "first_seen": "2025-06-03",
        "last_seen": "2025-06-03",
        "total_flights": 1,
    }


def test_identical_observation_is_seen(build) -> None:
    existing = build("2025-06-01")
    snapshot = copy.deepcopy(existing)

    result = reconcile(existing, build("2025-06-02"), "2025-06-02", now=LATER)

    assert result.action is Action.SEEN
    assert result.changes == []
    assert result.record["tracking"]["last_seen"] == "2025-06-02"
    assert result.record["tracking"]["total_flights"] == 2
    assert result.record["tracking"]["first_seen"] == "2025-06-01"
    # only tracking moved
    expected = copy.deepcopy(snapshot)
    expected["tracking"].update(last_seen="2025-06-02", total_flights=2)
    assert result.record == expected
    # input untouched
    assert existing == snapshot


def test_tracked_change_is_update(build) -> None:
    existing = build("2025-06-01", highSpeedWifi="N")
    existing["history"].append(
        {
            "timestamp": "2025-05-01",
            "property": "operator.sub_fleet_code",
            "old_value": None,
            "new_value": "AF359A",
            "source": "airline_api",
        }
    )
    transformed = build("2025-06-05", highSpeedWifi="Y", cabinCrewEmployer="HOP")

    result = reconcile(existing, transformed, "2025-06-05", now=LATER)

    assert result.action is Action.UPDATE
    assert [(c["property"], c["old_value"], c["new_value"]) for c in result.changes] == [
        ("connectivity.wifi", "low-speed", "high-speed"),
        ("connectivity.wifi_provider", None, "Starlink"),
    ]
    assert all(c["timestamp"] == "2025-06-05" for c in result.changes)
    assert all(c["source"] == "airline_api" for c in result.changes)

    record = result.record
    assert record["connectivity"]["wifi"] == "high-speed"
    # untracked fields ride along without history
    assert record["operator"]["cabin_crew_employer"] == "HOP"
    assert record["tracking"] == {
        "first_seen": "2025-06-01",
        "last_seen": "2025-06-05",
        "total_flights": 2,
    }
    assert record["metadata"]["created_at"] == existing["metadata"]["created_at"]
    assert record["metadata"]["updated_at"] == LATER.isoformat()
    assert len(record["history"]) == 3
    assert record["history"][0] == existing["history"][0]


def test_cabin_change_replaces_seats_keeps_saleable(build) -> None:
    existing = build("2025-06-01")
    existing["cabin"]["saleable_configuration"] = "J034Y290"
    transformed = build("2025-06-02", physicalPaxConfiguration="J048Y200")

    result = reconcile(existing, transformed, "2025-06-02")

    cabin = result.record["cabin"]
    assert result.action is Action.UPDATE
    assert cabin["physical_configuration"] == "J048Y200"
    assert cabin["total_seats"] == 248
    assert cabin["classes"]["business"] == 48
    assert cabin["saleable_configuration"] == "J034Y290"


@pytest.mark.parametrize("prop", TRACKED_PROPERTIES)
def test_value_to_none_is_a_change(build, prop: str) -> None:
    existing = build()
    transformed = copy.deepcopy(existing)
    section, key = prop.split(".")
    existing[section][key] = "something"
    transformed[section][key] = None

    (change,) = detect_changes(existing, transformed, "2025-06-02")

    assert change["property"] == prop
    assert change["old_value"] == "something"
    assert change["new_value"] is None


def test_missing_sections_compare_as_none(build) -> None:
    transformed = build()
    legacy = {"registration": "F-HTYA", "tracking": {"last_seen": "2025-01-01"}}

    changes = detect_changes(legacy, transformed, "2025-06-02")

    assert {c["property"] for c in changes} == {
        "connectivity.wifi",
        "cabin.physical_configuration",
        "operator.sub_fleet_code",
    }


def test_merge_twice_does_not_duplicate_history(build) -> None:
    existing = build("2025-06-01")
    transformed = build("2025-06-02", subFleetCodeId="AF359B")
    changes = detect_changes(existing, transformed, "2025-06-02")

    merge_aircraft(existing, transformed, changes, "2025-06-02")
    merge_aircraft(existing, transformed, changes, "2025-06-02")

    assert len(existing["history"]) == 1


def test_reconciling_same_observation_twice_is_idempotent_for_history(build) -> None:
    existing = build("2025-06-01")
    transformed = build("2025-06-02", subFleetCodeId="AF359B")

    first = reconcile(existing, transformed, "2025-06-02")
    # replaying the same change against the pre-update record
    replay = copy.deepcopy(first.record)
    append_history(replay, first.changes)

    assert len(first.record["history"]) == 1
    assert replay["history"] == first.record["history"]


def test_history_key_is_structural_not_string(build) -> None:
    """Values containing the old '|' delimiter must not collide."""
    record = build()
    a = {"timestamp": "d", "property": "p", "old_value": "x|y", "new_value": "z", "source": "s"}
    b = {"timestamp": "d", "property": "p", "old_value": "x", "new_value": "y|z", "source": "s"}

    assert append_history(record, [a, b]) == 2
    assert append_history(record, [a, b]) == 0


def test_older_observation_never_rewinds_last_seen(build) -> None:
    existing = build("2025-06-10")

    result = reconcile(existing, build("2025-06-01"), "2025-06-01")

    assert result.action is Action.SEEN
    assert result.record["tracking"]["last_seen"] == "2025-06-10"
    assert result.record["tracking"]["first_seen"] == "2025-06-10"
    assert result.record["tracking"]["total_flights"] == 2


def test_get_path() -> None:
    record = {"a": {"b": 1}, "c": None}
    assert get_path(record, "a.b") == 1
    assert get_path(record, "a.x") is None
    assert get_path(record, "c.d") is None
    assert get_path(None, "a") is None
