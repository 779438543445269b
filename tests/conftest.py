"""
tests/conftest.py
~~~~~~~~~~~~~~~~~
Global pytest fixtures.

`isolate_environment` strips every ``AFKLM_*``/``FLEET_*`` variable before
each test so a developer's real API keys (or ``.env``) never leak into the
suite, and nothing is written outside ``tmp_path``.
"""

from __future__ import annotations

import datetime as dt
from pathlib import Path
from typing import Any, Callable

import pytest

from fleet_catalog.config import Settings

_ENV_VARS = (
    "AFKLM_API_KEY",
    "AFKLM_API_KEYS",
    "AFKLM_BASE_URL",
    "AFKLM_REQUEST_DELAY_MS",
    "AFKLM_PAGE_SIZE",
    "FLEET_DATA_DIR",
    "DEBUG",
)

#: Frozen "now" shared by tests that compare timestamps
NOW = dt.datetime(2025, 6, 15, 12, 0, tzinfo=dt.timezone.utc)


@pytest.fixture(autouse=True)
def isolate_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def make_flight(
    registration: str | None = "F-HTYA",
    owner: str = "AF",
    **aircraft: Any,
) -> dict[str, Any]:
    """Build a flightstatus flight record with one leg."""
    block: dict[str, Any] = {
        "registration": registration,
        "typeCode": "359",
        "typeName": "AIRBUS A350-900",
        "subFleetCodeId": "AF359A",
        "ownerAirlineCode": owner,
        "ownerAirlineName": "AIR FRANCE",
        "cabinCrewEmployer": "AF",
        "cockpitCrewEmployer": "AF",
        "wifiEnabled": "Y",
        "highSpeedWifi": "N",
        "satelliteConnectivityOnBoard": "Y",
        "physicalPaxConfiguration": "J034W024Y266",
    }
    block.update(aircraft)
    return {"flightNumber": 1234, "flightLegs": [{"aircraft": block}]}


@pytest.fixture
def flight_factory() -> Callable[..., dict[str, Any]]:
    return make_flight


class FakeFlightSource:
    """Stand-in for FlightStatusClient: canned flights per date."""

    def __init__(self, flights_by_date: dict[str, list[dict[str, Any]]]) -> None:
        self.flights_by_date = flights_by_date
        self.calls: list[tuple[str, str]] = []

    def fetch_flights_for_date(self, date: str, airline_code: str) -> list[dict[str, Any]]:
        self.calls.append((date, airline_code))
        return list(self.flights_by_date.get(date, []))


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(api_keys=("test-key",), request_delay_ms=0, data_dir=tmp_path)


@pytest.fixture
def fake_source() -> Callable[..., FakeFlightSource]:
    return FakeFlightSource


@pytest.fixture
def now() -> dt.datetime:
    return NOW
