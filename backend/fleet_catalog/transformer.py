"""
transformer.py
~~~~~~~~~~~~~~
Turn an :class:`~fleet_catalog.extractor.AircraftObservation` into the
catalog's canonical aircraft record.

Everything here is pure: no I/O, and the only clock read is the optional
``now`` default used for the metadata timestamps.

Cabin codes
-----------
The physical configuration is a run of ``<class letter><2-3 digits>`` tokens,
e.g. ``J034W024Y266``:

* ``P``/``F`` → first
* ``J``/``C`` → business
* ``W``/``S`` → premium economy
* ``Y``/``M`` → economy

Manufacturer, model and variant are guessed from the free-text type name and
are frequently ``None``; that is expected, not an error.
"""

from __future__ import annotations

import datetime as dt
import re
from typing import Any, Final, Literal, TypedDict

from dateutil import tz

from .constants import AFFIRMATIVE
from .extractor import AircraftObservation

UTC: Final = tz.UTC

WifiLevel = Literal["none", "low-speed", "high-speed"]

CABIN_CLASS_BY_LETTER: Final[dict[str, str]] = {
    "P": "first",
    "F": "first",
    "J": "business",
    "C": "business",
    "W": "premium_economy",
    "S": "premium_economy",
    "Y": "economy",
    "M": "economy",
}

_CABIN_TOKEN = re.compile(r"([PFJCWSYM])(\d{2,3})")
_MODEL = re.compile(r"A(\d{3})|(\d{3})")
_VARIANT = re.compile(r"-(\d+)")

HIGH_SPEED_PROVIDER: Final = "Starlink"


class CabinClasses(TypedDict):
    first: int
    business: int
    premium_economy: int
    economy: int


def parse_cabin_config(config: str | None) -> CabinClasses:
    """
    Sum seats per canonical class.

    >>> parse_cabin_config("J034W024Y266")
    {'first': 0, 'business': 34, 'premium_economy': 24, 'economy': 266}
    """
    classes: CabinClasses = {
        "first": 0,
        "business": 0,
        "premium_economy": 0,
        "economy": 0,
    }
    if not config:
        return classes
    for letter, count in _CABIN_TOKEN.findall(config):
        classes[CABIN_CLASS_BY_LETTER[letter]] += int(count)  # type: ignore[literal-required]
    return classes


def total_seats(classes: CabinClasses) -> int | None:
    """Seat total, or ``None`` when nothing could be parsed."""
    return sum(classes.values()) or None


def convert_wifi(wifi_enabled: str | None, high_speed_wifi: str | None) -> WifiLevel:
    if wifi_enabled != AFFIRMATIVE:
        return "none"
    if high_speed_wifi == AFFIRMATIVE:
        return "high-speed"
    return "low-speed"


def guess_manufacturer(type_name: str | None) -> str | None:
    if not type_name:
        return None
    upper = type_name.upper()
    for needle, maker in (
        ("AIRBUS", "Airbus"),
        ("BOEING", "Boeing"),
        ("EMBRAER", "Embraer"),
    ):
        if needle in upper:
            return maker
    return None


def guess_model(type_name: str | None) -> str | None:
    """``"AIRBUS A350-900"`` → ``"A350"``; ``"BOEING 777-300"`` → ``"777"``."""
    if not type_name:
        return None
    match = _MODEL.search(type_name)
    if not match:
        return None
    return f"A{match.group(1)}" if match.group(1) else match.group(2)


def guess_variant(type_name: str | None) -> str | None:
    if not type_name:
        return None
    match = _VARIANT.search(type_name)
    return match.group(1) if match else None


def transform(
    observation: AircraftObservation,
    observation_date: str,
    now: dt.datetime | None = None,
) -> dict[str, Any]:
    """
    Build a fresh catalog record for *observation* seen on *observation_date*.

    ``first_seen``/``last_seen`` are both the observation date and
    ``total_flights`` starts at 1; the reconciler decides what survives when
    the registration is already catalogued.
    """
    stamp = (now or dt.datetime.now(UTC)).isoformat()
    classes = parse_cabin_config(observation["physical_pax_configuration"])
    type_name = observation["type_name"]
    high_speed = observation["high_speed_wifi"] == AFFIRMATIVE

    return {
        "registration": observation["registration"],
        "icao24": None,
        "aircraft_type": {
            "iata_code": observation["type_code"],
            "icao_code": None,
            "manufacturer": guess_manufacturer(type_name),
            "model": guess_model(type_name),
            "variant": guess_variant(type_name),
            "full_name": type_name,
        },
        "operator": {
            "sub_fleet_code": observation["sub_fleet_code"],
            "cabin_crew_employer": observation["cabin_crew_employer"],
            "cockpit_crew_employer": observation["cockpit_crew_employer"],
        },
        "cabin": {
            "physical_configuration": observation["physical_pax_configuration"],
            "saleable_configuration": None,
            "total_seats": total_seats(classes),
            "classes": dict(classes),
            "freight_configuration": None,
        },
        "connectivity": {
            "wifi": convert_wifi(observation["wifi_enabled"], observation["high_speed_wifi"]),
            "wifi_provider": HIGH_SPEED_PROVIDER if high_speed else None,
            "satellite": observation["satellite_connectivity"] == AFFIRMATIVE,
        },
        "status": "active",
        "tracking": {
            "first_seen": observation_date,
            "last_seen": observation_date,
            "total_flights": 1,
        },
        "metadata": {
            "created_at": stamp,
            "updated_at": stamp,
        },
        "history": [],
    }


__all__ = [
    "CABIN_CLASS_BY_LETTER",
    "convert_wifi",
    "guess_manufacturer",
    "guess_model",
    "guess_variant",
    "parse_cabin_config",
    "total_seats",
    "transform",
]
