"""
extractor.py
~~~~~~~~~~~~
Pull **one aircraft observation** out of a flightstatus flight record.

Only the first flight leg is inspected. Flights operated by one airline on
equipment owned by another (wet-lease, partner tails) are dropped: we keep an
aircraft only when its ``ownerAirlineCode`` matches the airline being crawled.

Malformed records are not errors; they simply yield ``None``. Fields that
should be strings but are not (numbers, lists) are dropped to ``None``.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, TypedDict

LOG = logging.getLogger("extractor")


class AircraftObservation(TypedDict):
    """Flat view of ``flightLegs[0].aircraft``; blanks normalised to None."""

    registration: str
    type_code: str | None
    type_name: str | None
    sub_fleet_code: str | None
    owner_airline_code: str | None
    owner_airline_name: str | None
    cabin_crew_employer: str | None
    cockpit_crew_employer: str | None
    wifi_enabled: str | None
    high_speed_wifi: str | None
    satellite_connectivity: str | None
    physical_pax_configuration: str | None


# observation key → API field
_FIELDS: dict[str, str] = {
    "type_code": "typeCode",
    "type_name": "typeName",
    "sub_fleet_code": "subFleetCodeId",
    "owner_airline_code": "ownerAirlineCode",
    "owner_airline_name": "ownerAirlineName",
    "cabin_crew_employer": "cabinCrewEmployer",
    "cockpit_crew_employer": "cockpitCrewEmployer",
    "wifi_enabled": "wifiEnabled",
    "high_speed_wifi": "highSpeedWifi",
    "satellite_connectivity": "satelliteConnectivityOnBoard",
    "physical_pax_configuration": "physicalPaxConfiguration",
}


def _leg_aircraft(flight: Any) -> dict[str, Any] | None:
    if not isinstance(flight, dict):
        return None
    legs = flight.get("flightLegs")
    if not isinstance(legs, list) or not legs:
        return None
    leg = legs[0]
    if not isinstance(leg, dict):
        return None
    aircraft = leg.get("aircraft")
    return aircraft if isinstance(aircraft, dict) else None


def extract_aircraft(flight: Any, airline_code: str) -> AircraftObservation | None:
    """
    Return the aircraft flown on *flight*, or ``None``.

    ``None`` means: no first leg, no aircraft block, no registration, or the
    aircraft is owned by a different airline than *airline_code*.
    """
    aircraft = _leg_aircraft(flight)
    if aircraft is None:
        return None

    registration = aircraft.get("registration")
    if not registration or not isinstance(registration, str):
        return None

    if aircraft.get("ownerAirlineCode") != airline_code:
        return None

    observation: dict[str, Any] = {"registration": registration}
    for key, field in _FIELDS.items():
        value = aircraft.get(field)
        if value is not None and not isinstance(value, str):
            LOG.debug("%s: ignoring non-string %s=%r", registration, field, value)
            value = None
        observation[key] = value or None
    return observation  # type: ignore[return-value]


def collect_observations(
    flights: Iterable[Any], airline_code: str
) -> dict[str, AircraftObservation]:
    """Map registration → observation; the last flight of a tail wins."""
    seen: dict[str, AircraftObservation] = {}
    skipped = 0
    for flight in flights:
        observation = extract_aircraft(flight, airline_code)
        if observation is None:
            skipped += 1
            continue
        seen[observation["registration"]] = observation
    if skipped:
        LOG.debug("Skipped %d flights without a usable %s aircraft", skipped, airline_code)
    return seen


__all__ = ["AircraftObservation", "collect_observations", "extract_aircraft"]
