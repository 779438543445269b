"""
airlines.py
~~~~~~~~~~~
Single source of truth for the airlines whose fleets we catalog.

Key points
----------
* • Both carriers are served by the same Air France/KLM *flightstatus* API;
    the airline code selects both the ``operatingAirlineCode`` filter and the
    owner code an aircraft must carry to be kept.
* • The registration prefix is informational (F- for France, PH- for the
    Netherlands); wet-leased or partner tails keep their own prefix.

Each entry carries:
    ``code``                : two-letter IATA code
    ``name``                : display name used in logs and the catalog header
    ``country``             : country of registration
    ``registration_prefix`` : national registration prefix
"""

from __future__ import annotations

from typing import Final

from .config import ConfigError

AIRLINES: Final[dict[str, dict[str, str]]] = {
    "AF": {
        "code": "AF",
        "name": "Air France",
        "country": "France",
        "registration_prefix": "F-",
    },
    "KL": {
        "code": "KL",
        "name": "KLM Royal Dutch Airlines",
        "country": "Netherlands",
        "registration_prefix": "PH-",
    },
}


def get_airline(code: str | None) -> dict[str, str]:
    """Return the registry entry for *code* (case-insensitive)."""
    key = (code or "").strip().upper()
    try:
        return AIRLINES[key]
    except KeyError:
        supported = ", ".join(sorted(AIRLINES))
        raise ConfigError(
            f"Unknown airline {code!r} (supported: {supported})"
        ) from None


__all__ = ["AIRLINES", "get_airline"]
