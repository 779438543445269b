# backend/fleet_catalog/constants.py

"""
Global constants used across modules, including the User-Agent string sent
with every flightstatus request and the catalog schema version.
"""

USER_AGENT = "afkl-fleet-catalog/1.0 (fleet catalog updater)"

SCHEMA_VERSION = "1.0.0"

#: Value the API uses for "yes" in its Y/N flags
AFFIRMATIVE = "Y"

#: ``source`` recorded on every history entry produced from API data
CHANGE_SOURCE = "airline_api"
