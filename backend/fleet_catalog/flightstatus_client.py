"""flightstatus_client.py
~~~~~~~~~~~~~~~~~~~~~~~~
Rate-limited client for the Air France/KLM **flightstatus** open-data API.

* One request at a time, never closer together than ``min_interval``.
* Several API keys may be configured; they are used round-robin and a
  403/429 answer moves on to the next key (bounded by the number of keys).
* Pages are followed until the API reports the last one, with a hard cap of
  :data:`MAX_PAGES` per date.

All mutable bookkeeping (key index, throttle timestamp, request counter)
lives in :class:`ClientState`, so a test can build a client with a fake
clock and inspect exactly what happened.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Final

import httpx

from .api_logging import ROTATE_STATUSES, logged_request
from .config import DEFAULT_BASE_URL, DEFAULT_PAGE_SIZE, Settings
from .constants import USER_AGENT

LOG = logging.getLogger("flightstatus_client")

#: Hard cap on pages fetched for one date
MAX_PAGES: Final[int] = 100
#: Pause before retrying with the next key after a 403/429 (seconds)
RETRY_BACKOFF_SEC: Final[float] = 1.0
#: Transport timeout per request (seconds)
REQUEST_TIMEOUT_SEC: Final[float] = 30.0

DEFAULT_HEADERS: Final[dict[str, str]] = {
    "Accept": "application/hal+json",
    "Accept-Language": "en-GB",
    "User-Agent": USER_AGENT,
}


class ApiError(Exception):
    """Non-recoverable API failure (bad status, transport error, bad JSON)."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class RateLimitError(ApiError):
    """Every configured key was refused (403/429) for the same request."""


@dataclass
class ClientState:
    """Key rotation, throttling and accounting for one client."""

    api_keys: tuple[str, ...]
    key_index: int = 0
    last_request_at: float | None = None
    total_requests: int = 0

    def __post_init__(self) -> None:
        if not self.api_keys:
            raise ValueError("ClientState needs at least one API key")

    @property
    def current_key(self) -> str:
        return self.api_keys[self.key_index]

    def rotate(self) -> str:
        """Advance to the next key (round-robin) and return it."""
        self.key_index = (self.key_index + 1) % len(self.api_keys)
        return self.current_key


def day_range(date: str) -> tuple[str, str]:
    """Return the UTC ``startRange``/``endRange`` pair covering *date*."""
    return f"{date}T00:00:00Z", f"{date}T23:59:59Z"


def _as_int(value: Any, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


class FlightStatusClient:
    """
    Synchronous flightstatus client.

    Args:
        state:          Shared :class:`ClientState` (keys + counters).
        base_url:       API root, without the ``/flightstatus`` suffix.
        page_size:      Flights requested per page.
        min_interval:   Minimum seconds between two requests.
        retry_backoff:  Seconds to wait before retrying with the next key.
        http:           Pre-built ``httpx.Client`` (one is created otherwise).
        sleep, clock:   Injected for tests; default to the ``time`` module.
    """

    def __init__(
        self,
        state: ClientState,
        *,
        base_url: str = DEFAULT_BASE_URL,
        page_size: int = DEFAULT_PAGE_SIZE,
        min_interval: float = 5.0,
        retry_backoff: float = RETRY_BACKOFF_SEC,
        http: httpx.Client | None = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.state = state
        self.base_url = base_url.rstrip("/")
        self.page_size = page_size
        self.min_interval = min_interval
        self.retry_backoff = retry_backoff
        self._owns_http = http is None
        self._http = http or httpx.Client(
            headers=DEFAULT_HEADERS, timeout=REQUEST_TIMEOUT_SEC
        )
        self._sleep = sleep
        self._clock = clock

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs: Any) -> "FlightStatusClient":
        return cls(
            ClientState(api_keys=settings.api_keys),
            base_url=settings.base_url,
            page_size=settings.page_size,
            min_interval=settings.request_delay,
            **kwargs,
        )

    # ── context manager ────────────────────────────────────────────────
    def close(self) -> None:
        if self._owns_http:
            self._http.close()

    def __enter__(self) -> "FlightStatusClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:  # noqa: ANN001
        self.close()

    # ── internals ──────────────────────────────────────────────────────
    def _throttle(self) -> None:
        """Block until ``min_interval`` has passed since the last request."""
        last = self.state.last_request_at
        if last is not None:
            wait = self.min_interval - (self._clock() - last)
            if wait > 0:
                LOG.debug("Throttling %.2f s", wait)
                self._sleep(wait)
        self.state.last_request_at = self._clock()

    def _request(self, endpoint: str, params: dict[str, Any]) -> dict[str, Any]:
        """GET *endpoint* with key rotation; return the decoded JSON object."""
        url = f"{self.base_url}{endpoint}"
        state = self.state
        attempts = len(state.api_keys)

        if attempts > 1:
            state.rotate()

        for attempt in range(attempts):
            self._throttle()
            state.total_requests += 1
            try:
                resp = logged_request(
                    self._http,
                    "get",
                    url,
                    params=params,
                    headers={"API-Key": state.current_key},
                    key_slot=state.key_index,
                )
            except httpx.RequestError as exc:
                raise ApiError(f"Request to {url} failed: {exc}") from exc

            code = resp.status_code
            if code in ROTATE_STATUSES:
                if attempt < attempts - 1:
                    state.rotate()
                    LOG.debug(
                        "HTTP %d, retrying with key #%d", code, state.key_index
                    )
                    self._sleep(self.retry_backoff)
                    continue
                raise RateLimitError(
                    f"API Error: {code} after trying {attempts} key(s)",
                    status_code=code,
                )

            if not resp.is_success:
                raise ApiError(
                    f"API Error: {code} {resp.reason_phrase}", status_code=code
                )

            try:
                data = resp.json()
            except ValueError as exc:
                raise ApiError(f"Malformed JSON from {url}: {exc}") from exc
            if not isinstance(data, dict):
                raise ApiError(f"Unexpected JSON payload from {url}")
            return data

        raise AssertionError("unreachable: the last attempt returns or raises")

    # ── public API ─────────────────────────────────────────────────────
    def fetch_page(
        self, date: str, airline_code: str, page_number: int
    ) -> dict[str, Any]:
        """Fetch one page of departures operated by *airline_code* on *date*."""
        start, end = day_range(date)
        return self._request(
            "/flightstatus",
            {
                "startRange": start,
                "endRange": end,
                "movementType": "D",
                "timeOriginType": "S",
                "timeType": "U",
                "pageSize": self.page_size,
                "pageNumber": page_number,
                "operatingAirlineCode": airline_code,
            },
        )

    def fetch_flights_for_date(
        self, date: str, airline_code: str
    ) -> list[dict[str, Any]]:
        """Return every flight object for *date*, following pagination."""
        flights: list[dict[str, Any]] = []
        page_number = 0

        while page_number < MAX_PAGES:
            data = self.fetch_page(date, airline_code, page_number)

            batch = data.get("operationalFlights") or []
            if not isinstance(batch, list):
                raise ApiError("operationalFlights is not a list")
            flights.extend(batch)

            page = data.get("page")
            if not isinstance(page, dict):
                page = {}
            total_pages = _as_int(page.get("totalPages"), 1)
            LOG.info(
                "%s: page %d/%d (%d flights)",
                date,
                page_number + 1,
                total_pages,
                len(flights),
            )

            page_number += 1
            if page_number >= total_pages:
                break
        else:
            LOG.warning(
                "%s: stopped after %d pages (page cap reached)", date, MAX_PAGES
            )

        return flights


__all__ = [
    "ApiError",
    "ClientState",
    "FlightStatusClient",
    "MAX_PAGES",
    "RateLimitError",
]
