"""
api_logging.py
~~~~~~~~~~~~~~
Tiny wrapper that prints **one concise log line** per outbound HTTP request.

Usage example
-------------
>>> from .api_logging import logged_request
>>> with httpx.Client() as cli:
...     resp = logged_request(cli, "get", "https://example.org/json",
...                           key_slot=0, params={"pageNumber": 0})

The query string is left out of the log line (it repeats on every page) and
the API key itself is never logged, only its slot in the rotation.
"""

from __future__ import annotations

import logging
import time
from typing import Any

import httpx

LOG = logging.getLogger("extapi")

#: Statuses that mean "this key is throttled or refused"
ROTATE_STATUSES = frozenset({403, 429})


def _strip_query(url: str) -> str:
    return url.split("?", 1)[0]


def logged_request(
    client: Any,
    method: str,
    url: str,
    *args: Any,
    key_slot: int | None = None,
    **kwargs: Any,
) -> httpx.Response:
    """
    Issue one HTTP request **and** emit a concise log line.

    Parameters
    ----------
    client:
        ``httpx.Client`` instance (anything exposing ``get``/``post`` …).
    method:
        HTTP verb – e.g. ``"get"`` (lower-case, it is looked up on *client*).
    url:
        Absolute URL.
    key_slot:
        Index of the API key used, shown as ``key#N`` in the log line.

    Returns
    -------
    httpx.Response
        Raw response; status handling is left to the caller.

    Notes
    -----
    * **403/429** responses are logged at *WARNING*; the caller rotates keys.
    * **≥500** responses are logged at *WARNING*.
    * Transport errors are logged and re-raised untouched.
    """
    verb = method.upper()
    shown = _strip_query(url)
    slot = f" key#{key_slot}" if key_slot is not None else ""
    t0 = time.perf_counter()
    try:
        response = getattr(client, method)(url, *args, **kwargs)
    except Exception as exc:  # network error before we get a response
        latency_ms = (time.perf_counter() - t0) * 1000.0
        LOG.warning("FAIL %s %s%s %.0f ms %s", verb, shown, slot, latency_ms, exc)
        raise

    latency_ms = (time.perf_counter() - t0) * 1000.0
    code = response.status_code

    if code in ROTATE_STATUSES or code >= 500:
        LOG.warning("%s %s%s → %s (%.0f ms)", verb, shown, slot, code, latency_ms)
    else:
        LOG.info("%s %s%s → %s (%.0f ms)", verb, shown, slot, code, latency_ms)

    return response


__all__ = ["ROTATE_STATUSES", "logged_request"]
