"""config.py
~~~~~~~~~~~
Environment-driven settings for the fleet updater.

Configuration:
    AFKLM_API_KEYS:          Comma-separated API keys (rotated on 403/429)
    AFKLM_API_KEY:           Single API key, used when AFKLM_API_KEYS is unset
    AFKLM_BASE_URL:          API root (default: https://api.airfranceklm.com/opendata)
    AFKLM_REQUEST_DELAY_MS:  Minimum gap between requests (default: 5000)
    AFKLM_PAGE_SIZE:         Flights per page (default: 100)
    FLEET_DATA_DIR:          Root for ``airlines/<CODE>.json`` (default: .)

Values are read when :func:`load_settings` is called, not at import time, so
tests can patch the environment freely. A ``.env`` file is honoured by the
CLI entry point through ``python-dotenv``.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

DEFAULT_BASE_URL = "https://api.airfranceklm.com/opendata"
DEFAULT_REQUEST_DELAY_MS = 5000
DEFAULT_PAGE_SIZE = 100


class ConfigError(Exception):
    """Missing or invalid configuration; raised before any network activity."""


@dataclass(frozen=True)
class Settings:
    api_keys: tuple[str, ...]
    base_url: str = DEFAULT_BASE_URL
    request_delay_ms: int = DEFAULT_REQUEST_DELAY_MS
    page_size: int = DEFAULT_PAGE_SIZE
    data_dir: Path = Path(".")

    @property
    def request_delay(self) -> float:
        """Minimum inter-request gap in seconds."""
        return self.request_delay_ms / 1000.0

    def catalog_path(self, airline_code: str) -> Path:
        return self.data_dir / "airlines" / f"{airline_code.upper()}.json"

    def changes_path(self, airline_code: str) -> Path:
        return self.data_dir / f"{airline_code.lower()}-changes.json"


def parse_api_keys(raw: str | None) -> tuple[str, ...]:
    """Split a comma-separated key list, dropping blanks."""
    return tuple(k.strip() for k in (raw or "").split(",") if k.strip())


def _int_env(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from None
    if value < 0:
        raise ConfigError(f"{name} must not be negative, got {value}")
    return value


def load_settings(env: Mapping[str, str] | None = None) -> Settings:
    """
    Build :class:`Settings` from *env* (defaults to ``os.environ``).

    Raises:
        ConfigError: when no API key is configured or a number is malformed.
    """
    env = os.environ if env is None else env

    keys = parse_api_keys(env.get("AFKLM_API_KEYS") or env.get("AFKLM_API_KEY"))
    if not keys:
        raise ConfigError(
            "No API key found. Set AFKLM_API_KEY or AFKLM_API_KEYS."
        )

    page_size = _int_env(env, "AFKLM_PAGE_SIZE", DEFAULT_PAGE_SIZE)
    if page_size == 0:
        raise ConfigError("AFKLM_PAGE_SIZE must be at least 1")

    return Settings(
        api_keys=keys,
        base_url=(env.get("AFKLM_BASE_URL") or DEFAULT_BASE_URL).rstrip("/"),
        request_delay_ms=_int_env(
            env, "AFKLM_REQUEST_DELAY_MS", DEFAULT_REQUEST_DELAY_MS
        ),
        page_size=page_size,
        data_dir=Path(env.get("FLEET_DATA_DIR") or ".").expanduser(),
    )


__all__ = ["ConfigError", "Settings", "load_settings", "parse_api_keys"]
