"""
tests/integration/conftest.py
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~
Integration test configuration - skip unless INTEGRATION_TESTS=1.

Usage:
    # Run only unit tests (default, CI-safe)
    pytest -q

    # Run integration tests locally (needs a real key)
    INTEGRATION_TESTS=1 AFKLM_API_KEY=... pytest tests/integration/ -v
"""

from __future__ import annotations

import os

import pytest

from fleet_catalog.config import parse_api_keys


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Skip all integration tests unless INTEGRATION_TESTS=1."""
    if os.getenv("INTEGRATION_TESTS"):
        return

    skip_marker = pytest.mark.skip(
        reason="Integration tests disabled (set INTEGRATION_TESTS=1 to enable)"
    )
    for item in items:
        if "integration" in str(item.fspath):
            item.add_marker(skip_marker)


@pytest.fixture(scope="session")
def live_api_keys() -> tuple[str, ...]:
    """Read keys once, before the autouse fixture scrubs the environment."""
    keys = parse_api_keys(os.getenv("AFKLM_API_KEYS") or os.getenv("AFKLM_API_KEY"))
    if not keys:
        pytest.skip("AFKLM_API_KEY / AFKLM_API_KEYS not set")
    return keys
