"""
tests/integration/conftest.py
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~
Everything under ``tests/integration/`` talks to real upstreams (OpenSky,
Nominatim, Planespotters, Wikipedia) and is skipped unless
``INTEGRATION_TESTS=1`` is set:

    INTEGRATION_TESTS=1 pytest tests/integration/ -v
"""

from __future__ import annotations

import os
import time
from pathlib import Path
from typing import Generator

import pytest

_HERE = Path(__file__).resolve().parent


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    if os.getenv("INTEGRATION_TESTS"):
        return

    skip = pytest.mark.skip(reason="Integration tests disabled (set INTEGRATION_TESTS=1)")
    for item in items:
        if _HERE in Path(item.path).resolve().parents:
            item.add_marker(skip)


@pytest.fixture
def rate_limiter() -> Generator[None, None, None]:
    """Leave a gap after each test; Nominatim allows one call per second."""
    yield
    time.sleep(1.1)


@pytest.fixture
def integration_timeout() -> float:
    """Seconds before a live call gives up."""
    return 30.0
