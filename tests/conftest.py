"""
tests/conftest.py
~~~~~~~~~~~~~~~~~
Global pytest fixtures.

* ``fake_clock``    – manually advanced clock for :class:`EphemeralCache`.
* ``mock_client``   – factory for an ``httpx.AsyncClient`` whose requests are
  answered by a handler function (``httpx.MockTransport``), so no test ever
  touches the network.
* ``opensky_row``   – factory for OpenSky 17-field state vectors.
"""

from __future__ import annotations

from typing import Any, Callable

import httpx
import pytest


pytest_plugins = ["pytest_asyncio"]


class FakeClock:
    """Callable clock starting at a fixed epoch; advance with :meth:`tick`."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def tick(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


Handler = Callable[[httpx.Request], httpx.Response]


@pytest.fixture
def mock_client() -> Callable[[Handler], httpx.AsyncClient]:
    def _build(handler: Handler) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(handler))

    return _build


@pytest.fixture
def opensky_row() -> Callable[..., list[Any]]:
    def _row(
        icao24: str = "abc123",
        callsign: str | None = "BAW123  ",
        lat: float | None = 51.5,
        lon: float | None = -0.1,
        on_ground: bool = False,
        baro_altitude: float | None = 10_000.0,
        country: str = "United Kingdom",
    ) -> list[Any]:
        return [
            icao24,
            callsign,
            country,
            1_700_000_000,  # time_position
            1_700_000_005,  # last_contact
            lon,
            lat,
            baro_altitude,
            on_ground,
            230.0,  # velocity m/s
            90.0,  # true_track
            0.5,  # vertical_rate
            None,  # sensors
            10_200.0,  # geo_altitude
            "1234",  # squawk
            False,  # spi
            0,  # position_source
        ]

    return _row
