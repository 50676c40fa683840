"""
registration_service.py
~~~~~~~~~~~~~~~~~~~~~~~
Resolve an ICAO24 transponder address to the airframe registration using
OpenSky's aircraft metadata endpoint.

A 404 simply means OpenSky does not know the airframe and yields None.
"""

from __future__ import annotations

import abc
import logging
from typing import Final

import httpx

from .api_logging import fetch_json

LOG = logging.getLogger("registration_service")

OPENSKY_METADATA_URL: Final = "https://opensky-network.org/api/metadata/aircraft/icao/{icao24}"


class RegistrationRegistry(abc.ABC):
    @abc.abstractmethod
    async def resolve_registration(self, icao24: str) -> str | None:
        """Return the tail number for *icao24*, or None when unknown."""


class OpenSkyRegistry(RegistrationRegistry):
    def __init__(self, client: httpx.AsyncClient) -> None:
        self._client = client

    async def resolve_registration(self, icao24: str) -> str | None:
        url = OPENSKY_METADATA_URL.format(icao24=icao24.strip().lower())
        data = await fetch_json(
            self._client,
            url,
            provider="opensky-metadata",
            not_found_ok=True,
            headers={"Accept": "application/json"},
        )
        if not isinstance(data, dict):
            return None
        reg = data.get("registration")
        if isinstance(reg, str) and reg.strip():
            LOG.debug("Resolved %s → %s", icao24, reg.strip())
            return reg.strip()
        return None
