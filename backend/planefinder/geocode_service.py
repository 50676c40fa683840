"""geocode_service.py
~~~~~~~~~~~~~~~~~~~~~
Turn a free-text address into coordinates with **Nominatim** (via geopy).

geopy is synchronous, so the lookup runs in a worker thread.  The geopy
rate limiter keeps us at Nominatim's one-request-per-second courtesy limit;
it is configured with no retries and no swallowed exceptions so failures
reach the caller as :class:`UpstreamError`.
"""

from __future__ import annotations

import abc
import asyncio
import logging
from typing import Any

from geopy.exc import GeopyError
from geopy.extra.rate_limiter import RateLimiter
from geopy.geocoders import Nominatim

from .constants import HTTP_TIMEOUT_S, USER_AGENT
from .errors import NotFoundError, UpstreamError, ValidationError
from .models import GeocodeResult, GeoPoint

LOG = logging.getLogger("geocode_service")

MAX_ADDRESS_LEN = 300


class Geocoder(abc.ABC):
    @abc.abstractmethod
    async def geocode(self, address: str) -> GeocodeResult:
        """Best match for *address*."""


def clean_address(address: Any) -> str:
    """Collapse whitespace; reject empty or absurdly long input."""
    if not isinstance(address, str) or not address.strip():
        raise ValidationError("Address required")
    cleaned = " ".join(address.split())
    if len(cleaned) > MAX_ADDRESS_LEN:
        raise ValidationError(
            "Address too long", details=f"limit is {MAX_ADDRESS_LEN} characters"
        )
    return cleaned


class NominatimGeocoder(Geocoder):
    def __init__(
        self,
        user_agent: str = USER_AGENT,
        timeout: float = HTTP_TIMEOUT_S,
        min_delay_seconds: float = 1.0,
    ) -> None:
        self._nominatim = Nominatim(user_agent=user_agent, timeout=timeout)
        self._geocode_raw = RateLimiter(
            self._nominatim.geocode,
            min_delay_seconds=min_delay_seconds,
            max_retries=0,
            swallow_exceptions=False,
        )

    def _lookup(self, address: str):
        return self._geocode_raw(address, exactly_one=True)

    async def geocode(self, address: str) -> GeocodeResult:
        """
        Raises:
            NotFoundError: Nominatim returned zero results.
            UpstreamError: transport failure or service error.
        """
        address = clean_address(address)
        try:
            location = await asyncio.to_thread(self._lookup, address)
        except GeopyError as exc:
            LOG.warning("Geocode failed for %r: %s", address, exc)
            raise UpstreamError("nominatim", "Geocoding failed", details=str(exc)) from exc

        if location is None:
            LOG.info("Geocode returned no results for: %r", address)
            raise NotFoundError("Not found", details=f"No match for {address!r}")

        LOG.info(
            "Geocoded: %r → %.4f, %.4f", address, location.latitude, location.longitude
        )
        return GeocodeResult(
            point=GeoPoint(float(location.latitude), float(location.longitude)),
            display_name=location.address,
        )
