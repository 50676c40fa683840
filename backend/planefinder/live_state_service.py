"""live_state_service.py
~~~~~~~~~~~~~~~~~~~~~~~~
Fetch a live-traffic snapshot from one of three upstreams and hand it back
as tagged :class:`RawStateRecord` batches.

* **OpenSky** – ``/states/all``, optional bounding box and basic auth.
* **AirLabs** – ``/v9/flights``, API key required, optional ``bbox``.
* **AviationStack** – ``/v1/flights``, API key required, global only.

Any non-success answer, transport error or malformed payload raises
:class:`UpstreamError`; an empty snapshot is a valid, empty list.  No retries.
"""

from __future__ import annotations

import abc
import logging
from typing import Any, Final

import httpx

from .api_logging import fetch_json
from .constants import (
    AIRLABS_API_KEY,
    AVIATIONSTACK_API_KEY,
    FLIGHT_PROVIDER,
    OPENSKY_PASSWORD,
    OPENSKY_USERNAME,
)
from .errors import ProviderNotConfigured, UpstreamError
from .geo import BBox
from .models import Provider, RawStateRecord

LOG = logging.getLogger("live_state_service")

OPENSKY_STATES_URL: Final = "https://opensky-network.org/api/states/all"
AIRLABS_FLIGHTS_URL: Final = "https://airlabs.co/api/v9/flights"
AVIATIONSTACK_FLIGHTS_URL: Final = "http://api.aviationstack.com/v1/flights"


class LiveStateProvider(abc.ABC):
    """One live-traffic upstream."""

    provider: Provider
    supports_bbox: bool = False

    def __init__(self, client: httpx.AsyncClient) -> None:
        self._client = client

    @abc.abstractmethod
    async def fetch_live_states(self, bbox: BBox | None = None) -> list[RawStateRecord]:
        """Return the current snapshot, restricted to *bbox* when supported."""

    def _tag(self, rows: list[Any]) -> list[RawStateRecord]:
        return [RawStateRecord(self.provider, row) for row in rows]


class OpenSkyStates(LiveStateProvider):
    provider = Provider.OPENSKY
    supports_bbox = True

    def __init__(
        self,
        client: httpx.AsyncClient,
        username: str = OPENSKY_USERNAME,
        password: str = OPENSKY_PASSWORD,
    ) -> None:
        super().__init__(client)
        self._auth = (username, password) if username and password else None

    async def fetch_live_states(self, bbox: BBox | None = None) -> list[RawStateRecord]:
        params: dict[str, str] = {}
        if bbox is not None:
            lamin, lomin, lamax, lomax = bbox
            params = {
                "lamin": f"{lamin:.4f}",
                "lomin": f"{lomin:.4f}",
                "lamax": f"{lamax:.4f}",
                "lomax": f"{lomax:.4f}",
            }
        kwargs: dict[str, Any] = {"params": params}
        if self._auth:
            kwargs["auth"] = self._auth

        data = await fetch_json(
            self._client, OPENSKY_STATES_URL, provider="opensky", strict=True, **kwargs
        )
        if not isinstance(data, dict):
            raise UpstreamError("opensky", "OpenSky returned an unexpected payload")

        # OpenSky sends ``"states": null`` when the box is empty.
        states = data.get("states") or []
        if not isinstance(states, list):
            raise UpstreamError("opensky", "OpenSky 'states' is not a list")
        LOG.debug("OpenSky returned %d states (bbox=%s)", len(states), bbox)
        return self._tag(states)


class AirLabsFlights(LiveStateProvider):
    provider = Provider.AIRLABS
    supports_bbox = True

    def __init__(self, client: httpx.AsyncClient, api_key: str = AIRLABS_API_KEY) -> None:
        super().__init__(client)
        self._api_key = api_key

    async def fetch_live_states(self, bbox: BBox | None = None) -> list[RawStateRecord]:
        if not self._api_key:
            raise ProviderNotConfigured(
                "airlabs",
                "Flight tracking service not configured",
                details="Please add AIRLABS_API_KEY to environment variables. "
                "Get a free key at https://airlabs.co/signup",
            )
        params = {"api_key": self._api_key}
        if bbox is not None:
            # AirLabs wants SW lat, SW lng, NE lat, NE lng.
            lamin, lomin, lamax, lomax = bbox
            params["bbox"] = f"{lamin:.4f},{lomin:.4f},{lamax:.4f},{lomax:.4f}"

        data = await fetch_json(
            self._client,
            AIRLABS_FLIGHTS_URL,
            provider="airlabs",
            strict=True,
            params=params,
            headers={"Accept": "application/json"},
        )
        if not isinstance(data, dict):
            raise UpstreamError("airlabs", "AirLabs returned an unexpected payload")
        if data.get("error"):
            err = data["error"]
            message = err.get("message") if isinstance(err, dict) else str(err)
            raise UpstreamError("airlabs", "AirLabs API error", details=message)

        flights = data.get("response") or []
        if not isinstance(flights, list):
            raise UpstreamError("airlabs", "AirLabs 'response' is not a list")
        return self._tag(flights)


class AviationStackFlights(LiveStateProvider):
    provider = Provider.AVIATIONSTACK

    def __init__(
        self, client: httpx.AsyncClient, api_key: str = AVIATIONSTACK_API_KEY
    ) -> None:
        super().__init__(client)
        self._api_key = api_key

    async def fetch_live_states(self, bbox: BBox | None = None) -> list[RawStateRecord]:
        if not self._api_key:
            raise ProviderNotConfigured(
                "aviationstack",
                "Flight tracking service not configured",
                details="Please add AVIATIONSTACK_API_KEY to environment variables.",
            )
        data = await fetch_json(
            self._client,
            AVIATIONSTACK_FLIGHTS_URL,
            provider="aviationstack",
            strict=True,
            params={"access_key": self._api_key, "flight_status": "active"},
        )
        if not isinstance(data, dict):
            raise UpstreamError("aviationstack", "AviationStack returned an unexpected payload")
        if data.get("error"):
            err = data["error"]
            message = err.get("message") if isinstance(err, dict) else str(err)
            raise UpstreamError("aviationstack", "AviationStack API error", details=message)

        flights = data.get("data") or []
        if not isinstance(flights, list):
            raise UpstreamError("aviationstack", "AviationStack 'data' is not a list")
        return self._tag(flights)


PROVIDERS: Final[dict[Provider, type[LiveStateProvider]]] = {
    Provider.OPENSKY: OpenSkyStates,
    Provider.AIRLABS: AirLabsFlights,
    Provider.AVIATIONSTACK: AviationStackFlights,
}


def build_live_provider(
    client: httpx.AsyncClient, name: str = FLIGHT_PROVIDER
) -> LiveStateProvider:
    """Instantiate the provider selected by ``FLIGHT_PROVIDER``."""
    try:
        provider = Provider(name)
    except ValueError:
        LOG.warning("Unknown FLIGHT_PROVIDER %r – falling back to opensky", name)
        provider = Provider.OPENSKY
    return PROVIDERS[provider](client)
