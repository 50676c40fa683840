"""
photo_service.py
~~~~~~~~~~~~~~~~
Aircraft photos: the airframe itself from **Planespotters.net**, or a
representative picture of the type from **Wikipedia** when the airframe has
none.

Both endpoints are public and rate limited on their side; photos are purely
cosmetic, so the enrichment layer downgrades every error raised here.
"""

from __future__ import annotations

import abc
import logging
from typing import Any, Final
from urllib.parse import quote

import httpx

from .api_logging import fetch_json
from .constants import USER_AGENT
from .models import PhotoResult

LOG = logging.getLogger("photo_service")

PLANESPOTTERS_REG_URL: Final = "https://api.planespotters.net/pub/photos/reg/{reg}"
WIKIPEDIA_SUMMARY_URL: Final = "https://en.wikipedia.org/api/rest_v1/page/summary/{title}"

#: ICAO type designator → Wikipedia article used for generic photos.
TYPE_ARTICLES: Final[dict[str, str]] = {
    "A319": "Airbus A319",
    "A320": "Airbus A320 family",
    "A20N": "Airbus A320neo family",
    "A321": "Airbus A321",
    "A21N": "Airbus A321neo",
    "A332": "Airbus A330",
    "A333": "Airbus A330",
    "A359": "Airbus A350",
    "A388": "Airbus A380",
    "B737": "Boeing 737",
    "B738": "Boeing 737 Next Generation",
    "B739": "Boeing 737 Next Generation",
    "B38M": "Boeing 737 MAX",
    "B39M": "Boeing 737 MAX",
    "B744": "Boeing 747-400",
    "B748": "Boeing 747-8",
    "B752": "Boeing 757",
    "B763": "Boeing 767",
    "B77W": "Boeing 777",
    "B772": "Boeing 777",
    "B788": "Boeing 787 Dreamliner",
    "B789": "Boeing 787 Dreamliner",
    "CRJ9": "Bombardier CRJ700 series",
    "E75L": "Embraer E-Jet family",
    "E190": "Embraer E-Jet family",
    "DH8D": "De Havilland Canada Dash 8",
    "AT76": "ATR 72",
    "C172": "Cessna 172",
}


class PhotoProvider(abc.ABC):
    @abc.abstractmethod
    async def fetch_photo_by_registration(self, registration: str) -> PhotoResult | None:
        """Photo of this exact airframe, or None."""

    @abc.abstractmethod
    async def fetch_photo_by_type(self, type_code: str) -> PhotoResult | None:
        """Representative photo of the aircraft type, or None."""


def _src(block: Any) -> str | None:
    if isinstance(block, dict):
        src = block.get("src") or block.get("source")
        return src if isinstance(src, str) and src else None
    return None


class PlanespottersPhotos(PhotoProvider):
    def __init__(self, client: httpx.AsyncClient) -> None:
        self._client = client
        self._headers = {"Accept": "application/json", "User-Agent": USER_AGENT}

    async def fetch_photo_by_registration(self, registration: str) -> PhotoResult | None:
        url = PLANESPOTTERS_REG_URL.format(reg=quote(registration.strip().upper()))
        data = await fetch_json(
            self._client, url, provider="planespotters", not_found_ok=True, headers=self._headers
        )
        photos = data.get("photos") if isinstance(data, dict) else None
        if not photos:
            return None

        photo = photos[0]
        result = PhotoResult(
            registration=registration,
            photo_url=_src(photo.get("thumbnail_large")) or _src(photo.get("image")),
            thumbnail_url=_src(photo.get("thumbnail")),
            photographer=photo.get("photographer"),
            source_link=photo.get("link"),
        )
        return result if result.has_photo else None

    async def fetch_photo_by_type(self, type_code: str) -> PhotoResult | None:
        title = TYPE_ARTICLES.get(type_code.strip().upper())
        if not title:
            LOG.debug("No type article for %r", type_code)
            return None

        url = WIKIPEDIA_SUMMARY_URL.format(title=quote(title.replace(" ", "_")))
        data = await fetch_json(
            self._client, url, provider="wikipedia", not_found_ok=True, headers=self._headers
        )
        if not isinstance(data, dict):
            return None

        page = (data.get("content_urls") or {}).get("desktop") or {}
        result = PhotoResult(
            photo_url=_src(data.get("originalimage")),
            thumbnail_url=_src(data.get("thumbnail")),
            photographer="Wikimedia Commons",
            source_link=page.get("page"),
            is_generic=True,
        )
        return result if result.has_photo else None
