"""
main.py – FastAPI entry point
=============================

Routes
------
* ``GET /api/nearest-flight``  – closest airborne aircraft to lat/lon or an
  address, optionally enriched with registration, photo and track.
* ``GET /api/geocode``         – address → coordinates.
* ``GET /api/aircraft-photo``  – photo by ICAO24 and/or registration.
* ``GET /api/flight-track``    – historical track, optional altitude profile.
* ``GET /healthz``             – liveness probe.

Every service object lives in one :class:`Services` container on
``app.state``; the lifespan builds it (or takes an injected one) and runs the
periodic cache sweep.
"""

from __future__ import annotations

# ─── Std-lib / third-party ────────────────────────────────────────────
import asyncio
import contextlib
import logging
import sys
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any

import httpx
from fastapi import APIRouter, FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse

# ─── Project modules ──────────────────────────────────────────────────
from .constants import (
    ALLOWED_ORIGINS,
    CACHE_SWEEP_INTERVAL_S,
    FLIGHT_RATE,
    GEOCODE_RATE,
    GEOCODE_TTL_S,
    HTTP_TIMEOUT_S,
    NEAREST_TTL_S,
    PHOTO_MISS_TTL_S,
    PHOTO_TTL_S,
    TRACK_RATE,
    TRACK_TTL_S,
    USER_AGENT,
)
from .enrichment_service import EnrichmentCoordinator, PhotoService
from .ephemeral_cache import EphemeralCache
from .errors import PlanefinderError, RateLimitExceeded, ValidationError
from .geo import parse_point
from .geocode_service import Geocoder, NominatimGeocoder
from .live_state_service import build_live_provider
from .models import GeocodeResult, GeoPoint, LookupStatus
from .photo_service import PlanespottersPhotos
from .rate_limit import RateLimiter, client_identifier
from .registration_service import OpenSkyRegistry
from .resolver import NearestFlightFinder
from .track_service import OpenSkyTracks, altitude_profile

# ─── Logging ──────────────────────────────────────────────────────────
LOG = logging.getLogger("planefinder")
LOG_BG = logging.getLogger("bg")

_handler = logging.StreamHandler(sys.stdout)
_handler.setFormatter(logging.Formatter("%(levelname)s:     %(name)s - %(message)s"))
for _name in (
    "planefinder",
    "bg",
    "extapi",
    "live_state_service",
    "normalizer",
    "resolver",
    "enrichment",
    "registration_service",
    "photo_service",
    "track_service",
    "geocode_service",
    "ephemeral_cache",
    "rate_limit",
):
    _logger = logging.getLogger(_name)
    if _handler not in _logger.handlers:
        _logger.addHandler(_handler)
    _logger.setLevel(logging.INFO)


# ---------------------------------------------------------------------
# Service container
# ---------------------------------------------------------------------
@dataclass
class Services:
    finder: NearestFlightFinder
    geocoder: Geocoder
    enrichment: EnrichmentCoordinator
    cache: EphemeralCache = field(default_factory=EphemeralCache)
    flight_limiter: RateLimiter = field(
        default_factory=lambda: RateLimiter("flight", *FLIGHT_RATE)
    )
    geocode_limiter: RateLimiter = field(
        default_factory=lambda: RateLimiter("geocode", *GEOCODE_RATE)
    )
    track_limiter: RateLimiter = field(
        default_factory=lambda: RateLimiter("track", *TRACK_RATE)
    )

    @property
    def photos(self) -> PhotoService:
        return PhotoService(self.enrichment)


def build_services(client: httpx.AsyncClient) -> Services:
    """Wire the production upstream clients around one shared HTTP client."""
    cache = EphemeralCache()
    return Services(
        finder=NearestFlightFinder(build_live_provider(client)),
        geocoder=NominatimGeocoder(),
        enrichment=EnrichmentCoordinator(
            OpenSkyRegistry(client),
            PlanespottersPhotos(client),
            OpenSkyTracks(client),
            cache=cache,
        ),
        cache=cache,
    )


# ---------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------
def _services(request: Request) -> Services:
    return request.app.state.services


def _admit(request: Request, limiter: RateLimiter) -> dict[str, str]:
    """Charge one request to the caller; return the rate-limit headers."""
    remaining = limiter.check(client_identifier(request))
    return {
        "X-RateLimit-Limit": str(limiter.max_requests),
        "X-RateLimit-Remaining": str(remaining),
    }


def _respond(payload: Any, *, hit: bool, headers: dict[str, str]) -> JSONResponse:
    return JSONResponse(
        content=payload,
        headers={**headers, "X-Cache": "HIT" if hit else "MISS"},
    )


async def _geocode(services: Services, address: str) -> tuple[GeocodeResult, bool]:
    """Geocode through the shared cache; returns ``(result, cache_hit)``."""
    key = f"geocode:{' '.join(address.lower().split())}"
    cached = services.cache.get(key)
    if cached is not None:
        return cached, True
    result = await services.geocoder.geocode(address)
    services.cache.set(key, result, GEOCODE_TTL_S)
    return result, False


# ---------------------------------------------------------------------
# Lifespan – cache sweeping
# ---------------------------------------------------------------------
@asynccontextmanager
async def lifespan(app: FastAPI):  # noqa: N802 – FastAPI naming style
    """Build services (unless injected) and sweep expired cache entries."""
    injected: Services | None = getattr(app.state, "services", None)
    client: httpx.AsyncClient | None = None
    if injected is None:
        client = httpx.AsyncClient(
            timeout=HTTP_TIMEOUT_S, headers={"User-Agent": USER_AGENT}
        )
        app.state.services = build_services(client)
    services: Services = app.state.services

    async def _loop() -> None:
        while True:
            await asyncio.sleep(CACHE_SWEEP_INTERVAL_S)
            try:
                services.cache.sweep()
            except Exception as exc:
                LOG_BG.error("[sweep] crashed: %s", exc, exc_info=True)

    task = asyncio.create_task(_loop())
    LOG.info("Started; sweeping cache every %ss", CACHE_SWEEP_INTERVAL_S)

    yield  # ⇢ application runs here

    task.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await task
    if client is not None:
        await client.aclose()
        del app.state.services


# ---------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------
router = APIRouter()


@router.get("/healthz", response_class=PlainTextResponse)
async def healthz() -> PlainTextResponse:
    """Return HTTP 200 with body “ok” if the app is up."""
    return PlainTextResponse("ok", status_code=200)


@router.get("/api/nearest-flight")
async def nearest_flight(
    request: Request,
    lat: str | None = Query(None),
    lon: str | None = Query(None),
    address: str | None = Query(None),
    enrich: bool = Query(False),
) -> JSONResponse:
    """Closest airborne aircraft to a point or an address."""
    services = _services(request)

    if lat is None and lon is None and address and address.strip():
        headers = _admit(request, services.flight_limiter)
        located, _ = await _geocode(services, address)
        point: GeoPoint = located.point
    else:
        point = parse_point(lat, lon)
        headers = _admit(request, services.flight_limiter)

    key = f"nearest:{point.latitude!r},{point.longitude!r}:{int(enrich)}"
    cached = services.cache.get(key)
    if cached is not None:
        return _respond(cached, hit=True, headers=headers)

    flight = await services.finder.find(point)
    degraded = False
    if enrich:
        enriched = await services.enrichment.enrich(flight)
        degraded = enriched.degraded
        payload = enriched.to_dict()
    else:
        payload = flight.to_dict()
    payload["query"] = {"lat": point.latitude, "lon": point.longitude}

    # Failed lookups are retried on the next request.
    if not degraded:
        services.cache.set(key, payload, NEAREST_TTL_S)
    return _respond(payload, hit=False, headers=headers)


@router.get("/api/geocode")
async def geocode(request: Request, address: str | None = Query(None)) -> JSONResponse:
    services = _services(request)
    if not address or not address.strip():
        raise ValidationError("Address required")
    headers = _admit(request, services.geocode_limiter)
    result, hit = await _geocode(services, address)
    return _respond(result.to_dict(), hit=hit, headers=headers)


@router.get("/api/aircraft-photo")
async def aircraft_photo(
    request: Request,
    icao24: str | None = Query(None),
    registration: str | None = Query(None),
) -> JSONResponse:
    """
    Photo for an airframe.  Upstream failures degrade to an all-null result
    carrying an ``error`` message instead of failing the request.
    """
    services = _services(request)
    if not (icao24 or "").strip() and not (registration or "").strip():
        raise ValidationError("ICAO24 or registration required")
    headers = _admit(request, services.geocode_limiter)

    key = f"photo-route:{(icao24 or '').strip().lower()}:{(registration or '').strip().upper()}"
    cached = services.cache.get(key)
    if cached is not None:
        return _respond(cached, hit=True, headers=headers)

    outcome = await services.photos.lookup(icao24=icao24, registration=registration)
    photo = outcome.value
    payload: dict[str, Any] = photo.to_dict() if photo else {}
    payload["status"] = outcome.status.value
    if outcome.status is LookupStatus.UNAVAILABLE:
        payload["error"] = "Photo service temporarily unavailable"
        return _respond(payload, hit=False, headers=headers)

    ttl = PHOTO_TTL_S if photo is not None and photo.has_photo else PHOTO_MISS_TTL_S
    services.cache.set(key, payload, ttl)
    return _respond(payload, hit=False, headers=headers)


@router.get("/api/flight-track")
async def flight_track(
    request: Request,
    icao24: str | None = Query(None),
    profile: bool = Query(False),
) -> JSONResponse:
    services = _services(request)
    icao24 = (icao24 or "").strip().lower()
    if not icao24:
        raise ValidationError("ICAO24 required")
    headers = _admit(request, services.track_limiter)

    key = f"track-route:{icao24}:{int(profile)}"
    cached = services.cache.get(key)
    if cached is not None:
        return _respond(cached, hit=True, headers=headers)

    track = await services.enrichment.fetch_track(icao24)
    payload = track.to_dict()
    if profile:
        payload["altitude_profile"] = altitude_profile(track)

    services.cache.set(key, payload, TRACK_TTL_S)
    return _respond(payload, hit=False, headers=headers)


# ---------------------------------------------------------------------
# FastAPI instance & middleware
# ---------------------------------------------------------------------
async def planefinder_error_handler(request: Request, exc: PlanefinderError):
    """Render every service error as ``{"error": ..., "details": ...}``."""
    headers: dict[str, str] = {}
    if isinstance(exc, RateLimitExceeded):
        headers = {
            "Retry-After": str(exc.retry_after),
            "X-RateLimit-Limit": str(exc.limit),
            "X-RateLimit-Remaining": str(exc.remaining),
        }
    elif exc.status_code >= 500:
        LOG.warning("%s %s → %s: %s", request.method, request.url.path, exc.status_code, exc)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)


def create_app(services: Services | None = None) -> FastAPI:
    app = FastAPI(title="Planefinder", lifespan=lifespan)
    if services is not None:
        app.state.services = services

    app.add_exception_handler(PlanefinderError, planefinder_error_handler)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=ALLOWED_ORIGINS,
        allow_methods=["GET", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=[
            "X-Cache",
            "X-RateLimit-Limit",
            "X-RateLimit-Remaining",
            "Retry-After",
        ],
    )
    app.include_router(router)
    return app


app = create_app()
