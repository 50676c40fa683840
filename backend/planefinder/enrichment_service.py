"""
enrichment_service.py
~~~~~~~~~~~~~~~~~~~~~
Secondary lookups for a resolved flight: registration, photo, track.

Failure isolation
-----------------
The primary flight is always returned.  Each lookup ends in a
:class:`~planefinder.models.LookupResult`:

    registration   error → ``unavailable`` (photo is then ``absent``, all null)
    photo          error → ``unavailable``  (cosmetic)
    track          UpstreamError → ``failed``; 404 / no icao24 → ``absent``

Photo and track are independent and run concurrently once the registration
is known.
"""

from __future__ import annotations

import asyncio
import logging

from .constants import PHOTO_MISS_TTL_S, PHOTO_TTL_S, REGISTRATION_TTL_S, TRACK_TTL_S
from .ephemeral_cache import EphemeralCache
from .errors import NotFoundError, PlanefinderError, UpstreamError, ValidationError
from .models import (
    CanonicalFlight,
    EnrichedFlight,
    LookupResult,
    LookupStatus,
    PhotoResult,
    TrackRecord,
)
from .photo_service import PhotoProvider
from .registration_service import RegistrationRegistry
from .track_service import TrackProvider

LOG = logging.getLogger("enrichment")

_MISS = object()


def _reason(exc: BaseException) -> str:
    if isinstance(exc, PlanefinderError):
        return exc.message
    return f"{type(exc).__name__}: {exc}"


class EnrichmentCoordinator:
    def __init__(
        self,
        registry: RegistrationRegistry,
        photos: PhotoProvider,
        tracks: TrackProvider,
        cache: EphemeralCache | None = None,
    ) -> None:
        self.registry = registry
        self.photos = photos
        self.tracks = tracks
        self.cache = cache

    # ── cache helpers ────────────────────────────────────────────────────
    def _cached(self, key: str):
        if self.cache is None:
            return _MISS
        return self.cache.get(key, _MISS)

    def _store(self, key: str, value, ttl: float) -> None:
        if self.cache is not None:
            self.cache.set(key, value, ttl)

    # ── registration ─────────────────────────────────────────────────────
    async def lookup_registration(self, icao24: str | None) -> LookupResult[str]:
        if not icao24:
            return LookupResult.absent("No ICAO24 address")

        key = f"reg:{icao24.lower()}"
        reg = self._cached(key)
        if reg is _MISS:
            try:
                reg = await self.registry.resolve_registration(icao24)
            except PlanefinderError as exc:
                LOG.info("Registration lookup for %s unavailable: %s", icao24, exc.message)
                return LookupResult.unavailable(_reason(exc))
            except Exception as exc:
                LOG.error("Registration lookup for %s crashed", icao24, exc_info=True)
                return LookupResult.unavailable(_reason(exc))
            self._store(key, reg, REGISTRATION_TTL_S)

        if reg is None:
            return LookupResult.absent("Registration unknown")
        return LookupResult.ok(reg)

    # ── photo ────────────────────────────────────────────────────────────
    async def find_photo(
        self, registration: str | None, aircraft_type: str | None = None
    ) -> PhotoResult:
        """
        Airframe photo, else a generic type photo, else an empty result.
        The type fallback only follows a registration query that found nothing.

        Provider errors propagate; only completed lookups are cached.
        """
        if not registration:
            return PhotoResult.empty()

        key = f"photo:{registration.upper()}:{(aircraft_type or '').upper()}"
        cached = self._cached(key)
        if cached is not _MISS:
            return cached

        result = await self.photos.fetch_photo_by_registration(registration)
        if result is None and aircraft_type:
            result = await self.photos.fetch_photo_by_type(aircraft_type)
            if result is not None:
                result.registration = registration
                result.is_generic = True
        if result is None:
            result = PhotoResult.empty(registration)

        self._store(key, result, PHOTO_TTL_S if result.has_photo else PHOTO_MISS_TTL_S)
        return result

    async def lookup_photo(
        self, registration: str | None, aircraft_type: str | None = None
    ) -> LookupResult[PhotoResult]:
        if not registration:
            return LookupResult.absent("No registration", PhotoResult.empty())
        try:
            return LookupResult.ok(await self.find_photo(registration, aircraft_type))
        except PlanefinderError as exc:
            LOG.info("Photo lookup for %s unavailable: %s", registration, exc.message)
            return LookupResult.unavailable(_reason(exc), PhotoResult.empty(registration))
        except Exception as exc:
            LOG.error("Photo lookup for %s crashed", registration, exc_info=True)
            return LookupResult.unavailable(_reason(exc), PhotoResult.empty(registration))

    # ── track ────────────────────────────────────────────────────────────
    async def fetch_track(self, icao24: str) -> TrackRecord:
        """Cached track fetch; NotFoundError / UpstreamError propagate."""
        key = f"track:{icao24.lower()}"
        track = self._cached(key)
        if track is _MISS:
            track = await self.tracks.fetch_track(icao24)
            self._store(key, track, TRACK_TTL_S)
        return track

    async def lookup_track(self, icao24: str | None) -> LookupResult[TrackRecord]:
        if not icao24:
            return LookupResult.absent("No ICAO24 address")
        try:
            return LookupResult.ok(await self.fetch_track(icao24))
        except NotFoundError as exc:
            return LookupResult.absent(_reason(exc))
        except UpstreamError as exc:
            LOG.warning("Track lookup for %s failed: %s", icao24, exc.message)
            return LookupResult.failed(_reason(exc))
        except Exception as exc:
            LOG.error("Track lookup for %s crashed", icao24, exc_info=True)
            return LookupResult.failed(_reason(exc))

    # ── everything ───────────────────────────────────────────────────────
    async def enrich(self, flight: CanonicalFlight) -> EnrichedFlight:
        if flight.registration:
            registration = LookupResult.ok(flight.registration)
        else:
            registration = await self.lookup_registration(flight.icao24)
            if registration.value:
                flight.registration = registration.value

        photo, track = await asyncio.gather(
            self.lookup_photo(flight.registration, flight.aircraft_type),
            self.lookup_track(flight.icao24),
        )
        LOG.info(
            "Enriched %s: registration=%s photo=%s track=%s",
            flight.callsign,
            registration.status.value,
            photo.status.value,
            track.status.value,
        )
        return EnrichedFlight(flight, registration, photo, track)


class PhotoService:
    """Photo lookup for a bare ICAO24 address and/or registration."""

    def __init__(self, coordinator: EnrichmentCoordinator) -> None:
        self.coordinator = coordinator

    async def lookup(
        self, icao24: str | None = None, registration: str | None = None
    ) -> LookupResult[PhotoResult]:
        """
        Raises:
            ValidationError: neither identifier given.
            NotFoundError: no registration given and none could be resolved.
        """
        icao24 = (icao24 or "").strip().lower() or None
        registration = (registration or "").strip().upper() or None
        if not icao24 and not registration:
            raise ValidationError("ICAO24 or registration required")

        if not registration:
            resolved = await self.coordinator.lookup_registration(icao24)
            if resolved.status is LookupStatus.UNAVAILABLE:
                return LookupResult.unavailable(
                    resolved.reason or "Registration lookup failed", PhotoResult.empty()
                )
            if not resolved.value:
                raise NotFoundError("Could not find registration for aircraft")
            registration = resolved.value

        return await self.coordinator.lookup_photo(registration)
