"""
tests/test_enrichment_service.py
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~
Failure isolation and caching in :class:`EnrichmentCoordinator` and
:class:`PhotoService`, with in-memory fakes for every upstream.
"""

from __future__ import annotations

import pytest

from planefinder.enrichment_service import EnrichmentCoordinator, PhotoService
from planefinder.ephemeral_cache import EphemeralCache
from planefinder.errors import NotFoundError, UpstreamError, ValidationError
from planefinder.models import (
    CanonicalFlight,
    LookupStatus,
    PhotoResult,
    TrackRecord,
    TrackSample,
)
from planefinder.photo_service import PhotoProvider
from planefinder.registration_service import RegistrationRegistry
from planefinder.track_service import TrackProvider


class FakeRegistry(RegistrationRegistry):
    def __init__(self, reg: str | None = "G-EUUU", exc: Exception | None = None) -> None:
        self.reg, self.exc, self.calls = reg, exc, 0

    async def resolve_registration(self, icao24: str) -> str | None:
        self.calls += 1
        if self.exc:
            raise self.exc
        return self.reg


class FakePhotos(PhotoProvider):
    def __init__(
        self,
        by_reg: PhotoResult | None = None,
        by_type: PhotoResult | None = None,
        exc: Exception | None = None,
    ) -> None:
        self.by_reg, self.by_type, self.exc = by_reg, by_type, exc
        self.reg_calls: list[str] = []
        self.type_calls: list[str] = []

    async def fetch_photo_by_registration(self, registration: str) -> PhotoResult | None:
        self.reg_calls.append(registration)
        if self.exc:
            raise self.exc
        return self.by_reg

    async def fetch_photo_by_type(self, type_code: str) -> PhotoResult | None:
        self.type_calls.append(type_code)
        return self.by_type


class FakeTracks(TrackProvider):
    def __init__(self, exc: Exception | None = None) -> None:
        self.exc, self.calls = exc, 0

    async def fetch_track(self, icao24: str) -> TrackRecord:
        self.calls += 1
        if self.exc:
            raise self.exc
        return TrackRecord(icao24, "BAW123", path=[TrackSample(1, 51.0, 0.0, 9_000.0, 90.0, False)])


def _flight(**over) -> CanonicalFlight:
    data = dict(icao24="abc123", callsign="BAW123", latitude=51.5, longitude=-0.1)
    data.update(over)
    return CanonicalFlight(**data)


AIRFRAME_PHOTO = PhotoResult(
    registration="G-EUUU",
    photo_url="https://img/1.jpg",
    thumbnail_url="https://img/1_t.jpg",
    photographer="Jane",
    source_link="https://link/1",
)


# ------------------------------------------------------------------ #
# enrich()
# ------------------------------------------------------------------ #
@pytest.mark.asyncio
async def test_all_lookups_succeed() -> None:
    coordinator = EnrichmentCoordinator(FakeRegistry(), FakePhotos(AIRFRAME_PHOTO), FakeTracks())
    enriched = await coordinator.enrich(_flight())

    assert enriched.flight.registration == "G-EUUU"
    assert enriched.registration.status is LookupStatus.OK
    assert enriched.photo.status is LookupStatus.OK
    assert enriched.photo.value.photo_url == "https://img/1.jpg"
    assert enriched.track.status is LookupStatus.OK

    body = enriched.to_dict()
    assert body["flight"]["callsign"] == "BAW123"
    assert body["photo"]["status"] == "ok"
    assert body["track"]["value"]["path"][0][3] == 9_000.0


@pytest.mark.asyncio
async def test_photo_failure_is_unavailable_not_raised() -> None:
    photos = FakePhotos(exc=UpstreamError("planespotters", "down"))
    coordinator = EnrichmentCoordinator(FakeRegistry(), photos, FakeTracks())

    enriched = await coordinator.enrich(_flight())

    assert enriched.flight.callsign == "BAW123"
    assert enriched.photo.status is LookupStatus.UNAVAILABLE
    assert enriched.photo.value == PhotoResult.empty("G-EUUU")
    assert enriched.track.status is LookupStatus.OK


@pytest.mark.asyncio
async def test_unexpected_photo_exception_is_downgraded() -> None:
    coordinator = EnrichmentCoordinator(
        FakeRegistry(), FakePhotos(exc=KeyError("thumbnail")), FakeTracks()
    )
    enriched = await coordinator.enrich(_flight())
    assert enriched.photo.status is LookupStatus.UNAVAILABLE
    assert "KeyError" in enriched.photo.reason


@pytest.mark.asyncio
async def test_type_photo_used_when_airframe_has_none() -> None:
    generic = PhotoResult(photo_url="https://wiki/b738.jpg", is_generic=True)
    photos = FakePhotos(by_reg=None, by_type=generic)
    coordinator = EnrichmentCoordinator(FakeRegistry(), photos, FakeTracks())

    enriched = await coordinator.enrich(_flight(aircraft_type="B738"))

    photo = enriched.photo.value
    assert photo.is_generic is True
    assert photo.registration == "G-EUUU"
    assert photos.type_calls == ["B738"]


@pytest.mark.asyncio
async def test_no_photo_anywhere_is_empty_ok() -> None:
    coordinator = EnrichmentCoordinator(FakeRegistry(), FakePhotos(), FakeTracks())
    enriched = await coordinator.enrich(_flight())

    assert enriched.photo.status is LookupStatus.OK
    assert enriched.photo.value == PhotoResult.empty("G-EUUU")
    assert enriched.photo.value.has_photo is False


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "registry",
    [FakeRegistry(reg=None), FakeRegistry(exc=UpstreamError("opensky-metadata", "down"))],
)
async def test_no_registration_never_falls_back_to_type_photo(registry) -> None:
    generic = PhotoResult(photo_url="https://wiki/a320.jpg", is_generic=True)
    photos = FakePhotos(by_type=generic)
    coordinator = EnrichmentCoordinator(registry, photos, FakeTracks())

    enriched = await coordinator.enrich(_flight(aircraft_type="A320"))

    assert enriched.flight.registration is None
    assert enriched.photo.status is LookupStatus.ABSENT
    assert enriched.photo.value == PhotoResult.empty()
    assert enriched.photo.value.photo_url is None
    assert enriched.photo.value.is_generic is False
    assert photos.reg_calls == []
    assert photos.type_calls == []


@pytest.mark.asyncio
async def test_no_registration_and_no_type_is_absent() -> None:
    photos = FakePhotos()
    coordinator = EnrichmentCoordinator(FakeRegistry(reg=None), photos, FakeTracks())

    enriched = await coordinator.enrich(_flight())

    assert enriched.registration.status is LookupStatus.ABSENT
    assert enriched.photo.status is LookupStatus.ABSENT
    assert enriched.photo.value == PhotoResult.empty()
    assert photos.reg_calls == []


@pytest.mark.asyncio
async def test_known_registration_skips_registry() -> None:
    registry = FakeRegistry()
    coordinator = EnrichmentCoordinator(registry, FakePhotos(AIRFRAME_PHOTO), FakeTracks())
    await coordinator.enrich(_flight(registration="N12345"))
    assert registry.calls == 0


@pytest.mark.asyncio
async def test_track_upstream_failure_is_failed() -> None:
    coordinator = EnrichmentCoordinator(
        FakeRegistry(),
        FakePhotos(AIRFRAME_PHOTO),
        FakeTracks(exc=UpstreamError("opensky-tracks", "OpenSky API error: 500", status=500)),
    )
    enriched = await coordinator.enrich(_flight())

    assert enriched.track.status is LookupStatus.FAILED
    assert enriched.track.reason == "OpenSky API error: 500"
    assert enriched.photo.status is LookupStatus.OK


@pytest.mark.asyncio
async def test_track_not_found_is_absent() -> None:
    coordinator = EnrichmentCoordinator(
        FakeRegistry(), FakePhotos(), FakeTracks(exc=NotFoundError("no track"))
    )
    enriched = await coordinator.enrich(_flight())
    assert enriched.track.status is LookupStatus.ABSENT


@pytest.mark.asyncio
async def test_missing_icao24_skips_registry_and_track() -> None:
    registry, tracks = FakeRegistry(), FakeTracks()
    coordinator = EnrichmentCoordinator(registry, FakePhotos(), tracks)

    enriched = await coordinator.enrich(_flight(icao24=None))

    assert enriched.registration.status is LookupStatus.ABSENT
    assert enriched.track.status is LookupStatus.ABSENT
    assert registry.calls == tracks.calls == 0


# ------------------------------------------------------------------ #
# Caching
# ------------------------------------------------------------------ #
@pytest.mark.asyncio
async def test_lookups_are_cached(fake_clock) -> None:
    registry, photos, tracks = FakeRegistry(), FakePhotos(AIRFRAME_PHOTO), FakeTracks()
    coordinator = EnrichmentCoordinator(
        registry, photos, tracks, cache=EphemeralCache(clock=fake_clock)
    )

    await coordinator.enrich(_flight())
    await coordinator.enrich(_flight())

    assert registry.calls == 1
    assert len(photos.reg_calls) == 1
    assert tracks.calls == 1

    # the track TTL is two minutes; the photo TTL is seven days
    fake_clock.tick(121)
    await coordinator.enrich(_flight())
    assert tracks.calls == 2
    assert len(photos.reg_calls) == 1


@pytest.mark.asyncio
async def test_photo_miss_cached_for_an_hour(fake_clock) -> None:
    photos = FakePhotos()
    coordinator = EnrichmentCoordinator(
        FakeRegistry(), photos, FakeTracks(), cache=EphemeralCache(clock=fake_clock)
    )

    await coordinator.lookup_photo("G-EUUU")
    fake_clock.tick(3_000)
    await coordinator.lookup_photo("G-EUUU")
    assert len(photos.reg_calls) == 1

    fake_clock.tick(700)
    await coordinator.lookup_photo("G-EUUU")
    assert len(photos.reg_calls) == 2


@pytest.mark.asyncio
async def test_failures_are_not_cached(fake_clock) -> None:
    photos = FakePhotos(exc=UpstreamError("planespotters", "down"))
    coordinator = EnrichmentCoordinator(
        FakeRegistry(), photos, FakeTracks(), cache=EphemeralCache(clock=fake_clock)
    )
    await coordinator.lookup_photo("G-EUUU")
    await coordinator.lookup_photo("G-EUUU")
    assert len(photos.reg_calls) == 2


# ------------------------------------------------------------------ #
# PhotoService
# ------------------------------------------------------------------ #
@pytest.mark.asyncio
async def test_photo_service_resolves_registration() -> None:
    service = PhotoService(
        EnrichmentCoordinator(FakeRegistry(), FakePhotos(AIRFRAME_PHOTO), FakeTracks())
    )
    outcome = await service.lookup(icao24="ABC123")
    assert outcome.status is LookupStatus.OK
    assert outcome.value.registration == "G-EUUU"


@pytest.mark.asyncio
async def test_photo_service_unknown_registration() -> None:
    service = PhotoService(
        EnrichmentCoordinator(FakeRegistry(reg=None), FakePhotos(), FakeTracks())
    )
    with pytest.raises(NotFoundError, match="Could not find registration"):
        await service.lookup(icao24="abc123")


@pytest.mark.asyncio
async def test_photo_service_registry_down_degrades() -> None:
    service = PhotoService(
        EnrichmentCoordinator(
            FakeRegistry(exc=UpstreamError("opensky-metadata", "down")), FakePhotos(), FakeTracks()
        )
    )
    outcome = await service.lookup(icao24="abc123")
    assert outcome.status is LookupStatus.UNAVAILABLE
    assert outcome.value == PhotoResult.empty()


@pytest.mark.asyncio
async def test_photo_service_requires_an_identifier() -> None:
    service = PhotoService(EnrichmentCoordinator(FakeRegistry(), FakePhotos(), FakeTracks()))
    with pytest.raises(ValidationError):
        await service.lookup()
