"""
models.py
~~~~~~~~~
Shapes shared by the resolver, the enrichment layer and the HTTP routes.

All of them are transient: built for one request, possibly cached for a TTL,
never persisted.
"""

from __future__ import annotations

import enum
from dataclasses import asdict, dataclass, field
from typing import Any, Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class GeoPoint:
    latitude: float
    longitude: float


class Provider(str, enum.Enum):
    """Live-state upstreams we know how to normalise."""

    OPENSKY = "opensky"  # 17-field state-vector arrays
    AVIATIONSTACK = "aviationstack"  # flight objects with a nested ``live`` block
    AIRLABS = "airlabs"  # flat objects


@dataclass(frozen=True)
class RawStateRecord:
    """One provider-specific entry, tagged with the schema it follows."""

    provider: Provider
    payload: Any


@dataclass
class CanonicalFlight:
    """Provider-independent flight record (native upstream units)."""

    icao24: str | None
    callsign: str
    latitude: float
    longitude: float
    baro_altitude: float | None = None
    geo_altitude: float | None = None
    velocity: float | None = None
    true_track: float | None = None
    vertical_rate: float | None = None
    on_ground: bool = False
    origin_country: str = "Unknown"
    registration: str | None = None
    airline: str | None = None
    departure: str | None = None
    arrival: str | None = None
    aircraft_type: str | None = None
    distance_km: float = 0.0
    last_contact: int | None = None
    provider: Provider | None = None

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["distance_km"] = round(self.distance_km, 2)
        # Front-ends read the bare ``distance`` key.
        data["distance"] = data["distance_km"]
        data["provider"] = self.provider.value if self.provider else None
        return data


@dataclass(frozen=True)
class TrackSample:
    time: int
    latitude: float | None
    longitude: float | None
    baro_altitude: float | None
    true_track: float | None
    on_ground: bool


@dataclass
class TrackRecord:
    icao24: str
    callsign: str | None = None
    start_time: int | None = None
    end_time: int | None = None
    path: list[TrackSample] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "icao24": self.icao24,
            "callsign": self.callsign,
            "startTime": self.start_time,
            "endTime": self.end_time,
            # Same positional layout OpenSky uses so map/chart code can index it.
            "path": [
                [s.time, s.latitude, s.longitude, s.baro_altitude, s.true_track, s.on_ground]
                for s in self.path
            ],
        }


@dataclass(frozen=True)
class AltitudePoint:
    time: int
    altitude_m: float


@dataclass
class PhotoResult:
    registration: str | None = None
    photo_url: str | None = None
    thumbnail_url: str | None = None
    photographer: str | None = None
    source_link: str | None = None
    is_generic: bool = False

    @classmethod
    def empty(cls, registration: str | None = None) -> "PhotoResult":
        """The "no photo" outcome – valid data, not an error."""
        return cls(registration=registration)

    @property
    def has_photo(self) -> bool:
        return bool(self.photo_url or self.thumbnail_url)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class LookupStatus(str, enum.Enum):
    OK = "ok"
    ABSENT = "absent"  # nothing to look up, or upstream had nothing
    UNAVAILABLE = "unavailable"  # cosmetic lookup failed, downgraded
    FAILED = "failed"  # necessary lookup failed upstream


@dataclass
class LookupResult(Generic[T]):
    """Outcome of one enrichment lookup, absence included."""

    status: LookupStatus
    value: T | None = None
    reason: str | None = None

    @classmethod
    def ok(cls, value: T) -> "LookupResult[T]":
        return cls(LookupStatus.OK, value)

    @classmethod
    def absent(cls, reason: str, value: T | None = None) -> "LookupResult[T]":
        return cls(LookupStatus.ABSENT, value, reason)

    @classmethod
    def unavailable(cls, reason: str, value: T | None = None) -> "LookupResult[T]":
        return cls(LookupStatus.UNAVAILABLE, value, reason)

    @classmethod
    def failed(cls, reason: str) -> "LookupResult[T]":
        return cls(LookupStatus.FAILED, None, reason)

    def to_dict(self) -> dict[str, Any]:
        value = self.value.to_dict() if hasattr(self.value, "to_dict") else self.value
        return {"status": self.status.value, "value": value, "reason": self.reason}


@dataclass
class EnrichedFlight:
    flight: CanonicalFlight
    registration: LookupResult[str]
    photo: LookupResult[PhotoResult]
    track: LookupResult[TrackRecord]

    def to_dict(self) -> dict[str, Any]:
        return {
            "flight": self.flight.to_dict(),
            "registration": self.registration.to_dict(),
            "photo": self.photo.to_dict(),
            "track": self.track.to_dict(),
        }

    @property
    def degraded(self) -> bool:
        """True when any secondary lookup failed rather than came back empty."""
        return any(
            r.status in (LookupStatus.UNAVAILABLE, LookupStatus.FAILED)
            for r in (self.registration, self.photo, self.track)
        )


@dataclass(frozen=True)
class GeocodeResult:
    point: GeoPoint
    display_name: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "lat": self.point.latitude,
            "lon": self.point.longitude,
            "display_name": self.display_name,
        }
