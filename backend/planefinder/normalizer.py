"""normalizer.py
~~~~~~~~~~~~~~~~
Map provider-specific live-state entries onto :class:`CanonicalFlight`.

One mapping per :class:`Provider`; the registry below is the only place that
knows about upstream schemas.  Adding a provider means adding an enum member
and a mapping here, never branching inside the resolver.

Values stay in native upstream units (metres, m/s, degrees for OpenSky;
whatever AirLabs/AviationStack send for theirs).  Unit conversion is a
presentation concern.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Final, Mapping

from dateutil import parser as dateparser

from .airlines import airline_from_callsign, resolve_airline
from .geo import distance_km
from .models import CanonicalFlight, GeoPoint, Provider, RawStateRecord

LOG = logging.getLogger("normalizer")

# OpenSky state vector positions (17 elements)
SV_ICAO24: Final = 0
SV_CALLSIGN: Final = 1
SV_ORIGIN_COUNTRY: Final = 2
SV_TIME_POSITION: Final = 3
SV_LAST_CONTACT: Final = 4
SV_LONGITUDE: Final = 5
SV_LATITUDE: Final = 6
SV_BARO_ALTITUDE: Final = 7
SV_ON_GROUND: Final = 8
SV_VELOCITY: Final = 9
SV_TRUE_TRACK: Final = 10
SV_VERTICAL_RATE: Final = 11
SV_GEO_ALTITUDE: Final = 13
SV_MIN_LEN: Final = 9  # enough to carry position and the ground flag


# ── Field helpers ────────────────────────────────────────────────────────
def _float(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _text(value: Any) -> str | None:
    if not isinstance(value, str):
        return None
    value = value.strip()
    return value or None


def _first(*values: Any) -> str | None:
    for value in values:
        text = _text(value)
        if text:
            return text
    return None


def _icao24(value: Any) -> str | None:
    text = _text(value)
    return text.lower() if text else None


def _epoch(value: Any) -> int | None:
    """Unix seconds from an int/float or an ISO-8601 string."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return int(value)
    if isinstance(value, str) and value.strip():
        try:
            return int(dateparser.isoparse(value.strip()).timestamp())
        except (ValueError, OverflowError):
            return None
    return None


# ── Provider mappings ────────────────────────────────────────────────────
def _from_opensky(row: Any) -> CanonicalFlight | None:
    if not isinstance(row, (list, tuple)) or len(row) < SV_MIN_LEN:
        return None

    lat = _float(row[SV_LATITUDE])
    lon = _float(row[SV_LONGITUDE])
    if lat is None or lon is None:
        return None

    def at(idx: int) -> Any:
        return row[idx] if len(row) > idx else None

    callsign = _text(row[SV_CALLSIGN])
    return CanonicalFlight(
        icao24=_icao24(row[SV_ICAO24]),
        callsign=callsign or "Unknown",
        latitude=lat,
        longitude=lon,
        baro_altitude=_float(row[SV_BARO_ALTITUDE]),
        geo_altitude=_float(at(SV_GEO_ALTITUDE)),
        velocity=_float(at(SV_VELOCITY)),
        true_track=_float(at(SV_TRUE_TRACK)),
        vertical_rate=_float(at(SV_VERTICAL_RATE)),
        on_ground=bool(row[SV_ON_GROUND]),
        origin_country=_text(row[SV_ORIGIN_COUNTRY]) or "Unknown",
        airline=airline_from_callsign(callsign),
        last_contact=_epoch(row[SV_LAST_CONTACT]) or _epoch(row[SV_TIME_POSITION]),
        provider=Provider.OPENSKY,
    )


def _from_airlabs(obj: Any) -> CanonicalFlight | None:
    if not isinstance(obj, Mapping):
        return None

    lat = _float(obj.get("lat"))
    lon = _float(obj.get("lng"))
    if lat is None or lon is None:
        return None

    alt = _float(obj.get("alt"))
    return CanonicalFlight(
        icao24=_icao24(obj.get("hex")),
        callsign=_first(obj.get("flight_icao"), obj.get("flight_iata")) or "Unknown",
        latitude=lat,
        longitude=lon,
        baro_altitude=alt,
        geo_altitude=alt,
        velocity=_float(obj.get("speed")),
        true_track=_float(obj.get("dir")),
        vertical_rate=_float(obj.get("v_speed")),
        # AirLabs only reports a status string; anything but en-route is parked.
        on_ground=obj.get("status") != "en-route",
        origin_country=_text(obj.get("flag")) or "Unknown",
        registration=_text(obj.get("reg_number")),
        airline=resolve_airline(_first(obj.get("airline_icao"), obj.get("airline_iata"))),
        departure=_first(obj.get("dep_iata"), obj.get("dep_icao")),
        arrival=_first(obj.get("arr_iata"), obj.get("arr_icao")),
        aircraft_type=_text(obj.get("aircraft_icao")),
        last_contact=_epoch(obj.get("updated")) or int(time.time()),
        provider=Provider.AIRLABS,
    )


def _from_aviationstack(obj: Any) -> CanonicalFlight | None:
    if not isinstance(obj, Mapping):
        return None

    live = obj.get("live")
    if not isinstance(live, Mapping):
        return None

    lat = _float(live.get("latitude"))
    lon = _float(live.get("longitude"))
    if lat is None or lon is None:
        return None

    def section(name: str) -> Mapping[str, Any]:
        value = obj.get(name)
        return value if isinstance(value, Mapping) else {}

    flight, airline = section("flight"), section("airline")
    aircraft = section("aircraft")
    departure, arrival = section("departure"), section("arrival")

    alt = _float(live.get("altitude"))
    return CanonicalFlight(
        icao24=_icao24(aircraft.get("icao24")),
        callsign=_first(flight.get("icao"), flight.get("iata")) or "Unknown",
        latitude=lat,
        longitude=lon,
        baro_altitude=alt,
        geo_altitude=alt,
        velocity=_float(live.get("speed_horizontal")),
        true_track=_float(live.get("direction")),
        vertical_rate=_float(live.get("speed_vertical")),
        on_ground=bool(live.get("is_ground")),
        registration=_text(aircraft.get("registration")),
        airline=_text(airline.get("name"))
        or resolve_airline(_first(airline.get("icao"), airline.get("iata"))),
        departure=_first(departure.get("iata"), departure.get("icao")),
        arrival=_first(arrival.get("iata"), arrival.get("icao")),
        aircraft_type=_first(aircraft.get("icao"), aircraft.get("iata")),
        last_contact=_epoch(live.get("updated")),
        provider=Provider.AVIATIONSTACK,
    )


NORMALIZERS: Final[dict[Provider, Callable[[Any], CanonicalFlight | None]]] = {
    Provider.OPENSKY: _from_opensky,
    Provider.AIRLABS: _from_airlabs,
    Provider.AVIATIONSTACK: _from_aviationstack,
}


# ── Public helper ────────────────────────────────────────────────────────
def normalize(
    raw: RawStateRecord, origin: GeoPoint | None = None
) -> CanonicalFlight | None:
    """
    Return the canonical flight for *raw*, or None when it has no position.

    When *origin* is given, ``distance_km`` is filled in (full precision).
    """
    mapper = NORMALIZERS.get(raw.provider)
    if mapper is None:
        LOG.warning("No normalizer registered for provider %r", raw.provider)
        return None

    flight = mapper(raw.payload)
    if flight is not None and origin is not None:
        flight.distance_km = distance_km(
            origin, GeoPoint(flight.latitude, flight.longitude)
        )
    return flight
