"""
track_service.py
~~~~~~~~~~~~~~~~
Historical track for one aircraft (OpenSky ``/tracks/all``) and the altitude
profile derived from it.

Public helpers
--------------
    OpenSkyTracks(client).fetch_track(icao24) -> TrackRecord
    altitude_profile(track) ->
        {
            "points": [{"time": int, "altitude_m": float}, ...],
            "min_altitude_m": float | None,
            "max_altitude_m": float | None,
        }
"""

from __future__ import annotations

import abc
import logging
from typing import Any, Final

import httpx

from .api_logging import fetch_json
from .errors import UpstreamError
from .models import AltitudePoint, TrackRecord, TrackSample

LOG = logging.getLogger("track_service")

OPENSKY_TRACKS_URL: Final = "https://opensky-network.org/api/tracks/all"


class TrackProvider(abc.ABC):
    @abc.abstractmethod
    async def fetch_track(self, icao24: str) -> TrackRecord:
        """Track samples for *icao24*, oldest first as delivered upstream."""


def _num(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def parse_track(data: Any, icao24: str) -> TrackRecord:
    """Turn an OpenSky track payload into a :class:`TrackRecord`."""
    if not isinstance(data, dict):
        raise UpstreamError("opensky-tracks", "OpenSky returned an unexpected track payload")

    samples: list[TrackSample] = []
    for waypoint in data.get("path") or []:
        # [time, latitude, longitude, baro_altitude, true_track, on_ground]
        if not isinstance(waypoint, (list, tuple)) or len(waypoint) < 6:
            continue
        if waypoint[0] is None:
            continue
        samples.append(
            TrackSample(
                time=int(waypoint[0]),
                latitude=_num(waypoint[1]),
                longitude=_num(waypoint[2]),
                baro_altitude=_num(waypoint[3]),
                true_track=_num(waypoint[4]),
                on_ground=bool(waypoint[5]),
            )
        )

    callsign = data.get("callsign")
    return TrackRecord(
        icao24=(data.get("icao24") or icao24).lower(),
        callsign=callsign.strip() if isinstance(callsign, str) and callsign.strip() else None,
        start_time=data.get("startTime"),
        end_time=data.get("endTime"),
        path=samples,
    )


class OpenSkyTracks(TrackProvider):
    def __init__(self, client: httpx.AsyncClient) -> None:
        self._client = client

    async def fetch_track(self, icao24: str) -> TrackRecord:
        """
        Raises:
            NotFoundError: OpenSky has no live track for this aircraft (404).
            UpstreamError: any other failure.
        """
        icao24 = icao24.strip().lower()
        data = await fetch_json(
            self._client,
            OPENSKY_TRACKS_URL,
            provider="opensky-tracks",
            params={"icao24": icao24, "time": 0},
        )
        track = parse_track(data, icao24)
        LOG.debug("Track %s: %d samples", icao24, len(track.path))
        return track


def altitude_profile(track: TrackRecord) -> dict[str, Any]:
    """Baro altitude over time, samples without altitude dropped."""
    points = [
        AltitudePoint(s.time, s.baro_altitude)
        for s in track.path
        if s.baro_altitude is not None
    ]
    altitudes = [p.altitude_m for p in points]
    return {
        "points": [{"time": p.time, "altitude_m": p.altitude_m} for p in points],
        "min_altitude_m": min(altitudes) if altitudes else None,
        "max_altitude_m": max(altitudes) if altitudes else None,
    }
