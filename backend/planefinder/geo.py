"""
geo.py
~~~~~~
Spherical helpers: great-circle distance, query-point validation and the
search box used to pre-filter live-state queries.
"""

from __future__ import annotations

import math
from typing import Any, Final

from .errors import ValidationError
from .models import GeoPoint

R_EARTH_KM: Final = 6_371.0

BBox = tuple[float, float, float, float]  # (lamin, lomin, lamax, lomax)


def distance_km(a: GeoPoint, b: GeoPoint) -> float:
    """Great‑circle distance (km) between *a* and *b* (haversine, unrounded)."""

    φ1, φ2 = map(math.radians, (a.latitude, b.latitude))
    dφ = math.radians(b.latitude - a.latitude)
    dλ = math.radians(b.longitude - a.longitude)
    h = math.sin(dφ / 2) ** 2 + math.cos(φ1) * math.cos(φ2) * math.sin(dλ / 2) ** 2
    return 2 * R_EARTH_KM * math.asin(min(1.0, math.sqrt(h)))


def _coerce(value: Any, name: str) -> float:
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValidationError("Latitude and longitude are required")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid {name}", details=f"{value!r} is not a number")
    if not math.isfinite(number):
        raise ValidationError(f"Invalid {name}", details=f"{value!r} is not finite")
    return number


def parse_point(lat: Any, lon: Any) -> GeoPoint:
    """
    Build a :class:`GeoPoint` from user input.

    Raises:
        ValidationError: missing, non-numeric or out-of-range coordinates.
    """
    latitude = _coerce(lat, "latitude")
    longitude = _coerce(lon, "longitude")
    if not -90.0 <= latitude <= 90.0:
        raise ValidationError("Invalid latitude", details="must be within [-90, 90]")
    if not -180.0 <= longitude <= 180.0:
        raise ValidationError("Invalid longitude", details="must be within [-180, 180]")
    return GeoPoint(latitude, longitude)


def bounding_box(center: GeoPoint, radius_km: float) -> BBox:
    """
    Smallest lat/lon box containing every point within *radius_km* of *center*.

    Uses the exact longitude extent of a spherical cap.  When the cap covers
    a pole, or the box would cross the antimeridian, the full longitude span
    is returned so the box stays a superset of the cap.
    """
    δ = radius_km / R_EARTH_KM
    δ_deg = math.degrees(δ)
    lamin = center.latitude - δ_deg
    lamax = center.latitude + δ_deg

    if lamax >= 90.0 or lamin <= -90.0:
        return (max(lamin, -90.0), -180.0, min(lamax, 90.0), 180.0)

    φ = math.radians(center.latitude)
    dλ = math.degrees(math.asin(min(1.0, math.sin(δ) / math.cos(φ))))
    lomin = center.longitude - dλ
    lomax = center.longitude + dλ
    if lomin < -180.0 or lomax > 180.0:
        lomin, lomax = -180.0, 180.0
    return (lamin, lomin, lamax, lomax)


def in_box(point: GeoPoint, box: BBox) -> bool:
    lamin, lomin, lamax, lomax = box
    return lamin <= point.latitude <= lamax and lomin <= point.longitude <= lomax
