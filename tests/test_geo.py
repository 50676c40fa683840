"""
tests/test_geo.py
~~~~~~~~~~~~~~~~~
Haversine distance, coordinate validation and the search bounding box.
"""

from __future__ import annotations

import math

import pytest

from planefinder.errors import ValidationError
from planefinder.geo import R_EARTH_KM, bounding_box, distance_km, in_box, parse_point
from planefinder.models import GeoPoint

NYC = GeoPoint(40.7128, -74.0060)


def _destination(start: GeoPoint, bearing_deg: float, dist_km: float) -> GeoPoint:
    """Point reached travelling *dist_km* from *start* on *bearing_deg*."""
    δ = dist_km / R_EARTH_KM
    θ = math.radians(bearing_deg)
    φ1 = math.radians(start.latitude)
    λ1 = math.radians(start.longitude)
    φ2 = math.asin(math.sin(φ1) * math.cos(δ) + math.cos(φ1) * math.sin(δ) * math.cos(θ))
    λ2 = λ1 + math.atan2(
        math.sin(θ) * math.sin(δ) * math.cos(φ1),
        math.cos(δ) - math.sin(φ1) * math.sin(φ2),
    )
    lon = (math.degrees(λ2) + 540.0) % 360.0 - 180.0
    return GeoPoint(math.degrees(φ2), lon)


# ------------------------------------------------------------------ #
# distance_km
# ------------------------------------------------------------------ #
def test_distance_to_self_is_zero() -> None:
    assert distance_km(NYC, NYC) == 0.0


def test_distance_is_symmetric() -> None:
    london = GeoPoint(51.5074, -0.1278)
    assert distance_km(NYC, london) == pytest.approx(distance_km(london, NYC))


def test_distance_known_values() -> None:
    # ~0.9 km across lower Manhattan, ~79 km down to central New Jersey
    assert distance_km(NYC, GeoPoint(40.72, -74.01)) == pytest.approx(0.87, abs=0.05)
    assert distance_km(NYC, GeoPoint(40.0, -74.0)) == pytest.approx(79.2, abs=0.5)


def test_distance_is_additive_along_a_meridian() -> None:
    a, b, c = GeoPoint(0.0, 10.0), GeoPoint(10.0, 10.0), GeoPoint(20.0, 10.0)
    assert distance_km(a, c) == pytest.approx(distance_km(a, b) + distance_km(b, c))


def test_antipodes_do_not_blow_up() -> None:
    d = distance_km(GeoPoint(0.0, 0.0), GeoPoint(0.0, 180.0))
    assert d == pytest.approx(math.pi * R_EARTH_KM)


# ------------------------------------------------------------------ #
# parse_point
# ------------------------------------------------------------------ #
def test_parse_point_accepts_strings() -> None:
    assert parse_point("40.7128", "-74.0060") == NYC


@pytest.mark.parametrize(
    "lat, lon",
    [
        (None, "1"),
        ("1", None),
        ("", ""),
        ("abc", "1"),
        ("nan", "1"),
        ("1", "inf"),
        ("90.5", "0"),
        ("0", "-180.1"),
    ],
)
def test_parse_point_rejects_bad_input(lat: str | None, lon: str | None) -> None:
    with pytest.raises(ValidationError) as info:
        parse_point(lat, lon)
    assert info.value.status_code == 400


def test_parse_point_boundaries_are_valid() -> None:
    assert parse_point(90, 180) == GeoPoint(90.0, 180.0)
    assert parse_point(-90, -180) == GeoPoint(-90.0, -180.0)


# ------------------------------------------------------------------ #
# bounding_box
# ------------------------------------------------------------------ #
@pytest.mark.parametrize(
    "center, radius",
    [
        (NYC, 150.0),
        (GeoPoint(0.0, 0.0), 600.0),
        (GeoPoint(65.0, 25.0), 2_400.0),
        (GeoPoint(-33.9, 151.2), 600.0),
        (GeoPoint(88.0, 10.0), 600.0),  # cap reaches the pole
        (GeoPoint(10.0, 179.5), 150.0),  # straddles the antimeridian
    ],
)
def test_bounding_box_contains_the_whole_cap(center: GeoPoint, radius: float) -> None:
    box = bounding_box(center, radius)
    for bearing in range(0, 360, 5):
        edge = _destination(center, float(bearing), radius * 0.999)
        assert in_box(edge, box), (bearing, edge, box)


def test_bounding_box_is_tight_in_latitude() -> None:
    lamin, _, lamax, _ = bounding_box(GeoPoint(0.0, 0.0), 111.195)
    assert lamin == pytest.approx(-1.0, abs=1e-3)
    assert lamax == pytest.approx(1.0, abs=1e-3)


def test_bounding_box_over_pole_spans_all_longitudes() -> None:
    _, lomin, lamax, lomax = bounding_box(GeoPoint(89.0, 0.0), 300.0)
    assert (lomin, lomax) == (-180.0, 180.0)
    assert lamax == 90.0
