import math

import pytest

from geo.bearing import bearing
from geo.distance import haversine_km, planar_distance_deg
from geo.types import GeoPoint


def test_bearing_cardinal_directions():
    origin = GeoPoint(lat=0.0, lng=0.0)
    assert bearing(origin, GeoPoint(lat=1.0, lng=0.0)) == pytest.approx(0.0, abs=1e-9)
    assert bearing(origin, GeoPoint(lat=0.0, lng=1.0)) == pytest.approx(90.0)
    assert bearing(origin, GeoPoint(lat=-1.0, lng=0.0)) == pytest.approx(180.0)
    assert bearing(origin, GeoPoint(lat=0.0, lng=-1.0)) == pytest.approx(270.0)


def test_bearing_identical_points_is_north():
    p = GeoPoint(lat=12.34, lng=56.78)
    assert bearing(p, p) == 0.0


@pytest.mark.parametrize(
    "a,b",
    [
        ((12.97, 77.59), (19.07, 72.87)),
        ((-33.0, 151.0), (-33.0, 150.999999)),
        ((89.9, 0.0), (89.9, 179.0)),
        ((10.0, 179.9), (10.0, -179.9)),
        ((0.0, 0.0), (1e-12, -1e-12)),
    ],
)
def test_bearing_is_always_in_range(a, b):
    deg = bearing(GeoPoint(lat=a[0], lng=a[1]), GeoPoint(lat=b[0], lng=b[1]))
    assert 0.0 <= deg < 360.0
    assert not math.isnan(deg)


def test_haversine_matches_known_distance():
    blr = GeoPoint(lat=12.9716, lng=77.5946)
    bom = GeoPoint(lat=19.0760, lng=72.8777)
    km = haversine_km(blr, bom)
    assert 835.0 < km < 855.0
    assert haversine_km(bom, blr) == pytest.approx(km)


def test_haversine_quarter_meridian():
    km = haversine_km(GeoPoint(lat=0.0, lng=0.0), GeoPoint(lat=90.0, lng=0.0))
    assert km == pytest.approx(math.pi * 6371.0 / 2.0, rel=1e-6)


def test_haversine_zero_for_same_point():
    p = GeoPoint(lat=50.0, lng=14.0)
    assert haversine_km(p, p) == 0.0


def test_planar_distance_is_in_degrees():
    assert planar_distance_deg(GeoPoint(lat=0.0, lng=0.0), GeoPoint(lat=3.0, lng=4.0)) == 5.0
