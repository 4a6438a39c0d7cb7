from __future__ import annotations

import math
from functools import lru_cache

from pyproj import Geod

from geo.types import GeoPoint

EARTH_RADIUS_KM = 6371.0


@lru_cache(maxsize=1)
def sphere_geod() -> Geod:
    # Spherical earth, so distances match the classic haversine formula.
    r_m = EARTH_RADIUS_KM * 1000.0
    return Geod(a=r_m, b=r_m)


def haversine_km(a: GeoPoint, b: GeoPoint) -> float:
    """
    Great-circle distance in kilometres on a 6371 km sphere.
    """
    if a.lat == b.lat and a.lng == b.lng:
        return 0.0
    _fwd, _back, dist_m = sphere_geod().inv(a.lng, a.lat, b.lng, b.lat)
    return float(dist_m) / 1000.0


def planar_distance_deg(a: GeoPoint, b: GeoPoint) -> float:
    """
    Euclidean distance in raw degree space.

    Not a physical distance; only used to size the visual arc of a flight path.
    """
    return math.hypot(b.lng - a.lng, b.lat - a.lat)
