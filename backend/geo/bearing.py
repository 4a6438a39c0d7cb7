from __future__ import annotations

import math

from geo.types import GeoPoint


def bearing(p1: GeoPoint, p2: GeoPoint) -> float:
    """
    Initial compass bearing from p1 towards p2, in degrees [0, 360).

    Identical points have no direction; we define that case as 0 (north).
    """
    if p1.lat == p2.lat and p1.lng == p2.lng:
        return 0.0

    phi1 = math.radians(p1.lat)
    phi2 = math.radians(p2.lat)
    d_lambda = math.radians(p2.lng - p1.lng)

    y = math.sin(d_lambda) * math.cos(phi2)
    x = math.cos(phi1) * math.sin(phi2) - math.sin(phi1) * math.cos(phi2) * math.cos(
        d_lambda
    )
    deg = (math.degrees(math.atan2(y, x)) + 360.0) % 360.0
    # -1e-17 + 360 rounds to 360.0 exactly.
    return 0.0 if deg >= 360.0 else deg
