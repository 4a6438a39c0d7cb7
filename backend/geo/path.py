from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from shapely.geometry import LineString, mapping

from geo.distance import planar_distance_deg
from geo.types import GeoPoint

CURVE_HEIGHT_FACTOR = 0.15
SAMPLE_STEPS = 100  # dt = 0.01
ENDPOINT_DENSE_BELOW = 0.1
ENDPOINT_DENSE_ABOVE = 0.9
CLOSURE_REPEATS = 3


class PathMode(str, Enum):
    quadratic = "quadratic"
    cubic = "cubic"


@dataclass(frozen=True)
class PathSegment:
    """
    Sampled flight arc between two points.

    `points[0]` and `points[-1]` are always the exact endpoints (not the result of
    evaluating the curve), so consumers can rely on precise closure.
    """

    points: tuple[GeoPoint, ...]
    mode: PathMode

    def __len__(self) -> int:
        return len(self.points)

    def __getitem__(self, i: int) -> GeoPoint:
        return self.points[i]

    @property
    def first(self) -> GeoPoint:
        return self.points[0]

    @property
    def last(self) -> GeoPoint:
        return self.points[-1]

    @property
    def is_degenerate(self) -> bool:
        return self.first == self.last

    def coords(self) -> list[tuple[float, float]]:
        return [p.lnglat() for p in self.points]

    def to_geojson(self) -> dict[str, Any]:
        return {
            "type": "Feature",
            "properties": {"mode": self.mode.value},
            "geometry": mapping(LineString(self.coords())),
        }


def curve_height(start: GeoPoint, end: GeoPoint) -> float:
    return planar_distance_deg(start, end) * CURVE_HEIGHT_FACTOR


def control_point(start: GeoPoint, end: GeoPoint) -> tuple[float, float]:
    """
    (lng, lat) of the arc control point: the midpoint lifted north by the curve height.

    Returned as a raw tuple because the lifted latitude can exceed 90 near the poles.
    """
    mid_lng = (start.lng + end.lng) / 2.0
    mid_lat = (start.lat + end.lat) / 2.0
    return (mid_lng, mid_lat + curve_height(start, end))


def quadratic_point(start: GeoPoint, end: GeoPoint, t: float) -> GeoPoint:
    """
    Position at parameter t on the quadratic arc used for the active route.
    """
    t = min(1.0, max(0.0, float(t)))
    if t == 0.0:
        return start.as_point()
    if t == 1.0:
        return end.as_point()
    c_lng, c_lat = control_point(start, end)
    u = 1.0 - t
    lng = u * u * start.lng + 2.0 * u * t * c_lng + t * t * end.lng
    lat = u * u * start.lat + 2.0 * u * t * c_lat + t * t * end.lat
    return GeoPoint(lat=_clamp_lat(lat), lng=lng)


def cubic_point(start: GeoPoint, end: GeoPoint, t: float) -> GeoPoint:
    """
    Position at parameter t on the cubic arc (both inner control points coincide).
    """
    t = min(1.0, max(0.0, float(t)))
    if t == 0.0:
        return start.as_point()
    if t == 1.0:
        return end.as_point()
    c_lng, c_lat = control_point(start, end)
    u = 1.0 - t
    w_ctrl = 3.0 * u * u * t + 3.0 * u * t * t
    lng = u**3 * start.lng + w_ctrl * c_lng + t**3 * end.lng
    lat = u**3 * start.lat + w_ctrl * c_lat + t**3 * end.lat
    return GeoPoint(lat=_clamp_lat(lat), lng=lng)


def generate_path(
    start: GeoPoint, end: GeoPoint, mode: PathMode = PathMode.quadratic
) -> PathSegment:
    mode = PathMode(mode)
    a = start.as_point()
    b = end.as_point()
    if a == b:
        return PathSegment(points=(a, b), mode=mode)

    if mode is PathMode.quadratic:
        pts = [quadratic_point(a, b, i / SAMPLE_STEPS) for i in range(SAMPLE_STEPS + 1)]
        pts[0] = a
        pts[-1] = b
        return PathSegment(points=tuple(pts), mode=mode)

    # Cubic: extra samples near both ends plus a repeated destination, so the
    # surface's line smoothing cannot pull the tips away from the endpoints.
    pts = [a]
    for i in range(SAMPLE_STEPS + 1):
        t = i / SAMPLE_STEPS
        p = cubic_point(a, b, t)
        pts.append(p)
        if t < ENDPOINT_DENSE_BELOW or t > ENDPOINT_DENSE_ABOVE:
            pts.append(p)
    pts.extend([b] * CLOSURE_REPEATS)
    return PathSegment(points=tuple(pts), mode=mode)


def _clamp_lat(lat: float) -> float:
    return max(-90.0, min(90.0, lat))
