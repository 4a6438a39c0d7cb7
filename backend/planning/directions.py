from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Protocol

import httpx

from geo.types import GeoPoint

logger = logging.getLogger(__name__)

MAPBOX_DIRECTIONS_URL = "https://api.mapbox.com/directions/v5/mapbox/driving"


class DirectionsError(RuntimeError):
    pass


@dataclass(frozen=True)
class DirectionsResult:
    duration_s: float
    path: list[GeoPoint] = field(default_factory=list)

    def coords(self) -> list[tuple[float, float]]:
        return [p.lnglat() for p in self.path]


class DirectionsService(Protocol):
    """
    Optional driving-directions provider.

    Callers must treat any failure as "no directions" and fall back to estimates.
    """

    async def directions(
        self, origin: GeoPoint, destination: GeoPoint
    ) -> DirectionsResult: ...


@dataclass
class MapboxDirectionsClient:
    access_token: str
    base_url: str = MAPBOX_DIRECTIONS_URL
    timeout_s: float = 5.0
    transport: httpx.AsyncBaseTransport | None = field(default=None, repr=False)

    async def directions(
        self, origin: GeoPoint, destination: GeoPoint
    ) -> DirectionsResult:
        url = f"{self.base_url}/{origin.lng},{origin.lat};{destination.lng},{destination.lat}"
        params = {"geometries": "geojson", "access_token": self.access_token}

        async with httpx.AsyncClient(
            timeout=self.timeout_s, transport=self.transport
        ) as client:
            response = await client.get(url, params=params)
            response.raise_for_status()
            try:
                data = response.json()
            except ValueError as e:
                raise DirectionsError("Directions response is not JSON") from e

        return parse_directions(data)


def parse_directions(data: Any) -> DirectionsResult:
    """
    Parse a directions response. Any malformed payload raises `DirectionsError`.
    """
    if not isinstance(data, dict):
        raise DirectionsError(f"Directions response is not an object: {type(data).__name__}")
    routes = data.get("routes") or []
    if not isinstance(routes, list) or not routes:
        raise DirectionsError(f"No driving route found ({data.get('code') or 'unknown'})")
    first = routes[0]
    if not isinstance(first, dict):
        raise DirectionsError(f"Malformed driving route: {type(first).__name__}")

    try:
        path = _parse_path(first.get("geometry"))
        duration_s = _parse_duration(first.get("duration"))
    except (TypeError, ValueError, AttributeError, IndexError) as e:
        raise DirectionsError(f"Malformed driving route: {e}") from e

    logger.debug("Parsed driving route: %d vertices, %.0fs", len(path), duration_s)
    return DirectionsResult(duration_s=duration_s, path=path)


def _parse_path(geometry: Any) -> list[GeoPoint]:
    coords = ((geometry or {}).get("coordinates")) or []
    path: list[GeoPoint] = []
    for c in coords:
        if len(c) < 2:
            continue
        path.append(GeoPoint(lat=float(c[1]), lng=float(c[0])))
    return path


def _parse_duration(raw: Any) -> float:
    if raw is None:
        raise DirectionsError("Driving route is missing a duration")
    duration_s = float(raw)
    if not math.isfinite(duration_s) or duration_s < 0:
        raise DirectionsError(f"Invalid driving duration: {raw!r}")
    return duration_s
