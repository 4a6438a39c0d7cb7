from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from geo.path import PathMode, PathSegment, generate_path
from geo.types import GeoPoint, NamedPoint
from planning.directions import DirectionsService
from planning.timing import (
    TimeComparison,
    compare_from_directions,
    fetch_directions,
)
from routes.types import Route


@dataclass(frozen=True)
class RoutePlan:
    route: Route
    path: PathSegment
    times: TimeComparison
    driving_path: list[GeoPoint] | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "route": self.route.to_dict(),
            "path": self.path.coords(),
            "times": self.times.to_dict(),
            "drivingPath": [p.lnglat() for p in self.driving_path]
            if self.driving_path
            else None,
        }


def new_route_id() -> str:
    return str(uuid.uuid4())


async def plan_route(
    origin: NamedPoint,
    destination: NamedPoint,
    *,
    directions: DirectionsService | None = None,
    now: datetime | None = None,
) -> RoutePlan:
    """
    Build the active-route selection for an origin/destination pair.

    One directions call feeds both the driving polyline and the driving time;
    when it is unavailable the plan still succeeds with an estimate and no polyline.
    """
    result = await fetch_directions(origin, destination, directions)
    times = compare_from_directions(origin, destination, result)
    route = Route(
        id=new_route_id(),
        origin=origin,
        destination=destination,
        created_at=now or datetime.now(timezone.utc),
        duration_minutes=times.flying_minutes,
        popularity=0,
    )
    driving_path = list(result.path) if result is not None and len(result.path) >= 2 else None
    return RoutePlan(
        route=route,
        path=generate_path(origin, destination, PathMode.quadratic),
        times=times,
        driving_path=driving_path,
    )

