from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any, Literal

import httpx

from geo.distance import haversine_km
from geo.types import GeoPoint
from planning.directions import DirectionsError, DirectionsResult, DirectionsService

logger = logging.getLogger(__name__)

EVTOL_SPEED_KMH = 250.0
CAR_SPEED_KMH = 60.0

DrivingSource = Literal["directions", "estimate"]


@dataclass(frozen=True)
class TimeComparison:
    """
    Flying vs. driving minutes for one origin/destination pair.

    `minutes_saved` is not clamped: it goes negative when driving
    would be faster.
    """

    flying_minutes: int
    driving_minutes: int
    minutes_saved: int
    driving_source: DrivingSource = "estimate"

    def to_dict(self) -> dict[str, Any]:
        return {
            "flyingMinutes": self.flying_minutes,
            "drivingMinutes": self.driving_minutes,
            "minutesSaved": self.minutes_saved,
            "drivingSource": self.driving_source,
        }


def round_minutes(minutes: float) -> int:
    # Halves round up (2.5 -> 3), not to the nearest even number.
    return int(math.floor(minutes + 0.5))


def _minutes_at(distance_km: float, speed_kmh: float) -> int:
    return round_minutes(distance_km / speed_kmh * 60.0)


def flying_minutes(origin: GeoPoint, destination: GeoPoint) -> int:
    return _minutes_at(haversine_km(origin, destination), EVTOL_SPEED_KMH)


def estimated_driving_minutes(origin: GeoPoint, destination: GeoPoint) -> int:
    return _minutes_at(haversine_km(origin, destination), CAR_SPEED_KMH)


def build_comparison(
    flying: int, driving: int, source: DrivingSource = "estimate"
) -> TimeComparison:
    return TimeComparison(
        flying_minutes=int(flying),
        driving_minutes=int(driving),
        minutes_saved=int(driving) - int(flying),
        driving_source=source,
    )


async def fetch_directions(
    origin: GeoPoint,
    destination: GeoPoint,
    directions: DirectionsService | None,
) -> DirectionsResult | None:
    """
    Ask the directions service, degrading to None on any service failure.
    """
    if directions is None:
        return None
    try:
        return await directions.directions(origin, destination)
    except (DirectionsError, httpx.HTTPError) as e:
        logger.warning("Directions lookup failed, using estimate: %s", e)
        return None


def compare_from_directions(
    origin: GeoPoint,
    destination: GeoPoint,
    result: DirectionsResult | None,
) -> TimeComparison:
    flying = flying_minutes(origin, destination)
    if result is None:
        return build_comparison(flying, estimated_driving_minutes(origin, destination))
    return build_comparison(flying, round_minutes(result.duration_s / 60.0), "directions")


async def compare_times(
    origin: GeoPoint,
    destination: GeoPoint,
    directions: DirectionsService | None = None,
) -> TimeComparison:
    result = await fetch_directions(origin, destination, directions)
    return compare_from_directions(origin, destination, result)
