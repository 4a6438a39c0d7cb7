from __future__ import annotations

import math
from dataclasses import dataclass


@dataclass(frozen=True)
class GeoPoint:
    """
    WGS84 point in degrees.

    Convention used throughout this repo:
    - fields are (lat, lng), but anything handed to the render surface or GeoJSON
      is ordered (lng, lat).
    """

    lat: float
    lng: float

    def __post_init__(self) -> None:
        lat = float(self.lat)
        lng = float(self.lng)
        if not (math.isfinite(lat) and math.isfinite(lng)):
            raise ValueError(f"Non-finite coordinate: lat={self.lat!r}, lng={self.lng!r}")
        if not -90.0 <= lat <= 90.0:
            raise ValueError(f"Latitude out of range [-90, 90]: {lat}")
        if not -180.0 <= lng <= 180.0:
            raise ValueError(f"Longitude out of range [-180, 180]: {lng}")
        object.__setattr__(self, "lat", lat)
        object.__setattr__(self, "lng", lng)

    def lnglat(self) -> tuple[float, float]:
        return (self.lng, self.lat)

    def as_point(self) -> "GeoPoint":
        return GeoPoint(lat=self.lat, lng=self.lng)


@dataclass(frozen=True)
class NamedPoint(GeoPoint):
    name: str = ""

    @property
    def short_name(self) -> str:
        # "Kempegowda Airport, Bengaluru, Karnataka" -> "Kempegowda Airport"
        return (self.name or "").split(",", 1)[0].strip()
