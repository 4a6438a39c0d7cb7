from __future__ import annotations

import hashlib
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Any, Literal

from geo.types import NamedPoint

RouteOrder = Literal["recent", "popular"]


@dataclass(frozen=True)
class Route:
    """
    A published flight between two named endpoints.

    Routes are immutable once fetched; a refetch supersedes the whole set.
    """

    id: str
    origin: NamedPoint
    destination: NamedPoint
    created_at: datetime
    duration_minutes: int
    popularity: int = 0

    @property
    def key(self) -> str:
        return route_key(self)

    def with_popularity(self, popularity: int) -> "Route":
        return replace(self, popularity=int(popularity))

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "key": self.key,
            "from": _point_dict(self.origin),
            "to": _point_dict(self.destination),
            "createdAt": self.created_at.isoformat(),
            "durationMinutes": self.duration_minutes,
            "popularity": self.popularity,
        }


def route_key(route: Route) -> str:
    """
    Stable overlay key derived from content, not from the route's position in a fetch.

    Ordered endpoint pair (rounded to ~0.1m) + creation time.
    """
    o = route.origin
    d = route.destination
    created = _as_utc(route.created_at).isoformat()
    raw = f"{o.lat:.6f},{o.lng:.6f}>{d.lat:.6f},{d.lng:.6f}@{created}"
    return hashlib.sha1(raw.encode("utf-8")).hexdigest()[:16]


def _as_utc(ts: datetime) -> datetime:
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)


def _point_dict(p: NamedPoint) -> dict[str, Any]:
    return {"name": p.name, "lat": p.lat, "lng": p.lng}
