from __future__ import annotations

from datetime import datetime, timedelta, timezone

from geo.types import NamedPoint
from planning.timing import flying_minutes
from routes.types import Route

# A few short hops around Indian metros, handy for a local demo map.
_DEMO_HOPS: list[tuple[str, NamedPoint, NamedPoint, int]] = [
    (
        "demo-blr-airport",
        NamedPoint(lat=12.9716, lng=77.5946, name="MG Road, Bengaluru, Karnataka"),
        NamedPoint(lat=13.1986, lng=77.7066, name="Kempegowda Airport, Bengaluru"),
        3,
    ),
    (
        "demo-bom-pune",
        NamedPoint(lat=19.0760, lng=72.8777, name="Mumbai, Maharashtra"),
        NamedPoint(lat=18.5204, lng=73.8567, name="Pune, Maharashtra"),
        1,
    ),
    (
        "demo-del-gurgaon",
        NamedPoint(lat=28.6139, lng=77.2090, name="Connaught Place, New Delhi"),
        NamedPoint(lat=28.4595, lng=77.0266, name="Gurugram, Haryana"),
        0,
    ),
    (
        "demo-maa-pondy",
        NamedPoint(lat=13.0827, lng=80.2707, name="Chennai, Tamil Nadu"),
        NamedPoint(lat=11.9416, lng=79.8083, name="Puducherry"),
        0,
    ),
]


def demo_routes(now: datetime | None = None) -> list[Route]:
    base = now or datetime.now(timezone.utc)
    out: list[Route] = []
    for i, (rid, origin, destination, popularity) in enumerate(_DEMO_HOPS):
        out.append(
            Route(
                id=rid,
                origin=origin,
                destination=destination,
                created_at=base - timedelta(minutes=5 * (i + 1)),
                duration_minutes=flying_minutes(origin, destination),
                popularity=popularity,
            )
        )
    return out
