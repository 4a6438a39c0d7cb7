from __future__ import annotations

from typing import Any

from planning.timing import estimated_driving_minutes
from routes.store import RoutesStore
from routes.types import Route

PUBLIC_WALL_LIMIT = 4
LEADERBOARD_LIMIT = 3


def public_wall(store: RoutesStore, *, limit: int = PUBLIC_WALL_LIMIT) -> list[dict[str, Any]]:
    """
    Most recent routes with the minutes each one saves over driving.

    Flying time is the stored duration; driving time is the straight-line estimate.
    Savings are not clamped (same policy as `TimeComparison`).
    """
    out: list[dict[str, Any]] = []
    for route in store.list_routes(order_by="recent", limit=limit):
        driving = estimated_driving_minutes(route.origin, route.destination)
        item = route.to_dict()
        item["fromLabel"] = route.origin.short_name
        item["toLabel"] = route.destination.short_name
        item["minutesSaved"] = driving - int(route.duration_minutes)
        out.append(item)
    return out


def leaderboard(store: RoutesStore, *, limit: int = LEADERBOARD_LIMIT) -> list[Route]:
    # Nobody picked a route yet -> show the newest ones instead of an empty board.
    popular = store.list_routes(order_by="popular", limit=limit, min_popularity=1)
    if popular:
        return popular
    return store.list_routes(order_by="recent", limit=limit)
