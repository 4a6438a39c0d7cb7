from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Iterable, Protocol

from routes.types import Route, RouteOrder


class RoutesStore(Protocol):
    """
    Pull-only access to published routes.

    - InMemoryRoutesStore: dev/test store, process-local
    - DuckDBRoutesStore: file-backed store (see routes/duckdb_store.py)
    """

    def list_routes(
        self,
        *,
        order_by: RouteOrder = "recent",
        limit: int | None = None,
        min_popularity: int | None = None,
    ) -> list[Route]: ...

    def save_route(self, route: Route) -> None: ...

    def increment_popularity(self, route_id: str) -> Route | None: ...

    def get_route(self, route_id: str) -> Route | None: ...


def sort_routes(routes: Iterable[Route], order_by: RouteOrder) -> list[Route]:
    if order_by == "popular":
        return sorted(
            routes,
            key=lambda r: (-r.popularity, -r.created_at.timestamp(), r.id),
        )
    return sorted(routes, key=lambda r: (-r.created_at.timestamp(), r.id))


@dataclass
class InMemoryRoutesStore:
    _routes: dict[str, Route] = field(default_factory=dict)
    _lock: threading.RLock = field(default_factory=threading.RLock, repr=False)

    @classmethod
    def from_routes(cls, routes: Iterable[Route]) -> "InMemoryRoutesStore":
        store = cls()
        for r in routes:
            store.save_route(r)
        return store

    def list_routes(
        self,
        *,
        order_by: RouteOrder = "recent",
        limit: int | None = None,
        min_popularity: int | None = None,
    ) -> list[Route]:
        with self._lock:
            routes = list(self._routes.values())
        if min_popularity is not None:
            routes = [r for r in routes if r.popularity >= int(min_popularity)]
        out = sort_routes(routes, order_by)
        if limit is not None:
            out = out[: max(0, int(limit))]
        return out

    def save_route(self, route: Route) -> None:
        with self._lock:
            self._routes[route.id] = route

    def get_route(self, route_id: str) -> Route | None:
        with self._lock:
            return self._routes.get(route_id)

    def increment_popularity(self, route_id: str) -> Route | None:
        with self._lock:
            route = self._routes.get(route_id)
            if route is None:
                return None
            bumped = route.with_popularity(route.popularity + 1)
            self._routes[route_id] = bumped
            return bumped
