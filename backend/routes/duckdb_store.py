from __future__ import annotations

import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import duckdb

from geo.types import NamedPoint
from routes.sql import (
    CREATE_ROUTES_TABLE_SQL,
    GET_ROUTE_SQL,
    INCREMENT_POPULARITY_SQL,
    INSERT_ROUTE_SQL,
    LIST_ROUTES_SQL_TEMPLATE,
    ORDER_SQL,
)
from routes.types import Route, RouteOrder


@dataclass
class DuckDBRoutesStore:
    """
    Routes table in a local DuckDB file.

    Reads are issued from worker threads (`asyncio.to_thread`), so every statement
    goes through one lock on a single connection.
    """

    path: Path | None
    conn: duckdb.DuckDBPyConnection
    _lock: threading.RLock = field(default_factory=threading.RLock, repr=False)

    @classmethod
    def open(cls, path: Path | str | None = None) -> "DuckDBRoutesStore":
        p = Path(path) if path else None
        if p is not None:
            p.parent.mkdir(parents=True, exist_ok=True)
        conn = duckdb.connect(str(p) if p is not None else ":memory:")
        store = cls(path=p, conn=conn)
        store.ensure_schema()
        return store

    def ensure_schema(self) -> None:
        with self._lock:
            self.conn.execute(CREATE_ROUTES_TABLE_SQL)

    def close(self) -> None:
        with self._lock:
            self.conn.close()

    def list_routes(
        self,
        *,
        order_by: RouteOrder = "recent",
        limit: int | None = None,
        min_popularity: int | None = None,
    ) -> list[Route]:
        params: list[Any] = []
        where_sql = ""
        if min_popularity is not None:
            where_sql = "WHERE COALESCE(popularity, 0) >= ?"
            params.append(int(min_popularity))
        limit_sql = ""
        if limit is not None:
            limit_sql = "LIMIT ?"
            params.append(max(0, int(limit)))

        sql = LIST_ROUTES_SQL_TEMPLATE.format(
            where_sql=where_sql,
            order_sql=ORDER_SQL.get(order_by, ORDER_SQL["recent"]),
            limit_sql=limit_sql,
        )
        with self._lock:
            rows = self.conn.execute(sql, params).fetchall()
        return [_row_to_route(row) for row in rows]

    def save_route(self, route: Route) -> None:
        o = route.origin
        d = route.destination
        with self._lock:
            self.conn.execute(
                INSERT_ROUTE_SQL,
                [
                    route.id,
                    o.name,
                    o.lat,
                    o.lng,
                    d.name,
                    d.lat,
                    d.lng,
                    _naive_utc(route.created_at),
                    int(route.duration_minutes),
                    int(route.popularity),
                ],
            )

    def get_route(self, route_id: str) -> Route | None:
        with self._lock:
            row = self.conn.execute(GET_ROUTE_SQL, [route_id]).fetchone()
        return _row_to_route(row) if row is not None else None

    def increment_popularity(self, route_id: str) -> Route | None:
        with self._lock:
            self.conn.execute(INCREMENT_POPULARITY_SQL, [route_id])
            row = self.conn.execute(GET_ROUTE_SQL, [route_id]).fetchone()
        return _row_to_route(row) if row is not None else None


def _row_to_route(row: tuple) -> Route:
    (
        rid,
        from_name,
        from_lat,
        from_lng,
        to_name,
        to_lat,
        to_lng,
        created_at,
        duration_minutes,
        popularity,
    ) = row
    return Route(
        id=str(rid),
        origin=NamedPoint(lat=float(from_lat), lng=float(from_lng), name=from_name or ""),
        destination=NamedPoint(lat=float(to_lat), lng=float(to_lng), name=to_name or ""),
        created_at=_as_datetime(created_at),
        duration_minutes=int(duration_minutes or 0),
        popularity=int(popularity or 0),
    )


def _naive_utc(ts: datetime) -> datetime:
    # Stored as plain TIMESTAMP (UTC) so reads don't depend on tz conversion support.
    if ts.tzinfo is None:
        return ts
    return ts.astimezone(timezone.utc).replace(tzinfo=None)


def _as_datetime(v) -> datetime:
    if not isinstance(v, datetime):
        v = datetime.fromisoformat(str(v))
    return v if v.tzinfo is not None else v.replace(tzinfo=timezone.utc)
