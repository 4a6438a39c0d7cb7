from __future__ import annotations

CREATE_ROUTES_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS routes (
  id TEXT PRIMARY KEY,
  from_name TEXT,
  from_lat DOUBLE,
  from_lng DOUBLE,
  to_name TEXT,
  to_lat DOUBLE,
  to_lng DOUBLE,
  created_at TIMESTAMP,  -- UTC, naive
  duration_minutes INTEGER,
  popularity INTEGER DEFAULT 0
);
"""

ROUTE_COLUMNS = """
  id, from_name, from_lat, from_lng, to_name, to_lat, to_lng,
  created_at, duration_minutes, popularity
"""

INSERT_ROUTE_SQL = f"""
INSERT OR REPLACE INTO routes ({ROUTE_COLUMNS})
VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
"""

LIST_ROUTES_SQL_TEMPLATE = f"""
SELECT {ROUTE_COLUMNS}
FROM routes
{{where_sql}}
ORDER BY {{order_sql}}
{{limit_sql}}
"""

ORDER_SQL = {
    "recent": "created_at DESC, id",
    "popular": "popularity DESC, created_at DESC, id",
}

INCREMENT_POPULARITY_SQL = """
UPDATE routes SET popularity = COALESCE(popularity, 0) + 1 WHERE id = ?
"""

GET_ROUTE_SQL = f"""
SELECT {ROUTE_COLUMNS}
FROM routes
WHERE id = ?
"""
