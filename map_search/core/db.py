"""Database helpers for the private POI store."""

import logging
from contextlib import contextmanager
from typing import Any, Dict, List, Optional

from psycopg2 import extras, pool

from map_search.core.config import get_settings

logger = logging.getLogger(__name__)

_connection_pool: Optional[pool.SimpleConnectionPool] = None


def init_pool(minconn: int = 1, maxconn: int = 5) -> pool.SimpleConnectionPool:
    """Initialise and return the shared connection pool."""
    global _connection_pool
    if _connection_pool is None:
        settings = get_settings()
        if not settings.database_url:
            raise RuntimeError("DATABASE_URL is required for database connections")
        _connection_pool = pool.SimpleConnectionPool(
            minconn,
            maxconn,
            dsn=settings.database_url,
            connect_timeout=10,
        )
        logger.info("Database connection pool initialised")
    return _connection_pool


@contextmanager
def get_connection():
    """Context manager yielding a pooled connection."""
    pg_pool = init_pool()
    conn = pg_pool.getconn()
    try:
        yield conn
    finally:
        pg_pool.putconn(conn)


def like_pattern(term: str) -> str:
    """Wrap a raw term for ILIKE, escaping its own wildcards."""
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


_SEARCH_POIS = """
SELECT
    p.id,
    p.name,
    p.description,
    p.address,
    p.url,
    p.lat,
    p.lng,
    p.categories,
    p.poi_category_id,
    c.name AS category_name,
    c.image_url AS category_image_url,
    COALESCE(
        json_agg(
            json_build_object(
                'rating', r.rating,
                'rating_type', r.rating_type,
                'notes', r.notes,
                'user_id', r.user_id
            )
        ) FILTER (WHERE r.id IS NOT NULL),
        '[]'::json
    ) AS reviews
FROM pois p
LEFT JOIN poi_categories c ON c.id = p.poi_category_id
LEFT JOIN poi_reviews r ON r.poi_id = p.id
WHERE p.name ILIKE %(pattern)s
    OR p.description ILIKE %(pattern)s
    OR c.name ILIKE %(pattern)s
    OR EXISTS (
        SELECT 1 FROM unnest(p.categories) AS cat WHERE cat ILIKE %(pattern)s
    )
    OR EXISTS (
        SELECT 1 FROM poi_reviews rr
        WHERE rr.poi_id = p.id
            AND (rr.notes ILIKE %(pattern)s OR rr.user_id::text ILIKE %(pattern)s)
    )
GROUP BY p.id, c.name, c.image_url
LIMIT %(limit)s;
"""


def search_pois(term: str, limit: int = 50) -> List[Dict[str, Any]]:
    """Return POI rows (with nested reviews) loosely matching ``term``."""
    if not term or not term.strip():
        raise ValueError("term is required for POI search")

    params = {"pattern": like_pattern(term.strip()), "limit": limit}
    with get_connection() as conn:
        with conn.cursor(cursor_factory=extras.RealDictCursor) as cur:
            cur.execute(_SEARCH_POIS, params)
            rows = cur.fetchall()
    logger.debug("POI store returned %d rows for term=%s", len(rows), term)
    return [dict(row) for row in rows]
