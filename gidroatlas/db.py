"""
GidroAtlas Database Connection
==============================

Connection pooling for the PostgreSQL + pgvector store.
Uses psycopg2 ThreadedConnectionPool; async callers hop to a worker
thread (asyncio.to_thread) before touching a connection.
"""

import logging
import threading
from contextlib import contextmanager
from typing import Optional, Any, Dict

from psycopg2 import pool as pg_pool

from .config import DatabaseConfig

logger = logging.getLogger(__name__)

_pool: Optional[pg_pool.ThreadedConnectionPool] = None
_pool_lock = threading.Lock()


def get_pool(config: Optional[DatabaseConfig] = None) -> pg_pool.ThreadedConnectionPool:
    """Get or create the connection pool (lazy singleton)."""
    global _pool
    if _pool is not None:
        return _pool

    with _pool_lock:
        if _pool is None:
            config = config or DatabaseConfig()
            params = config.connection_dict
            _pool = pg_pool.ThreadedConnectionPool(
                config.pool_min_size,
                config.pool_max_size,
                **params,
            )
            logger.info(f"DB pool created: {params['host']}:{params['port']}/{params['dbname']}")
    return _pool


def close_pool():
    """Close the connection pool."""
    global _pool
    with _pool_lock:
        if _pool is not None:
            _pool.closeall()
            _pool = None
            logger.info("DB pool closed")


@contextmanager
def get_connection():
    """
    Get a connection from the pool (context manager).

    Commits when the block exits normally, rolls back on any exception,
    and always returns the connection to the pool.
    """
    pool = get_pool()
    conn = pool.getconn()
    try:
        yield conn
        conn.commit()
    except BaseException:
        conn.rollback()
        raise
    finally:
        pool.putconn(conn)


def check_health() -> Dict[str, Any]:
    """
    Check database health. Returns status dict.
    Non-blocking: returns 'disconnected' if DB is not reachable.
    """
    try:
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute("""
                    SELECT version(),
                           EXISTS (SELECT 1 FROM pg_extension WHERE extname = 'vector')
                """)
                row = cur.fetchone()
            version = row[0].split(",")[0] if row[0] else "unknown"
            return {
                "status": "connected",
                "version": version,
                "pgvector_available": bool(row[1]),
            }
    except Exception as e:
        logger.warning(f"DB health check failed: {e}")
        return {
            "status": "disconnected",
            "error": str(e),
        }
