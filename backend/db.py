# backend/db.py
# Database abstraction layer supporting PostgreSQL (production) and SQLite (dev)

import sqlite3
from contextlib import contextmanager
from pathlib import Path as FsPath
from typing import Any, Dict, Generator, List, Optional, Union
from urllib.parse import urlparse

from sqlalchemy import create_engine, text, pool
from sqlalchemy.engine import Engine, Connection

try:
    from backend.config import DATABASE_PATH, DATABASE_URL, IS_POSTGRES
except ModuleNotFoundError:
    from config import DATABASE_PATH, DATABASE_URL, IS_POSTGRES

# Global engine (SQLAlchemy) or None for SQLite
_engine: Union[Engine, None] = None

# Collections are append-only; no UPDATE/DELETE statement exists for them.
SCHEMA = [
    """
    CREATE TABLE IF NOT EXISTS users (
        id TEXT PRIMARY KEY,
        email TEXT UNIQUE NOT NULL,
        password_hash TEXT NOT NULL,
        created_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS flood_alerts (
        id TEXT PRIMARY KEY,
        location TEXT NOT NULL,
        status TEXT NOT NULL,
        severity TEXT NOT NULL,
        timestamp TEXT NOT NULL,
        reported_by TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS resource_requests (
        id TEXT PRIMARY KEY,
        item TEXT NOT NULL,
        quantity INTEGER NOT NULL,
        location TEXT NOT NULL,
        contact TEXT NOT NULL,
        urgency TEXT NOT NULL,
        status TEXT NOT NULL,
        timestamp TEXT NOT NULL,
        user_id TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS resource_offers (
        id TEXT PRIMARY KEY,
        item TEXT NOT NULL,
        quantity INTEGER NOT NULL,
        location TEXT NOT NULL,
        contact TEXT NOT NULL,
        availability TEXT NOT NULL,
        status TEXT NOT NULL,
        timestamp TEXT NOT NULL,
        user_id TEXT NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_flood_alerts_ts ON flood_alerts (timestamp)",
    "CREATE INDEX IF NOT EXISTS idx_resource_requests_ts ON resource_requests (timestamp)",
    "CREATE INDEX IF NOT EXISTS idx_resource_offers_ts ON resource_offers (timestamp)",
]


def init_engine() -> None:
    """Initialize SQLAlchemy engine for PostgreSQL if DATABASE_URL is set."""
    global _engine

    if not IS_POSTGRES:
        _engine = None
        print("[DB] Using SQLite (local dev mode)")
        return

    parsed = urlparse(DATABASE_URL)
    if not parsed.scheme or not parsed.netloc:
        raise ValueError(f"Invalid DATABASE_URL: {DATABASE_URL[:20]}...")

    _engine = create_engine(
        DATABASE_URL,
        poolclass=pool.QueuePool,
        pool_size=5,
        max_overflow=10,
        pool_pre_ping=True,
        echo=False,
    )

    print(f"[DB] Using PostgreSQL ({parsed.hostname})")


def sqlite_path() -> str:
    """Resolve DATABASE_PATH relative to this package (absolute paths pass through)."""
    return str(FsPath(__file__).resolve().parent / DATABASE_PATH)


@contextmanager
def get_db_connection() -> Generator[Union[sqlite3.Connection, Connection], None, None]:
    """
    Context manager for database connections.
    Returns sqlite3.Connection for SQLite or sqlalchemy.Connection for Postgres.
    """
    if IS_POSTGRES:
        if _engine is None:
            init_engine()

        with _engine.connect() as conn:
            yield conn
    else:
        conn = sqlite3.connect(sqlite_path(), check_same_thread=False)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
        finally:
            conn.close()


def execute_query(
    conn: Union[sqlite3.Connection, Connection],
    query: str,
    params: Optional[Dict[str, Any]] = None,
) -> Any:
    """
    Execute a query with named (:param) placeholders.

    Both sqlite3 and SQLAlchemy's text() accept the same named style, so
    callers write one statement for both backends.
    """
    if IS_POSTGRES:
        return conn.execute(text(query), params or {})
    cur = conn.cursor()
    return cur.execute(query, params or {})


def _row_to_dict(row: Any) -> Dict[str, Any]:
    if row is None:
        return {}
    if hasattr(row, "_mapping"):
        return dict(row._mapping)
    return dict(row)


def fetch_all(
    conn: Union[sqlite3.Connection, Connection],
    query: str,
    params: Optional[Dict[str, Any]] = None,
) -> List[Dict[str, Any]]:
    result = execute_query(conn, query, params)
    return [_row_to_dict(row) for row in result.fetchall()]


def fetch_one(
    conn: Union[sqlite3.Connection, Connection],
    query: str,
    params: Optional[Dict[str, Any]] = None,
) -> Optional[Dict[str, Any]]:
    row = execute_query(conn, query, params).fetchone()
    return _row_to_dict(row) if row is not None else None


def commit(conn: Union[sqlite3.Connection, Connection]) -> None:
    conn.commit()


def init_db() -> None:
    """Create all tables idempotently. Safe to call on every startup."""
    with get_db_connection() as conn:
        for statement in SCHEMA:
            execute_query(conn, statement)
        commit(conn)
    print("[DB] Schema ready")
