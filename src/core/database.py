"""
SQLite storage for the persisted sign-in session.
"""

import sqlite3
from pathlib import Path

from core.config import DB_PATH

AUTH_SESSION_SCHEMA = """
    CREATE TABLE IF NOT EXISTS auth_session (
        key TEXT PRIMARY KEY CHECK(key IN ('token', 'token_expiry', 'auth_state')),
        value TEXT NOT NULL,
        updated_at TEXT DEFAULT CURRENT_TIMESTAMP
    )
"""


def get_connection(db_path: Path | str = DB_PATH) -> sqlite3.Connection:
    """Get a database connection."""
    return sqlite3.connect(db_path)


def create_schema(conn: sqlite3.Connection):
    """Create tables if they don't exist."""
    conn.execute(AUTH_SESSION_SCHEMA)
    conn.commit()
