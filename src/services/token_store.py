"""
Persisted bearer token, its expiry, and the transient anti-forgery state.
"""

import sqlite3
from datetime import datetime, timedelta, timezone
from pathlib import Path

from core.config import DB_PATH
from core.database import create_schema, get_connection
from models.events import AuthSession

TOKEN_KEY = "token"
TOKEN_EXPIRY_KEY = "token_expiry"
AUTH_STATE_KEY = "auth_state"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class TokenStore:
    """SQLite-backed key/value store for the sign-in session. No network I/O."""

    def __init__(self, db_path: Path | str = DB_PATH):
        self.db_path = db_path
        if isinstance(db_path, Path):
            db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = get_connection(self.db_path)
        try:
            create_schema(conn)
        finally:
            conn.close()

    def _get(self, key: str) -> str | None:
        conn = get_connection(self.db_path)
        try:
            row = conn.execute("SELECT value FROM auth_session WHERE key = ?", (key,)).fetchone()
            return row[0] if row else None
        finally:
            conn.close()

    def _set(self, items: dict[str, str]):
        conn = get_connection(self.db_path)
        try:
            conn.executemany(
                """
                INSERT INTO auth_session (key, value) VALUES (?, ?)
                ON CONFLICT(key) DO UPDATE SET value = excluded.value,
                    updated_at = CURRENT_TIMESTAMP
                """,
                list(items.items()),
            )
            conn.commit()
        finally:
            conn.close()

    def _delete(self, *keys: str):
        conn = get_connection(self.db_path)
        try:
            conn.executemany("DELETE FROM auth_session WHERE key = ?", [(key,) for key in keys])
            conn.commit()
        finally:
            conn.close()

    # -------------------------------------------------------------------------
    # Credential
    # -------------------------------------------------------------------------

    def save_token(self, token: str, expires_in: int, now: datetime | None = None) -> datetime:
        """Store the token with an absolute expiry; returns the expiry."""
        expiry = (now or utc_now()) + timedelta(seconds=expires_in)
        self._set({TOKEN_KEY: token, TOKEN_EXPIRY_KEY: expiry.astimezone(timezone.utc).isoformat()})
        return expiry

    def get_token(self) -> str | None:
        """Stored token, even if past its expiry. The API decides validity."""
        return self._get(TOKEN_KEY)

    def get_expiry(self) -> datetime | None:
        expiry = self._get(TOKEN_EXPIRY_KEY)
        return datetime.fromisoformat(expiry) if expiry else None

    def is_token_expired(self, now: datetime | None = None, buffer_seconds: int = 0) -> bool:
        """True if there is no expiry or it falls within buffer_seconds of now."""
        expiry = self.get_expiry()
        if expiry is None:
            return True
        return (now or utc_now()) + timedelta(seconds=buffer_seconds) >= expiry

    def clear_token(self):
        self._delete(TOKEN_KEY, TOKEN_EXPIRY_KEY)

    # -------------------------------------------------------------------------
    # Anti-forgery state (single use)
    # -------------------------------------------------------------------------

    def save_state(self, state: str):
        self._set({AUTH_STATE_KEY: state})

    def pop_state(self) -> str | None:
        """Return and discard the pending state."""
        conn = get_connection(self.db_path)
        try:
            row = conn.execute(
                "SELECT value FROM auth_session WHERE key = ?", (AUTH_STATE_KEY,)
            ).fetchone()
            conn.execute("DELETE FROM auth_session WHERE key = ?", (AUTH_STATE_KEY,))
            conn.commit()
            return row[0] if row else None
        finally:
            conn.close()

    def has_pending_state(self) -> bool:
        return self._get(AUTH_STATE_KEY) is not None

    # -------------------------------------------------------------------------

    def clear(self):
        """Remove the credential and any pending state."""
        self._delete(TOKEN_KEY, TOKEN_EXPIRY_KEY, AUTH_STATE_KEY)

    def load(self) -> AuthSession:
        return AuthSession(
            token=self.get_token(),
            expiry=self.get_expiry(),
            csrf_state=self._get(AUTH_STATE_KEY),
        )


def open_store(db_path: Path | str = DB_PATH) -> TokenStore:
    """Open the token store, creating the schema if needed."""
    try:
        return TokenStore(db_path)
    except sqlite3.Error as e:
        raise RuntimeError(f"Could not open token store at {db_path}: {e}") from e
