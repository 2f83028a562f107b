"""Session token storage for the OneNote repository.

The host keeps one OneNote access token per user session. Instead of
reading it from an ambient session object, the repository is handed a
token store and a session id, which keeps the dependency explicit.

This module provides:

- BaseTokenStore, the get/set/clear interface
- MemoryTokenStore, a dict-backed store for a single process (and tests)
- SqliteTokenStore, a `session_tokens` table in a SQLite database
  (~/.onenote_repository.db by default) for hosts with several workers
- NoopTokenStore, which never remembers anything

Nothing in here knows about OneNote or OAuth.
"""

from __future__ import annotations

import sqlite3
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Optional

# Default location of the token database
DB_PATH: Path = Path.home() / ".onenote_repository.db"


def _normalize(token: Optional[str]) -> Optional[str]:
    """Treat empty strings and the literal "null" as no token."""
    if token is None:
        return None
    token = token.strip()
    if not token or token == "null":
        return None
    return token


class BaseTokenStore(ABC):
    """Abstract base class for per-session token stores."""

    name: str = "base"

    @abstractmethod
    def get_token(self, session_id: str) -> Optional[str]:
        """Return the token stored for session_id, or None."""
        raise NotImplementedError

    @abstractmethod
    def set_token(self, session_id: str, token: str) -> None:
        """Store token for session_id, replacing any previous value."""
        raise NotImplementedError

    @abstractmethod
    def clear_token(self, session_id: str) -> None:
        """Forget the token for session_id. Missing sessions are ignored."""
        raise NotImplementedError


class MemoryTokenStore(BaseTokenStore):
    name: str = "memory"

    def __init__(self) -> None:
        self._tokens: Dict[str, str] = {}

    def get_token(self, session_id: str) -> Optional[str]:
        return self._tokens.get(session_id)

    def set_token(self, session_id: str, token: str) -> None:
        normalized = _normalize(token)
        if normalized is None:
            self._tokens.pop(session_id, None)
        else:
            self._tokens[session_id] = normalized

    def clear_token(self, session_id: str) -> None:
        self._tokens.pop(session_id, None)


class NoopTokenStore(BaseTokenStore):
    """A store that forgets every token immediately.

    Useful for a disabled repository instance: every session stays
    logged out.
    """

    name: str = "noop"

    def get_token(self, session_id: str) -> Optional[str]:
        return None

    def set_token(self, session_id: str, token: str) -> None:
        return None

    def clear_token(self, session_id: str) -> None:
        return None


class SqliteTokenStore(BaseTokenStore):
    """Token store backed by a SQLite table keyed on session id."""

    name: str = "sqlite"

    def __init__(self, db_path: Optional[Path] = None) -> None:
        self.db_path = Path(db_path) if db_path is not None else DB_PATH
        self._conn: Optional[sqlite3.Connection] = None

    def _get_connection(self) -> sqlite3.Connection:
        """Return this store's connection, initializing the schema if needed."""

        if self._conn is not None:
            return self._conn

        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        _init_schema(conn)

        self._conn = conn
        return conn

    def get_token(self, session_id: str) -> Optional[str]:
        cur = self._get_connection().cursor()
        cur.execute(
            "SELECT token FROM session_tokens WHERE session_id = ?",
            (session_id,),
        )
        row = cur.fetchone()
        return row["token"] if row is not None else None

    def set_token(self, session_id: str, token: str) -> None:
        normalized = _normalize(token)
        if normalized is None:
            self.clear_token(session_id)
            return

        conn = self._get_connection()
        now = datetime.now(timezone.utc).isoformat(timespec="seconds")
        conn.execute(
            """
            INSERT INTO session_tokens (
                session_id,
                token,
                created_at
            ) VALUES (
                :session_id,
                :token,
                :created_at
            )
            ON CONFLICT(session_id) DO UPDATE SET
                token      = excluded.token,
                created_at = excluded.created_at
            """,
            {"session_id": session_id, "token": normalized, "created_at": now},
        )
        conn.commit()

    def clear_token(self, session_id: str) -> None:
        conn = self._get_connection()
        conn.execute("DELETE FROM session_tokens WHERE session_id = ?", (session_id,))
        conn.commit()

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None


def _init_schema(conn: sqlite3.Connection) -> None:
    """Create the session_tokens table if it does not exist."""

    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS session_tokens (
            session_id  TEXT PRIMARY KEY,
            token       TEXT NOT NULL,
            created_at  TEXT NOT NULL
        )
        """
    )
    conn.commit()
