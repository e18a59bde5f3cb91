"""
Key-value storage backends for Countify.
"""

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Iterator, Optional, Protocol

SESSIONS_KEY = "CountSessions"
DEFAULT_HAPTIC_KEY = "DefaultHapticEnabled"
DEFAULT_NEGATIVES_KEY = "DefaultAllowNegatives"


class KeyValueStore(Protocol):
    """Blob store the registry persists into."""

    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...


class MemoryStore:
    """Dict-backed store. Data is lost when the process exits."""

    def __init__(self, data: Optional[Dict[str, str]] = None) -> None:
        self._data: Dict[str, str] = dict(data or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value


class SQLiteStore:
    """
    Store backed by a single ``kv`` table in a SQLite database.

    The table is created on first use; the database file is created by
    SQLite when it does not exist yet.
    """

    def __init__(self, db_path: Path) -> None:
        self.db_path = db_path

    @contextmanager
    def connection(self) -> Iterator[sqlite3.Connection]:
        """Get a connection to the SQLite database with proper cleanup."""
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        _ensure_kv_table(conn)
        try:
            yield conn
        finally:
            conn.close()

    def get(self, key: str) -> Optional[str]:
        with self.connection() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT value FROM kv WHERE key = ?", (key,))
            row = cursor.fetchone()
            return row["value"] if row else None

    def set(self, key: str, value: str) -> None:
        with self.connection() as conn:
            conn.execute(
                """
                INSERT INTO kv (key, value) VALUES (?, ?)
                ON CONFLICT(key) DO UPDATE SET value = excluded.value
                """,
                (key, value),
            )
            conn.commit()


def _ensure_kv_table(conn: sqlite3.Connection) -> None:
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS kv (
            key TEXT PRIMARY KEY,
            value TEXT NOT NULL
        )
        """
    )
    conn.commit()
