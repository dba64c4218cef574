"""SQLite storage backend for persisted UI state.

A single ``kv`` table holds JSON text per key. The database file and table
are created on first use.
"""

import logging
import sqlite3
import threading
from pathlib import Path

logger = logging.getLogger(__name__)

# SQL Schema
SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS kv (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL,
    updated_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
);
"""


class SQLiteStorage:
    """File-backed key-value storage.

    Safe to share between the caller's thread and the background persist
    worker; all access goes through one connection guarded by a lock.

    Args:
        db_path: Path to SQLite database file (``":memory:"`` is accepted).
    """

    def __init__(self, db_path: Path | str):
        self.db_path = db_path if db_path == ":memory:" else Path(db_path)
        self._conn: sqlite3.Connection | None = None
        self._lock = threading.Lock()

    def _get_conn(self) -> sqlite3.Connection:
        """Get database connection, creating file and table if needed."""
        if self._conn is None:
            if isinstance(self.db_path, Path):
                self.db_path.parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(str(self.db_path), check_same_thread=False)
            self._conn.executescript(SCHEMA_SQL)
            self._conn.commit()
            logger.debug(f"Opened state storage at {self.db_path}")
        return self._conn

    def get(self, key: str) -> str | None:
        with self._lock:
            row = self._get_conn().execute(
                "SELECT value FROM kv WHERE key = ?", (key,)
            ).fetchone()
        return row[0] if row else None

    def set(self, key: str, value: str) -> None:
        with self._lock:
            conn = self._get_conn()
            conn.execute(
                """
                INSERT INTO kv (key, value, updated_at)
                VALUES (?, ?, CURRENT_TIMESTAMP)
                ON CONFLICT(key) DO UPDATE SET
                    value = excluded.value,
                    updated_at = excluded.updated_at
                """,
                (key, value),
            )
            conn.commit()

    def delete(self, key: str) -> bool:
        with self._lock:
            conn = self._get_conn()
            cursor = conn.execute("DELETE FROM kv WHERE key = ?", (key,))
            conn.commit()
        return cursor.rowcount > 0

    def contains(self, key: str) -> bool:
        with self._lock:
            row = self._get_conn().execute(
                "SELECT 1 FROM kv WHERE key = ?", (key,)
            ).fetchone()
        return row is not None

    def keys(self) -> list[str]:
        """List stored keys in sorted order."""
        with self._lock:
            rows = self._get_conn().execute("SELECT key FROM kv ORDER BY key").fetchall()
        return [row[0] for row in rows]

    def close(self) -> None:
        """Close the connection; it is reopened on next use."""
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None
