"""
SQLite key-value storage.

Provides thread-safe database access with WAL mode and one
connection per thread.
"""

import sqlite3
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator

from convo_memory.core.exceptions import DatabaseError
from convo_memory.utils.logging import get_logger

logger = get_logger(__name__)


SCHEMA_SQL = """
    CREATE TABLE IF NOT EXISTS kv_store (
        key TEXT PRIMARY KEY,
        value TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
"""


class SQLiteStore:
    """
    SQLite-backed key-value store.

    Provides thread-safe access to a single ``kv_store`` table with:
    - WAL mode for concurrent reads
    - Connection per thread
    - Automatic schema initialization

    Example:
        >>> store = SQLiteStore(Path("data/memory.db"))
        >>> store.set("conversation_abc", "{...}")
        >>> store.get("conversation_abc")
        '{...}'
    """

    def __init__(
        self,
        database_path: Path | str,
        wal_mode: bool = True,
    ) -> None:
        """
        Initialize the store and create its table.

        Args:
            database_path: Path to SQLite database file
            wal_mode: Enable WAL mode for better concurrency
        """
        self.database_path = Path(database_path)
        self.wal_mode = wal_mode

        self._connections: dict[int, sqlite3.Connection] = {}
        self._lock = threading.Lock()

        self.database_path.parent.mkdir(parents=True, exist_ok=True)
        with self.connection() as conn:
            conn.execute(SCHEMA_SQL)

        logger.info(f"SQLite store ready (path={self.database_path})")

    def _get_connection(self) -> sqlite3.Connection:
        """
        Get connection for current thread.

        Creates new connection if none exists for this thread.
        """
        thread_id = threading.get_ident()

        if thread_id not in self._connections:
            with self._lock:
                if thread_id not in self._connections:
                    self._connections[thread_id] = self._create_connection()

        return self._connections[thread_id]

    def _create_connection(self) -> sqlite3.Connection:
        """Create and configure a new connection."""
        try:
            conn = sqlite3.connect(
                str(self.database_path),
                check_same_thread=False,
                timeout=30.0,
            )
            conn.row_factory = sqlite3.Row

            conn.execute(
                "PRAGMA journal_mode = WAL" if self.wal_mode else "PRAGMA journal_mode = DELETE")
            conn.execute("PRAGMA synchronous = NORMAL")

            logger.debug(
                f"Created new connection for thread {threading.get_ident()}")
            return conn

        except sqlite3.Error as e:
            raise DatabaseError(
                f"Failed to create database connection: {e}",
                details={"path": str(self.database_path)},
            ) from e

    @contextmanager
    def connection(self) -> Iterator[sqlite3.Connection]:
        """
        Get database connection as context manager.

        Commits on success, rolls back on error.

        Yields:
            SQLite connection
        """
        conn = self._get_connection()
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise

    def _execute(
        self,
        sql: str,
        params: tuple = (),
        key: str | None = None,
    ) -> list[sqlite3.Row]:
        """Run one statement in its own transaction and return fetched rows."""
        try:
            with self.connection() as conn:
                return conn.execute(sql, params).fetchall()
        except sqlite3.Error as e:
            raise DatabaseError(
                f"Query execution failed: {e}", query=sql, key=key) from e

    def get(self, key: str) -> str | None:
        rows = self._execute(
            "SELECT value FROM kv_store WHERE key = ?", (key,), key=key)
        return rows[0]["value"] if rows else None

    def set(self, key: str, value: str) -> None:
        self._execute(
            """
            INSERT INTO kv_store (key, value, updated_at) VALUES (?, ?, ?)
            ON CONFLICT(key) DO UPDATE SET
                value = excluded.value,
                updated_at = excluded.updated_at
            """,
            (key, value, datetime.now(timezone.utc).isoformat()),
            key=key,
        )

    def remove(self, key: str) -> None:
        self._execute("DELETE FROM kv_store WHERE key = ?", (key,), key=key)

    def keys(self, prefix: str = "") -> list[str]:
        # substr() rather than LIKE: keys contain "_", a LIKE wildcard
        rows = self._execute(
            "SELECT key FROM kv_store WHERE substr(key, 1, ?) = ? ORDER BY key",
            (len(prefix), prefix),
        )
        return [row["key"] for row in rows]

    def close(self) -> None:
        """Close all connections."""
        with self._lock:
            for conn in self._connections.values():
                try:
                    conn.close()
                except sqlite3.Error as e:
                    logger.warning(f"Error closing connection: {e}")
            self._connections.clear()

        logger.debug("All database connections closed")

    @property
    def size_bytes(self) -> int:
        """Get database file size in bytes."""
        if self.database_path.exists():
            return self.database_path.stat().st_size
        return 0

    def __repr__(self) -> str:
        return f"SQLiteStore(path={str(self.database_path)!r})"
