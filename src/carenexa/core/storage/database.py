"""SQLite file behind the key-value store.

One table, ``kv_store``, holds a row per persisted slot (the health store
blob, the chat transcript). All SQL lives here; adapters above only see
strings and ``DatabaseError``.
"""

from __future__ import annotations

import logging
import sqlite3
from pathlib import Path

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 1

# ---------------------------------------------------------------------------
# Schema DDL
# ---------------------------------------------------------------------------

_SCHEMA_V1 = """
CREATE TABLE IF NOT EXISTS kv_store (
    key        TEXT PRIMARY KEY,
    value      TEXT NOT NULL,
    updated_at TEXT NOT NULL DEFAULT (datetime('now'))
);

CREATE TABLE IF NOT EXISTS schema_version (
    version    INTEGER NOT NULL,
    applied_at TEXT NOT NULL DEFAULT (datetime('now'))
);
"""

_UPSERT = """
INSERT INTO kv_store (key, value, updated_at)
VALUES (?, ?, datetime('now'))
ON CONFLICT(key) DO UPDATE SET
    value = excluded.value,
    updated_at = excluded.updated_at
"""


class DatabaseError(Exception):
    """Raised when the database cannot be opened or a statement fails."""


class StorageDatabase:
    """Owns the SQLite connection and the ``kv_store`` statements.

    ``:memory:`` gives a private throwaway database (used by tests and as a
    configured no-persistence mode). File paths may use ``~``.

    Usage::

        with StorageDatabase("~/.carenexa/store.db") as db:
            db.put("drEchoMessages", "[]")
            db.get("drEchoMessages")
    """

    def __init__(self, db_path: str = ":memory:") -> None:
        self._db_path = db_path
        self._conn: sqlite3.Connection | None = None

    @property
    def path(self) -> str:
        return self._db_path

    @property
    def in_memory(self) -> bool:
        return self._db_path == ":memory:"

    @property
    def connection(self) -> sqlite3.Connection:
        """The open connection.

        Raises:
            DatabaseError: If the database has not been initialized.
        """
        if self._conn is None:
            raise DatabaseError("Database not initialized. Call initialize() first.")
        return self._conn

    def initialize(self) -> None:
        """Open the file (creating parent directories) and apply the schema.

        Idempotent.

        Raises:
            DatabaseError: If the file cannot be created or opened.
        """
        if self._conn is not None:
            return

        try:
            if self.in_memory:
                conn = sqlite3.connect(":memory:")
            else:
                db_file = Path(self._db_path).expanduser()
                db_file.parent.mkdir(parents=True, exist_ok=True)
                conn = sqlite3.connect(str(db_file))
            conn.row_factory = sqlite3.Row
            conn.execute("PRAGMA journal_mode=WAL")
            conn.executescript(_SCHEMA_V1)
        except (OSError, sqlite3.Error) as exc:
            raise DatabaseError(f"Cannot open database {self._db_path}: {exc}") from exc

        self._conn = conn
        self._record_schema_version()
        logger.info("Storage database initialized: %s", self._db_path)

    def _record_schema_version(self) -> None:
        current = self.get_schema_version()
        if current < SCHEMA_VERSION:
            self.connection.execute(
                "INSERT INTO schema_version (version) VALUES (?)", (SCHEMA_VERSION,)
            )
            self.connection.commit()
            logger.info("Schema updated from version %d to %d", current, SCHEMA_VERSION)

    def get_schema_version(self) -> int:
        row = self.connection.execute("SELECT MAX(version) FROM schema_version").fetchone()
        return row[0] if row[0] is not None else 0

    # ------------------------------------------------------------------
    # Slots
    # ------------------------------------------------------------------

    def get(self, key: str) -> str | None:
        """Stored value for ``key``, or None."""
        row = self._execute("SELECT value FROM kv_store WHERE key = ?", (key,)).fetchone()
        return row["value"] if row is not None else None

    def put(self, key: str, value: str) -> None:
        """Insert or replace ``key`` and commit."""
        self._execute(_UPSERT, (key, value), commit=True)

    def delete(self, key: str) -> None:
        self._execute("DELETE FROM kv_store WHERE key = ?", (key,), commit=True)

    def keys(self) -> list[str]:
        return [row["key"] for row in self._execute("SELECT key FROM kv_store ORDER BY key")]

    def updated_at(self, key: str) -> str | None:
        """SQLite ``datetime('now')`` text of the last write to ``key``."""
        row = self._execute(
            "SELECT updated_at FROM kv_store WHERE key = ?", (key,)
        ).fetchone()
        return row["updated_at"] if row is not None else None

    def _execute(self, sql: str, params: tuple = (), *, commit: bool = False) -> sqlite3.Cursor:
        conn = self.connection
        try:
            cursor = conn.execute(sql, params)
            if commit:
                conn.commit()
        except sqlite3.Error as exc:
            raise DatabaseError(f"Statement failed on {self._db_path}: {exc}") from exc
        return cursor

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None
            logger.info("Storage database closed")

    def __enter__(self) -> StorageDatabase:
        self.initialize()
        return self

    def __exit__(self, *args) -> None:
        self.close()
