"""Durable thread storage backed by a local SQLite file.

Each thread is stored as one JSON record holding its metadata and ordered
messages, keyed by thread id. SQLite gives us:
    - Conversation history that survives process restarts
    - Atomic upserts and deletes through transactions
    - Zero infrastructure (single file)
"""

import json
import logging
import sqlite3
from pathlib import Path
from typing import Protocol

from pydantic import ValidationError

from src.errors import StorageUnavailable
from src.models.schemas import Thread

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS threads (
    id TEXT PRIMARY KEY,
    record TEXT NOT NULL,
    updated_at TEXT NOT NULL
)
"""


class ThreadStore(Protocol):
    """Durable mapping from thread id to thread record."""

    def save(self, thread: Thread) -> None: ...

    def load_all(self) -> list[Thread]: ...

    def get(self, thread_id: str) -> Thread | None: ...

    def delete(self, thread_id: str) -> None: ...

    def close(self) -> None: ...


class SqliteThreadStore:
    """Thread store using one SQLite row per thread.

    Every public method either completes its transaction or raises
    StorageUnavailable, leaving previously committed records untouched.
    """

    def __init__(self, db_path: str | Path) -> None:
        """Open (and create if needed) the database file.

        Args:
            db_path: Path to the SQLite file, or ":memory:".

        Raises:
            StorageUnavailable: If the database cannot be opened.
        """
        self._db_path = str(db_path)
        try:
            if self._db_path != ":memory:":
                Path(self._db_path).parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(self._db_path, check_same_thread=False)
            with self._conn:
                self._conn.execute(_SCHEMA)
        except (sqlite3.Error, OSError) as e:
            raise StorageUnavailable(f"Cannot open thread store at {self._db_path}: {e}") from e

    def save(self, thread: Thread) -> None:
        """Insert or replace a thread together with its full message list."""
        record = thread.model_dump_json(by_alias=True)
        try:
            with self._conn:
                self._conn.execute(
                    "INSERT INTO threads (id, record, updated_at) VALUES (?, ?, ?) "
                    "ON CONFLICT(id) DO UPDATE SET "
                    "record = excluded.record, updated_at = excluded.updated_at",
                    (thread.id, record, thread.updated_at.isoformat()),
                )
        except sqlite3.Error as e:
            logger.error(f"Failed to save thread {thread.id}: {e}")
            raise StorageUnavailable(f"Failed to save thread {thread.id}") from e
        logger.debug(f"Saved thread {thread.id} ({len(thread.messages)} messages)")

    def load_all(self) -> list[Thread]:
        """Return every stored thread.

        Raises:
            StorageUnavailable: If the table cannot be read or a record is corrupt.
        """
        try:
            rows = self._conn.execute("SELECT id, record FROM threads").fetchall()
        except sqlite3.Error as e:
            raise StorageUnavailable(f"Failed to load threads: {e}") from e
        return [self._decode(thread_id, record) for thread_id, record in rows]

    def get(self, thread_id: str) -> Thread | None:
        """Return one thread, or None if it is not stored."""
        try:
            row = self._conn.execute(
                "SELECT id, record FROM threads WHERE id = ?", (thread_id,)
            ).fetchone()
        except sqlite3.Error as e:
            raise StorageUnavailable(f"Failed to load thread {thread_id}: {e}") from e
        if row is None:
            return None
        return self._decode(*row)

    def delete(self, thread_id: str) -> None:
        """Remove a thread and its messages. Unknown ids are ignored."""
        try:
            with self._conn:
                self._conn.execute("DELETE FROM threads WHERE id = ?", (thread_id,))
        except sqlite3.Error as e:
            logger.error(f"Failed to delete thread {thread_id}: {e}")
            raise StorageUnavailable(f"Failed to delete thread {thread_id}") from e

    def close(self) -> None:
        self._conn.close()

    @staticmethod
    def _decode(thread_id: str, record: str) -> Thread:
        """Decode a stored record, falling back to the row key for a missing id."""
        try:
            data = json.loads(record)
            if isinstance(data, dict):
                data.setdefault("id", thread_id)
            return Thread.model_validate(data)
        except (json.JSONDecodeError, ValidationError) as e:
            logger.error(f"Corrupt record for thread {thread_id}")
            raise StorageUnavailable(f"Corrupt record for thread {thread_id}") from e
