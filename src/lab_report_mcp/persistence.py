"""SQLite-backed session snapshots with WAL mode."""

from __future__ import annotations

import logging
import sqlite3
from datetime import datetime, timezone
from pathlib import Path

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS snapshots (
    storage_key TEXT PRIMARY KEY,
    payload TEXT NOT NULL,
    saved_at TEXT NOT NULL
);
"""


class SnapshotDB:
    """Synchronous SQLite store for session snapshots, one row per storage key.

    Uses WAL mode for concurrent reads and fast writes (<1ms).
    All methods are synchronous -- snapshots are small JSON blobs.
    """

    def __init__(self, db_path: str) -> None:
        path = Path(db_path).expanduser().resolve()
        path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(str(path))
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.execute("PRAGMA synchronous=NORMAL")
        self._conn.executescript(_SCHEMA)

    def save_sync(self, storage_key: str, payload: str) -> datetime:
        """Write *payload* under *storage_key*, replacing any earlier snapshot."""
        saved_at = datetime.now(timezone.utc)
        self._conn.execute(
            "INSERT OR REPLACE INTO snapshots (storage_key, payload, saved_at) VALUES (?, ?, ?)",
            (storage_key, payload, saved_at.isoformat()),
        )
        self._conn.commit()
        return saved_at

    def load_sync(self, storage_key: str) -> tuple[str, datetime] | None:
        """Return ``(payload, saved_at)`` for *storage_key*, or None."""
        row = self._conn.execute(
            "SELECT payload, saved_at FROM snapshots WHERE storage_key = ?",
            (storage_key,),
        ).fetchone()
        if row is None:
            return None
        return row[0], datetime.fromisoformat(row[1])

    def exists(self, storage_key: str) -> bool:
        row = self._conn.execute(
            "SELECT 1 FROM snapshots WHERE storage_key = ?", (storage_key,),
        ).fetchone()
        return row is not None

    def delete(self, storage_key: str) -> bool:
        """Delete a snapshot. Returns True if a row was removed."""
        cursor = self._conn.execute(
            "DELETE FROM snapshots WHERE storage_key = ?",
            (storage_key,),
        )
        self._conn.commit()
        return cursor.rowcount > 0

    def close(self) -> None:
        """Close the database connection."""
        self._conn.close()
