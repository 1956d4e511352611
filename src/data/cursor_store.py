"""
Persist and load trigger cursors (SQLite or in-process memory).

One row per trigger key; a save replaces the whole cursor in one
transaction, so a poll cycle never leaves a partially written cursor.
"""

import json
import logging
import sqlite3
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Protocol

from poll_core.cursor import CURSOR_VERSION, Cursor, cursor_from_dict, cursor_to_dict

logger = logging.getLogger("triggers.store")


class CursorStore(Protocol):
    """Key-value persistence for cursors, scoped per trigger key."""

    def load(self, key: str) -> Cursor: ...

    def save(self, key: str, cursor: Cursor) -> None: ...

    def delete(self, key: str) -> bool: ...

    def keys(self) -> list[str]: ...


class MemoryCursorStore:
    """Cursors live for the process lifetime only."""

    def __init__(self) -> None:
        self._data: dict[str, dict] = {}
        self._lock = threading.Lock()

    def load(self, key: str) -> Cursor:
        with self._lock:
            data = self._data.get(key)
        return cursor_from_dict(data)

    def save(self, key: str, cursor: Cursor) -> None:
        doc = cursor_to_dict(cursor)
        with self._lock:
            self._data[key] = doc

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._data.pop(key, None) is not None

    def keys(self) -> list[str]:
        with self._lock:
            return sorted(self._data)


class SqliteCursorStore:
    """SQLite-backed cursor storage. One file per path."""

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._init_schema()

    @property
    def path(self) -> Path:
        return self._path

    def _conn(self) -> sqlite3.Connection:
        return sqlite3.connect(str(self._path), timeout=10.0)

    def _init_schema(self) -> None:
        with self._conn() as c:
            c.execute(
                """
                CREATE TABLE IF NOT EXISTS cursors (
                    trigger_key TEXT PRIMARY KEY,
                    version INTEGER NOT NULL,
                    payload TEXT NOT NULL,
                    updated_utc TEXT NOT NULL
                )
                """
            )

    def load(self, key: str) -> Cursor:
        """Return the stored cursor, or an empty one if the key was never saved."""
        with self._conn() as c:
            row = c.execute(
                "SELECT payload FROM cursors WHERE trigger_key = ?", (key,)
            ).fetchone()
        if row is None:
            return Cursor()
        return cursor_from_dict(json.loads(row[0]))

    def save(self, key: str, cursor: Cursor) -> None:
        """Upsert the full cursor for *key*."""
        payload = json.dumps(cursor_to_dict(cursor), sort_keys=True)
        with self._conn() as c:
            c.execute(
                """
                INSERT OR REPLACE INTO cursors (trigger_key, version, payload, updated_utc)
                VALUES (?, ?, ?, ?)
                """,
                (key, CURSOR_VERSION, payload, datetime.now(timezone.utc).isoformat()),
            )
        logger.debug("Saved cursor %s", key)

    def delete(self, key: str) -> bool:
        with self._conn() as c:
            cur = c.execute("DELETE FROM cursors WHERE trigger_key = ?", (key,))
            return cur.rowcount > 0

    def keys(self) -> list[str]:
        with self._conn() as c:
            rows = c.execute("SELECT trigger_key FROM cursors ORDER BY trigger_key ASC").fetchall()
        return [r[0] for r in rows]
