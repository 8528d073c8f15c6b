"""
Key-value persistence for settings, cycle state and reminders.

Records are JSON documents keyed by (profile, key). SqliteStore is the
on-disk backend; MemoryStore backs tests and simulations.
"""

from __future__ import annotations

import json
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, Optional, Protocol

from ..errors import PersistenceError
from ..log import setup_logger

logger = setup_logger(__name__)


class Store(Protocol):

    def get(self, key: str) -> Optional[Any]:
        """Return the decoded record, or None if absent. Raises PersistenceError."""
        ...

    def set(self, key: str, value: Any) -> bool:
        """Write the record; False when the write failed."""
        ...


class SqliteStore:
    """SQLite-backed store; one row per (profile, key)."""

    def __init__(self, db_path: Path, profile: str = "default"):
        self.db_path = db_path
        self.profile = profile
        self._init_db()

    def get(self, key: str) -> Optional[Any]:
        try:
            with self._conn() as conn:
                row = conn.execute(
                    "SELECT value_json FROM records WHERE profile = ? AND key = ?",
                    (self.profile, key),
                ).fetchone()
        except sqlite3.Error as e:
            raise PersistenceError(f"reading {key!r}: {e}") from e
        if row is None:
            return None
        try:
            return json.loads(row[0])
        except ValueError as e:
            raise PersistenceError(f"record {key!r} is not valid JSON") from e

    def set(self, key: str, value: Any) -> bool:
        try:
            with self._conn() as conn:
                conn.execute(
                    """
                    INSERT INTO records (profile, key, value_json) VALUES (?, ?, ?)
                    ON CONFLICT(profile, key) DO UPDATE SET value_json = excluded.value_json
                    """,
                    (self.profile, key, json.dumps(value)),
                )
        except (sqlite3.Error, TypeError, ValueError) as e:
            logger.warning("Could not persist %r for profile %r: %s", key, self.profile, e)
            return False
        return True

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _init_db(self) -> None:
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        with self._conn() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS records (
                    profile    TEXT NOT NULL,
                    key        TEXT NOT NULL,
                    value_json TEXT NOT NULL,
                    PRIMARY KEY (profile, key)
                )
                """
            )

    @contextmanager
    def _conn(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(str(self.db_path), check_same_thread=False)
        try:
            yield conn
            conn.commit()
        finally:
            conn.close()


class MemoryStore:
    """
    In-process store. Values round-trip through JSON so callers never share
    mutable objects with the store. Set fail_writes / fail_reads to
    simulate a broken backend.
    """

    def __init__(self, initial: Optional[Dict[str, Any]] = None):
        self._data: Dict[str, str] = {}
        self.fail_writes = False
        self.fail_reads = False
        for k, v in (initial or {}).items():
            self._data[k] = json.dumps(v)

    def get(self, key: str) -> Optional[Any]:
        if self.fail_reads:
            raise PersistenceError(f"reading {key!r}: store unavailable")
        raw = self._data.get(key)
        return None if raw is None else json.loads(raw)

    def set(self, key: str, value: Any) -> bool:
        if self.fail_writes:
            logger.warning("Could not persist %r: store unavailable", key)
            return False
        self._data[key] = json.dumps(value)
        return True
