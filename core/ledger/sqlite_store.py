"""
Module 07 - Persistent Spent Set

SQLite-backed spent set. The primary key on serial makes
INSERT OR IGNORE the atomic check-and-insert.
"""
from __future__ import annotations

import logging
import sqlite3
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from .spent_set import SERIAL_BYTES, InsertResult, SpentRecord, SpentSet

logger = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS spent_serials (
    serial BLOB PRIMARY KEY,
    tag BLOB NOT NULL,
    first_seen TEXT NOT NULL
);
"""


class SqliteSpentSet(SpentSet):
    """
    Usage:
        spent = SqliteSpentSet("spent.db")
        spent.insert_if_absent(serial, tag)
        spent.close()
    """

    def __init__(self, path: str | Path = ":memory:") -> None:
        self.path = str(path)
        if self.path != ":memory:":
            Path(self.path).parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()
        self._conn = sqlite3.connect(self.path, check_same_thread=False, isolation_level=None)
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.executescript(SCHEMA)
        logger.debug("Opened spent set at %s", self.path)

    @staticmethod
    def _check(serial: bytes) -> None:
        if len(serial) != SERIAL_BYTES:
            raise ValueError(f"serial must be {SERIAL_BYTES} bytes, got {len(serial)}")

    @staticmethod
    def _row_to_record(row: tuple) -> SpentRecord:
        serial, tag, first_seen = row
        return SpentRecord(serial=bytes(serial), tag=bytes(tag), first_seen=datetime.fromisoformat(first_seen))

    def contains(self, serial: bytes) -> bool:
        return self.get(serial) is not None

    def get(self, serial: bytes) -> Optional[SpentRecord]:
        self._check(serial)
        with self._lock:
            row = self._conn.execute(
                "SELECT serial, tag, first_seen FROM spent_serials WHERE serial = ?",
                (serial,),
            ).fetchone()
        return self._row_to_record(row) if row else None

    def insert_if_absent(self, serial: bytes, tag: bytes) -> InsertResult:
        self._check(serial)
        first_seen = datetime.now(timezone.utc)
        with self._lock:
            cursor = self._conn.execute(
                "INSERT OR IGNORE INTO spent_serials (serial, tag, first_seen) VALUES (?, ?, ?)",
                (serial, tag, first_seen.isoformat()),
            )
            if cursor.rowcount == 1:
                return InsertResult(
                    inserted=True,
                    record=SpentRecord(serial=serial, tag=tag, first_seen=first_seen),
                )
            row = self._conn.execute(
                "SELECT serial, tag, first_seen FROM spent_serials WHERE serial = ?",
                (serial,),
            ).fetchone()
        return InsertResult(inserted=False, record=self._row_to_record(row))

    def reset_epoch(self) -> None:
        with self._lock:
            self._conn.execute("DELETE FROM spent_serials")
        logger.info("Spent set %s reset for new epoch", self.path)

    def __len__(self) -> int:
        with self._lock:
            return self._conn.execute("SELECT COUNT(*) FROM spent_serials").fetchone()[0]

    def close(self) -> None:
        with self._lock:
            self._conn.close()


__all__ = ["SqliteSpentSet"]
