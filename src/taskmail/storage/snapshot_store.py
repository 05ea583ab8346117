# src/taskmail/storage/snapshot_store.py

from __future__ import annotations

import contextlib
import json
import logging
import sqlite3
import time
from pathlib import Path
from typing import Any

from ..core.ports import TaskRecord

logger = logging.getLogger(__name__)


class SnapshotStore:
    """
    SQLite store for the full task list (one JSON snapshot, replaced on every save).

    Schema:
    - snapshots(id=1, payload TEXT, saved_at REAL); a single row, upserted on save

    Thread-safety:
    - each method opens its own SQLite connection
    """

    def __init__(self, db_path: str | Path = "tasks.sqlite3") -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()
        logger.info("SnapshotStore ready db=%s", self._db_path)

    # ---- low-level helpers ----

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), timeout=30.0)
        conn.row_factory = sqlite3.Row
        with contextlib.suppress(sqlite3.DatabaseError):
            conn.execute("PRAGMA journal_mode=WAL")
        return conn

    def _ensure_schema(self) -> None:
        conn = self._get_conn()
        try:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS snapshots (
                    id INTEGER PRIMARY KEY CHECK (id = 1),
                    payload TEXT NOT NULL DEFAULT '[]',
                    saved_at REAL NOT NULL
                )
                """
            )
            conn.commit()
        finally:
            conn.close()

    @staticmethod
    def _decode(payload: str | None) -> list[TaskRecord]:
        if not payload:
            return []
        try:
            val: Any = json.loads(payload)
        except ValueError:
            logger.warning("Stored task snapshot is not valid JSON; treating as empty")
            return []
        if not isinstance(val, list):
            return []
        return [t for t in val if isinstance(t, dict)]

    # ---- public API ----

    def load_previous(self) -> list[TaskRecord]:
        conn = self._get_conn()
        try:
            row = conn.execute("SELECT payload FROM snapshots WHERE id = 1").fetchone()
        finally:
            conn.close()
        if row is None:
            return []
        return self._decode(row["payload"])

    def save(self, tasks: list[TaskRecord]) -> None:
        payload = json.dumps(list(tasks), ensure_ascii=False)
        conn = self._get_conn()
        try:
            conn.execute(
                """
                INSERT INTO snapshots (id, payload, saved_at) VALUES (1, ?, ?)
                ON CONFLICT(id) DO UPDATE SET payload = excluded.payload, saved_at = excluded.saved_at
                """,
                (payload, time.time()),
            )
            conn.commit()
        finally:
            conn.close()
        logger.debug("Saved task snapshot tasks=%d", len(tasks))

    def last_saved_at(self) -> float | None:
        conn = self._get_conn()
        try:
            row = conn.execute("SELECT saved_at FROM snapshots WHERE id = 1").fetchone()
        finally:
            conn.close()
        return float(row["saved_at"]) if row is not None else None
