"""SQLite-backed append-only history of task and wizard lifecycle events."""

from __future__ import annotations

import sqlite3
import threading
from pathlib import Path
from typing import List, Optional

from servercfg.kernel.types import HistoryEntry, HistoryEvent, now_ms


class HistoryLog:
    """Append-only audit trail.

    Rows are never updated or deleted. Consumers other than the engine and the
    wizard driver only read; the log is never used to rebuild state.
    """

    def __init__(self, db_path: Path) -> None:
        self._db_path = Path(db_path)
        self._lock = threading.Lock()
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(str(self._db_path), check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._init_db()

    def _init_db(self) -> None:
        cursor = self._conn.cursor()
        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS history_log (
                timestamp_ms INTEGER NOT NULL,
                subject_id TEXT NOT NULL,
                event TEXT NOT NULL,
                note TEXT NOT NULL
            )
            """
        )
        cursor.execute(
            "CREATE INDEX IF NOT EXISTS idx_history_subject_ts ON history_log (subject_id, timestamp_ms)"
        )
        self._conn.commit()

    def append(
        self,
        event: HistoryEvent,
        subject_id: str,
        note: str = "",
        timestamp: Optional[int] = None,
    ) -> HistoryEntry:
        entry = HistoryEntry(
            timestamp=int(timestamp if timestamp is not None else now_ms()),
            subject_id=str(subject_id),
            event=HistoryEvent(event),
            note=str(note or ""),
        )
        with self._lock:
            self._conn.execute(
                """
                INSERT INTO history_log (timestamp_ms, subject_id, event, note)
                VALUES (?, ?, ?, ?)
                """,
                (entry.timestamp, entry.subject_id, entry.event.value, entry.note),
            )
            self._conn.commit()
        return entry

    def list_entries(self, limit: int = 1000) -> List[HistoryEntry]:
        rows = self._conn.execute(
            "SELECT * FROM history_log ORDER BY rowid ASC LIMIT ?",
            (limit,),
        ).fetchall()
        return [self._row_to_entry(row) for row in rows]

    def tail(self, limit: int = 50) -> List[HistoryEntry]:
        """Most recent ``limit`` entries, oldest first."""

        rows = self._conn.execute(
            "SELECT * FROM history_log ORDER BY rowid DESC LIMIT ?",
            (max(0, int(limit)),),
        ).fetchall()
        return [self._row_to_entry(row) for row in reversed(rows)]

    def list_by_subject(self, subject_id: str, limit: int = 1000) -> List[HistoryEntry]:
        rows = self._conn.execute(
            """
            SELECT * FROM history_log
            WHERE subject_id = ?
            ORDER BY rowid ASC
            LIMIT ?
            """,
            (subject_id, limit),
        ).fetchall()
        return [self._row_to_entry(row) for row in rows]

    def close(self) -> None:
        self._conn.close()

    @staticmethod
    def _row_to_entry(row: sqlite3.Row) -> HistoryEntry:
        return HistoryEntry(
            timestamp=int(row["timestamp_ms"]),
            subject_id=str(row["subject_id"]),
            event=HistoryEvent(row["event"]),
            note=str(row["note"] or ""),
        )
