"""Durable completion ledger persisted as a single JSON record."""

from __future__ import annotations

import json
import os
import tempfile
import threading
from pathlib import Path
from typing import Optional

from servercfg.kernel.errors import PersistenceError, TaskBusy
from servercfg.kernel.types import StateRecord, now_ms


def atomic_write_text(path: Path, content: str) -> None:
    """Write into a sibling temp file, fsync, then ``os.replace`` into place."""

    fd, tmp_path = tempfile.mkstemp(
        dir=str(path.parent),
        prefix=".{0}.".format(path.name),
        suffix=".tmp",
    )
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as tmp_handle:
            tmp_handle.write(content)
            tmp_handle.flush()
            os.fsync(tmp_handle.fileno())
        os.replace(tmp_path, str(path))
    except BaseException:
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise


class StateStore:
    """Completed set, single in-progress slot, and last-run time.

    Every mutation persists immediately. A single writer process is assumed;
    concurrent external edits are last-write-wins.
    """

    def __init__(self, state_file: Path, *, exclusive_in_progress: bool = False) -> None:
        self._state_file = Path(state_file)
        self._exclusive = bool(exclusive_in_progress)
        self._lock = threading.Lock()
        self._record = StateRecord()
        self.load()

    @property
    def state_file(self) -> Path:
        return self._state_file

    def load(self) -> StateRecord:
        """Read the record; any missing or unreadable file yields an empty one."""

        record = StateRecord()
        try:
            raw = self._state_file.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError):
            raw = ""
        if raw.strip():
            try:
                parsed = json.loads(raw)
            except ValueError:
                parsed = None
            if isinstance(parsed, dict):
                record = StateRecord.from_dict(parsed)
        with self._lock:
            self._record = record
        return self.snapshot()

    def persist(self) -> None:
        with self._lock:
            self._write_locked(self._record)

    def snapshot(self) -> StateRecord:
        with self._lock:
            return StateRecord(
                completed=list(self._record.completed),
                in_progress=self._record.in_progress,
                last_run=self._record.last_run,
            )

    def is_completed(self, task_id: str) -> bool:
        with self._lock:
            return task_id in self._record.completed

    def is_in_progress(self, task_id: str) -> bool:
        with self._lock:
            return self._record.in_progress == task_id

    def in_progress(self) -> Optional[str]:
        with self._lock:
            return self._record.in_progress

    def mark_in_progress(self, task_id: str) -> None:
        with self._lock:
            running = self._record.in_progress
            if self._exclusive and running and running != task_id:
                raise TaskBusy(task_id, running)
            updated = StateRecord(
                completed=list(self._record.completed),
                in_progress=task_id,
                last_run=now_ms(),
            )
            self._commit_locked(updated)

    def mark_completed(self, task_id: str) -> None:
        with self._lock:
            completed = list(self._record.completed)
            if task_id not in completed:
                completed.append(task_id)
            in_progress = self._record.in_progress
            if in_progress == task_id:
                in_progress = None
            updated = StateRecord(
                completed=completed,
                in_progress=in_progress,
                last_run=self._record.last_run,
            )
            self._commit_locked(updated)

    def mark_failed(self, task_id: str) -> None:
        with self._lock:
            in_progress = self._record.in_progress
            if in_progress == task_id:
                in_progress = None
            updated = StateRecord(
                completed=list(self._record.completed),
                in_progress=in_progress,
                last_run=self._record.last_run,
            )
            self._commit_locked(updated)

    def reset(self) -> None:
        with self._lock:
            self._commit_locked(StateRecord())

    def _commit_locked(self, record: StateRecord) -> None:
        # The in-memory record only changes once the write has landed.
        self._write_locked(record)
        self._record = record

    def _write_locked(self, record: StateRecord) -> None:
        payload = json.dumps(record.to_dict(), ensure_ascii=True, indent=2) + "\n"
        try:
            self._state_file.parent.mkdir(parents=True, exist_ok=True)
            atomic_write_text(self._state_file, payload)
        except OSError as exc:
            raise PersistenceError(
                "failed to write state file: {0}".format(exc),
                path=self._state_file,
            ) from exc
