from __future__ import annotations

from pathlib import Path

from servercfg.kernel.history import HistoryLog
from servercfg.kernel.types import HistoryEvent


def test_history_append_and_read_back(tmp_path: Path):
    log = HistoryLog(tmp_path / "history.db")
    try:
        log.append(HistoryEvent.STARTED, "1.1", timestamp=1000)
        log.append(HistoryEvent.FAILED, "1.1", note="3", timestamp=2000)
        log.append(HistoryEvent.COMPLETED, "quick_setup", timestamp=3000)

        entries = log.list_entries()
        assert [item.event for item in entries] == [
            HistoryEvent.STARTED,
            HistoryEvent.FAILED,
            HistoryEvent.COMPLETED,
        ]
        assert entries[1].note == "3"
        assert [item.subject_id for item in log.list_by_subject("1.1")] == ["1.1", "1.1"]
    finally:
        log.close()


def test_history_tail_returns_latest_in_order(tmp_path: Path):
    log = HistoryLog(tmp_path / "history.db")
    try:
        for index in range(5):
            log.append(HistoryEvent.STARTED, "task-{0}".format(index))
        tail = log.tail(2)
        assert [item.subject_id for item in tail] == ["task-3", "task-4"]
    finally:
        log.close()


def test_history_survives_reopen(tmp_path: Path):
    db_path = tmp_path / "nested" / "history.db"
    log = HistoryLog(db_path)
    log.append(HistoryEvent.RESET, "*")
    log.close()

    reopened = HistoryLog(db_path)
    try:
        entries = reopened.list_entries()
        assert len(entries) == 1
        assert entries[0].event == HistoryEvent.RESET
    finally:
        reopened.close()
