"""JSONL diagnostics log for engine and wizard activity."""

from __future__ import annotations

import json
import re
import threading
from pathlib import Path
from typing import Any, Dict, List, Optional

from servercfg.kernel.types import now_ms


_REDACTED = "***REDACTED***"
_SENSITIVE_KEY_RE = re.compile(
    r"(password|passwd|secret|token|auth[_-]?key|api[_-]?key|private[_-]?key)",
    re.IGNORECASE,
)
_KEY_VALUE_RE = re.compile(
    r"(?i)\b(password|passwd|auth[_-]?key|token|secret|api[_-]?key)\b\s*[:=]\s*([^\s,;]+)"
)
_TSKEY_RE = re.compile(r"\btskey-[A-Za-z0-9-]{8,}\b")

REDACTION_MODES = ("none", "default", "strict")
ACTIVE_FILE_NAME = "servercfg.log.jsonl"


class DebugLogWriter:
    """Best-effort writer: failures are counted in ``status()``, never raised."""

    def __init__(
        self,
        *,
        logs_dir: Path,
        enabled: bool,
        max_file_bytes: int = 10 * 1024 * 1024,
        max_files: int = 5,
        redaction: str = "default",
    ) -> None:
        self._logs_dir = Path(logs_dir)
        self._enabled = bool(enabled)
        self._max_file_bytes = max(1, int(max_file_bytes or 0))
        self._max_files = max(1, int(max_files or 0))
        mode = str(redaction or "default").strip().lower()
        self._redaction = mode if mode in REDACTION_MODES else "default"
        self._write_errors = 0
        self._lock = threading.Lock()

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def active_log_file(self) -> Path:
        return self._logs_dir / ACTIVE_FILE_NAME

    def write_entry(
        self,
        *,
        component: str,
        kind: str,
        message: str,
        level: str = "info",
        subject_id: str = "",
        data: Optional[Dict[str, Any]] = None,
        ts_ms: Optional[int] = None,
    ) -> None:
        if not self._enabled:
            return

        record: Dict[str, Any] = {
            "ts_ms": int(ts_ms if ts_ms is not None else now_ms()),
            "level": str(level or "info"),
            "component": str(component or "engine"),
            "kind": str(kind or "diagnostic"),
            "subject_id": str(subject_id or ""),
            "message": str(message or ""),
            "data": dict(data or {}),
        }

        if self._redaction == "strict":
            record["message"] = self._redact_text(record["message"])
            record["data"] = self._strict_redact(record["data"])
        elif self._redaction == "default":
            record["message"] = self._redact_text(record["message"])
            record["data"] = self._redact_payload(record["data"])

        with self._lock:
            try:
                line = json.dumps(record, ensure_ascii=True, separators=(",", ":"), default=str)
                payload = (line + "\n").encode("utf-8")
                self._logs_dir.mkdir(parents=True, exist_ok=True)
                self._rotate_if_needed_locked(len(payload))
                with self.active_log_file.open("ab") as fp:
                    fp.write(payload)
            except OSError:
                self._write_errors += 1

    def status(self) -> Dict[str, Any]:
        with self._lock:
            rotated: List[str] = []
            active_size = 0
            total_size = 0
            if self._enabled:
                active = self.active_log_file
                active_size = int(active.stat().st_size) if active.exists() else 0
                total_size = active_size
                for index in range(1, self._max_files + 1):
                    path = self._rotated_file(index)
                    if path.exists():
                        rotated.append(str(path))
                        total_size += int(path.stat().st_size)
            return {
                "logs_enabled": self._enabled,
                "logs_dir": str(self._logs_dir),
                "logs_active_file": str(self.active_log_file),
                "logs_active_size_bytes": active_size,
                "logs_total_size_bytes": total_size,
                "logs_max_file_bytes": self._max_file_bytes,
                "logs_max_files": self._max_files,
                "logs_rotated_files": rotated,
                "logs_redaction": self._redaction,
                "logs_write_errors": int(self._write_errors),
            }

    def _rotate_if_needed_locked(self, incoming_size: int) -> None:
        active = self.active_log_file
        current_size = int(active.stat().st_size) if active.exists() else 0
        if current_size + int(incoming_size) <= self._max_file_bytes:
            return

        self._rotated_file(self._max_files).unlink(missing_ok=True)
        for index in range(self._max_files - 1, 0, -1):
            src = self._rotated_file(index)
            if src.exists():
                src.replace(self._rotated_file(index + 1))
        if active.exists():
            active.replace(self._rotated_file(1))

    def _rotated_file(self, index: int) -> Path:
        return Path("{0}.{1}".format(self.active_log_file, index))

    def _redact_payload(self, value: Any) -> Any:
        if isinstance(value, dict):
            out: Dict[str, Any] = {}
            for key, item in value.items():
                if _SENSITIVE_KEY_RE.search(str(key)):
                    out[key] = _REDACTED
                else:
                    out[key] = self._redact_payload(item)
            return out
        if isinstance(value, list):
            return [self._redact_payload(item) for item in value]
        if isinstance(value, str):
            return self._redact_text(value)
        return value

    def _strict_redact(self, value: Any) -> Any:
        # Only structure survives: every leaf value is masked.
        if isinstance(value, dict):
            return {key: self._strict_redact(item) for key, item in value.items()}
        if isinstance(value, list):
            return [self._strict_redact(item) for item in value]
        return _REDACTED

    @staticmethod
    def _redact_text(text: str) -> str:
        if not text:
            return text
        masked = _KEY_VALUE_RE.sub(lambda m: "{0}={1}".format(m.group(1), _REDACTED), text)
        return _TSKEY_RE.sub(_REDACTED, masked)
