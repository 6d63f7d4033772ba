"""Saved wizard answers, one JSON file per wizard name."""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional

from servercfg.kernel.errors import PersistenceError
from servercfg.kernel.state_store import atomic_write_text
from servercfg.kernel.types import now_ms
from servercfg.wizard.types import WizardDefinition

MASK = "********"


@dataclass(frozen=True)
class SavedWizard:
    wizard: str
    timestamp: int
    fields: Dict[str, str]
    path: Path


class WizardConfigStore:
    def __init__(self, state_dir: Path) -> None:
        self._state_dir = Path(state_dir)

    @property
    def state_dir(self) -> Path:
        return self._state_dir

    def path_for(self, name: str) -> Path:
        return self._state_dir / "{0}.json".format(name)

    def save(self, definition: WizardDefinition, fields: Dict[str, str]) -> SavedWizard:
        masked: Dict[str, str] = {}
        for key, value in fields.items():
            step = definition.step_named(key)
            if step is not None and step.is_secret and value:
                masked[key] = MASK
            else:
                masked[key] = value

        timestamp = now_ms()
        payload = {"wizard": definition.name, "timestamp": timestamp, "fields": masked}
        path = self.path_for(definition.name)
        try:
            self._state_dir.mkdir(parents=True, exist_ok=True)
            atomic_write_text(path, json.dumps(payload, ensure_ascii=False, indent=2) + "\n")
        except OSError as exc:
            raise PersistenceError("failed to save wizard answers: {0}".format(exc), path=path) from exc
        return SavedWizard(wizard=definition.name, timestamp=timestamp, fields=masked, path=path)

    def load(self, name: str) -> Optional[SavedWizard]:
        return self._read(self.path_for(name))

    def list_saved(self) -> List[SavedWizard]:
        if not self._state_dir.is_dir():
            return []
        saved: List[SavedWizard] = []
        for path in sorted(self._state_dir.glob("*.json")):
            item = self._read(path)
            if item is not None:
                saved.append(item)
        saved.sort(key=lambda item: item.timestamp, reverse=True)
        return saved

    @staticmethod
    def _read(path: Path) -> Optional[SavedWizard]:
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            return None
        if not isinstance(data, dict):
            return None
        raw_fields = data.get("fields")
        fields = {str(k): str(v) for k, v in raw_fields.items()} if isinstance(raw_fields, dict) else {}
        try:
            timestamp = int(data.get("timestamp") or 0)
        except (TypeError, ValueError):
            timestamp = 0
        return SavedWizard(
            wizard=str(data.get("wizard") or path.stem),
            timestamp=timestamp,
            fields=fields,
            path=path,
        )
