"""Runtime container wiring catalog, state, history, logging and engines."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from servercfg.catalog import Catalog, build_default_catalog
from servercfg.config import Settings
from servercfg.kernel.debug_log import DebugLogWriter
from servercfg.kernel.engine import OrchestrationEngine
from servercfg.kernel.history import HistoryLog
from servercfg.kernel.progress import ProgressReporter
from servercfg.kernel.state_store import StateStore
from servercfg.kernel.types import ExecutionResult, HistoryEvent
from servercfg.wizard.definitions import BuiltinWizard
from servercfg.wizard.engine import WizardEngine
from servercfg.wizard.store import SavedWizard, WizardConfigStore


class Runtime:
    def __init__(self, settings: Settings, catalog: Optional[Catalog] = None) -> None:
        self.settings = settings
        self.catalog = catalog or build_default_catalog(
            scripts_root=settings.scripts_root,
            dry_run=settings.dry_run,
        )

        settings.state_root.mkdir(parents=True, exist_ok=True)
        self.debug_log = DebugLogWriter(
            logs_dir=settings.logs_dir,
            enabled=settings.logs_enabled,
            max_file_bytes=settings.logs_max_file_bytes,
            max_files=settings.logs_max_files,
            redaction=settings.logs_redaction,
        )
        self.state_store = StateStore(
            settings.state_file,
            exclusive_in_progress=settings.exclusive_in_progress,
        )
        self.history = HistoryLog(settings.history_db)
        self.engine = OrchestrationEngine(
            registry=self.catalog.registry,
            state_store=self.state_store,
            history=self.history,
            executors=self.catalog.executors,
            debug_log=self.debug_log,
        )
        self.progress = ProgressReporter(self.catalog.registry, self.state_store)
        self.wizard_store = WizardConfigStore(settings.wizard_state_dir)

    @property
    def registry(self):
        return self.catalog.registry

    def new_wizard_engine(self) -> WizardEngine:
        return WizardEngine(event_sink=self._emit_wizard_event)

    def run_wizard_plan(self, wizard: BuiltinWizard, fields: Dict[str, str]) -> List[ExecutionResult]:
        """Save confirmed answers, then run the wizard's plan as one sequence."""

        saved = self.save_wizard(wizard, fields)
        task_ids = wizard.plan(dict(fields))
        self.history.append(HistoryEvent.STARTED, wizard.name, note=",".join(task_ids))
        self.debug_log.write_entry(
            component="wizard",
            kind="wizard.plan.started",
            subject_id=wizard.name,
            message="wizard plan started",
            data={"tasks": task_ids, "saved": str(saved.path)},
        )
        results = self.engine.execute_many(task_ids)
        failed = next((item for item in results if not item.ok), None)
        if failed is None:
            self.history.append(HistoryEvent.COMPLETED, wizard.name)
            kind = "wizard.plan.completed"
        else:
            self.history.append(
                HistoryEvent.FAILED,
                wizard.name,
                note="{0}:{1}".format(failed.task_id, failed.status.value),
            )
            kind = "wizard.plan.failed"
        self.debug_log.write_entry(
            component="wizard",
            kind=kind,
            subject_id=wizard.name,
            message=kind.rsplit(".", 1)[-1],
            data={"results": [(item.task_id, item.status.value, item.code) for item in results]},
        )
        return results

    def save_wizard(self, wizard: BuiltinWizard, fields: Dict[str, str]) -> SavedWizard:
        return self.wizard_store.save(wizard.definition, fields)

    def status(self) -> Dict[str, Any]:
        overall = self.progress.overall_progress()
        record = self.state_store.snapshot()
        payload: Dict[str, Any] = {
            "state_file": str(self.settings.state_file),
            "history_db": str(self.settings.history_db),
            "scripts_root": str(self.settings.scripts_root),
            "dry_run": self.settings.dry_run,
            "completed": overall.completed_count,
            "total": overall.total_count,
            "percentage": overall.percentage,
            "in_progress": record.in_progress,
            "last_run": record.last_run,
        }
        payload.update(self.debug_log.status())
        payload["logs_format"] = self.settings.logs_format
        return payload

    def close(self) -> None:
        self.history.close()

    def _emit_wizard_event(self, event_type: str, payload: Dict[str, Any]) -> None:
        level = "warn" if event_type == "wizard.step.rejected" else "info"
        self.debug_log.write_entry(
            component="wizard",
            kind=event_type,
            subject_id=str(payload.get("wizard") or payload.get("field") or ""),
            message=event_type,
            level=level,
            data=payload,
        )
