"""Multi-step guided input collector."""

from __future__ import annotations

from typing import Any, Callable, Dict, Optional

from servercfg.kernel.errors import WizardStateError
from servercfg.wizard.types import (
    Step,
    SubmitResult,
    ValidationError,
    ValidationErrorKind,
    WizardDefinition,
    WizardProgress,
    WizardSession,
    WizardState,
)
from servercfg.wizard.validators import is_ascii_digits, validate

WizardEventSink = Callable[[str, Dict[str, Any]], None]


class WizardEngine:
    """Drives one ``WizardSession`` through its lifecycle.

    ``created -> running -> reviewing -> confirmed | cancelled``. Rejected
    input is returned as a ``SubmitResult`` carrying a ``ValidationError`` and
    leaves the session on the same step. Nothing outside the session changes
    until the caller reads ``confirmed_fields()``.
    """

    def __init__(self, event_sink: Optional[WizardEventSink] = None) -> None:
        self._event_sink = event_sink
        self._session: Optional[WizardSession] = None

    @property
    def session(self) -> WizardSession:
        if self._session is None:
            raise WizardStateError("read session", WizardState.CREATED.value)
        return self._session

    @property
    def state(self) -> WizardState:
        if self._session is None:
            return WizardState.CREATED
        return self._session.state

    def start(self, definition: WizardDefinition) -> WizardSession:
        if self._session is not None and not self._session.finished:
            raise WizardStateError("start", self._session.state.value)
        session = WizardSession(definition=definition, state=WizardState.RUNNING)
        self._session = session
        self._emit("wizard.started", {"wizard": definition.name, "steps": len(definition.steps)})
        self._settle(session)
        return session

    def current_step(self) -> Optional[Step]:
        session = self.session
        if session.state != WizardState.RUNNING:
            return None
        self._settle(session)
        if session.state != WizardState.RUNNING:
            return None
        return session.definition.steps[session.step_index]

    def submit_input(self, raw: str) -> SubmitResult:
        session = self.session
        if session.state != WizardState.RUNNING:
            raise WizardStateError("submit input", session.state.value)
        step = self.current_step()
        if step is None:
            raise WizardStateError("submit input", session.state.value)

        text = str(raw if raw is not None else "")
        # Secret values are stored verbatim.
        value = text if step.is_secret else text.strip()
        if not text.strip():
            value = str(step.default_value) if step.default_value is not None else ""

        if not value:
            if step.required:
                return self._reject(step, ValidationErrorKind.REQUIRED, "a value is required")
            return self._accept(session, step, "")

        if step.is_choice:
            if not is_ascii_digits(value):
                return self._reject(step, ValidationErrorKind.FORMAT, "enter an option number")
            index = int(value)
            if index < 1 or index > len(step.options):
                return self._reject(
                    step,
                    ValidationErrorKind.OUT_OF_RANGE,
                    "choose 1-{0}".format(len(step.options)),
                )
            return self._accept(session, step, step.options[index - 1])

        outcome = validate(step.kind, value)
        if not outcome.ok:
            return self._reject(step, ValidationErrorKind.FORMAT, outcome.reason)
        return self._accept(session, step, value)

    def back(self) -> Optional[Step]:
        """Reopen the most recently answered step, dropping its value."""

        session = self.session
        if session.state not in {WizardState.RUNNING, WizardState.REVIEWING}:
            raise WizardStateError("go back", session.state.value)
        if not session.answered:
            return self.current_step()
        index = session.answered.pop()
        step = session.definition.steps[index]
        session.fields.pop(step.field_name, None)
        session.step_index = index
        session.state = WizardState.RUNNING
        self._emit("wizard.step.reopened", {"field": step.field_name})
        return step

    def confirm(self, accept: bool) -> WizardState:
        session = self.session
        if session.state != WizardState.REVIEWING:
            raise WizardStateError("confirm", session.state.value)
        if accept:
            session.state = WizardState.CONFIRMED
            self._emit("wizard.confirmed", {"wizard": session.definition.name})
        else:
            self._discard(session)
        return session.state

    def cancel(self) -> None:
        session = self.session
        if session.state not in {WizardState.RUNNING, WizardState.REVIEWING}:
            raise WizardStateError("cancel", session.state.value)
        self._discard(session)

    def confirmed_fields(self) -> Dict[str, str]:
        session = self.session
        if session.state != WizardState.CONFIRMED:
            raise WizardStateError("read confirmed fields", session.state.value)
        return dict(session.fields)

    def review(self) -> Dict[str, str]:
        session = self.session
        if session.state != WizardState.REVIEWING:
            raise WizardStateError("review", session.state.value)
        return dict(session.fields)

    def progress(self) -> WizardProgress:
        session = self.session
        visible = [
            index
            for index, step in enumerate(session.definition.steps)
            if index in session.answered or step.applies_to(session.fields)
        ]
        total = len(visible)
        done = len(session.answered)
        if total <= 0:
            return WizardProgress(step_number=0, total_steps=0, percentage=100)
        step_number = min(done + 1, total)
        return WizardProgress(
            step_number=step_number,
            total_steps=total,
            percentage=(done * 100) // total,
        )

    def _accept(self, session: WizardSession, step: Step, value: str) -> SubmitResult:
        session.fields[step.field_name] = value
        session.answered.append(session.step_index)
        session.step_index += 1
        self._emit("wizard.step.accepted", {"field": step.field_name})
        self._settle(session)
        return SubmitResult(accepted=True, field_name=step.field_name, value=value)

    def _reject(self, step: Step, kind: ValidationErrorKind, reason: str) -> SubmitResult:
        error = ValidationError(kind=kind, field_name=step.field_name, reason=reason)
        self._emit(
            "wizard.step.rejected",
            {"field": step.field_name, "kind": kind.value, "reason": reason},
        )
        return SubmitResult(accepted=False, field_name=step.field_name, error=error)

    def _settle(self, session: WizardSession) -> None:
        # Skip steps whose condition is false; past the end the session moves to review.
        steps = session.definition.steps
        while session.step_index < len(steps) and not steps[session.step_index].applies_to(session.fields):
            session.step_index += 1
        if session.step_index >= len(steps) and session.state == WizardState.RUNNING:
            session.step_index = len(steps)
            session.state = WizardState.REVIEWING
            self._emit("wizard.reviewing", {"wizard": session.definition.name})

    def _discard(self, session: WizardSession) -> None:
        session.fields.clear()
        session.answered.clear()
        session.state = WizardState.CANCELLED
        self._emit("wizard.cancelled", {"wizard": session.definition.name})

    def _emit(self, event_type: str, payload: Dict[str, Any]) -> None:
        if self._event_sink is None:
            return
        try:
            self._event_sink(str(event_type), dict(payload))
        except Exception:
            return
