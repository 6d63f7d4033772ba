"""Typed wizard contracts: definitions, sessions and submit results."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional, Tuple

FieldPredicate = Callable[[Dict[str, str]], bool]

CHOICE_KIND = "choice"


@dataclass(frozen=True)
class ValidationOutcome:
    ok: bool
    reason: str = ""


@dataclass(frozen=True)
class Step:
    """One prompt in a wizard.

    ``kind`` is a validator kind or ``"choice"``. Choice steps accept a
    1-based option number and store the option label.
    """

    field_name: str
    prompt: str
    kind: str = "freeform"
    default_value: Optional[str] = None
    required: bool = True
    options: Tuple[str, ...] = ()
    title: str = ""
    when: Optional[FieldPredicate] = None
    sensitive: bool = False

    @property
    def is_secret(self) -> bool:
        return self.sensitive or self.kind == "password"

    @property
    def is_choice(self) -> bool:
        return self.kind == CHOICE_KIND

    def applies_to(self, fields: Dict[str, str]) -> bool:
        if self.when is None:
            return True
        return bool(self.when(dict(fields)))


@dataclass(frozen=True)
class WizardDefinition:
    name: str
    title: str
    steps: Tuple[Step, ...]
    description: str = ""

    def step_named(self, field_name: str) -> Optional[Step]:
        for step in self.steps:
            if step.field_name == field_name:
                return step
        return None


class WizardState(str, Enum):
    CREATED = "created"
    RUNNING = "running"
    REVIEWING = "reviewing"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


@dataclass
class WizardSession:
    """Explicit per-run wizard state; never shared between runs."""

    definition: WizardDefinition
    step_index: int = 0
    fields: Dict[str, str] = field(default_factory=dict)
    state: WizardState = WizardState.CREATED
    answered: List[int] = field(default_factory=list)

    @property
    def finished(self) -> bool:
        return self.state in {WizardState.CONFIRMED, WizardState.CANCELLED}


class ValidationErrorKind(str, Enum):
    REQUIRED = "required"
    FORMAT = "format"
    OUT_OF_RANGE = "out_of_range"


@dataclass(frozen=True)
class ValidationError:
    kind: ValidationErrorKind
    field_name: str
    reason: str = ""


@dataclass(frozen=True)
class SubmitResult:
    """Outcome of one ``submit_input`` call; rejected input keeps the step."""

    accepted: bool
    field_name: str
    value: str = ""
    error: Optional[ValidationError] = None


@dataclass(frozen=True)
class WizardProgress:
    step_number: int
    total_steps: int
    percentage: int
