"""Guided multi-step input collection."""

from .types import (
    Step,
    SubmitResult,
    ValidationError,
    ValidationErrorKind,
    ValidationOutcome,
    WizardDefinition,
    WizardProgress,
    WizardSession,
    WizardState,
)
from .engine import WizardEngine

__all__ = [
    "Step",
    "SubmitResult",
    "ValidationError",
    "ValidationErrorKind",
    "ValidationOutcome",
    "WizardDefinition",
    "WizardProgress",
    "WizardSession",
    "WizardState",
    "WizardEngine",
]
