"""Generic multi-step wizard: step definitions, state, controller, results."""

from .controller import WizardController
from .result import RemoteResult
from .state import CachedResult, TransitionRecord, WizardState, fingerprint
from .steps import (
    StepDefinition,
    WizardDefinition,
    is_satisfied,
    lookup,
    step_name,
)

__all__ = [
    "CachedResult",
    "RemoteResult",
    "StepDefinition",
    "TransitionRecord",
    "WizardController",
    "WizardDefinition",
    "WizardState",
    "fingerprint",
    "is_satisfied",
    "lookup",
    "step_name",
]
