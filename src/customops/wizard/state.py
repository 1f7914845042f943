"""Mutable wizard state: cursor, form data and remote results."""

from __future__ import annotations

import hashlib
import json
import time
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List

from customops.exceptions import WizardBusyError


def fingerprint(form_data: Dict[str, Any]) -> str:
    """Stable digest of form data, used to key cached generation results."""
    encoded = json.dumps(form_data, sort_keys=True, default=str)
    return hashlib.sha256(encoded.encode("utf-8")).hexdigest()


@dataclass
class TransitionRecord:
    """Record of a single cursor move.

    Attributes:
        from_step: Step before the move
        to_step: Step after the move
        trigger: What caused it (advance, retreat, skip, reset)
        timestamp: Unix timestamp of the move
    """

    from_step: str
    to_step: str
    trigger: str
    timestamp: float = field(default_factory=time.time)


@dataclass
class CachedResult:
    fingerprint: str
    result: Any


@dataclass
class WizardState:
    """Wizard position and accumulated data.

    Created when a wizard starts, mutated by navigation and field edits,
    discarded on reset.

    Attributes:
        current_step: Name of the step the cursor is on
        form_data: Values entered so far, across all steps
        server_result: Most recent remote generation result
        result_step: Step whose generator produced ``server_result``
        history: Visited steps, ending with ``current_step``
        results: Cached generation results per step
        pending: A remote call is in flight
        pending_action: Name of the action that is in flight
        completed: The flow's completion action succeeded
        outcome: Value returned by the completion action
        transitions: Audit trail of cursor moves
    """

    current_step: str
    form_data: Dict[str, Any] = field(default_factory=dict)
    server_result: Any = None
    result_step: str | None = None
    history: List[str] = field(default_factory=list)
    results: Dict[str, CachedResult] = field(default_factory=dict)
    pending: bool = False
    pending_action: str | None = None
    completed: bool = False
    outcome: Any = None
    transitions: List[TransitionRecord] = field(default_factory=list)

    def __post_init__(self) -> None:
        if not self.history:
            self.history = [self.current_step]

    def begin_remote(self, action: str) -> None:
        """Mark a remote call as in flight.

        Raises:
            WizardBusyError: If another call is already pending
        """
        if self.pending:
            raise WizardBusyError(self.current_step, action)
        self.pending = True
        self.pending_action = action

    def end_remote(self) -> None:
        self.pending = False
        self.pending_action = None

    def move_to(self, step: str, trigger: str) -> None:
        self.transitions.append(TransitionRecord(self.current_step, step, trigger))
        self.current_step = step
        if trigger == "retreat":
            self.history.pop()
        else:
            self.history.append(step)

    def cached_result(self, step: str) -> Any:
        """Return the cached result for a step if the form data is unchanged."""
        cached = self.results.get(step)
        if cached is not None and cached.fingerprint == fingerprint(self.form_data):
            return cached
        return None

    def store_result(self, step: str, result: Any, digest: str | None = None) -> None:
        """Cache a generation result and make it the current result.

        Args:
            step: Step whose generator produced the result
            result: The result object
            digest: Fingerprint of the form data the call was made with;
                defaults to the current form data
        """
        self.results[step] = CachedResult(digest or fingerprint(self.form_data), result)
        self.server_result = result
        self.result_step = step

    def record_action(self, step: str, result: Any, digest: str) -> None:
        self.results[f"{step}:action"] = CachedResult(digest, result)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["pending"] = False
        data["pending_action"] = None
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> WizardState:
        return cls(
            current_step=data["current_step"],
            form_data=dict(data.get("form_data", {})),
            server_result=data.get("server_result"),
            result_step=data.get("result_step"),
            history=list(data.get("history", [])),
            results={
                step: CachedResult(**cached)
                for step, cached in data.get("results", {}).items()
            },
            completed=data.get("completed", False),
            outcome=data.get("outcome"),
            transitions=[TransitionRecord(**t) for t in data.get("transitions", [])],
        )
