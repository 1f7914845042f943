"""Declarative status graphs for entity status fields.

Records on the platform carry a status that only moves along certain edges:
a client's ``onboarding_status``, an offboarding record's ``status``, a
compliance flag's review ``status``, an outreach's delivery ``status``. Flows
check a write against the graph here before sending it to the gateway, and
the wizard controller checks its step moves the same way.

The graphs hold no current status of their own; the caller passes it in.

Example:
    ```python
    from customops.transitions import OFFBOARDING_STATUS

    OFFBOARDING_STATUS.validate("initiated", "in_progress")   # ok
    OFFBOARDING_STATUS.validate("completed", "initiated")     # raises InvalidTransitionError
    OFFBOARDING_STATUS.validate(None, "initiated")            # ok, record not created yet
    ```
"""

from __future__ import annotations

import logging
from typing import Dict, FrozenSet, Iterable, Mapping, Set

from customops.exceptions import OperationError

logger = logging.getLogger(__name__)


def _describe(entity: str, current: str, target: str, allowed: Set[str] | None) -> str:
    if allowed is None:
        return f"{entity}: unknown current status '{current}'"
    choices = ", ".join(sorted(allowed)) or "(none, terminal)"
    return f"{entity}: cannot transition from '{current}' to '{target}'. Allowed targets: {choices}"


class InvalidTransitionError(OperationError):
    """A status write that the entity's graph does not permit.

    Attributes:
        entity: Graph name, e.g. ``"offboarding_status"``
        current_status: Status of the record before the write
        target_status: Status the write asked for
        allowed: Permitted targets from ``current_status``; ``None`` when
            ``current_status`` is not in the graph at all
    """

    def __init__(
        self,
        entity: str,
        current_status: str,
        target_status: str,
        allowed: Set[str] | None = None,
    ) -> None:
        self.entity = entity
        self.current_status = current_status
        self.target_status = target_status
        self.allowed = allowed
        super().__init__(
            _describe(entity, current_status, target_status, allowed),
            context={
                "entity": entity,
                "current_status": current_status,
                "target_status": target_status,
                "allowed": sorted(allowed or ()),
            },
        )


class TransitionValidator:
    """Allowed moves between the statuses of one field.

    Args:
        name: Graph name used in error messages
        transitions: Each source status mapped to the statuses it may move
            to. A status that only ever appears as a target is terminal.
    """

    def __init__(self, name: str, transitions: Mapping[str, Iterable[str]]) -> None:
        self._name = name
        self._graph: Dict[str, FrozenSet[str]] = {
            source: frozenset(targets) for source, targets in transitions.items()
        }

    @property
    def name(self) -> str:
        return self._name

    @property
    def statuses(self) -> Set[str]:
        """Every status named in the graph, as source or target."""
        return set(self._graph).union(*self._graph.values())

    def targets(self, status: str) -> Set[str]:
        return set(self._graph.get(status, ()))

    def is_allowed(self, current_status: str | None, target_status: str) -> bool:
        if current_status is None:
            return True
        return target_status in self._graph.get(current_status, ())

    def validate(self, current_status: str | None, target_status: str) -> None:
        """Check a move, doing nothing when ``current_status`` is ``None``.

        Raises:
            InvalidTransitionError: If ``current_status`` is unknown or the
                move is not one of its edges
        """
        if current_status is None:
            return
        if current_status not in self._graph:
            raise InvalidTransitionError(self._name, current_status, target_status)
        if target_status in self._graph[current_status]:
            return
        logger.debug("%s: rejected %s -> %s", self._name, current_status, target_status)
        raise InvalidTransitionError(
            self._name, current_status, target_status, set(self._graph[current_status])
        )

    def __repr__(self) -> str:
        return f"TransitionValidator({self._name!r}, {len(self.statuses)} statuses)"


CLIENT_ONBOARDING_STATUS = TransitionValidator(
    "client_onboarding_status",
    {
        "pending": {"welcome_sent", "in_progress", "completed"},
        "welcome_sent": {"in_progress", "completed"},
        "in_progress": {"completed"},
        "completed": set(),
    },
)

OFFBOARDING_STATUS = TransitionValidator(
    "offboarding_status",
    {
        "initiated": {"in_progress", "completed", "cancelled"},
        "in_progress": {"in_progress", "completed", "cancelled"},
        "completed": set(),
        "cancelled": set(),
    },
)

COMPLIANCE_FLAG_STATUS = TransitionValidator(
    "compliance_flag_status",
    {
        "pending_review": {"acknowledged", "corrected", "dismissed", "escalated"},
        "acknowledged": {"corrected", "dismissed", "escalated"},
        "escalated": {"corrected", "dismissed"},
        "corrected": set(),
        "dismissed": set(),
    },
)

OUTREACH_STATUS = TransitionValidator(
    "outreach_status",
    {
        "draft": {"sent", "dismissed"},
        "sent": {"responded"},
        "responded": set(),
        "dismissed": set(),
    },
)
