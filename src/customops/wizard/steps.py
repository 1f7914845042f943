"""Static step definitions for wizard flows.

A wizard is an ordered sequence of :class:`StepDefinition` objects whose names
come from a per-flow ``Enum``. Optional steps are ordinary entries flagged
``optional=True``; they are entered by ``advance()`` and left or bypassed by
``skip()``.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List

from customops.exceptions import ConfigurationError
from customops.transitions import TransitionValidator

Generator = Callable[[Dict[str, Any]], Awaitable[Any]]


def step_name(step: Enum | str) -> str:
    """Return the string name of a step given its enum member or name."""
    if isinstance(step, Enum):
        return str(step.value)
    return step


def is_satisfied(value: Any) -> bool:
    """Whether a form value counts as filled in.

    ``None``, blank strings and empty collections are unfilled; ``0`` and
    ``False`` are filled.
    """
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    if isinstance(value, (list, tuple, set, dict)):
        return len(value) > 0
    return True


def lookup(data: Mapping[str, Any], path: str) -> Any:
    """Read a dotted path (``"welcome_email.subject"``) from nested mappings."""
    current: Any = data
    for part in path.split("."):
        if not isinstance(current, Mapping) or part not in current:
            return None
        current = current[part]
    return current


@dataclass(frozen=True)
class StepDefinition:
    """One step of a wizard.

    Attributes:
        name: Step identifier (a member of the flow's step enum, or its value)
        title: Display title
        required_fields: Form fields (dotted paths allowed) that must be
            filled before leaving the step forwards
        icon: Display icon name
        optional: Step may be skipped
        generator: Remote generation call run when advancing out of this step.
            Receives a copy of the form data; its return value becomes the
            wizard's current result.
        action: Remote side effect run when advancing out of this step, after
            the generator. Not run by ``skip()``; its result is not displayed.
        commits: Leaving the step forwards creates remote records. Once left,
            ``retreat()`` does not return to it and ``regenerate()`` does not
            re-run its generator.
        description: Display subtitle
    """

    name: Enum | str
    title: str
    required_fields: frozenset[str] = field(default_factory=frozenset)
    icon: str = ""
    optional: bool = False
    generator: Generator | None = None
    action: Generator | None = None
    commits: bool = False
    description: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "required_fields", frozenset(self.required_fields))

    @property
    def key(self) -> str:
        return step_name(self.name)

    def missing_fields(self, form_data: Mapping[str, Any]) -> List[str]:
        return sorted(f for f in self.required_fields if not is_satisfied(lookup(form_data, f)))


class WizardDefinition:
    """Ordered, immutable list of steps for one flow.

    Args:
        name: Flow name used in logs and error messages
        steps: Steps in display order

    Raises:
        ConfigurationError: On an empty step list, duplicate names, or an
            optional first step
    """

    def __init__(self, name: str, steps: Sequence[StepDefinition]) -> None:
        if not steps:
            raise ConfigurationError(f"Wizard '{name}' has no steps", context={"wizard": name})
        keys = [s.key for s in steps]
        duplicates = sorted({k for k in keys if keys.count(k) > 1})
        if duplicates:
            raise ConfigurationError(
                f"Wizard '{name}' has duplicate steps: {', '.join(duplicates)}",
                context={"wizard": name, "duplicates": duplicates},
            )
        if steps[0].optional:
            raise ConfigurationError(
                f"Wizard '{name}' cannot start on an optional step",
                context={"wizard": name},
            )

        self.name = name
        self._steps = tuple(steps)
        self._index = {k: i for i, k in enumerate(keys)}
        self.transitions = self._build_transitions()

    @property
    def steps(self) -> tuple[StepDefinition, ...]:
        return self._steps

    @property
    def step_names(self) -> List[str]:
        return [s.key for s in self._steps]

    @property
    def first(self) -> StepDefinition:
        return self._steps[0]

    @property
    def last(self) -> StepDefinition:
        return self._steps[-1]

    def __len__(self) -> int:
        return len(self._steps)

    def __iter__(self) -> Iterable[StepDefinition]:
        return iter(self._steps)

    def __contains__(self, step: object) -> bool:
        if isinstance(step, (Enum, str)):
            return step_name(step) in self._index
        return False

    def get(self, step: Enum | str) -> StepDefinition:
        key = step_name(step)
        if key not in self._index:
            raise ConfigurationError(
                f"Wizard '{self.name}' has no step '{key}'",
                context={"wizard": self.name, "steps": self.step_names},
            )
        return self._steps[self._index[key]]

    def position(self, step: Enum | str) -> int:
        """1-based position of a step."""
        return self._index[self.get(step).key] + 1

    def next_step(self, step: Enum | str) -> StepDefinition | None:
        index = self._index[self.get(step).key]
        return self._steps[index + 1] if index + 1 < len(self._steps) else None

    def is_last(self, step: Enum | str) -> bool:
        return self.get(step).key == self.last.key

    def _build_transitions(self) -> TransitionValidator:
        # Forward edge to the next step, a bypass edge over an optional next
        # step, and back edges to every earlier step that does not commit.
        graph: Dict[str, set[str]] = {}
        for i, step in enumerate(self._steps):
            targets = {s.key for s in self._steps[:i] if not s.commits}
            if i + 1 < len(self._steps):
                targets.add(self._steps[i + 1].key)
                if self._steps[i + 1].optional and i + 2 < len(self._steps):
                    targets.add(self._steps[i + 2].key)
            graph[step.key] = targets
        return TransitionValidator(f"{self.name} steps", graph)
