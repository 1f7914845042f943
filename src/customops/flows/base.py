"""Common base for concrete flows.

A flow binds a :class:`~customops.gateway.Gateway` handle to a
:class:`~customops.wizard.WizardController` built from the flow's step enum,
and adds the flow-specific remote calls. Navigation is delegated to the
controller unchanged.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Any, ClassVar, Dict, Iterable, List

from customops.exceptions import GatewayError
from customops.gateway import Gateway
from customops.notify import LoggingNotifier, Notifier
from customops.transitions import TransitionValidator
from customops.wizard import RemoteResult, WizardController, WizardDefinition, WizardState
from customops.wizard.controller import CompletionCallback

logger = logging.getLogger(__name__)


def utc_now() -> str:
    """Current time as an ISO-8601 string, as stored on entity records."""
    return datetime.now(timezone.utc).isoformat()


def check_transition(validator: TransitionValidator, current: str | None, target: str) -> None:
    """Validate a status write; rewriting the same status is always allowed.

    Raises:
        InvalidTransitionError: If the graph forbids the move
    """
    if current == target:
        return
    validator.validate(current, target)


class Flow:
    """Base class for flows driven by a wizard controller.

    Subclasses set :attr:`steps` and implement :meth:`build_definition` and,
    when the flow has a completion step, :meth:`finish`.
    """

    steps: ClassVar[type[Enum]]
    editable_result_fields: ClassVar[Iterable[str]] = ()

    def __init__(
        self,
        gateway: Gateway,
        *,
        notifier: Notifier | None = None,
        on_complete: CompletionCallback | None = None,
        state: WizardState | None = None,
    ) -> None:
        self.gateway = gateway
        self.notifier = notifier or LoggingNotifier()
        self.controller = WizardController(
            self.build_definition(),
            notifier=self.notifier,
            completer=self.finish,
            on_complete=on_complete,
            editable_result_fields=self.editable_result_fields,
            state=state,
        )

    def build_definition(self) -> WizardDefinition:
        raise NotImplementedError

    async def finish(self, form_data: Dict[str, Any], result: RemoteResult | None) -> Any:
        """Remote mutations for :meth:`complete`; returns the outcome."""
        return form_data

    async def invoke(self, function: str, payload: Dict[str, Any]) -> Any:
        """Invoke a remote function and return its response data.

        Raises:
            GatewayError: If the call fails or returns no data
        """
        response = await self.gateway.functions.invoke(function, payload)
        if response.data is None:
            raise GatewayError(f"{function} returned no data", operation=f"functions.invoke:{function}")
        return response.data

    # -- Delegated navigation ------------------------------------------------

    @property
    def step(self) -> Enum:
        return self.steps(self.controller.state.current_step)

    @property
    def form_data(self) -> Dict[str, Any]:
        return self.controller.form_data

    @property
    def result(self) -> RemoteResult | None:
        return self.controller.result

    @property
    def progress(self) -> float:
        return self.controller.progress

    @property
    def can_advance(self) -> bool:
        return self.controller.can_advance

    @property
    def is_busy(self) -> bool:
        return self.controller.is_busy

    @property
    def is_completed(self) -> bool:
        return self.controller.is_completed

    def missing_fields(self) -> List[str]:
        return self.controller.missing_fields()

    def update(self, values: Dict[str, Any] | None = None, **fields: Any) -> None:
        self.controller.update(values, **fields)

    async def advance(self) -> bool:
        return await self.controller.advance()

    async def retreat(self) -> bool:
        return await self.controller.retreat()

    async def skip(self) -> bool:
        return await self.controller.skip()

    async def regenerate(self) -> bool:
        return await self.controller.regenerate()

    async def complete(self) -> bool:
        return await self.controller.complete()

    def reset(self) -> None:
        self.controller.reset()
