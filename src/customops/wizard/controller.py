"""Wizard controller: navigation, remote generation and completion.

The controller drives one :class:`~customops.wizard.state.WizardState` through
a :class:`~customops.wizard.steps.WizardDefinition`. Every operation is a
coroutine that returns whether it took effect; failures are reported through
the notifier and leave the state as it was.

Example:
    ```python
    controller = WizardController(definition, notifier=notifier, completer=save)
    controller.update(first_name="Ada", last_name="Lovelace")
    if await controller.advance():          # runs the step's generator
        print(controller.result["summary"])
    await controller.retreat()              # no remote call
    await controller.advance()              # reuses the cached result
    ```
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Awaitable, Callable, Iterable
from enum import Enum
from typing import Any, Dict, List, Tuple

from customops.exceptions import (
    OperationError,
    RequiredFieldsError,
    ValidationError,
    WizardBusyError,
)
from customops.notify import LoggingNotifier, Notifier

from .result import RemoteResult
from .state import WizardState, fingerprint
from .steps import StepDefinition, WizardDefinition, step_name

logger = logging.getLogger(__name__)

Completer = Callable[[Dict[str, Any], "RemoteResult | None"], Awaitable[Any]]
CompletionCallback = Callable[[Any], Any]


class WizardController:
    """Drive a wizard through its steps.

    Args:
        definition: The flow's steps
        notifier: Destination for error and success messages
        completer: Remote mutations performed by :meth:`complete`. Receives the
            form data and the current result; its return value is the outcome.
        on_complete: Parent-supplied callback invoked with the outcome after a
            successful completion. May be a coroutine function.
        editable_result_fields: Result paths the user may edit before
            completion
        state: Restored state (defaults to a fresh state on the first step)
    """

    def __init__(
        self,
        definition: WizardDefinition,
        *,
        notifier: Notifier | None = None,
        completer: Completer | None = None,
        on_complete: CompletionCallback | None = None,
        editable_result_fields: Iterable[str] = (),
        state: WizardState | None = None,
    ) -> None:
        self.definition = definition
        self._notifier = notifier or LoggingNotifier()
        self._completer = completer
        self._on_complete = on_complete
        self._editable = frozenset(editable_result_fields)
        self._state = state or WizardState(current_step=definition.first.key)
        self._result_view: RemoteResult | None = None
        self._result_source: Any = None

    # -- Read access ---------------------------------------------------------

    @property
    def state(self) -> WizardState:
        return self._state

    @property
    def form_data(self) -> Dict[str, Any]:
        return self._state.form_data

    @property
    def current_step(self) -> StepDefinition:
        return self.definition.get(self._state.current_step)

    @property
    def is_busy(self) -> bool:
        return self._state.pending

    @property
    def is_completed(self) -> bool:
        return self._state.completed

    @property
    def outcome(self) -> Any:
        return self._state.outcome

    @property
    def progress(self) -> float:
        """Percent complete: position of the current step over the step count."""
        if self._state.completed:
            return 100.0
        return self.definition.position(self._state.current_step) / len(self.definition) * 100

    @property
    def result(self) -> RemoteResult | None:
        """The current remote result, with edits kept across reads."""
        source = self._state.server_result
        if source is None:
            return None
        if self._result_view is None or self._result_source is not source:
            self._result_view = RemoteResult(source, editable=self._editable)
            self._result_source = source
        return self._result_view

    def missing_fields(self, step: Enum | str | None = None) -> List[str]:
        target = self.definition.get(step) if step is not None else self.current_step
        return target.missing_fields(self._state.form_data)

    @property
    def can_advance(self) -> bool:
        return (
            not self._state.pending
            and not self._state.completed
            and not self.definition.is_last(self._state.current_step)
            and not self.missing_fields()
        )

    # -- Form data -----------------------------------------------------------

    def update(self, values: Dict[str, Any] | None = None, **fields: Any) -> None:
        """Merge field values into the form data."""
        self._state.form_data.update(values or {})
        self._state.form_data.update(fields)

    def set_field(self, name: str, value: Any) -> None:
        self._state.form_data[name] = value

    # -- Navigation ----------------------------------------------------------

    async def advance(self) -> bool:
        """Leave the current step forwards.

        Requires the step's required fields. Runs the step's generator (or
        reuses its cached result when the form data is unchanged) and then its
        action, and only moves once both succeeded.
        """
        if self._refuse("advance"):
            return False
        step = self.current_step
        target = self.definition.next_step(step.key)
        if target is None:
            logger.warning("%s: advance refused on terminal step %s", self.definition.name, step.key)
            return False
        return await self._leave_forward(step, target, "advance")

    async def skip(self) -> bool:
        """Pass over an optional step without running its action.

        On an optional step, moves to the next step. On the step before an
        optional step, leaves forwards past the optional step.
        """
        if self._refuse("skip"):
            return False
        step = self.current_step
        target = self.definition.next_step(step.key)
        if target is None:
            return False

        if step.optional:
            self._move(target.key, "skip")
            return True

        if target.optional:
            beyond = self.definition.next_step(target.key)
            if beyond is None:
                return False
            return await self._leave_forward(step, beyond, "skip")

        logger.warning("%s: step %s cannot be skipped", self.definition.name, step.key)
        return False

    async def retreat(self) -> bool:
        """Move back one step along the history. Never calls the gateway."""
        if self._refuse("retreat"):
            return False
        if len(self._state.history) <= 1:
            return False
        target = self._state.history[-2]
        if not self.definition.transitions.is_allowed(self._state.current_step, target):
            logger.warning("%s: retreat refused, %s already committed", self.definition.name, target)
            return False
        self._move(target, "retreat")
        return True

    async def regenerate(self) -> bool:
        """Re-run the generator that produced the current result, replacing it."""
        if self._refuse("regenerate"):
            return False
        source = self._state.result_step
        if source is None:
            return False
        step = self.definition.get(source)
        if step.generator is None:
            return False
        if step.commits:
            logger.warning("%s: regenerate refused, %s already committed", self.definition.name, source)
            return False

        digest = fingerprint(self._state.form_data)
        ok, result = await self.run_remote("regenerate", step.generator, dict(self._state.form_data))
        if not ok:
            return False
        self._state.store_result(source, result, digest)
        logger.debug("%s: regenerated result of %s", self.definition.name, source)
        return True

    async def complete(self) -> bool:
        """Run the flow's completion mutations on the terminal step.

        On success the outcome is stored and passed to the ``on_complete``
        callback.
        """
        if self._refuse("complete"):
            return False
        step = self.current_step
        if not self.definition.is_last(step.key):
            logger.warning("%s: complete refused on step %s", self.definition.name, step.key)
            return False
        if not self._check_required(step):
            return False

        outcome: Any = dict(self._state.form_data)
        if self._completer is not None:
            ok, outcome = await self.run_remote(
                "complete", self._completer, dict(self._state.form_data), self.result
            )
            if not ok:
                return False

        self._state.completed = True
        self._state.outcome = outcome
        logger.info("%s: completed", self.definition.name)

        if self._on_complete is not None:
            returned = self._on_complete(outcome)
            if inspect.isawaitable(returned):
                await returned
        return True

    def reset(self) -> None:
        """Discard all state and return to the first step ("Start Another")."""
        self._state = WizardState(current_step=self.definition.first.key)
        self._result_view = None
        self._result_source = None
        logger.debug("%s: reset", self.definition.name)

    # -- Remote calls --------------------------------------------------------

    async def run_remote(
        self,
        action: str,
        func: Callable[..., Awaitable[Any]],
        *args: Any,
        error_message: str | None = None,
        **kwargs: Any,
    ) -> Tuple[bool, Any]:
        """Await a remote call under the pending guard.

        Returns:
            ``(True, result)`` on success, ``(False, None)`` when refused
            because another call is pending or when the call failed.
        """
        try:
            self._state.begin_remote(action)
        except WizardBusyError as e:
            logger.warning("%s: %s", self.definition.name, e)
            return False, None

        try:
            return True, await func(*args, **kwargs)
        except (OperationError, ValidationError) as e:
            logger.error("%s: %s failed: %s", self.definition.name, action, e)
            self._notifier.error(f"{error_message}: {e}" if error_message else str(e))
            return False, None
        finally:
            self._state.end_remote()

    # -- Internals -----------------------------------------------------------

    def _refuse(self, action: str) -> bool:
        if self._state.pending:
            logger.warning(
                "%s: %s", self.definition.name, WizardBusyError(self._state.current_step, action)
            )
            return True
        if self._state.completed:
            logger.warning("%s: %s refused, wizard is completed", self.definition.name, action)
            return True
        return False

    def _check_required(self, step: StepDefinition) -> bool:
        missing = step.missing_fields(self._state.form_data)
        if missing:
            error = RequiredFieldsError(step.key, missing)
            logger.warning("%s: %s", self.definition.name, error)
            self._notifier.error(str(error))
            return False
        return True

    async def _leave_forward(
        self, step: StepDefinition, target: StepDefinition, trigger: str
    ) -> bool:
        if not self._check_required(step):
            return False

        digest = fingerprint(self._state.form_data)
        if step.generator is not None:
            cached = self._state.cached_result(step.key)
            if cached is not None:
                self._state.server_result = cached.result
                self._state.result_step = step.key
                logger.debug("%s: reusing cached result of %s", self.definition.name, step.key)
            else:
                ok, result = await self.run_remote(
                    trigger, step.generator, dict(self._state.form_data)
                )
                if not ok:
                    return False
                self._state.store_result(step.key, result, digest)

        if step.action is not None:
            if self._state.cached_result(f"{step.key}:action") is None:
                ok, result = await self.run_remote(
                    trigger, step.action, dict(self._state.form_data)
                )
                if not ok:
                    return False
                self._state.record_action(step.key, result, digest)

        self._move(target.key, trigger)
        return True

    def _move(self, target: str, trigger: str) -> None:
        current = self._state.current_step
        self.definition.transitions.validate(current, target)
        self._state.move_to(target, trigger)
        logger.debug("%s: %s %s -> %s", self.definition.name, trigger, current, target)

    def __repr__(self) -> str:
        return (
            f"WizardController({self.definition.name!r}, "
            f"step={step_name(self._state.current_step)!r})"
        )
