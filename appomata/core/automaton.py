# appomata/core/automaton.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Mapping
from dataclasses import replace
from typing import Any, Callable, Dict, Iterable, List, Optional, Union

from appomata.core.base import FAILED_STATE, Delta, Omega
from appomata.core.config import EngineConfig, ReentrancyPolicy
from appomata.core.context import Context, ContextChange
from appomata.core.errors import (
    DuplicateRegistrationError,
    HandlerException,
    NotInitializedError,
    TransitionInProgressError,
    TransitionTimeoutError,
    UnknownStateError,
    ValidationError,
)
from appomata.core.events import (
    EventBus,
    EventName,
    FailedTransitionEvent,
    LifecycleEvent,
    StateChangedEvent,
    TransitionEvent,
)
from appomata.core.hooks import HookManager, HookProtocol
from appomata.core.states import State
from appomata.core.validations import Validator
from appomata.core.views import View

logger = logging.getLogger(__name__)


class Automaton:
    """
    A finite state automaton. Owns its states, an observable shared ``context``, a
    private ``buffer`` and the active state, and runs the transition protocol.

    Only one ``transit`` runs at a time per automaton. Depending on the configured
    ReentrancyPolicy, overlapping calls either wait in FIFO order or are rejected.
    A call made from inside a running transition (for example by an
    after_transition listener awaiting a new transit) is always rejected.
    """

    def __init__(
        self,
        name: str,
        states: Iterable[State] = (),
        context: Union[Context, Mapping[str, Any], None] = None,
        buffer: Optional[Dict[str, Any]] = None,
        hooks: Optional[List[HookProtocol]] = None,
        config: Optional[EngineConfig] = None,
        validator: Optional[Validator] = None,
    ) -> None:
        """
        :param name: Automaton name, unique within its factory.
        :param states: States to register up front.
        :param context: Shared observable data; mappings are wrapped in a Context.
        :param buffer: Private data shared by the states but never observed.
        :param hooks: Optional hook objects implementing on_enter, on_exit, on_error.
        :param config: Timeout and re-entrancy settings.
        :param validator: Optional validator for states and handler results.
        """
        self._validator = validator or Validator()
        self._validator.validate_name(name, "Automaton")
        self.name = name
        self.context = context if isinstance(context, Context) else Context(context)
        self.buffer: Dict[str, Any] = buffer if buffer is not None else {}
        self.states: Dict[str, State] = {}
        self.current: Optional[State] = None
        self.initial_state: Optional[str] = None
        self._config = config or EngineConfig()
        self._hooks = HookManager(hooks)
        self._bus = EventBus()
        self._lock = asyncio.Lock()
        self._owner: Optional[asyncio.Task] = None

        self.context.observe(self._on_context_change)
        for state in states:
            self.add_state(state)

    def __repr__(self) -> str:
        current = self.current.name if self.current else None
        return f"Automaton({self.name!r}, current={current!r})"

    @property
    def config(self) -> EngineConfig:
        return self._config

    @property
    def in_transition(self) -> bool:
        """True while a transit call holds the automaton."""
        return self._lock.locked()

    def on(self, event: EventName, listener: Callable[[Any], Any]) -> Callable[[Any], Any]:
        """
        Subscribe to a lifecycle event of this automaton.

        :raises ValidationError: If a coroutine function subscribes to state_changed,
                                 which is emitted synchronously.
        """
        if EventBus.key(event) == LifecycleEvent.STATE_CHANGED.value and inspect.iscoroutinefunction(listener):
            raise ValidationError(
                f"Coroutine listener {listener!r} cannot subscribe to synchronous '{LifecycleEvent.STATE_CHANGED.value}'"
            )
        return self._bus.on(event, listener)

    def off(self, event: EventName, listener: Callable[[Any], Any]) -> None:
        self._bus.off(event, listener)

    def add_hook(self, hook: HookProtocol) -> None:
        self._hooks.register_hook(hook)

    def _on_context_change(self, changes: List[ContextChange]) -> None:
        self._bus.emit(LifecycleEvent.STATE_CHANGED, StateChangedEvent(automaton=self.name, changes=changes))

    def init(self, state_name: str) -> None:
        """
        Set the initial state and make it the active state.

        :raises UnknownStateError: If ``state_name`` is not registered.
        :raises ValidationError: If the automaton was already initialized.
        """
        if self.initial_state is not None:
            raise ValidationError(f"Automaton '{self.name}' is already initialized with '{self.initial_state}'")
        if state_name not in self.states:
            raise UnknownStateError(f"State '{state_name}' does not exist in automaton '{self.name}'")
        self.initial_state = state_name
        self.current = self.states[state_name]
        logger.debug(f"Automaton '{self.name}' initialized in state '{state_name}'")

    def add_state(self, state: State) -> None:
        """
        Register a state. A second state with an already registered name is ignored.
        The automaton name is bound onto the state and onto attached views that have
        no fixed automaton yet.

        :raises DuplicateRegistrationError: If the state already belongs to another automaton.
        """
        if state.name in self.states:
            logger.debug(f"State '{state.name}' already registered in automaton '{self.name}'")
            return
        if state.automaton is not None and state.automaton != self.name:
            raise DuplicateRegistrationError(
                f"State '{state.name}' already belongs to automaton '{state.automaton}'"
            )
        self._validator.validate_state(state)
        state.automaton = self.name
        for view in state.views:
            view.automata.add(self.name)
            if view.automaton is None:
                view.automaton = self.name
        self.states[state.name] = state

    def add_view(self, view: View, state_name: Optional[str] = None) -> None:
        """
        Attach ``view`` to one state, or to every registered state when no name is given.
        Views are rendered whenever the automaton enters a state they are attached to.

        :raises UnknownStateError: If ``state_name`` is not registered.
        """
        if state_name is not None and state_name not in self.states:
            raise UnknownStateError(f"State '{state_name}' does not exist in automaton '{self.name}'")
        for name in [state_name] if state_name is not None else list(self.states):
            view.automata.add(self.name)
            self.states[name].add_view(view)

    def accepts(self, action: str) -> bool:
        """True if the active state defines ``action``."""
        return self.current is not None and self.current.has_action(action)

    async def try_transit(self, action: str, input: Any = None) -> bool:
        """
        Transit if the active state defines ``action``. The check is made under the
        transition lock, against the state that is active when this call's turn comes.

        :return: True if a transition ran, False if the action is not defined here.
        """
        if self.current is None:
            return False
        self._check_overlap(action)
        async with self._lock:
            if not self.current.has_action(action):
                return False
            await self._run(Delta(action=action, input=input))
            return True

    async def transit(self, delta: Delta) -> Omega:
        """
        Run one transition for ``delta`` and return its Omega.

        :raises NotInitializedError: If ``init`` has not been called.
        :raises TransitionInProgressError: On a re-entrant call, or on any overlapping
                                           call under ReentrancyPolicy.REJECT.
        :raises HandlerException: If a handler fails and there is no failed state.
        """
        if self.current is None:
            raise NotInitializedError(f"Current state of automaton '{self.name}' is not initialized")
        self._check_overlap(delta.action)
        async with self._lock:
            return await self._run(delta)

    def _check_overlap(self, action: str) -> None:
        if not self._lock.locked():
            return
        if self._owner is not None and self._owner is asyncio.current_task():
            raise TransitionInProgressError(
                f"Re-entrant transit of '{action}' on automaton '{self.name}' from inside a transition"
            )
        if self._config.reentrancy is ReentrancyPolicy.REJECT:
            raise TransitionInProgressError(f"Automaton '{self.name}' is already in a transition")

    async def _run(self, delta: Delta) -> Omega:
        self._owner = asyncio.current_task()
        try:
            return await self._transit(delta)
        finally:
            self._owner = None

    async def _transit(self, delta: Delta) -> Omega:
        previous = self.current
        delta.from_state = previous.name
        loaded = replace(delta, context=self.context, buffer=self.buffer)

        await self._bus.emit_async(LifecycleEvent.BEFORE_TRANSITION, loaded)
        try:
            result = self._validator.validate_omega(await self._run_handler(previous, loaded), previous.name)
            target = self._resolve(result.next)
        except Exception as error:
            result = await self._recover(previous, loaded, error)
            target = self.states[FAILED_STATE]

        await self._leave(previous)
        self.current = target
        await self._hooks.execute_on_enter(target)

        omega = Omega(next=target.name, output=self._output(result.output), views=target.views, context=result.context)
        event = TransitionEvent(automaton=self.name, delta=delta, omega=omega)
        logger.debug(f"Automaton '{self.name}': '{previous.name}' --{delta.action}--> '{target.name}'")
        await self._bus.emit_async(LifecycleEvent.DATA_TRANSITION, event)
        await self._bus.emit_async(LifecycleEvent.AFTER_TRANSITION, event)
        return omega

    async def _run_handler(self, state: State, delta: Delta) -> Any:
        timeout = self._config.transition_timeout
        if timeout is None:
            return await state.transit(delta)
        try:
            return await asyncio.wait_for(state.transit(delta), timeout)
        except asyncio.TimeoutError as e:
            raise TransitionTimeoutError(
                f"Action '{delta.action}' in state '{state.name}' timed out after {timeout}s"
            ) from e

    async def _recover(self, previous: State, delta: Delta, error: Exception) -> Omega:
        """Route a failed handler into the failed state, recording where it came from."""
        logger.warning(f"Action '{delta.action}' failed in state '{previous.name}' of automaton '{self.name}': {error}")
        await self._bus.emit_async(
            LifecycleEvent.FAILED_TRANSITION, FailedTransitionEvent(automaton=self.name, delta=delta, error=error)
        )
        await self._hooks.execute_on_error(error)

        failed_state = self.states.get(FAILED_STATE)
        if failed_state is None:
            raise HandlerException(
                f"Action '{delta.action}' failed in state '{previous.name}' and automaton '{self.name}' has no failed state"
            ) from error
        recovery = replace(delta, action="failed", input={"message": str(error), "from": previous.name})
        return self._validator.validate_omega(await failed_state.transit(recovery), FAILED_STATE)

    def _resolve(self, next_name: str) -> State:
        if next_name in self.states:
            return self.states[next_name]
        fallback = self.initial_state if self.initial_state in self.states else FAILED_STATE
        if fallback not in self.states:
            raise UnknownStateError(f"State '{next_name}' does not exist in automaton '{self.name}'")
        if next_name:
            logger.warning(f"Automaton '{self.name}' has no state '{next_name}', falling back to '{fallback}'")
        return self.states[fallback]

    async def _leave(self, state: State) -> None:
        result = state.clean_up()
        if inspect.isawaitable(result):
            await result
        await self._hooks.execute_on_exit(state)

    def _output(self, output: Any) -> Dict[str, Any]:
        if output is None:
            output = {}
        elif isinstance(output, Mapping):
            output = dict(output)
        else:
            output = {"value": output}
        output["context"] = self.context.snapshot()
        output["buffer"] = self.buffer
        return output
