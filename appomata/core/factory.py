# appomata/core/factory.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

from __future__ import annotations

import inspect
import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from appomata.core.automaton import Automaton
from appomata.core.base import Delta, Omega, delta, omega
from appomata.core.config import EngineConfig
from appomata.core.context import Context
from appomata.core.errors import DuplicateRegistrationError
from appomata.core.events import LifecycleEvent, TransitionEvent
from appomata.core.hooks import HookProtocol
from appomata.core.states import ActionHandler, State, create_failed_state
from appomata.core.validations import Validator
from appomata.core.views import RenderFunction, View

logger = logging.getLogger(__name__)


class Factory:
    """
    Creates and registers the components of an automaton-driven app.

    A factory owns its registries (views, automata and connected apps), so several
    independent engines can live in one process. Every automaton it creates gets the
    reserved failed state and notifies connected apps after each transition.
    """

    def __init__(self, config: Optional[EngineConfig] = None, validator: Optional[Validator] = None) -> None:
        """
        :param config: Settings passed to every automaton this factory creates.
        :param validator: Validator shared by the factory and its automata.
        """
        self.config = config or EngineConfig()
        self._validator = validator or Validator()
        self._automata: Dict[str, Automaton] = {}
        self._views: Dict[str, View] = {}
        self._connected_apps: Dict[str, List[Any]] = {}

    @property
    def automata(self) -> Dict[str, Automaton]:
        """Registered automata in registration order."""
        return dict(self._automata)

    @property
    def views(self) -> Dict[str, View]:
        return dict(self._views)

    def get_automaton(self, name: str) -> Optional[Automaton]:
        return self._automata.get(name)

    def connected_apps(self, automaton: str) -> List[Any]:
        return list(self._connected_apps.get(automaton, []))

    def create_view(self, name: str, render: Optional[RenderFunction], automaton: Optional[str] = None) -> View:
        """
        Create a view rendering the state of one or more automata.

        :param name: View name, unique within this factory.
        :param render: Pure render function, see View.
        :param automaton: Optional automaton name the view's transit requests go to.
        :raises DuplicateRegistrationError: If the name is already taken.
        :raises ValidationError: If ``render`` is missing or not callable.
        """
        if name in self._views:
            raise DuplicateRegistrationError(f"Given name '{name}' already assigned to another view")
        self._validator.validate_view_config(name, render)
        view = View(name=name, render=render, automaton=automaton, factory=self)
        self._views[name] = view
        logger.debug(f"Registered view '{name}'")
        return view

    def create_state(
        self,
        name: str,
        local: Optional[Dict[str, Any]] = None,
        actions: Optional[Mapping[str, ActionHandler]] = None,
    ) -> State:
        """Create a state. It is not registered to any automaton."""
        state = State(name=name, local=local, actions=actions)
        self._validator.validate_state(state)
        return state

    def create_automaton(
        self,
        name: str,
        states: Iterable[State] = (),
        context: Union[Context, Mapping[str, Any], None] = None,
        buffer: Optional[Dict[str, Any]] = None,
        hooks: Optional[List[HookProtocol]] = None,
    ) -> Automaton:
        """
        Create and register an automaton with the failed state injected.

        :raises DuplicateRegistrationError: If the name is already taken.
        """
        if name in self._automata:
            raise DuplicateRegistrationError(f"Given name '{name}' already assigned to another automaton")
        automaton = Automaton(
            name=name,
            states=states,
            context=context,
            buffer=buffer,
            hooks=hooks,
            config=self.config,
            validator=self._validator,
        )
        self._automata[name] = automaton
        self._connected_apps[name] = []

        async def notify_apps(event: TransitionEvent) -> None:
            for app in list(self._connected_apps[name]):
                on_transition = getattr(app, "on_transition", None)
                if on_transition is None:
                    continue
                result = on_transition(event)
                if inspect.isawaitable(result):
                    await result

        automaton.on(LifecycleEvent.AFTER_TRANSITION, notify_apps)
        automaton.add_state(create_failed_state())
        logger.debug(f"Registered automaton '{name}' with states {list(automaton.states)}")
        return automaton

    def connect(self, app: Any, automata: Iterable[str]) -> None:
        """
        Connect ``app`` to the named automata. The app's ``on_transition`` is called
        after every transition of those automata, and ``app.automata`` maps each name
        to its automaton.
        """
        for name in automata:
            automaton = self._automata.get(name)
            if automaton is None:
                logger.warning(f"Cannot connect app to unknown automaton '{name}'")
                continue
            apps = self._connected_apps[name]
            if not any(a is app for a in apps):
                apps.append(app)
            bound = getattr(app, "automata", None)
            if bound is None:
                bound = {}
                setattr(app, "automata", bound)
            bound[name] = automaton

    def create_delta(self, action: str, input: Any = None, from_state: str = "") -> Delta:
        return delta(action, input, from_state)

    def create_omega(
        self,
        next: str,
        output: Any = None,
        views: Optional[List[View]] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> Omega:
        return omega(next, output, views, context)
