# appomata/core/states.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

from __future__ import annotations

import inspect
import logging
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Dict, List, Mapping, Optional, Union

from appomata.core.base import FAILED_STATE, Delta, Omega, omega
from appomata.core.errors import DuplicateRegistrationError, UnmatchedActionError, ValidationError

if TYPE_CHECKING:
    from appomata.core.views import View

logger = logging.getLogger(__name__)

ActionHandler = Callable[[Delta], Union[Omega, Mapping[str, Any], Awaitable[Any]]]


class State:
    """
    Represents a state in the automaton. Holds state-local data and an explicit table
    mapping action names to handlers. A handler receives the augmented Delta and
    returns (or resolves to) an Omega naming the next state.
    """

    def __init__(
        self,
        name: str,
        local: Optional[Dict[str, Any]] = None,
        actions: Optional[Mapping[str, ActionHandler]] = None,
    ) -> None:
        """
        :param name: Name identifying this state within its automaton.
        :param local: State-private data.
        :param actions: Initial action table.
        """
        self.name = name
        self.local: Dict[str, Any] = local if local is not None else {}
        self.automaton: Optional[str] = None
        self._actions: Dict[str, ActionHandler] = {}
        self._views: Dict[str, "View"] = {}
        for action_name, handler in (actions or {}).items():
            self.define_action(action_name, handler)

    def __repr__(self) -> str:
        return f"State({self.name!r})"

    @property
    def actions(self) -> Dict[str, ActionHandler]:
        """A copy of the action table."""
        return dict(self._actions)

    @property
    def views(self) -> List["View"]:
        """Attached views in attachment order."""
        return list(self._views.values())

    def has_action(self, name: str) -> bool:
        return name in self._actions

    def define_action(self, name: str, handler: ActionHandler) -> None:
        """
        Register ``handler`` for ``name``.

        :raises DuplicateRegistrationError: If the action is already defined.
        """
        if name in self._actions:
            raise DuplicateRegistrationError(f"Action '{name}' is already defined on state '{self.name}'")
        if not callable(handler):
            raise ValidationError(f"Handler for action '{name}' on state '{self.name}' is not callable")
        self._actions[name] = handler

    def add_view(self, view: "View") -> None:
        """Attach a view; attaching the same view name twice is a no-op."""
        if view.name not in self._views:
            view.states.add(self.name)
            self._views[view.name] = view

    async def transit(self, delta: Delta) -> Any:
        """
        Run the handler for ``delta.action``. An unknown action does not raise: it
        yields an Omega routing to the failed state with a diagnostic payload.
        """
        handler = self._actions.get(delta.action)
        if handler is None:
            return self.unmatched(delta)
        result = handler(delta)
        if inspect.isawaitable(result):
            result = await result
        return result

    def unmatched(self, delta: Delta) -> Omega:
        error = UnmatchedActionError(f"State '{self.name}' does not define action '{delta.action}'")
        logger.debug(str(error))
        return omega(
            FAILED_STATE,
            {"name": self.name, "action": delta.action, "input": delta.input, "error": str(error)},
        )

    def clean_up(self) -> None:
        """Called every time the automaton leaves this state."""


def _record_failure(d: Delta) -> Omega:
    payload = d.input or {}
    d.buffer["failed_output"] = {"message": payload.get("message"), "from": payload.get("from")}
    return omega(FAILED_STATE, dict(d.buffer["failed_output"]))


def _back(d: Delta) -> Omega:
    record = d.buffer.get("failed_output")
    # With nothing recorded, an empty name falls back to the initial state.
    return omega(record["from"] if record else "", {})


def create_failed_state() -> State:
    """
    Build the reserved failure-recovery state. ``failed`` records ``{message, from}``
    into the buffer and stays in the failed state; ``back`` returns to the recorded
    origin.
    """
    return State(name=FAILED_STATE, actions={"failed": _record_failure, "back": _back})
