# appomata/core/events.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Union

if TYPE_CHECKING:
    from appomata.core.base import Delta, Omega
    from appomata.core.context import ContextChange

logger = logging.getLogger(__name__)


class LifecycleEvent(str, Enum):
    """Notifications an automaton publishes to its observers."""

    BEFORE_TRANSITION = "before_transition"
    AFTER_TRANSITION = "after_transition"
    DATA_TRANSITION = "data_transition"
    FAILED_TRANSITION = "failed_transition"
    STATE_CHANGED = "state_changed"


@dataclass
class TransitionEvent:
    """Payload of data_transition and after_transition."""

    automaton: str
    delta: "Delta"
    omega: "Omega"


@dataclass
class FailedTransitionEvent:
    """Payload of failed_transition."""

    automaton: str
    delta: "Delta"
    error: BaseException


@dataclass
class StateChangedEvent:
    """Payload of state_changed, emitted once per context change-set."""

    automaton: str
    changes: List["ContextChange"] = field(default_factory=list)


EventName = Union[LifecycleEvent, str]


class EventBus:
    """
    A plain listener table keyed by event name. ``emit`` runs synchronous listeners
    only; ``emit_async`` also awaits coroutine listeners. Listener exceptions propagate
    to the emitter.
    """

    def __init__(self) -> None:
        self._listeners: Dict[str, List[Callable[[Any], Any]]] = {}

    @staticmethod
    def key(event: EventName) -> str:
        return event.value if isinstance(event, Enum) else str(event)

    def on(self, event: EventName, listener: Callable[[Any], Any]) -> Callable[[Any], Any]:
        """
        Subscribe ``listener`` to ``event``. Subscribing the same listener twice is a no-op.

        :return: The listener, so ``on`` can be used as a decorator.
        """
        listeners = self._listeners.setdefault(self.key(event), [])
        if listener not in listeners:
            listeners.append(listener)
        return listener

    def off(self, event: EventName, listener: Callable[[Any], Any]) -> None:
        """Unsubscribe ``listener``; unknown listeners are ignored."""
        listeners = self._listeners.get(self.key(event), [])
        if listener in listeners:
            listeners.remove(listener)

    def listeners(self, event: EventName) -> List[Callable[[Any], Any]]:
        return list(self._listeners.get(self.key(event), []))

    def emit(self, event: EventName, payload: Any = None) -> None:
        for listener in self.listeners(event):
            if inspect.iscoroutinefunction(listener):
                logger.warning(f"Skipping coroutine listener {listener!r} for synchronous '{self.key(event)}'")
                continue
            listener(payload)

    async def emit_async(self, event: EventName, payload: Any = None) -> None:
        for listener in self.listeners(event):
            result = listener(payload)
            if inspect.isawaitable(result):
                await result
