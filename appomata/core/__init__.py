"""
Core package providing the automaton engine.

Architecture:
- Delta/Omega records and the observable Context
- States with explicit action tables, Views with pure render functions
- Automaton transition protocol and the Factory registries
"""

# Import order matters to avoid circular dependencies
from .errors import (
    AppomataError,
    DuplicateRegistrationError,
    HandlerException,
    NoMatchingTransitionError,
    NotInitializedError,
    TransitionInProgressError,
    TransitionTimeoutError,
    UnknownStateError,
    UnmatchedActionError,
    ValidationError,
)
from .base import FAILED_STATE, Delta, Omega
from .config import EngineConfig, ReentrancyPolicy
from .context import Context, ContextChange
from .events import EventBus, LifecycleEvent, TransitionEvent
from .states import State
from .views import View
from .automaton import Automaton
from .factory import Factory

__all__ = [
    "AppomataError",
    "DuplicateRegistrationError",
    "HandlerException",
    "NoMatchingTransitionError",
    "NotInitializedError",
    "TransitionInProgressError",
    "TransitionTimeoutError",
    "UnknownStateError",
    "UnmatchedActionError",
    "ValidationError",
    "FAILED_STATE",
    "Delta",
    "Omega",
    "EngineConfig",
    "ReentrancyPolicy",
    "Context",
    "ContextChange",
    "EventBus",
    "LifecycleEvent",
    "TransitionEvent",
    "State",
    "View",
    "Automaton",
    "Factory",
]
