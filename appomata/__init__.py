"""appomata: finite state automata driving declarative re-rendering

A view is a pure function of automaton state: ``render = f(state)``. Automata own
their states, a shared observable context and a private buffer, and run a transition
protocol that swaps the active state, collects the views attached to it and notifies
connected apps.

Responsibilities:
    - Automaton definition and transition execution
    - Action dispatch through explicit per-state tables
    - View registration and view-initiated routing
    - Failure capture into a recoverable failed state

Interactions:
    - Client code through the Factory
    - Apps through on_transition
    - Rendering collaborators through the Renderer protocol
    - Logging system for diagnostics

Cross-cutting Concerns:
    Concurrency:
        - One transition in flight per automaton (queued or rejected)
        - Optional per-transition deadline

    Error Handling:
        - Structured error hierarchy rooted at AppomataError
        - Configuration errors propagate, handler errors recover into "failed"
"""

from appomata.core import (
    FAILED_STATE,
    AppomataError,
    Automaton,
    Context,
    ContextChange,
    Delta,
    DuplicateRegistrationError,
    EngineConfig,
    Factory,
    HandlerException,
    LifecycleEvent,
    NoMatchingTransitionError,
    NotInitializedError,
    Omega,
    ReentrancyPolicy,
    State,
    TransitionEvent,
    TransitionInProgressError,
    TransitionTimeoutError,
    UnknownStateError,
    UnmatchedActionError,
    ValidationError,
    View,
)
from appomata.runtime import App, AppEvent, ListRenderer

__version__ = "0.1.0"

__all__ = [
    "FAILED_STATE",
    "App",
    "AppEvent",
    "AppomataError",
    "Automaton",
    "Context",
    "ContextChange",
    "Delta",
    "DuplicateRegistrationError",
    "EngineConfig",
    "Factory",
    "HandlerException",
    "LifecycleEvent",
    "ListRenderer",
    "NoMatchingTransitionError",
    "NotInitializedError",
    "Omega",
    "ReentrancyPolicy",
    "State",
    "TransitionEvent",
    "TransitionInProgressError",
    "TransitionTimeoutError",
    "UnknownStateError",
    "UnmatchedActionError",
    "ValidationError",
    "View",
]
