# appomata/core/errors.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details


class AppomataError(Exception):
    """
    Base exception class for errors within the automaton engine.
    """


class UnknownStateError(AppomataError):
    """
    Raised when an operation references a state that is not registered in the automaton.
    """


class NotInitializedError(AppomataError):
    """
    Raised when a transition is requested before the automaton has an active state.
    """


class UnmatchedActionError(AppomataError):
    """
    Describes an action that the active state does not define. States resolve this
    locally by routing to the failed state, so it is carried as a diagnostic rather
    than raised.
    """


class HandlerException(AppomataError):
    """
    Raised when an action handler fails and the automaton has no failed state to
    recover into. The original error is available as ``__cause__``.
    """


class NoMatchingTransitionError(AppomataError):
    """
    Raised when a view-initiated transition is not accepted by any automaton.
    """


class DuplicateRegistrationError(AppomataError):
    """
    Raised when a name is registered twice where names must be unique.
    """


class TransitionInProgressError(AppomataError):
    """
    Raised when a transition is requested while another one is still in flight and
    the automaton is configured to reject re-entrant calls.
    """


class TransitionTimeoutError(AppomataError):
    """
    Raised internally when an action handler exceeds the configured deadline.
    """


class ValidationError(AppomataError):
    """
    Raised when validation detects configuration or runtime constraint violations.
    """
