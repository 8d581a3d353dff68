# tests/conftest.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

from unittest.mock import MagicMock

import pytest

from appomata.core.base import Omega


@pytest.fixture
def factory():
    """A fresh factory with its own registries."""
    from appomata.core.factory import Factory

    return Factory()


@pytest.fixture
def render_name():
    """A render function that outputs the view's current state name."""

    def _render(automaton, delta, omega, transit, cached_output):
        return f"{automaton}:{omega.next}"

    return _render


@pytest.fixture
def idle_state():
    """A minimal State with one action moving to 'active'."""
    from appomata.core.states import State

    return State(name="idle", actions={"start": lambda d: Omega(next="active", output={"started": True})})


@pytest.fixture
def active_state():
    """A State that can go back to 'idle'."""
    from appomata.core.states import State

    return State(name="active", actions={"stop": lambda d: Omega(next="idle")})


@pytest.fixture
def simple_automaton(factory, idle_state, active_state):
    """An initialized automaton: idle <-> active."""
    automaton = factory.create_automaton(name="simple", states=[idle_state, active_state])
    automaton.init("idle")
    return automaton


@pytest.fixture
def login_automaton(factory):
    """
    The login flow: idle --submit--> authenticating --success--> authenticated.
    The 'fail' action of authenticating raises a network error.
    """

    async def submit(delta):
        delta.context["user"] = delta.input["user"]
        return Omega(next="authenticating", output={"user": delta.input["user"]})

    async def network_error(delta):
        raise RuntimeError("network error")

    async def success(delta):
        return Omega(next="authenticated")

    idle = factory.create_state(name="idle", actions={"submit": submit})
    authenticating = factory.create_state(name="authenticating", actions={"fail": network_error, "success": success})
    authenticated = factory.create_state(name="authenticated", actions={"logout": lambda d: Omega(next="idle")})

    automaton = factory.create_automaton(name="login", states=[idle, authenticating, authenticated])
    automaton.init("idle")
    return automaton


@pytest.fixture
def mock_listener():
    return MagicMock()


@pytest.fixture
def error_classes():
    """Provides a tuple of error classes for quick reference."""
    from appomata.core.errors import (
        AppomataError,
        DuplicateRegistrationError,
        NoMatchingTransitionError,
        NotInitializedError,
        UnknownStateError,
        ValidationError,
    )

    return (
        AppomataError,
        UnknownStateError,
        NotInitializedError,
        NoMatchingTransitionError,
        DuplicateRegistrationError,
        ValidationError,
    )
