# tests/unit/test_automaton.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

from types import MappingProxyType
from unittest.mock import MagicMock

import pytest
from hypothesis import given
from hypothesis import strategies as st

from appomata.core.automaton import Automaton
from appomata.core.base import FAILED_STATE, Delta, Omega
from appomata.core.context import Context
from appomata.core.errors import (
    DuplicateRegistrationError,
    HandlerException,
    NotInitializedError,
    UnknownStateError,
    ValidationError,
)
from appomata.core.events import FailedTransitionEvent, LifecycleEvent, StateChangedEvent, TransitionEvent
from appomata.core.states import State, create_failed_state
from appomata.core.views import View


def make_automaton(*states, **kwargs):
    return Automaton(name="a", states=states, **kwargs)


class TestInit:
    def test_init_sets_current(self, idle_state):
        automaton = make_automaton(idle_state)
        automaton.init("idle")
        assert automaton.current is idle_state
        assert automaton.initial_state == "idle"

    def test_init_unknown_state(self, idle_state):
        automaton = make_automaton(idle_state)
        with pytest.raises(UnknownStateError):
            automaton.init("missing")
        assert automaton.current is None

    def test_init_only_once(self, idle_state, active_state):
        automaton = make_automaton(idle_state, active_state)
        automaton.init("idle")
        with pytest.raises(ValidationError):
            automaton.init("active")

    @given(st.lists(st.text(alphabet="xyz", min_size=1, max_size=4), min_size=1, max_size=6, unique=True), st.data())
    def test_init_property(self, names, data):
        automaton = Automaton(name="p", states=[State(n) for n in names])
        chosen = data.draw(st.sampled_from(names))
        automaton.init(chosen)
        assert automaton.current.name == chosen

    def test_context_mapping_is_wrapped(self):
        automaton = Automaton(name="a", context={"k": 1})
        assert isinstance(automaton.context, Context)
        assert automaton.context["k"] == 1

    def test_buffer_kept_by_reference(self):
        buffer = {}
        assert Automaton(name="a", buffer=buffer).buffer is buffer

    def test_invalid_name(self):
        with pytest.raises(ValidationError):
            Automaton(name="")


class TestRegistration:
    def test_add_state_is_idempotent(self):
        original = State("idle")
        automaton = make_automaton(original)
        automaton.add_state(State("idle"))
        assert automaton.states["idle"] is original

    def test_add_state_binds_automaton_and_unbound_views(self):
        state = State("idle")
        free = View(name="free", render=lambda **kw: None)
        fixed = View(name="fixed", render=lambda **kw: None, automaton="other")
        state.add_view(free)
        state.add_view(fixed)
        make_automaton(state)
        assert state.automaton == "a"
        assert free.automaton == "a"
        assert fixed.automaton == "other"
        assert free.automata == fixed.automata == {"a"}

    def test_state_belongs_to_one_automaton(self):
        state = State("idle")
        Automaton(name="one", states=[state])
        with pytest.raises(DuplicateRegistrationError):
            Automaton(name="two", states=[state])

    def test_same_state_names_do_not_alias(self):
        one = Automaton(name="one", states=[State("idle")])
        two = Automaton(name="two", states=[State("idle")])
        assert one.states["idle"] is not two.states["idle"]
        assert one.states["idle"].automaton == "one"
        assert two.states["idle"].automaton == "two"

    def test_add_view_to_named_state(self, idle_state, active_state):
        automaton = make_automaton(idle_state, active_state)
        view = View(name="v", render=lambda **kw: None)
        automaton.add_view(view, "active")
        assert active_state.views == [view]
        assert idle_state.views == []
        assert view.states == {"active"}
        assert view.automata == {"a"}

    def test_add_view_to_all_states(self, idle_state, active_state):
        automaton = make_automaton(idle_state, active_state)
        view = View(name="v", render=lambda **kw: None)
        automaton.add_view(view)
        assert view.states == {"idle", "active"}

    def test_add_view_unknown_state(self, idle_state):
        automaton = make_automaton(idle_state)
        with pytest.raises(UnknownStateError):
            automaton.add_view(View(name="v", render=lambda **kw: None), "missing")


class TestTransit:
    @pytest.mark.asyncio
    async def test_not_initialized(self, idle_state):
        automaton = make_automaton(idle_state)
        with pytest.raises(NotInitializedError):
            await automaton.transit(Delta(action="start"))

    @pytest.mark.asyncio
    async def test_successful_transition(self, idle_state, active_state):
        automaton = make_automaton(idle_state, active_state, context={"n": 1})
        automaton.init("idle")
        request = Delta(action="start")
        result = await automaton.transit(request)

        assert request.from_state == "idle"
        assert automaton.current is active_state
        assert result.next == "active"
        assert result.output["started"] is True
        assert result.output["context"] == {"n": 1}
        assert result.output["buffer"] is automaton.buffer

    @pytest.mark.asyncio
    async def test_handler_receives_live_references(self):
        seen = {}

        def handler(d):
            seen["delta"] = d
            d.buffer["token"] = "t"
            d.context["n"] = 2
            return Omega(next="s")

        automaton = Automaton(name="a", states=[State("s", actions={"go": handler})], context={"n": 1})
        automaton.init("s")
        result = await automaton.transit(Delta(action="go", input="in"))

        assert seen["delta"].context is automaton.context
        assert seen["delta"].buffer is automaton.buffer
        assert seen["delta"].input == "in"
        assert seen["delta"].from_state == "s"
        assert automaton.buffer == {"token": "t"}
        assert result.output["context"] == {"n": 2}

    @pytest.mark.asyncio
    async def test_context_snapshot_is_detached(self):
        automaton = Automaton(name="a", states=[State("s", actions={"go": lambda d: Omega(next="s")})], context={"items": [1]})
        automaton.init("s")
        result = await automaton.transit(Delta(action="go"))
        result.output["context"]["items"].append(2)
        assert automaton.context["items"] == [1]

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "output,expected",
        [(None, {}), ("text", {"value": "text"}), ({"a": 1}, {"a": 1}), (MappingProxyType({"a": 1}), {"a": 1})],
    )
    async def test_output_shapes(self, output, expected):
        automaton = Automaton(name="a", states=[State("s", actions={"go": lambda d: Omega(next="s", output=output)})])
        automaton.init("s")
        result = await automaton.transit(Delta(action="go"))
        assert {k: v for k, v in result.output.items() if k not in ("context", "buffer")} == expected

    @pytest.mark.asyncio
    async def test_handler_output_mapping_not_mutated(self):
        output = {"a": 1}
        automaton = Automaton(name="a", states=[State("s", actions={"go": lambda d: Omega(next="s", output=output)})])
        automaton.init("s")
        await automaton.transit(Delta(action="go"))
        assert output == {"a": 1}

    @pytest.mark.asyncio
    async def test_mapping_result_accepted(self):
        automaton = Automaton(name="a", states=[State("s", actions={"go": lambda d: {"next": "t"}}), State("t")])
        automaton.init("s")
        assert (await automaton.transit(Delta(action="go"))).next == "t"

    @pytest.mark.asyncio
    async def test_unknown_next_falls_back_to_initial(self):
        automaton = Automaton(
            name="a",
            states=[State("home"), State("s", actions={"go": lambda d: Omega(next="nowhere")})],
        )
        automaton.init("home")
        automaton.current = automaton.states["s"]
        result = await automaton.transit(Delta(action="go"))
        assert automaton.current.name == "home"
        assert result.next == "home"

    @pytest.mark.asyncio
    async def test_views_of_new_state(self, idle_state, active_state):
        automaton = make_automaton(idle_state, active_state)
        automaton.init("idle")
        header = View(name="header", render=lambda **kw: None)
        footer = View(name="footer", render=lambda **kw: None)
        automaton.add_view(header, "active")
        automaton.add_view(footer, "active")
        result = await automaton.transit(Delta(action="start"))
        assert result.views == [header, footer]

    @pytest.mark.asyncio
    async def test_clean_up_runs_on_exit(self, idle_state, active_state):
        idle_state.clean_up = MagicMock()
        automaton = make_automaton(idle_state, active_state)
        automaton.init("idle")
        await automaton.transit(Delta(action="start"))
        idle_state.clean_up.assert_called_once()

    @pytest.mark.asyncio
    async def test_async_clean_up_awaited(self, idle_state, active_state):
        cleaned = []

        async def clean_up():
            cleaned.append(True)

        idle_state.clean_up = clean_up
        automaton = make_automaton(idle_state, active_state)
        automaton.init("idle")
        await automaton.transit(Delta(action="start"))
        assert cleaned == [True]

    @pytest.mark.asyncio
    async def test_try_transit(self, idle_state, active_state):
        automaton = make_automaton(idle_state, active_state)
        automaton.init("idle")
        assert await automaton.try_transit("stop") is False
        assert automaton.current.name == "idle"
        assert await automaton.try_transit("start", {"x": 1}) is True
        assert automaton.current.name == "active"
        assert automaton.accepts("stop")


class TestFailure:
    @pytest.mark.asyncio
    async def test_handler_error_routes_to_failed(self):
        def broken(d):
            raise RuntimeError("boom")

        automaton = Automaton(name="a", states=[State("s", actions={"go": broken}), create_failed_state()])
        automaton.init("s")
        result = await automaton.transit(Delta(action="go"))

        assert automaton.current.name == FAILED_STATE
        assert result.next == FAILED_STATE
        assert automaton.buffer["failed_output"] == {"message": "boom", "from": "s"}
        assert result.output["message"] == "boom"

    @pytest.mark.asyncio
    async def test_malformed_result_routes_to_failed(self):
        automaton = Automaton(name="a", states=[State("s", actions={"go": lambda d: "oops"}), create_failed_state()])
        automaton.init("s")
        await automaton.transit(Delta(action="go"))
        assert automaton.current.name == FAILED_STATE
        assert automaton.buffer["failed_output"]["from"] == "s"

    @pytest.mark.asyncio
    async def test_unmatched_action_routes_without_record(self, idle_state):
        automaton = Automaton(name="a", states=[idle_state, create_failed_state()])
        automaton.init("idle")
        result = await automaton.transit(Delta(action="nope"))
        assert automaton.current.name == FAILED_STATE
        assert result.output["action"] == "nope"
        assert "failed_output" not in automaton.buffer

    @pytest.mark.asyncio
    async def test_back_without_record_returns_to_initial(self, idle_state, active_state):
        automaton = Automaton(name="a", states=[idle_state, active_state, create_failed_state()])
        automaton.init("idle")
        await automaton.transit(Delta(action="start"))
        await automaton.transit(Delta(action="nope"))
        await automaton.transit(Delta(action="back"))
        assert automaton.current.name == "idle"

    @pytest.mark.asyncio
    async def test_without_failed_state_raises_handler_exception(self):
        error = RuntimeError("boom")

        def broken(d):
            raise error

        automaton = Automaton(name="a", states=[State("s", actions={"go": broken})])
        automaton.init("s")
        with pytest.raises(HandlerException) as info:
            await automaton.transit(Delta(action="go"))
        assert info.value.__cause__ is error
        assert automaton.current.name == "s"
        assert not automaton.in_transition


class TestNotifications:
    @pytest.mark.asyncio
    async def test_event_order(self, idle_state, active_state):
        automaton = make_automaton(idle_state, active_state)
        automaton.init("idle")
        order = []
        for event in (LifecycleEvent.BEFORE_TRANSITION, LifecycleEvent.DATA_TRANSITION, LifecycleEvent.AFTER_TRANSITION):
            automaton.on(event, lambda payload, e=event: order.append((e, payload)))

        request = Delta(action="start")
        result = await automaton.transit(request)

        assert [e for e, _ in order] == [
            LifecycleEvent.BEFORE_TRANSITION,
            LifecycleEvent.DATA_TRANSITION,
            LifecycleEvent.AFTER_TRANSITION,
        ]
        before = order[0][1]
        assert before.context is automaton.context and before.buffer is automaton.buffer
        assert order[2][1] == TransitionEvent(automaton="a", delta=request, omega=result)

    @pytest.mark.asyncio
    async def test_failed_transition_event(self):
        def broken(d):
            raise RuntimeError("boom")

        automaton = Automaton(name="a", states=[State("s", actions={"go": broken}), create_failed_state()])
        automaton.init("s")
        listener = MagicMock()
        automaton.on(LifecycleEvent.FAILED_TRANSITION, listener)
        await automaton.transit(Delta(action="go"))
        event = listener.call_args[0][0]
        assert isinstance(event, FailedTransitionEvent)
        assert event.delta.action == "go"
        assert str(event.error) == "boom"

    def test_context_changes_emit_state_changed(self):
        automaton = Automaton(name="a")
        listener = MagicMock()
        automaton.on(LifecycleEvent.STATE_CHANGED, listener)
        automaton.context.set("x", 1)
        listener.assert_called_once()
        event = listener.call_args[0][0]
        assert isinstance(event, StateChangedEvent)
        assert event.automaton == "a"
        assert event.changes[0].path == ("x",)

    def test_off(self):
        automaton = Automaton(name="a")
        listener = MagicMock()
        automaton.on(LifecycleEvent.STATE_CHANGED, listener)
        automaton.off(LifecycleEvent.STATE_CHANGED, listener)
        automaton.context["x"] = 1
        listener.assert_not_called()

    @pytest.mark.parametrize("event", [LifecycleEvent.STATE_CHANGED, "state_changed"])
    def test_coroutine_listener_rejected_for_state_changed(self, event):
        automaton = Automaton(name="a")

        async def listener(event):
            pass

        with pytest.raises(ValidationError):
            automaton.on(event, listener)
        assert automaton.on(LifecycleEvent.AFTER_TRANSITION, listener) is listener

    @pytest.mark.asyncio
    async def test_hooks(self, idle_state, active_state):
        hook = MagicMock()
        automaton = make_automaton(idle_state, active_state, hooks=[hook])
        automaton.init("idle")
        await automaton.transit(Delta(action="start"))
        hook.on_exit.assert_called_once_with(idle_state)
        hook.on_enter.assert_called_once_with(active_state)
        hook.on_error.assert_not_called()

    @pytest.mark.asyncio
    async def test_error_hook(self):
        error = RuntimeError("boom")

        def broken(d):
            raise error

        hook = MagicMock()
        automaton = Automaton(name="a", states=[State("s", actions={"go": broken}), create_failed_state()])
        automaton.add_hook(hook)
        automaton.init("s")
        await automaton.transit(Delta(action="go"))
        hook.on_error.assert_called_once_with(error)
