# appomata/core/hooks.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

from __future__ import annotations

import inspect
from typing import TYPE_CHECKING, Any, List, Optional, Protocol

if TYPE_CHECKING:
    from appomata.core.states import State


class HookProtocol(Protocol):
    """
    Shape of a lifecycle hook. Every method is optional and may be a coroutine.
    """

    def on_enter(self, state: "State") -> Any: ...

    def on_exit(self, state: "State") -> Any: ...

    def on_error(self, error: Exception) -> Any: ...


class HookManager:
    """
    Manages the registration and execution of hooks that listen to automaton
    lifecycle events (on_enter, on_exit, on_error). Users can attach logging,
    monitoring, or custom side effects without altering core logic.
    """

    def __init__(self, hooks: Optional[List[HookProtocol]] = None) -> None:
        self._invoker = _HookInvoker(list(hooks or []))

    @property
    def hooks(self) -> List[HookProtocol]:
        return list(self._invoker.hooks)

    def register_hook(self, hook: HookProtocol) -> None:
        """
        Add a new hook to the manager's list of hooks.

        :param hook: An object implementing any of the HookProtocol methods.
        """
        if hook not in self._invoker.hooks:
            self._invoker.hooks.append(hook)

    async def execute_on_enter(self, state: "State") -> None:
        await self._invoker.invoke("on_enter", state)

    async def execute_on_exit(self, state: "State") -> None:
        await self._invoker.invoke("on_exit", state)

    async def execute_on_error(self, error: Exception) -> None:
        await self._invoker.invoke("on_error", error)


class _HookInvoker:
    """
    Internal helper that iterates through a list of hooks and invokes one of their
    lifecycle methods, awaiting it when it is a coroutine.
    """

    def __init__(self, hooks: List[HookProtocol]) -> None:
        self.hooks = hooks

    async def invoke(self, method: str, arg: Any) -> None:
        for hook in self.hooks:
            fn = getattr(hook, method, None)
            if fn is None:
                continue
            result = fn(arg)
            if inspect.isawaitable(result):
                await result
