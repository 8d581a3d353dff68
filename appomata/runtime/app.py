# appomata/runtime/app.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

from __future__ import annotations

import logging
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Protocol, Sequence, Tuple

from appomata.core.base import Delta, Omega
from appomata.core.context import MISSING
from appomata.core.events import EventBus, TransitionEvent

if TYPE_CHECKING:
    from appomata.core.automaton import Automaton
    from appomata.core.factory import Factory

logger = logging.getLogger(__name__)


class AppEvent(str, Enum):
    """Notifications an App publishes while rendering."""

    BEFORE_APP_RENDER = "before_app_render"
    AFTER_APP_RENDER = "after_app_render"
    BEFORE_APP_VIEW_RENDER = "before_app_view_render"
    AFTER_APP_VIEW_RENDER = "after_app_view_render"
    BEFORE_APP_DIFF = "before_app_diff"
    BEFORE_APP_PATCH = "before_app_patch"
    BEFORE_APP_MOUNT = "before_app_mount"
    AFTER_APP_MOUNT = "after_app_mount"


class Renderer(Protocol):
    """
    The rendering collaborator: composes view outputs into a tree and patches a
    mounted root. Implementations live outside the engine.
    """

    def compose(self, outputs: Sequence[Any]) -> Any: ...

    def create(self, tree: Any) -> Any: ...

    def diff(self, old: Any, new: Any) -> Any: ...

    def patch(self, root: Any, patches: Any) -> Any: ...


class ListRenderer:
    """
    In-process renderer. The tree is a tuple of view outputs, the mounted root is a
    list, and patches are ``(index, old, new)`` triples where MISSING marks an entry
    that is absent on that side.
    """

    def compose(self, outputs: Sequence[Any]) -> Tuple[Any, ...]:
        return tuple(outputs)

    def create(self, tree: Tuple[Any, ...]) -> List[Any]:
        return list(tree)

    def diff(self, old: Tuple[Any, ...], new: Tuple[Any, ...]) -> List[Tuple[int, Any, Any]]:
        patches = []
        for i in range(max(len(old), len(new))):
            before = old[i] if i < len(old) else MISSING
            after = new[i] if i < len(new) else MISSING
            if before is MISSING or after is MISSING or before != after:
                patches.append((i, before, after))
        return patches

    def patch(self, root: List[Any], patches: List[Tuple[int, Any, Any]]) -> List[Any]:
        removed = 0
        for index, _, after in patches:
            if after is MISSING:
                removed += 1
            elif index < len(root):
                root[index] = after
            else:
                root.append(after)
        if removed:
            del root[len(root) - removed :]
        return root


class App:
    """
    Connects automata to a rendering collaborator. After every transition of a
    connected automaton, the views of the new state are rendered in order, composed
    into a tree, diffed against the previous tree and patched onto the root.
    """

    def __init__(self, name: str, renderer: Optional[Renderer] = None) -> None:
        self.name = name
        self.renderer: Renderer = renderer or ListRenderer()
        self.automata: Dict[str, "Automaton"] = {}
        self.root_tree: Any = None
        self.root_node: Any = None
        self._bus = EventBus()

    def on(self, event: AppEvent, listener: Any) -> Any:
        return self._bus.on(event, listener)

    def off(self, event: AppEvent, listener: Any) -> None:
        self._bus.off(event, listener)

    def on_transition(self, event: TransitionEvent) -> None:
        """Called by the factory after each transition of a connected automaton."""
        self._bus.emit(AppEvent.BEFORE_APP_RENDER, event)
        self.render(event)
        self._bus.emit(AppEvent.AFTER_APP_RENDER, event)

    def render(self, event: TransitionEvent) -> Any:
        """Render the views in ``event.omega.views`` and patch the mounted root."""
        rendered = []
        for view in event.omega.views:
            data = {"automaton": event.automaton, "delta": event.delta, "omega": event.omega}
            self._bus.emit(AppEvent.BEFORE_APP_VIEW_RENDER, data)
            output = view.render(automaton=event.automaton, delta=event.delta, omega=event.omega)
            self._bus.emit(AppEvent.AFTER_APP_VIEW_RENDER, output)
            rendered.append(output)

        if self.root_tree is None:
            self.mount()
        new_tree = self.renderer.compose(rendered)
        self._bus.emit(AppEvent.BEFORE_APP_DIFF, new_tree)
        patches = self.renderer.diff(self.root_tree, new_tree)
        self.root_tree = new_tree
        self._bus.emit(AppEvent.BEFORE_APP_PATCH, patches)
        self.root_node = self.renderer.patch(self.root_node, patches)
        logger.debug(f"App '{self.name}' rendered {len(rendered)} views for '{event.automaton}'")
        return self.root_node

    def mount(self, root: Any = None) -> "App":
        """Create the empty root tree once. ``root`` is handed to the mount listeners."""
        self._bus.emit(AppEvent.BEFORE_APP_MOUNT, root)
        if self.root_tree is None:
            self.root_tree = self.renderer.compose([])
            self.root_node = self.renderer.create(self.root_tree)
        self._bus.emit(AppEvent.AFTER_APP_MOUNT, self.root_tree)
        return self

    async def run(self, factory: "Factory", automaton: "Automaton", root: Any = None, action: str = "init") -> Omega:
        """Mount, connect to ``automaton`` and request its first transition."""
        self.mount(root)
        factory.connect(app=self, automata=[automaton.name])
        return await automaton.transit(Delta(action=action, input=""))
