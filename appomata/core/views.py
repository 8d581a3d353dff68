# appomata/core/views.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Callable, List, Optional, Set

from appomata.core.errors import NoMatchingTransitionError

if TYPE_CHECKING:
    from appomata.core.automaton import Automaton
    from appomata.core.base import Delta, Omega
    from appomata.core.factory import Factory

logger = logging.getLogger(__name__)

RenderFunction = Callable[..., Any]


class View:
    """
    A stateless render binding: ``render = f(automaton, delta, omega)``.

    The render function is called with the keyword arguments ``automaton``, ``delta``,
    ``omega``, ``transit`` and ``cached_output``. It keeps no state of its own, so one
    function may back several views, states and automata.
    """

    def __init__(
        self,
        name: str,
        render: RenderFunction,
        automaton: Optional[str] = None,
        factory: Optional["Factory"] = None,
    ) -> None:
        """
        :param name: Name unique within the owning factory.
        :param render: The pure render function.
        :param automaton: Optional fixed automaton binding for ``transit``.
        :param factory: Registry used to route view-initiated transitions.
        """
        self.name = name
        self.automaton = automaton
        self.states: Set[str] = set()
        self.automata: Set[str] = set()
        self.cached_output: Any = None
        self._render = render
        self._factory = factory

    def __repr__(self) -> str:
        return f"View({self.name!r})"

    def render(self, automaton: str, delta: "Delta", omega: "Omega") -> Any:
        """Render and cache the output for one transition."""
        self.cached_output = self._render(
            automaton=automaton,
            delta=delta,
            omega=omega,
            transit=self.transit,
            cached_output=self.cached_output,
        )
        return self.cached_output

    def _targets(self, automaton: Optional[str]) -> List["Automaton"]:
        if self._factory is None:
            return []
        if automaton:
            target = self._factory.get_automaton(automaton)
            return [target] if target is not None else []
        return list(self._factory.automata.values())

    async def transit(
        self,
        action: str,
        input: Any = None,
        name: str = "",
        automaton: Optional[str] = None,
    ) -> "Automaton":
        """
        Ask automata to handle ``action``. Only ``automaton`` (or the view's fixed
        binding) is asked when set; otherwise every registered automaton is asked in
        registration order and the first that accepts wins.

        :param name: Optional label of the requesting element, used for logging only.
        :return: The automaton that accepted the transition.
        :raises NoMatchingTransitionError: If no automaton accepts the action.
        """
        automaton = automaton or self.automaton
        logger.debug(f"View '{self.name}' requests action '{action}' ({name or 'unnamed'}) on {automaton or 'any automaton'}")
        for target in self._targets(automaton):
            if await target.try_transit(action, input):
                return target
        raise NoMatchingTransitionError(
            f"For given automaton ({automaton or 'any'}), action ({action}) there is no defined transition"
        )
