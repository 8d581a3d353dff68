# appomata/core/validations.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, Callable, Optional

from appomata.core.base import Omega
from appomata.core.errors import ValidationError

if TYPE_CHECKING:
    from appomata.core.states import State


class Validator:
    """
    Performs construction-time and runtime validation of automata, states and views,
    ensuring registrations and handler results conform to the expected shapes.
    """

    def validate_name(self, name: Any, kind: str) -> None:
        """
        :raises ValidationError: If ``name`` is not a non-empty string.
        """
        if not isinstance(name, str) or not name:
            raise ValidationError(f"{kind} name must be a non-empty string, got {name!r}")

    def validate_view_config(self, name: Any, render: Optional[Callable[..., Any]]) -> None:
        """
        Check a view definition before it is registered.

        :raises ValidationError: If the name is invalid or no callable render function is given.
        """
        self.validate_name(name, "View")
        if render is None:
            raise ValidationError(f"No render function is passed for view '{name}'")
        if not callable(render):
            raise ValidationError(f"Render function for view '{name}' is not callable")

    def validate_state(self, state: "State") -> None:
        self.validate_name(state.name, "State")

    def validate_omega(self, result: Any, state_name: str) -> Omega:
        """
        Normalize a handler result into an Omega. Mappings with a ``next`` key are
        accepted and converted.

        :param result: Whatever the action handler returned.
        :param state_name: Name of the state whose handler produced ``result``.
        :raises ValidationError: If the result cannot be read as an Omega.
        """
        if isinstance(result, Mapping) and "next" in result:
            result = Omega(
                next=result["next"],
                output=result.get("output"),
                views=list(result.get("views") or []),
                context=dict(result.get("context") or {}),
            )
        if not isinstance(result, Omega):
            raise ValidationError(f"Action handler of state '{state_name}' returned {result!r}, expected an Omega")
        if not isinstance(result.next, str):
            raise ValidationError(f"Omega.next from state '{state_name}' must be a state name, got {result.next!r}")
        return result
