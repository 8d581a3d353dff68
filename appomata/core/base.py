# appomata/core/base.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, List, Optional

if TYPE_CHECKING:
    from appomata.core.context import Context
    from appomata.core.views import View

FAILED_STATE = "failed"


@dataclass
class Delta:
    """
    A requested transition. ``from_state`` is filled in by the automaton with the
    name of the active state before dispatch. Handlers receive an augmented copy that
    also references the automaton's shared context and private buffer.
    """

    action: str
    input: Any = None
    from_state: str = ""
    context: Optional["Context"] = None
    buffer: Optional[Dict[str, Any]] = None


@dataclass
class Omega:
    """The result of a transition."""

    next: str
    output: Any = None
    views: List["View"] = field(default_factory=list)
    context: Dict[str, Any] = field(default_factory=dict)


def delta(action: str, input: Any = None, from_state: str = "") -> Delta:
    """Build a Delta with the canonical shape."""
    return Delta(action=action, input=input, from_state=from_state)


def omega(next: str, output: Any = None, views: Optional[List["View"]] = None, context: Optional[Dict] = None) -> Omega:
    """Build an Omega with the canonical shape."""
    return Omega(next=next, output=output, views=list(views or []), context=context if context is not None else {})
