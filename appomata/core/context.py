# appomata/core/context.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

"""
Observable shared context for one automaton.

Mutations go through an explicit API (``set``, ``delete``, ``apply`` or item
assignment) and each mutating call emits exactly one change-set to the observers,
synchronously, before the call returns. Nested values mutated in place without
going through this API are not observed.

Example:
    ctx = Context({"user": {"name": "a"}})
    ctx.observe(lambda changes: print(changes))
    ctx.set("user.name", "b")
"""

from __future__ import annotations

import copy
from collections.abc import MutableMapping
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional, Tuple, Union

from appomata.core.errors import ValidationError

Path = Union[str, Tuple[str, ...]]


class _Missing:
    def __repr__(self) -> str:
        return "MISSING"

    def __deepcopy__(self, memo: Dict) -> "_Missing":
        return self


MISSING = _Missing()


@dataclass(frozen=True)
class ContextChange:
    """One observed mutation. ``old``/``new`` are MISSING where no value exists."""

    path: Tuple[str, ...]
    old: Any
    new: Any
    kind: str  # "set" or "delete"


ContextListener = Callable[[List[ContextChange]], None]


def _split(path: Path) -> Tuple[str, ...]:
    parts = tuple(path) if isinstance(path, tuple) else tuple(str(path).split("."))
    if not parts or any(p == "" for p in parts):
        raise ValidationError(f"Invalid context path: {path!r}")
    return parts


class Context(MutableMapping):
    """
    Dict-like record shared by every state and view of one automaton.
    """

    def __init__(self, initial: Optional[Mapping[str, Any]] = None) -> None:
        self._data: Dict[str, Any] = copy.deepcopy(dict(initial or {}))
        self._listeners: List[ContextListener] = []

    def observe(self, listener: ContextListener) -> Callable[[], None]:
        """
        Register a listener called with every change-set.

        :return: A callable that removes the listener.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, changes: List[ContextChange]) -> None:
        if not changes:
            return
        for listener in list(self._listeners):
            listener(changes)

    def _parent(self, parts: Tuple[str, ...], create: bool) -> Optional[Dict[str, Any]]:
        node = self._data
        for i, key in enumerate(parts[:-1]):
            child = node.get(key, MISSING)
            if child is MISSING:
                if not create:
                    return None
                child = node[key] = {}
            elif not isinstance(child, dict):
                raise ValidationError(f"Context path {'.'.join(parts[: i + 1])!r} is not a mapping")
            node = child
        return node

    def _check_settable(self, parts: Tuple[str, ...]) -> None:
        node: Any = self._data
        for i, key in enumerate(parts[:-1]):
            node = node.get(key, MISSING)
            if node is MISSING:
                return
            if not isinstance(node, dict):
                raise ValidationError(f"Context path {'.'.join(parts[: i + 1])!r} is not a mapping")

    def _set(self, parts: Tuple[str, ...], value: Any) -> ContextChange:
        parent = self._parent(parts, create=True)
        old = parent.get(parts[-1], MISSING)
        parent[parts[-1]] = value
        return ContextChange(path=parts, old=old, new=value, kind="set")

    def get(self, path: Path, default: Any = None) -> Any:
        """Read the value at a dotted path, or ``default`` when any segment is absent."""
        node: Any = self._data
        for key in _split(path):
            if not isinstance(node, dict) or key not in node:
                return default
            node = node[key]
        return node

    def set(self, path: Path, value: Any) -> None:
        """Set the value at ``path``, creating intermediate mappings as needed."""
        parts = _split(path)
        self._check_settable(parts)
        self._notify([self._set(parts, value)])

    def delete(self, path: Path) -> None:
        """
        Remove the value at ``path``.

        :raises KeyError: If the path does not exist.
        """
        parts = _split(path)
        parent = self._parent(parts, create=False)
        if parent is None or parts[-1] not in parent:
            raise KeyError(".".join(parts))
        old = parent.pop(parts[-1])
        self._notify([ContextChange(path=parts, old=old, new=MISSING, kind="delete")])

    def apply(self, changes: Mapping[Path, Any]) -> List[ContextChange]:
        """
        Set several paths at once. Every path is checked before any is written, so a
        bad path leaves the context untouched. Observers receive one change-set.
        """
        parsed = [(_split(path), value) for path, value in changes.items()]
        paths = [parts for parts, _ in parsed]
        for parts in paths:
            self._check_settable(parts)
            if any(other != parts and other[: len(parts)] == parts for other in paths):
                raise ValidationError(f"Context path {'.'.join(parts)!r} overlaps another path in the same change")
        applied = [self._set(parts, value) for parts, value in parsed]
        self._notify(applied)
        return applied

    def snapshot(self) -> Dict[str, Any]:
        """Deep copy of the current data as plain dicts."""
        return copy.deepcopy(self._data)

    def __getitem__(self, key: str) -> Any:
        return self._data[key]

    def __setitem__(self, key: str, value: Any) -> None:
        self.set((key,), value)

    def __delitem__(self, key: str) -> None:
        self.delete((key,))

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        return f"Context({self._data!r})"
