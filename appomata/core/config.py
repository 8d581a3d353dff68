# appomata/core/config.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

from dataclasses import dataclass
from enum import Enum, auto
from typing import Optional


class ReentrancyPolicy(Enum):
    """What an automaton does with a transit request that arrives mid-transition."""

    QUEUE = auto()  # Wait for the running transition, FIFO
    REJECT = auto()  # Raise TransitionInProgressError


@dataclass(frozen=True)
class EngineConfig:
    """
    Runtime settings shared by the automata a factory creates.

    :param transition_timeout: Seconds an awaitable action handler may run before the
                               transition is routed to the failed state. None disables it.
    :param reentrancy: Policy for overlapping transit calls on one automaton.
    """

    transition_timeout: Optional[float] = None
    reentrancy: ReentrancyPolicy = ReentrancyPolicy.QUEUE

    def __post_init__(self) -> None:
        if self.transition_timeout is not None and self.transition_timeout <= 0:
            raise ValueError("transition_timeout must be positive or None")
