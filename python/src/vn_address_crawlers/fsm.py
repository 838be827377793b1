from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Generic, TypeVar

from .errors import ConverterError

S = TypeVar("S", bound=Enum)
C = TypeVar("C")


@dataclass
class FSMConfig:
    max_steps: int = 20


@dataclass
class FSMTrace(Generic[S]):
    final_state: S
    visited: list[S] = field(default_factory=list)


class FSMRunner(Generic[S, C]):
    """Drive a context through state handlers until the terminal state.

    Each handler returns the next state; any exception raised by a handler
    aborts the run and propagates unchanged.
    """

    def __init__(
        self,
        *,
        initial_state: S,
        terminal_state: S,
        handlers: dict[S, Callable[[C], S]],
        on_transition: Callable[[C, S, S], None] | None = None,
        config: FSMConfig | None = None,
    ) -> None:
        self.initial_state = initial_state
        self.terminal_state = terminal_state
        self.handlers = handlers
        self.on_transition = on_transition
        self.config = config or FSMConfig()

    def run(self, context: C) -> FSMTrace[S]:
        state = self.initial_state
        visited: list[S] = []

        while state != self.terminal_state:
            if len(visited) >= self.config.max_steps:
                raise ConverterError(
                    f"State machine exceeded {self.config.max_steps} steps (last state: {state.value})"
                )

            handler = self.handlers.get(state)
            if handler is None:
                raise KeyError(f"Missing handler for state: {state}")

            visited.append(state)
            next_state = handler(context)
            if self.on_transition is not None:
                self.on_transition(context, state, next_state)
            state = next_state

        return FSMTrace(final_state=state, visited=visited)
