"""Machine definition: state table, configuration and the builder that fills it.

A machine is usually built once, at import time, and shared by every run::

    BASIC = (
        MachineBuilder()
        .memory_factory(BasicMemory)
        .on("start", do=Add, then="exit")
        .build()
    )

    vm = VM(BASIC).run()
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from statevm.core.errors import InvalidThen
from statevm.core.memory import Memory
from statevm.core.operation import Operation
from statevm.core.then import Then, parse_then, targets

# By default a machine starts at "start", ends at "exit", and terminates
# immediately on operation failure.
DEFAULT_START = "start"
EXIT_STATE = "exit"
DEFAULT_TERMINALS: tuple[str, ...] = (EXIT_STATE,)
DEFAULT_ON_OP_FAILURE = EXIT_STATE

MemoryFactory = Callable[[], Any]


@dataclass(frozen=True)
class StateSpec:
    """A named state: an optional operation and the transition that follows it."""

    name: str
    operation: type[Operation] | None = None
    then: Then | None = None


@dataclass(frozen=True)
class Configuration:
    """Immutable machine definition consumed by the VM."""

    states: Mapping[str, StateSpec] = field(default_factory=lambda: MappingProxyType({}))
    initial_state: str = DEFAULT_START
    terminal_states: frozenset[str] = frozenset(DEFAULT_TERMINALS)
    failure_state: str = DEFAULT_ON_OP_FAILURE
    memory_factory: MemoryFactory = Memory

    def is_terminal(self, state: str) -> bool:
        return state in self.terminal_states

    def dangling_references(self) -> dict[str, list[str]]:
        """Map each state to the transition targets it names that are not registered.

        The initial and failure states are checked under the keys
        ``"<initial>"`` and ``"<on_op_failure>"``.
        """
        dangling: dict[str, list[str]] = {}
        for name, spec in self.states.items():
            missing = sorted(t for t in targets(spec.then) if t not in self.states)
            if missing:
                dangling[name] = missing
        if self.initial_state not in self.states:
            dangling["<initial>"] = [self.initial_state]
        if self.failure_state not in self.states:
            dangling["<on_op_failure>"] = [self.failure_state]
        return dangling

    def describe(self) -> list[dict[str, Any]]:
        """One row per state, for display."""
        rows = []
        for name, spec in self.states.items():
            rows.append(
                {
                    "state": name,
                    "operation": spec.operation.__qualname__ if spec.operation else None,
                    "targets": sorted(targets(spec.then)),
                    "initial": name == self.initial_state,
                    "terminal": self.is_terminal(name),
                    "on_op_failure": name == self.failure_state,
                }
            )
        return rows


class MachineBuilder:
    """Fluent builder producing a :class:`Configuration`.

    Each method returns the builder, so calls chain. :meth:`build` can be
    called any number of times; each call returns a fresh immutable
    configuration.
    """

    def __init__(self) -> None:
        self._states: dict[str, StateSpec] = {}
        self._initial_state = DEFAULT_START
        self._terminal_states: list[str] = list(DEFAULT_TERMINALS)
        self._failure_state = DEFAULT_ON_OP_FAILURE
        self._memory_factory: MemoryFactory = Memory
        for state in self._terminal_states:
            self._states[state] = StateSpec(state)

    def on(
        self,
        state: str,
        *,
        do: type[Operation] | None = None,
        then: Any = None,
    ) -> MachineBuilder:
        """Declare a state with an optional operation and its transition.

        Args:
            state: Name of the state.
            do: Operation executed upon entering the state.
            then: Name of the next state, a conditional mapping
                ``{"case": Conditional, "when": {...}}``, or a ``Then`` value.

        Raises:
            InvalidThen: If ``do`` is not an operation class or ``then`` is
                malformed.
            InvalidBranch: If a conditional branch is malformed.
        """
        if do is not None and not (isinstance(do, type) and issubclass(do, Operation)):
            raise InvalidThen({"do": do, "then": then})
        transition = parse_then(then) if then is not None else None
        self._states[state] = StateSpec(state, do, transition)
        return self

    def initial(self, state: str) -> MachineBuilder:
        """Set the state to start execution at."""
        self._initial_state = state
        return self

    def terminal(self, *states: str) -> MachineBuilder:
        """Add one or more states at which execution halts."""
        for state in states:
            if state not in self._terminal_states:
                self._terminal_states.append(state)
            self._states.setdefault(state, StateSpec(state))
        return self

    def on_op_failure(self, state: str) -> MachineBuilder:
        """Set the state to transition to when any operation fails."""
        self._failure_state = state
        return self

    def memory_factory(self, factory: MemoryFactory) -> MachineBuilder:
        """Set the callable (usually a Memory subclass) creating fresh memory."""
        self._memory_factory = factory
        return self

    def build(self) -> Configuration:
        """Freeze the declared states into a :class:`Configuration`.

        Raises:
            InvalidThen: If a non-terminal state has no transition.
        """
        for name, spec in self._states.items():
            if spec.then is None and name not in self._terminal_states:
                raise InvalidThen(None, state=name)
        return Configuration(
            states=MappingProxyType(dict(self._states)),
            initial_state=self._initial_state,
            terminal_states=frozenset(self._terminal_states),
            failure_state=self._failure_state,
            memory_factory=self._memory_factory,
        )
