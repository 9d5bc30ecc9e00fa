"""Error taxonomy for the execution engine.

Configuration and attribute-access errors are raised as exceptions at the
point of misuse. Domain errors recorded by operations are never raised; they
travel as data on ``OperationResult``.
"""

from __future__ import annotations

from collections.abc import Mapping
from enum import Enum
from typing import Any

# Conventional bucket for errors not tied to any memory field.
BASE = "base"


class AccessKind(str, Enum):
    """Kind of memory access an operation or conditional declared."""

    READ = "read"
    WRITE = "write"


class StateVMError(Exception):
    """Base class for all engine errors."""

    pass


class InvalidAttribute(StateVMError):
    """Raised when an operation or conditional declares an unusable field.

    Covers fields missing from the memory accessor surface (detected before
    any user logic runs) and declarations of reserved or shadowing fields
    (detected when the class is defined).
    """

    def __init__(self, owner: Any, attribute: str, kind: AccessKind):
        self.owner = owner
        self.attribute = attribute
        self.kind = kind
        owner_name = getattr(owner, "__qualname__", repr(owner))
        super().__init__(
            f"Invalid {kind.value} of attribute '{attribute}' by {owner_name}"
        )


class InvalidThen(StateVMError):
    """Raised when a transition spec is malformed, or a non-terminal state has none."""

    def __init__(self, spec: Any, state: str | None = None):
        self.spec = spec
        self.state = state
        where = f" for state {state!r}" if state is not None else ""
        super().__init__(f"Invalid then configuration {spec!r}{where}")


class InvalidBranch(StateVMError):
    """Raised when a conditional branch value cannot be turned into a transition."""

    def __init__(self, value: Any, spec: Any):
        self.value = value
        self.spec = spec
        super().__init__(f"Invalid then option value {value!r} in {spec!r}")


class UnhandledCondition(StateVMError):
    """Raised when a conditional returns a value with no matching branch."""

    def __init__(
        self,
        value: Any,
        conditional: Any,
        branches: Mapping[Any, Any],
        context: dict[str, Any],
    ):
        self.value = value
        self.conditional = conditional
        self.branches = branches
        self.context = context
        conditional_name = getattr(conditional, "__qualname__", repr(conditional))
        super().__init__(
            f"Unhandled condition result {value!r} returned by {conditional_name} "
            f"in {dict(branches)!r}. Current context {context!r}"
        )


class InvalidState(StateVMError):
    """Raised when the machine attempts to enter an unregistered state.

    Also raised when an anonymous operation would run in a state visit that
    already executed an operation.
    """

    def __init__(self, state: str, context: dict[str, Any]):
        self.state = state
        self.context = context
        super().__init__(
            f"Invalid state transition to {state!r}. Current context {context!r}"
        )


class WriteRejected(StateVMError):
    """Raised by a memory accessor when the schema refuses committed values.

    ``errors`` maps each rejected field to its validation messages.
    """

    def __init__(self, errors: Mapping[str, list[str]]):
        self.errors = {field: list(messages) for field, messages in errors.items()}
        super().__init__(f"Memory rejected writes: {self.errors!r}")
