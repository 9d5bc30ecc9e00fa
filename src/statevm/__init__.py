"""
statevm: an embeddable state-machine execution engine.

Sequences operations against a schema-checked memory object, one operation
per state, with declarative branching and failure recovery.
"""

from statevm.core import (
    BASE,
    VM,
    AnonymousState,
    Branch,
    Conditional,
    Configuration,
    Goto,
    InvalidAttribute,
    InvalidBranch,
    InvalidState,
    InvalidThen,
    MachineBuilder,
    Memory,
    Operation,
    OperationResult,
    RunStatus,
    StateVMError,
    UnhandledCondition,
)

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "BASE",
    "VM",
    "AnonymousState",
    "Branch",
    "Conditional",
    "Configuration",
    "Goto",
    "InvalidAttribute",
    "InvalidBranch",
    "InvalidState",
    "InvalidThen",
    "MachineBuilder",
    "Memory",
    "Operation",
    "OperationResult",
    "RunStatus",
    "StateVMError",
    "UnhandledCondition",
]
