"""Core execution engine: memory, operation and conditional contracts, transitions and the VM."""

from .conditional import Conditional
from .errors import (
    BASE,
    AccessKind,
    InvalidAttribute,
    InvalidBranch,
    InvalidState,
    InvalidThen,
    StateVMError,
    UnhandledCondition,
    WriteRejected,
)
from .lifecycle import RunLifecycle, RunStatus
from .machine import (
    DEFAULT_ON_OP_FAILURE,
    DEFAULT_START,
    DEFAULT_TERMINALS,
    EXIT_STATE,
    Configuration,
    MachineBuilder,
    StateSpec,
)
from .memory import (
    RESERVED_FIELDS,
    AttributeAccessor,
    Bookkeeping,
    Memory,
    MemoryAccessor,
    accessor_for,
)
from .operation import ErrorCollector, Operation, OperationResult
from .then import AnonymousState, Branch, Goto, Then, parse_then, resolve
from .vm import VM

__all__ = [
    # ============ errors ============
    "AccessKind",
    "StateVMError",
    "InvalidAttribute",
    "InvalidThen",
    "InvalidBranch",
    "UnhandledCondition",
    "InvalidState",
    "WriteRejected",
    # ============ memory ============
    "Memory",
    "MemoryAccessor",
    "AttributeAccessor",
    "Bookkeeping",
    "RESERVED_FIELDS",
    "accessor_for",
    # ============ contracts ============
    "BASE",
    "ErrorCollector",
    "Operation",
    "OperationResult",
    "Conditional",
    # ============ transitions ============
    "Then",
    "Goto",
    "Branch",
    "AnonymousState",
    "parse_then",
    "resolve",
    # ============ machine ============
    "DEFAULT_START",
    "DEFAULT_TERMINALS",
    "DEFAULT_ON_OP_FAILURE",
    "EXIT_STATE",
    "StateSpec",
    "Configuration",
    "MachineBuilder",
    # ============ engine ============
    "RunStatus",
    "RunLifecycle",
    "VM",
]
