"""Operation contract: read -> call -> validate -> write.

An operation declares the memory fields it reads and writes::

    class Add(Operation):
        reads = ("a", "b")
        writes = ("c",)

        def call(self) -> None:
            self.c = self.a + self.b

Declared reads are copied onto the instance before any user code runs;
declared writes are buffered on the instance and committed to memory only if
the operation recorded no errors.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, ClassVar

from statevm.core.contract import declare_fields, snapshot_reads
from statevm.core.errors import AccessKind, InvalidAttribute, WriteRejected
from statevm.core.memory import accessor_for

ErrorMap = Mapping[str, tuple[Any, ...]]

NO_ERRORS: ErrorMap = MappingProxyType({})


class ErrorCollector:
    """Accumulates errors for one operation invocation."""

    def __init__(self) -> None:
        self._errors: dict[str, list[Any]] = {}

    def record(self, field: str, message: Any) -> None:
        self._errors.setdefault(field, []).append(message)

    def __bool__(self) -> bool:
        return bool(self._errors)

    def finalize(self) -> ErrorMap:
        """Return an immutable ``{field: messages}`` view of recorded errors."""
        if not self._errors:
            return NO_ERRORS
        return MappingProxyType(
            {name: tuple(messages) for name, messages in self._errors.items()}
        )


@dataclass(frozen=True)
class OperationResult:
    """Outcome of executing (or skipping) an operation in a state."""

    state_name: str
    operation: type[Operation] | None = None
    errors: ErrorMap = field(default_factory=lambda: NO_ERRORS)

    @property
    def executed(self) -> bool:
        return self.operation is not None

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)

    @property
    def op_name(self) -> str | None:
        return self.operation.__qualname__ if self.operation else None


class Operation:
    """Base class for all operations in a VM.

    Lifecycle is ``setup -> call -> validate``; all three always run. Reads and
    the logger are bound before ``setup``. Call :meth:`error` to signal
    failure: errors accumulate and never interrupt ``call`` or ``validate``,
    and an operation with any errors writes nothing to memory.
    """

    reads: ClassVar[tuple[str, ...]] = ()
    writes: ClassVar[tuple[str, ...]] = ()

    _read_fields: ClassVar[tuple[str, ...]] = ()
    _write_fields: ClassVar[tuple[str, ...]] = ()

    logger: Any = None

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        cls._read_fields = declare_fields(
            cls, Operation, "reads", "_read_fields", AccessKind.READ
        )
        cls._write_fields = declare_fields(
            cls, Operation, "writes", "_write_fields", AccessKind.WRITE
        )

    def __init__(self, values: Mapping[str, Any] | None = None, logger: Any = None):
        self.logger = logger
        self._collector = ErrorCollector()
        for name in self._write_fields:
            setattr(self, name, None)
        for name, value in (values or {}).items():
            setattr(self, name, value)
        self._assigned: set[str] = set()
        self.setup()

    def __setattr__(self, name: str, value: Any) -> None:
        if name in self._write_fields and "_assigned" in self.__dict__:
            self._assigned.add(name)
        super().__setattr__(name, value)

    def pending_writes(self) -> dict[str, Any]:
        """Declared writes to commit.

        Every assigned field is included, as is every field that is also
        read (its value started as memory's own). A write-only field that was
        never assigned is left untouched in memory.
        """
        return {
            name: getattr(self, name)
            for name in self._write_fields
            if name in self._assigned or name in self._read_fields
        }

    @classmethod
    def execute(cls, memory: Any, logger: Any = None) -> Operation:
        """Run this operation against ``memory`` and return the finished instance.

        Raises:
            InvalidAttribute: If memory lacks a declared read or write field.
                Nothing has run when this is raised.
        """
        accessor = accessor_for(memory)
        values = snapshot_reads(cls, accessor, cls._read_fields)
        for name in cls._write_fields:
            if not accessor.writable(name):
                raise InvalidAttribute(cls, name, AccessKind.WRITE)

        op = cls(values, logger=logger)
        op.call()
        op.validate()

        pending = op.pending_writes()
        if not op.has_errors and pending:
            try:
                accessor.commit(pending)
            except WriteRejected as exc:
                for name, messages in exc.errors.items():
                    for message in messages:
                        op.error(name, message)

        return op

    def setup(self) -> None:
        pass

    def call(self) -> None:
        pass

    def validate(self) -> None:
        pass

    def error(self, field: str, message: Any) -> None:
        """Declare that an error occurred.

        Args:
            field: The memory field in error; use :data:`BASE` for errors not
                associated with a particular field.
            message: A description of the error, conventionally a string.
        """
        self._collector.record(field, message)

    @property
    def has_errors(self) -> bool:
        return bool(self._collector)

    @property
    def errors(self) -> ErrorMap:
        return self._collector.finalize()
