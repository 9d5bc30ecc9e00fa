"""Conditional contract: a read-only, error-free branch selector."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, ClassVar

from statevm.core.contract import declare_fields, snapshot_reads
from statevm.core.errors import AccessKind, InvalidAttribute
from statevm.core.memory import accessor_for


class Conditional:
    """Base class for all conditionals in a VM.

    A conditional declares ``reads`` like an operation and returns a branch
    key from :meth:`call`. It may not write to memory and has no way to
    record errors. Declaring ``writes`` is rejected when the class is defined.
    """

    reads: ClassVar[tuple[str, ...]] = ()

    _read_fields: ClassVar[tuple[str, ...]] = ()

    logger: Any = None

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        if "writes" in cls.__dict__:
            writes = cls.__dict__["writes"]
            first = writes if isinstance(writes, str) else next(iter(writes), "writes")
            raise InvalidAttribute(cls, str(first), AccessKind.WRITE)
        cls._read_fields = declare_fields(
            cls, Conditional, "reads", "_read_fields", AccessKind.READ
        )

    def __init__(self, values: Mapping[str, Any] | None = None, logger: Any = None):
        self.logger = logger
        for name, value in (values or {}).items():
            setattr(self, name, value)

    @classmethod
    def evaluate(cls, memory: Any, logger: Any = None) -> Any:
        """Snapshot declared reads from ``memory`` and return the branch key."""
        values = snapshot_reads(cls, accessor_for(memory), cls._read_fields)
        return cls(values, logger=logger).call()

    def call(self) -> Any:
        return None
