"""Run memory: the user-schema record threaded through a run.

Two parts are combined only inside the VM:

- the user memory, normally a :class:`Memory` (pydantic model) subclass
  declaring the fields operations read and write;
- :class:`Bookkeeping`, the engine-owned record of the current/last state and
  the current/failed operation results. Operations never receive it.

The engine talks to user memory through the :class:`MemoryAccessor`
protocol. Objects that do not implement it are wrapped in an
:class:`AttributeAccessor`.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, fields
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, ValidationError

from statevm.core.errors import BASE, WriteRejected

if TYPE_CHECKING:
    from statevm.core.operation import OperationResult


@dataclass
class Bookkeeping:
    """Engine-reserved fields, mutated only by the VM."""

    current_state: str | None = None
    last_state: str | None = None
    current_op: OperationResult | None = None
    error_op: OperationResult | None = None


RESERVED_FIELDS: frozenset[str] = frozenset(f.name for f in fields(Bookkeeping))


@runtime_checkable
class MemoryAccessor(Protocol):
    """Capability the engine needs from a memory object."""

    def readable(self, field: str) -> bool: ...

    def writable(self, field: str) -> bool: ...

    def read(self, field: str) -> Any: ...

    def commit(self, values: Mapping[str, Any]) -> None: ...


def _is_public(field: str) -> bool:
    return bool(field) and not field.startswith("_")


class Memory(BaseModel):
    """Base class for schema-checked VM memory.

    Declare fields as on any pydantic model::

        class BasicMemory(Memory):
            a: int = 40
            b: int = 2
            c: int | None = None

    Model fields are readable and writable. Read-only properties are readable;
    properties with a setter are also writable. Assignments are validated, and
    :meth:`commit` applies a batch of writes all-or-nothing.
    """

    model_config = ConfigDict(
        validate_assignment=True,
        arbitrary_types_allowed=True,
        extra="forbid",
        populate_by_name=True,
    )

    def readable(self, field: str) -> bool:
        if not _is_public(field):
            return False
        if field in type(self).model_fields:
            return True
        return isinstance(getattr(type(self), field, None), property)

    def writable(self, field: str) -> bool:
        if not _is_public(field):
            return False
        model_field = type(self).model_fields.get(field)
        if model_field is not None:
            return not model_field.frozen
        attr = getattr(type(self), field, None)
        return isinstance(attr, property) and attr.fset is not None

    def read(self, field: str) -> Any:
        return getattr(self, field)

    def commit(self, values: Mapping[str, Any]) -> None:
        """Validate the whole batch as one model, then apply it.

        Field and model validators see memory as it will look after the
        commit, so cross-field rules accept a batch that is valid as a whole.
        Property setters run first on a staged copy.

        Raises:
            WriteRejected: If the schema refuses the batch. Nothing is applied.
        """
        model_fields = type(self).model_fields
        staged = self.model_copy()
        rejected: dict[str, list[str]] = {}

        for name, value in values.items():
            if name in model_fields:
                continue
            try:
                setattr(staged, name, value)
            except ValidationError as exc:
                _collect_errors(rejected, exc, name)

        candidate = {name: getattr(staged, name) for name in model_fields}
        candidate.update((k, v) for k, v in values.items() if k in model_fields)
        try:
            validated = type(self).model_validate(candidate)
        except ValidationError as exc:
            _collect_errors(rejected, exc, BASE)

        if rejected:
            raise WriteRejected(rejected)

        changed = [
            name
            for name in model_fields
            if name in values or getattr(staged, name) is not getattr(self, name)
        ]
        # Values were validated together; assign without per-field validation.
        for name in changed:
            self.__dict__[name] = getattr(validated, name)
        self.__pydantic_fields_set__.update(changed)


def _collect_errors(
    rejected: dict[str, list[str]], exc: ValidationError, default: str
) -> None:
    for error in exc.errors():
        loc = error.get("loc") or ()
        name = str(loc[0]) if loc else default
        rejected.setdefault(name, []).append(error["msg"])


class AttributeAccessor:
    """Adapts an arbitrary object (dataclass, namespace, ...) to MemoryAccessor."""

    def __init__(self, target: Any):
        self.target = target

    def readable(self, field: str) -> bool:
        return _is_public(field) and hasattr(self.target, field)

    def writable(self, field: str) -> bool:
        if not _is_public(field):
            return False
        attr = getattr(type(self.target), field, None)
        if isinstance(attr, property):
            return attr.fset is not None
        return hasattr(self.target, field) and not callable(getattr(self.target, field))

    def read(self, field: str) -> Any:
        return getattr(self.target, field)

    def commit(self, values: Mapping[str, Any]) -> None:
        for name, value in values.items():
            setattr(self.target, name, value)


def accessor_for(memory: Any) -> MemoryAccessor:
    """Return the accessor the engine should use for ``memory``."""
    if isinstance(memory, MemoryAccessor):
        return memory
    return AttributeAccessor(memory)
