"""Field declaration and read snapshot helpers shared by operations and conditionals."""

from __future__ import annotations

import copy
from collections.abc import Iterable
from typing import Any

from statevm.core.errors import AccessKind, InvalidAttribute
from statevm.core.memory import RESERVED_FIELDS, MemoryAccessor


def declare_fields(
    cls: type,
    root: type,
    declared_attr: str,
    resolved_attr: str,
    kind: AccessKind,
) -> tuple[str, ...]:
    """Resolve the ordered field list a class declares under ``declared_attr``.

    Fields declared by base classes come first, followed by the class's own
    declarations. Reserved fields and names that would shadow attributes of
    ``root`` are rejected immediately.
    """
    resolved: list[str] = []
    for base in cls.__bases__:
        for name in getattr(base, resolved_attr, ()):
            if name not in resolved:
                resolved.append(name)

    own: Any = cls.__dict__.get(declared_attr, ())
    if isinstance(own, str):
        own = (own,)

    for name in _as_names(cls, own, kind):
        if name in RESERVED_FIELDS or hasattr(root, name):
            raise InvalidAttribute(cls, name, kind)
        if name not in resolved:
            resolved.append(name)

    return tuple(resolved)


def _as_names(cls: type, declared: Iterable[Any], kind: AccessKind) -> list[str]:
    names = []
    for name in declared:
        if not isinstance(name, str) or not name.isidentifier() or name.startswith("_"):
            raise InvalidAttribute(cls, str(name), kind)
        names.append(name)
    return names


def snapshot_reads(
    owner: type,
    accessor: MemoryAccessor,
    fields: Iterable[str],
) -> dict[str, Any]:
    """Copy every declared read out of memory.

    Raises:
        InvalidAttribute: If memory does not expose one of the fields.
    """
    values: dict[str, Any] = {}
    for name in fields:
        if not accessor.readable(name):
            raise InvalidAttribute(owner, name, AccessKind.READ)
        values[name] = copy.copy(accessor.read(name))
    return values
