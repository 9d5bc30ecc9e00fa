"""Transition specs ("then") and their resolution into a next state name.

A transition is one of three variants:

- :class:`Goto` -- a fixed next state;
- :class:`Branch` -- a conditional plus a map of branch key -> transition;
- :class:`AnonymousState` -- an inline, unnamed operation followed by a
  nested transition.

Builders may describe transitions with plain values, converted by
:func:`parse_then`::

    "exit"
    {"case": CondCGreater42, "when": {True: "mul", False: {"do": Sub, "then": "exit"}}}
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Union

from statevm.core.conditional import Conditional
from statevm.core.errors import InvalidBranch, InvalidThen, UnhandledCondition
from statevm.core.operation import Operation

if TYPE_CHECKING:
    from statevm.core.vm import VM


@dataclass(frozen=True)
class Goto:
    state: str


@dataclass(frozen=True)
class Branch:
    """Conditional transition.

    The conditional's result is looked up in ``branches`` as a dict key, so
    matching follows Python hash equality: ``1`` and ``1.0`` select a
    ``True`` branch, and ``0`` selects ``False``. Conditionals that must
    tell these apart should return distinct keys (e.g. strings). There is
    no default branch.
    """

    conditional: type[Conditional]
    branches: Mapping[Any, Then]


@dataclass(frozen=True)
class AnonymousState:
    operation: type[Operation] | None
    then: Then


Then = Union[Goto, Branch, AnonymousState]

_THEN_TYPES = (Goto, Branch, AnonymousState)


def parse_then(spec: Any) -> Then:
    """Convert a builder transition spec into a :data:`Then` value.

    Raises:
        InvalidThen: If ``spec`` is not a state name or a conditional mapping.
        InvalidBranch: If a branch value cannot be converted.
    """
    if isinstance(spec, _THEN_TYPES):
        return spec
    if isinstance(spec, str):
        return Goto(spec)
    if not (isinstance(spec, Mapping) and "case" in spec and "when" in spec):
        raise InvalidThen(spec)

    conditional = spec["case"]
    when = spec["when"]
    if not (isinstance(conditional, type) and issubclass(conditional, Conditional)):
        raise InvalidThen(spec)
    if not isinstance(when, Mapping):
        raise InvalidThen(spec)

    branches = {key: _parse_branch(value, spec) for key, value in when.items()}
    return Branch(conditional, MappingProxyType(branches))


def _parse_branch(value: Any, spec: Any) -> Then:
    if isinstance(value, _THEN_TYPES):
        return value
    if isinstance(value, str):
        return Goto(value)
    if isinstance(value, Mapping):
        if "case" in value:
            return parse_then(value)
        if "then" in value:
            operation = value.get("do")
            if operation is not None and not (
                isinstance(operation, type) and issubclass(operation, Operation)
            ):
                raise InvalidBranch(value, spec)
            return AnonymousState(operation, parse_then(value["then"]))
    raise InvalidBranch(value, spec)


def targets(then: Then | None) -> set[str]:
    """Every named state a transition can lead to."""
    if then is None:
        return set()
    if isinstance(then, Goto):
        return {then.state}
    if isinstance(then, AnonymousState):
        return targets(then.then)
    found: set[str] = set()
    for branch in then.branches.values():
        found |= targets(branch)
    return found


def resolve(then: Then, vm: VM) -> str:
    """Resolve ``then`` into the name of the next state to enter.

    Conditionals are evaluated and anonymous operations executed on the way.
    If an anonymous operation fails, the failure handler's name is returned
    instead of continuing down the chain.
    """
    if isinstance(then, Goto):
        return then.state

    if isinstance(then, AnonymousState):
        redirect = vm.execute_anonymous(then.operation)
        if redirect is not None:
            return redirect
        return resolve(then.then, vm)

    logger = vm.logger
    state = vm.current_state
    conditional_name = then.conditional.__qualname__

    if logger is not None:
        logger.debug(
            "conditional_check",
            state=state,
            context=vm.snapshot(),
            conditional=conditional_name,
        )
    value = then.conditional.evaluate(vm.memory, logger)
    if logger is not None:
        logger.debug(
            "conditional_result",
            state=state,
            context=vm.snapshot(),
            conditional=conditional_name,
            result=value,
        )

    try:
        branch = then.branches[value]
    except (KeyError, TypeError):
        raise UnhandledCondition(
            value, then.conditional, then.branches, vm.snapshot()
        ) from None

    return resolve(branch, vm)
