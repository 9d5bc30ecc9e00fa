"""Unit tests for transition specs and their parsing."""

from __future__ import annotations

import pytest

from statevm.core.errors import InvalidBranch, InvalidThen
from statevm.core.then import AnonymousState, Branch, Goto, parse_then, resolve, targets
from tests.fixtures.machines import Add, CondCGreater42, Mul


class TestParseThen:
    """Builder specs become Then values."""

    @pytest.mark.unit
    def test_state_name(self):
        assert parse_then("exit") == Goto("exit")

    @pytest.mark.unit
    def test_then_values_pass_through(self):
        goto = Goto("exit")
        assert parse_then(goto) is goto

    @pytest.mark.unit
    def test_conditional(self):
        then = parse_then({"case": CondCGreater42, "when": {True: "mul", False: "sub"}})

        assert isinstance(then, Branch)
        assert then.conditional is CondCGreater42
        assert then.branches == {True: Goto("mul"), False: Goto("sub")}

    @pytest.mark.unit
    def test_anonymous_state(self):
        then = parse_then(
            {"case": CondCGreater42, "when": {True: {"do": Add, "then": "exit"}}}
        )

        branch = then.branches[True]
        assert branch == AnonymousState(Add, Goto("exit"))

    @pytest.mark.unit
    def test_anonymous_state_without_operation(self):
        then = parse_then({"case": CondCGreater42, "when": {True: {"then": "exit"}}})
        assert then.branches[True] == AnonymousState(None, Goto("exit"))

    @pytest.mark.unit
    def test_nested_conditionals(self):
        then = parse_then(
            {
                "case": CondCGreater42,
                "when": {
                    True: {"case": CondCGreater42, "when": {True: "a", False: "b"}},
                    False: "c",
                },
            }
        )

        assert isinstance(then.branches[True], Branch)
        assert targets(then) == {"a", "b", "c"}

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "spec",
        [
            42,
            None,
            {"case": CondCGreater42},
            {"when": {True: "exit"}},
            {"case": Add, "when": {True: "exit"}},
            {"case": CondCGreater42, "when": ["exit"]},
        ],
    )
    def test_invalid_then(self, spec):
        with pytest.raises(InvalidThen):
            parse_then(spec)

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "value",
        [
            42,
            {"something": "else"},
            {"do": CondCGreater42, "then": "exit"},
        ],
    )
    def test_invalid_branch(self, value):
        with pytest.raises(InvalidBranch) as exc_info:
            parse_then({"case": CondCGreater42, "when": {True: value}})

        assert exc_info.value.value == value

    @pytest.mark.unit
    def test_invalid_then_inside_anonymous_state(self):
        with pytest.raises(InvalidThen):
            parse_then({"case": CondCGreater42, "when": {True: {"do": Mul, "then": 42}}})


class TestTargets:
    """Static reachability of named states."""

    @pytest.mark.unit
    def test_targets(self):
        assert targets(None) == set()
        assert targets(Goto("x")) == {"x"}
        assert targets(AnonymousState(Add, Goto("y"))) == {"y"}


class TestResolveGoto:
    """Simple transitions need no engine state."""

    @pytest.mark.unit
    def test_goto(self):
        assert resolve(Goto("exit"), vm=None) == "exit"  # type: ignore[arg-type]
