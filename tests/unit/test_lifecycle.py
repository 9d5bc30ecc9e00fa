"""Unit tests for RunLifecycle.

Covers every trigger, ignored triggers, and transition history.
"""

from __future__ import annotations

import pytest

from statevm.core.lifecycle import FINAL_STATUSES, LIFECYCLE_TRANSITIONS, RunLifecycle, RunStatus


@pytest.fixture
def lifecycle() -> RunLifecycle:
    return RunLifecycle()


class TestRunStatus:
    """Tests for the RunStatus enum."""

    @pytest.mark.unit
    def test_names_match_values(self):
        for status in RunStatus:
            assert status.name == status.value

    @pytest.mark.unit
    def test_final_statuses(self):
        assert FINAL_STATUSES == {RunStatus.COMPLETED, RunStatus.ERRORED, RunStatus.ABORTED}

    @pytest.mark.unit
    def test_every_trigger_targets_a_known_status(self):
        for transition in LIFECYCLE_TRANSITIONS:
            assert RunStatus(transition["dest"]) in RunStatus


class TestRunLifecycle:
    """Trigger-driven status changes."""

    @pytest.mark.unit
    def test_initial_state(self, lifecycle):
        assert lifecycle.status is RunStatus.IDLE
        assert lifecycle.history == []
        assert not lifecycle.is_final

    @pytest.mark.unit
    def test_clean_run(self, lifecycle):
        lifecycle.start()
        lifecycle.op_succeeded()
        lifecycle.finish()

        assert lifecycle.status is RunStatus.COMPLETED
        assert lifecycle.history == ["RUNNING", "COMPLETED"]
        assert lifecycle.is_final

    @pytest.mark.unit
    def test_recovered_run(self, lifecycle):
        lifecycle.start()
        lifecycle.op_failed()
        assert lifecycle.status is RunStatus.RECOVERING

        lifecycle.op_succeeded()
        lifecycle.finish()

        assert lifecycle.status is RunStatus.COMPLETED

    @pytest.mark.unit
    def test_unrecovered_failure_finishes_errored(self, lifecycle):
        """A run that reaches a terminal state while recovering has errors."""
        lifecycle.start()
        lifecycle.op_failed()
        lifecycle.finish()

        assert lifecycle.status is RunStatus.ERRORED

    @pytest.mark.unit
    def test_recovery_failure(self, lifecycle):
        lifecycle.start()
        lifecycle.op_failed()
        lifecycle.recovery_failed()
        lifecycle.finish()

        assert lifecycle.status is RunStatus.ERRORED
        assert lifecycle.history == ["RUNNING", "RECOVERING", "ERRORED"]

    @pytest.mark.unit
    @pytest.mark.parametrize("before", [[], ["start"], ["start", "op_failed"]])
    def test_abort(self, lifecycle, before):
        for trigger in before:
            getattr(lifecycle, trigger)()

        lifecycle.abort()

        assert lifecycle.status is RunStatus.ABORTED

    @pytest.mark.unit
    def test_invalid_triggers_are_ignored(self, lifecycle):
        lifecycle.finish()
        lifecycle.op_succeeded()
        assert lifecycle.status is RunStatus.IDLE

        lifecycle.start()
        lifecycle.finish()
        lifecycle.abort()
        lifecycle.start()

        assert lifecycle.status is RunStatus.COMPLETED
        assert lifecycle.history == ["RUNNING", "COMPLETED"]
