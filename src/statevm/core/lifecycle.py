"""Run lifecycle: the status of a single VM run.

The VM drives this small state machine as it executes, so callers (and logs)
can see whether a run is still going, recovering from a failed operation,
or finished cleanly or with errors.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from transitions import Machine


class RunStatus(str, Enum):
    """Run lifecycle states."""

    IDLE = "IDLE"
    RUNNING = "RUNNING"
    RECOVERING = "RECOVERING"
    COMPLETED = "COMPLETED"
    ERRORED = "ERRORED"
    ABORTED = "ABORTED"


FINAL_STATUSES = frozenset({RunStatus.COMPLETED, RunStatus.ERRORED, RunStatus.ABORTED})


LIFECYCLE_TRANSITIONS: list[dict[str, Any]] = [
    {
        "trigger": "start",
        "source": RunStatus.IDLE,
        "dest": RunStatus.RUNNING,
    },
    {
        "trigger": "op_failed",
        "source": [RunStatus.RUNNING, RunStatus.RECOVERING],
        "dest": RunStatus.RECOVERING,
    },
    {
        "trigger": "op_succeeded",
        "source": RunStatus.RECOVERING,
        "dest": RunStatus.RUNNING,
    },
    {
        "trigger": "recovery_failed",
        "source": [RunStatus.RUNNING, RunStatus.RECOVERING],
        "dest": RunStatus.ERRORED,
    },
    {
        "trigger": "finish",
        "source": RunStatus.RUNNING,
        "dest": RunStatus.COMPLETED,
    },
    {
        "trigger": "finish",
        "source": RunStatus.RECOVERING,
        "dest": RunStatus.ERRORED,
    },
    {
        "trigger": "abort",
        "source": [RunStatus.IDLE, RunStatus.RUNNING, RunStatus.RECOVERING],
        "dest": RunStatus.ABORTED,
    },
]


class RunLifecycle:
    """Status model for one VM run.

    Triggers that do not apply to the current status are ignored, so the VM
    can fire ``op_succeeded`` after every clean operation and ``finish`` after
    a recovery failure without checking first.
    """

    def __init__(self) -> None:
        self.history: list[str] = []
        self.state: str = RunStatus.IDLE.value
        self._machine = Machine(
            model=self,
            states=[status.value for status in RunStatus],
            transitions=LIFECYCLE_TRANSITIONS,
            initial=RunStatus.IDLE.value,
            auto_transitions=False,
            ignore_invalid_triggers=True,
            after_state_change=self._record_transition,
            send_event=False,
        )

    def _record_transition(self) -> None:
        self.history.append(self.state)

    @property
    def status(self) -> RunStatus:
        return RunStatus(self.state)

    @property
    def is_final(self) -> bool:
        return self.status in FINAL_STATUSES
