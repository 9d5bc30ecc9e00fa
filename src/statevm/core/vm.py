"""Execution engine: the state-transition loop and failure recovery path."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from statevm.core.errors import InvalidState, InvalidThen, StateVMError
from statevm.core.lifecycle import RunLifecycle, RunStatus
from statevm.core.machine import EXIT_STATE, Configuration
from statevm.core.memory import Bookkeeping
from statevm.core.operation import NO_ERRORS, ErrorMap, Operation, OperationResult
from statevm.core.then import resolve
from statevm.utils.logging import get_logger

LivenessHook = Callable[[], Any]


class VM:
    """Executes a machine :class:`Configuration` against one memory object.

    Parameters
    ----------
    config : Configuration
        The machine definition. Shared and never modified.
    memory : Any
        Memory for this run. Created with ``config.memory_factory`` when
        omitted. The caller keeps ownership; the VM never discards it.
    """

    def __init__(self, config: Configuration, memory: Any = None):
        self.config = config
        self.memory = memory if memory is not None else config.memory_factory()
        self.lifecycle = RunLifecycle()
        self.logger: Any = None
        self._bookkeeping = Bookkeeping()
        self._liveness: LivenessHook | None = None
        self._log = get_logger("statevm.vm")

    # ==================== BOOKKEEPING (read-only views) ====================

    @property
    def current_state(self) -> str | None:
        return self._bookkeeping.current_state

    @property
    def last_state(self) -> str | None:
        return self._bookkeeping.last_state

    @property
    def current_op(self) -> OperationResult | None:
        return self._bookkeeping.current_op

    @property
    def error_op(self) -> OperationResult | None:
        return self._bookkeeping.error_op

    @property
    def status(self) -> RunStatus:
        return self.lifecycle.status

    # ==================== RUN LOOP ====================

    def run(self, *, logger: Any = None, liveness: LivenessHook | None = None) -> VM:
        """Execute the machine until a terminal state is reached.

        Args:
            logger: Optional structured event sink (e.g. a structlog logger).
            liveness: Optional zero-argument hook called once per executed
                state, e.g. a watchdog ping. Its failures are logged and
                ignored.

        Returns:
            This VM, for inspection of memory and errors.

        Note:
            There is no iteration cap. A graph with no path to a terminal
            state runs forever.
        """
        if self.lifecycle.status is not RunStatus.IDLE:
            raise StateVMError(f"VM has already run (status {self.lifecycle.state})")

        self.logger = logger
        self._liveness = liveness
        self.lifecycle.start()

        next_state: str | None = self.config.initial_state
        try:
            while next_state is not None:
                next_state = self._do_state(next_state)
        except Exception:
            self.lifecycle.abort()
            raise

        self.lifecycle.finish()
        self._log.debug("run_finished", state=self.current_state, status=self.lifecycle.state)
        return self

    def _do_state(self, next_state: str) -> str | None:
        if self.logger is not None:
            self.logger.debug("enter", state=next_state, context=self.snapshot())

        bookkeeping = self._bookkeeping
        bookkeeping.last_state = bookkeeping.current_state

        state = self.config.states.get(next_state)
        if state is None:
            raise InvalidState(next_state, self.snapshot())

        bookkeeping.current_state = state.name

        if self.config.is_terminal(state.name):
            return None

        self._notify_liveness()

        redirect = self._do_op(state.operation)
        if redirect is not None:
            return redirect

        if state.then is None:
            raise InvalidThen(None, state=state.name)
        return resolve(state.then, self)

    def execute_anonymous(self, operation: type[Operation] | None) -> str | None:
        """Run an anonymous state's operation during transition resolution.

        Returns the failure handler's name if the operation failed.

        Raises:
            InvalidState: If an operation already executed in this state visit.
        """
        if operation is None:
            return None

        current = self._bookkeeping.current_op
        if current is not None and current.executed:
            raise InvalidState(self._bookkeeping.current_state, self.snapshot())

        return self._do_op(operation)

    def _do_op(self, operation: type[Operation] | None) -> str | None:
        bookkeeping = self._bookkeeping

        errors: ErrorMap = NO_ERRORS
        if operation is not None:
            errors = operation.execute(self.memory, self.logger).errors

        result = OperationResult(bookkeeping.current_state, operation, errors)
        bookkeeping.current_op = result

        if result.has_errors:
            if self.logger is not None:
                self.logger.error(
                    "op_errors",
                    state=result.state_name,
                    op_name=result.op_name,
                    errors=dict(result.errors),
                    context=self.snapshot(),
                )

            # The failure handler itself failed: keep both error_op and
            # current_op so the original and recovery errors stay inspectable.
            if result.state_name == self.config.failure_state:
                self.lifecycle.recovery_failed()
                return EXIT_STATE

            bookkeeping.error_op = result
            # No recovery has happened yet, so there are no recovery errors.
            bookkeeping.current_op = None
            self.lifecycle.op_failed()
            return self.config.failure_state

        # Only a later successful operation clears a recorded failure.
        if operation is not None:
            bookkeeping.error_op = None
            self.lifecycle.op_succeeded()

        return None

    def _notify_liveness(self) -> None:
        if self._liveness is None:
            return
        try:
            self._liveness()
        except Exception as exc:  # noqa: BLE001 - a watchdog must never stop the run
            self._log.warning(
                "liveness_hook_failed",
                state=self.current_state,
                error=str(exc),
            )

    # ==================== INSPECTION ====================

    @property
    def has_errors(self) -> bool:
        """Did the run exit with an unrecovered operation failure?"""
        return self.error_op is not None and self.error_op.has_errors

    @property
    def errors(self) -> ErrorMap | None:
        """Errors of the failed operation, or None."""
        if not self.has_errors:
            return None
        return self.error_op.errors

    @property
    def has_recovery_errors(self) -> bool:
        """Did the failure handler's own operation fail?"""
        return self.current_op is not None and self.current_op.has_errors

    @property
    def recovery_errors(self) -> ErrorMap | None:
        """Errors of the failed recovery operation, or None."""
        if not self.has_recovery_errors:
            return None
        return self.current_op.errors

    def snapshot(self) -> dict[str, Any]:
        """Public engine state, for diagnostics and log context."""
        return {
            "status": self.lifecycle.state,
            "current_state": self.current_state,
            "last_state": self.last_state,
            "current_op": self.current_op.op_name if self.current_op else None,
            "error_op": self.error_op.op_name if self.error_op else None,
        }
