"""
Shared utilities module.
"""

from statevm.utils.logging import (
    clear_execution_context,
    configure_from_settings,
    configure_logging,
    generate_execution_id,
    get_logger,
    set_execution_context,
    timed_operation,
)

__all__ = [
    "configure_logging",
    "configure_from_settings",
    "get_logger",
    "set_execution_context",
    "clear_execution_context",
    "generate_execution_id",
    "timed_operation",
]
