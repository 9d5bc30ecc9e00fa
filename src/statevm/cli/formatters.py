"""CLI output formatting: rich tables for humans, JSON for machines."""

from __future__ import annotations

import json
from enum import Enum
from io import StringIO
from typing import Any

import typer
from rich import box
from rich.console import Console
from rich.table import Table

from statevm.core.vm import VM
from statevm.utils.logging import json_default


class OutputFormat(str, Enum):
    """Supported output formats."""

    TEXT = "text"
    JSON = "json"


def _format_cell(value: Any) -> str:
    if value is None:
        return "-"
    if isinstance(value, bool):
        return "yes" if value else ""
    if isinstance(value, (list, tuple, set, frozenset)):
        return ", ".join(str(v) for v in value)
    return str(value)


def format_table(
    rows: list[dict[str, Any]],
    *,
    title: str | None = None,
    no_color: bool = False,
) -> str:
    """Render a list of uniform dicts as a rich table."""
    if not rows:
        return "(empty)"

    table = Table(box=box.ROUNDED, title=title)
    for key in rows[0]:
        table.add_column(str(key).replace("_", " ").title())
    for row in rows:
        table.add_row(*(_format_cell(v) for v in row.values()))

    console = Console(file=StringIO(), force_terminal=not no_color, width=120)
    console.print(table)
    return console.file.getvalue()


def memory_as_dict(memory: Any) -> dict[str, Any]:
    if hasattr(memory, "model_dump"):
        return memory.model_dump()
    return {k: v for k, v in vars(memory).items() if not k.startswith("_")}


def run_report(vm: VM) -> dict[str, Any]:
    """Plain-data summary of a finished run."""
    return {
        "status": vm.status.value,
        "final_state": vm.current_state,
        "has_errors": vm.has_errors,
        "errors": {k: list(v) for k, v in (vm.errors or {}).items()},
        "has_recovery_errors": vm.has_recovery_errors,
        "recovery_errors": {k: list(v) for k, v in (vm.recovery_errors or {}).items()},
        "memory": memory_as_dict(vm.memory),
    }


def echo_report(report: dict[str, Any], output_format: str, no_color: bool = False) -> None:
    if output_format == OutputFormat.JSON.value:
        typer.echo(json.dumps(report, indent=2, default=json_default))
        return

    typer.echo(f"status: {report['status']} (final state: {report['final_state']})")
    memory_rows = [{"field": k, "value": v} for k, v in report["memory"].items()]
    typer.echo(format_table(memory_rows, title="Memory", no_color=no_color))
    for key, title in (("errors", "Errors"), ("recovery_errors", "Recovery errors")):
        if report[key]:
            rows = [{"field": k, "messages": v} for k, v in report[key].items()]
            typer.echo(format_table(rows, title=title, no_color=no_color))
