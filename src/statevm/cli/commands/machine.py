"""Machine commands: run a machine definition, or describe its state table."""

from __future__ import annotations

import importlib
import json
from pathlib import Path
from typing import Any

import typer
import yaml
from pydantic import ValidationError

from statevm.cli.formatters import OutputFormat, echo_report, format_table, run_report
from statevm.config.settings import Settings, config_service
from statevm.core.errors import StateVMError
from statevm.core.machine import Configuration, MachineBuilder
from statevm.core.vm import VM
from statevm.utils.logging import (
    clear_execution_context,
    generate_execution_id,
    get_logger,
    set_execution_context,
    timed_operation,
)

TARGET_HELP = "Machine to load, as module:attribute (Configuration or MachineBuilder)"


def load_target(target: str) -> Configuration:
    """Import ``module:attribute`` and return it as a Configuration."""
    module_name, sep, attribute = target.partition(":")
    if not sep or not module_name or not attribute:
        raise typer.BadParameter(f"Expected module:attribute, got {target!r}")

    try:
        module = importlib.import_module(module_name)
    except ImportError as exc:
        raise typer.BadParameter(f"Cannot import {module_name!r}: {exc}") from exc

    obj: Any = module
    for part in attribute.split("."):
        try:
            obj = getattr(obj, part)
        except AttributeError as exc:
            raise typer.BadParameter(f"{module_name!r} has no attribute {attribute!r}") from exc

    if isinstance(obj, MachineBuilder):
        return obj.build()
    if isinstance(obj, Configuration):
        return obj
    raise typer.BadParameter(
        f"{target!r} is a {type(obj).__name__}, not a Configuration or MachineBuilder"
    )


def _load_memory_values(memory: str | None, memory_file: Path | None) -> dict[str, Any]:
    values: dict[str, Any] = {}
    if memory_file is not None:
        if not memory_file.exists():
            raise typer.BadParameter(f"Memory file not found: {memory_file}")
        loaded = yaml.safe_load(memory_file.read_text(encoding="utf-8")) or {}
        if not isinstance(loaded, dict):
            raise typer.BadParameter("Memory file must contain a mapping")
        values.update(loaded)
    if memory:
        try:
            parsed = json.loads(memory)
        except json.JSONDecodeError as exc:
            raise typer.BadParameter(f"--memory is not valid JSON: {exc}") from exc
        if not isinstance(parsed, dict):
            raise typer.BadParameter("--memory must be a JSON object")
        values.update(parsed)
    return values


def run(
    ctx: typer.Context,
    target: str = typer.Argument(..., help=TARGET_HELP),
    memory: str | None = typer.Option(
        None, "--memory", "-m", help="Initial memory as a JSON object"
    ),
    memory_file: Path | None = typer.Option(
        None, "--memory-file", help="Initial memory from a YAML or JSON file"
    ),
) -> None:
    """Run a machine to completion and report its memory and errors.

    Examples:
        statevm run myapp.machines:BILLING
        statevm run myapp.machines:BILLING --memory '{"a": 40, "b": 2}'
    """
    ctx.ensure_object(dict)
    settings: Settings = ctx.obj.get("settings") or config_service.load()
    output_format = settings.general.output_format

    config = load_target(target)
    values = _load_memory_values(memory, memory_file)
    try:
        initial_memory = config.memory_factory(**values)
    except (TypeError, ValidationError) as exc:
        raise typer.BadParameter(f"Invalid memory: {exc}") from exc

    log = get_logger("statevm.cli")
    set_execution_context(execution_id=generate_execution_id(), machine=target)
    event_logger = get_logger("statevm.run") if settings.engine.log_events else None

    vm = VM(config, initial_memory)
    try:
        with timed_operation("machine_run", logger=log, log_level="debug", target=target):
            vm.run(logger=event_logger)
    except StateVMError as exc:
        log.error("machine_run_failed", target=target, error=str(exc))
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=2) from exc
    finally:
        clear_execution_context()

    echo_report(run_report(vm), output_format, no_color=not settings.general.color_enabled)

    if vm.has_errors or vm.has_recovery_errors:
        raise typer.Exit(code=1)


def describe(
    ctx: typer.Context,
    target: str = typer.Argument(..., help=TARGET_HELP),
) -> None:
    """Show a machine's states, operations and transition targets."""
    ctx.ensure_object(dict)
    settings: Settings = ctx.obj.get("settings") or config_service.load()

    config = load_target(target)
    rows = config.describe()
    dangling = config.dangling_references()

    if settings.general.output_format == OutputFormat.JSON.value:
        typer.echo(json.dumps({"states": rows, "dangling": dangling}, indent=2))
        return

    typer.echo(
        format_table(rows, title=target, no_color=not settings.general.color_enabled)
    )
    for state, missing in dangling.items():
        typer.echo(f"warning: {state} references unknown state(s): {', '.join(missing)}")
