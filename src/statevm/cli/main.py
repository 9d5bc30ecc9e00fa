"""
Main CLI application definition.

statevm: run and inspect state-machine definitions from the command line.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import typer

from statevm.cli.commands import config as config_commands
from statevm.cli.commands import machine as machine_commands
from statevm.config.settings import config_service
from statevm.utils.logging import configure_from_settings

_LEVELS = ["critical", "error", "warning", "info", "debug"]


def _shift_verbosity(level: str, steps: int) -> str:
    index = max(0, min(len(_LEVELS) - 1, _LEVELS.index(level) + steps))
    return _LEVELS[index]


app = typer.Typer(
    name="statevm",
    help="""statevm: state-machine execution engine

    \b
    COMMANDS:
      run       - Run a machine definition to completion
      describe  - Show a machine's state table
      config    - View configuration

    \b
    EXAMPLES:
      statevm run myapp.machines:BILLING --memory '{"a": 40}'
      statevm describe myapp.machines:BILLING
      statevm config show
    """,
    add_completion=False,
    no_args_is_help=True,
)


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    config: Path | None = typer.Option(
        None, "--config", "-c", help="Path to config YAML"
    ),
    output: str | None = typer.Option(
        None, "--output", "-o", help="Output format (text|json)"
    ),
    color: bool | None = typer.Option(
        None, "--color/--no-color", help="Enable or disable color output"
    ),
    verbose: int = typer.Option(
        0, "--verbose", "-v", count=True, help="Increase verbosity (stackable)"
    ),
    quiet: int = typer.Option(
        0, "--quiet", "-q", count=True, help="Decrease verbosity (stackable)"
    ),
    log_events: bool | None = typer.Option(
        None, "--log-events/--no-log-events", help="Log engine events during runs"
    ),
):
    """Global options and configuration bootstrap."""
    cli_overrides: dict[str, Any] = {"general": {}, "engine": {}}

    if output:
        cli_overrides["general"]["output_format"] = output
    if color is not None:
        cli_overrides["general"]["color_enabled"] = color
    if log_events is not None:
        cli_overrides["engine"]["log_events"] = log_events

    try:
        settings = config_service.load(cli_overrides, config_path=config)
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc
    settings.general.verbosity = _shift_verbosity(
        settings.general.verbosity, verbose - quiet
    )

    configure_from_settings(settings)
    ctx.obj = {"settings": settings}

    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit()


@app.command()
def version():
    """Show version information."""
    from statevm import __version__

    typer.echo(f"statevm version {__version__}")


app.command("run")(machine_commands.run)
app.command("describe")(machine_commands.describe)
app.add_typer(config_commands.app, name="config")
