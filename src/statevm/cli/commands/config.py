"""Config command implementation."""

from __future__ import annotations

import json

import typer
import yaml

from statevm.config.settings import Settings, config_service

app = typer.Typer(name="config", help="View the effective configuration")


@app.command()
def show(
    ctx: typer.Context,
    format: str = typer.Option("yaml", help="Output format: yaml or json"),
) -> None:
    """Show the configuration after files, environment and flags are merged."""

    ctx.ensure_object(dict)
    settings: Settings = ctx.obj.get("settings") or config_service.load()
    data = settings.model_dump()

    if format.lower() == "json":
        typer.echo(json.dumps(data, indent=2))
    else:
        typer.echo(yaml.safe_dump(data, sort_keys=False))


@app.command()
def get(
    ctx: typer.Context,
    key: str = typer.Argument(..., help="Dot path (e.g., general.verbosity)"),
) -> None:
    """Get a configuration value by key path."""

    ctx.ensure_object(dict)
    settings: Settings = ctx.obj.get("settings") or config_service.load()
    try:
        value = settings.lookup(key)
    except KeyError:
        typer.echo(f"Unknown configuration key: {key}", err=True)
        raise typer.Exit(code=1)
    typer.echo(value)
