"""CLI module for statevm."""

from statevm.cli.main import app

__all__ = ["app"]
