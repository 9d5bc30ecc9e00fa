"""Pytest configuration and shared fixtures.

Test layout:

| Category | Location     | Tools                       |
| Unit     | tests/unit   | pytest, stub loggers        |
| E2E      | tests/e2e    | pytest, typer CliRunner     |
"""

import logging
import sys
from collections.abc import Generator
from pathlib import Path

import pytest
import structlog

# Project root for ``tests.*`` imports, src for the package itself
sys.path.insert(0, str(Path(__file__).parent.parent))
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from tests.fixtures.machines import BasicMemory  # noqa: E402
from tests.mocks import CountingHook, StubLogger  # noqa: E402


# =============================================================================
# PYTEST CONFIGURATION
# =============================================================================


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests (fast, isolated)")
    config.addinivalue_line("markers", "e2e: End-to-end tests (full workflows)")


# =============================================================================
# COMMON FIXTURES
# =============================================================================


@pytest.fixture(autouse=True)
def reset_logging() -> Generator[None, None, None]:
    """Undo logging configuration done by a test (e.g. via the CLI)."""
    yield
    structlog.reset_defaults()
    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)


@pytest.fixture
def memory() -> BasicMemory:
    """Fresh default memory: a=40, b=2."""
    return BasicMemory()


@pytest.fixture
def stub_logger() -> StubLogger:
    """Logger capability that records events."""
    return StubLogger()


@pytest.fixture
def liveness_hook() -> CountingHook:
    return CountingHook()


@pytest.fixture
def isolated_env(monkeypatch, tmp_path) -> Path:
    """Remove STATEVM_* variables and look for the project file in tmp_path."""
    import os

    from statevm.config import settings as settings_module

    for key in list(os.environ):
        if key.startswith("STATEVM_"):
            monkeypatch.delenv(key)
    service = settings_module.config_service
    monkeypatch.setattr(service, "project_dir", tmp_path)
    return tmp_path
