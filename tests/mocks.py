"""Test doubles for engine collaborators."""

from __future__ import annotations

from typing import Any


class StubLogger:
    """Records structured events as ``(event, fields)`` pairs, per level."""

    def __init__(self) -> None:
        self.messages: list[tuple[str, dict[str, Any]]] = []
        self.levels: list[str] = []

    def _record(self, level: str, event: str, **fields: Any) -> None:
        self.levels.append(level)
        self.messages.append((event, fields))

    def debug(self, event: str, **fields: Any) -> None:
        self._record("debug", event, **fields)

    def info(self, event: str, **fields: Any) -> None:
        self._record("info", event, **fields)

    def warning(self, event: str, **fields: Any) -> None:
        self._record("warning", event, **fields)

    def error(self, event: str, **fields: Any) -> None:
        self._record("error", event, **fields)

    def events(self, name: str) -> list[dict[str, Any]]:
        return [fields for event, fields in self.messages if event == name]


class CountingHook:
    """Liveness hook that counts calls and can be told to fail."""

    def __init__(self, fail: bool = False) -> None:
        self.calls = 0
        self.fail = fail

    def __call__(self) -> None:
        self.calls += 1
        if self.fail:
            raise RuntimeError("watchdog unavailable")
