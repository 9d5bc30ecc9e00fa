"""Settings for the statevm command line.

Values are merged from, lowest priority first: model defaults, the project
file (``./statevm.yaml``), an explicit ``--config`` file, ``STATEVM_*``
environment variables and command-line flags.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field, ValidationError

ENV_PREFIX = "STATEVM"
PROJECT_CONFIG_FILENAME = "statevm.yaml"


class GeneralSettings(BaseModel):
    verbosity: Literal["critical", "error", "warning", "info", "debug"] = Field(
        default="info"
    )
    output_format: Literal["text", "json"] = Field(default="text")
    color_enabled: bool = Field(default=True)


class EngineSettings(BaseModel):
    # Pass a structlog event logger into runs started from the CLI
    log_events: bool = Field(default=True)


class Settings(BaseModel):
    general: GeneralSettings = Field(default_factory=GeneralSettings)
    engine: EngineSettings = Field(default_factory=EngineSettings)

    def lookup(self, key_path: str) -> Any:
        """Return the value at a dotted path such as ``general.verbosity``.

        Raises:
            KeyError: If no setting lives at ``key_path``.
        """
        value: Any = self.model_dump()
        for key in key_path.split("."):
            if not isinstance(value, dict) or key not in value:
                raise KeyError(key_path)
            value = value[key]
        return value


def _merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge override into base, returning a new dict."""

    result = {**base}
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(result.get(key), dict):
            result[key] = _merge(result[key], value)
        else:
            result[key] = value
    return result


def _load_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    try:
        with path.open("r", encoding="utf-8") as handle:
            return yaml.safe_load(handle) or {}
    except yaml.YAMLError as exc:
        raise ValueError(f"Failed to parse YAML config at {path}: {exc}") from exc


def _env_value(raw: str) -> Any:
    # YAML scalars cover booleans, numbers and null
    try:
        return yaml.safe_load(raw)
    except yaml.YAMLError:
        return raw


class ConfigService:
    """Loads and merges statevm configuration."""

    def __init__(self, env_prefix: str = ENV_PREFIX, project_dir: Path | None = None):
        self.env_prefix = env_prefix
        self.project_dir = project_dir

    @property
    def project_config_path(self) -> Path:
        return (self.project_dir or Path.cwd()) / PROJECT_CONFIG_FILENAME

    def load(
        self,
        cli_overrides: dict[str, Any] | None = None,
        *,
        config_path: Path | None = None,
    ) -> Settings:
        """Merge every layer into validated :class:`Settings`.

        Raises:
            ValueError: If a file is not valid YAML or a value is refused.
        """
        data = _load_yaml(self.project_config_path)
        if config_path is not None:
            data = _merge(data, _load_yaml(config_path))
        data = _merge(data, self._env_overrides())
        if cli_overrides:
            data = _merge(data, cli_overrides)

        try:
            return Settings.model_validate(data)
        except ValidationError as exc:
            raise ValueError(f"Invalid configuration: {exc}") from exc

    def _env_overrides(self) -> dict[str, Any]:
        # STATEVM_ENGINE__LOG_EVENTS=false -> {"engine": {"log_events": False}}
        overrides: dict[str, Any] = {}
        prefix = f"{self.env_prefix}_"
        for key, raw_value in os.environ.items():
            if not key.startswith(prefix):
                continue
            *sections, name = key[len(prefix) :].lower().split("__")
            target = overrides
            for section in sections:
                target = target.setdefault(section, {})
            target[name] = _env_value(raw_value)
        return overrides


config_service = ConfigService()
