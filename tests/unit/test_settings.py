"""Unit tests for layered configuration loading."""

from __future__ import annotations

from pathlib import Path

import pytest
import yaml

from statevm.config import ConfigService, Settings
from statevm.config.settings import _env_value, _merge


def _write_yaml(path: Path, data: dict) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(yaml.safe_dump(data), encoding="utf-8")
    return path


@pytest.fixture
def service(isolated_env) -> ConfigService:
    return ConfigService(project_dir=isolated_env)


class TestHelpers:
    """Merge and environment value helpers."""

    @pytest.mark.unit
    def test_merge_keeps_siblings(self):
        base = {"general": {"verbosity": "info", "output_format": "text"}}

        merged = _merge(base, {"general": {"verbosity": "debug"}})

        assert merged["general"] == {"verbosity": "debug", "output_format": "text"}
        assert base["general"]["verbosity"] == "info"

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("true", True),
            ("False", False),
            ("42", 42),
            ("null", None),
            ("debug", "debug"),
            ('"quoted"', "quoted"),
            ("[unclosed", "[unclosed"),
        ],
    )
    def test_env_value(self, raw, expected):
        assert _env_value(raw) == expected


class TestSettings:
    """The validated settings tree."""

    @pytest.mark.unit
    def test_defaults(self):
        settings = Settings()

        assert settings.general.verbosity == "info"
        assert settings.general.output_format == "text"
        assert settings.engine.log_events is True

    @pytest.mark.unit
    def test_lookup(self):
        settings = Settings()

        assert settings.lookup("general.color_enabled") is True
        assert settings.lookup("engine") == {"log_events": True}

    @pytest.mark.unit
    @pytest.mark.parametrize("key", ["general.nope", "engine.log_events.deeper", ""])
    def test_lookup_unknown_key(self, key):
        with pytest.raises(KeyError):
            Settings().lookup(key)


class TestConfigService:
    """Layer priority: CLI > env > --config file > project file > defaults."""

    @pytest.mark.unit
    def test_no_layers(self, service):
        assert service.load() == Settings()

    @pytest.mark.unit
    def test_project_file(self, service, isolated_env):
        _write_yaml(isolated_env / "statevm.yaml", {"general": {"output_format": "json"}})

        assert service.load().general.output_format == "json"

    @pytest.mark.unit
    def test_config_file_overrides_project_file(self, service, isolated_env):
        _write_yaml(isolated_env / "statevm.yaml", {"general": {"verbosity": "warning"}})
        extra = _write_yaml(isolated_env / "extra.yaml", {"general": {"verbosity": "error"}})

        settings = service.load(config_path=extra)

        assert settings.general.verbosity == "error"

    @pytest.mark.unit
    def test_missing_config_file_is_ignored(self, service, isolated_env):
        assert service.load(config_path=isolated_env / "missing.yaml") == Settings()

    @pytest.mark.unit
    def test_environment_overrides_files(self, service, isolated_env, monkeypatch):
        extra = _write_yaml(isolated_env / "extra.yaml", {"engine": {"log_events": True}})
        monkeypatch.setenv("STATEVM_ENGINE__LOG_EVENTS", "false")

        assert service.load(config_path=extra).engine.log_events is False

    @pytest.mark.unit
    def test_cli_overrides_environment(self, service, monkeypatch):
        monkeypatch.setenv("STATEVM_GENERAL__VERBOSITY", "debug")

        settings = service.load({"general": {"verbosity": "critical"}})

        assert settings.general.verbosity == "critical"

    @pytest.mark.unit
    def test_invalid_value(self, service, monkeypatch):
        monkeypatch.setenv("STATEVM_GENERAL__OUTPUT_FORMAT", "xml")

        with pytest.raises(ValueError, match="Invalid configuration"):
            service.load()

    @pytest.mark.unit
    def test_broken_yaml(self, service, isolated_env):
        (isolated_env / "statevm.yaml").write_text("general: [unclosed", encoding="utf-8")

        with pytest.raises(ValueError, match="Failed to parse YAML"):
            service.load()
