"""
Configuration module for statevm.

Layered configuration loading (CLI > env > --config file > project file >
defaults) with pydantic-based settings validation.
"""

from statevm.config.settings import (
    ENV_PREFIX,
    PROJECT_CONFIG_FILENAME,
    ConfigService,
    EngineSettings,
    GeneralSettings,
    Settings,
    config_service,
)

__all__ = [
    "ENV_PREFIX",
    "PROJECT_CONFIG_FILENAME",
    "ConfigService",
    "EngineSettings",
    "GeneralSettings",
    "Settings",
    "config_service",
]
