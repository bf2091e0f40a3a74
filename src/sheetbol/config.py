"""Settings loaded from ``sheetbol.yaml``."""

from __future__ import annotations

import os
from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from sheetbol.io.fileops import read_text_safe

CONFIG_FILENAME = "sheetbol.yaml"
CONFIG_ENV_VAR = "SHEETBOL_CONFIG"


class ConfigError(Exception):
    """Raised when a configuration file is unreadable or invalid."""


class Settings(BaseModel):
    """Runtime settings shared by the CLI, the stdio server and the pipeline."""

    model_config = ConfigDict(extra="forbid")

    backup: bool = True
    emit_events: bool = False
    protected_sheets: list[str] = Field(default_factory=list)
    lock_timeout: float = 0

    @classmethod
    def load(cls, path: str | Path) -> "Settings":
        """Load settings from a YAML file."""
        try:
            data = yaml.safe_load(read_text_safe(path)) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"Cannot read config {path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigError(f"Config {path} must be a mapping.")
        try:
            return cls(**data)
        except ValidationError as e:
            raise ConfigError(f"Invalid config {path}: {e}") from e

    @classmethod
    def discover(cls, path: str | Path | None = None, *, directory: str | Path | None = None) -> "Settings":
        """Resolve settings: explicit path, then $SHEETBOL_CONFIG, then ./sheetbol.yaml.

        Falls back to defaults when none of them exists. An explicit path
        that does not exist is an error.
        """
        if path:
            if not Path(path).exists():
                raise ConfigError(f"Config file not found: {path}")
            return cls.load(path)
        env_path = os.environ.get(CONFIG_ENV_VAR)
        if env_path:
            return cls.load(env_path)
        candidate = Path(directory or Path.cwd()) / CONFIG_FILENAME
        if candidate.exists():
            return cls.load(candidate)
        return cls()
