"""Harness configuration management.

Handles persistent settings stored in ~/.clicompat/config.yaml.
Supports environment variable overrides; CLI flags take precedence over both.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .shared.logging import LEVELS, get_logger

logger = get_logger(__name__)

# Default values
DEFAULT_DOWNLOAD_SCRIPT = "./scripts/download-previous-release.sh"
DEFAULT_GO_BACK_VERSIONS = 2
DEFAULT_REGION = "us-west-2"
DEFAULT_LOG_LEVEL = "warning"

# Environment variable mappings
ENV_VARS = {
    "binary": "CLICOMPAT_BINARY",
    "download_script": "CLICOMPAT_DOWNLOAD_SCRIPT",
    "go_back_versions": "CLICOMPAT_GO_BACK_VERSIONS",
    "region": "CLICOMPAT_REGION",
    "log_level": "CLICOMPAT_LOG_LEVEL",
}

INT_KEYS = {"go_back_versions"}


@dataclass
class CompatSettings:
    """Harness settings."""

    binary: str | None = None
    download_script: str = DEFAULT_DOWNLOAD_SCRIPT
    go_back_versions: int = DEFAULT_GO_BACK_VERSIONS
    region: str = DEFAULT_REGION
    log_level: str = DEFAULT_LOG_LEVEL

    # Track where each value came from
    _sources: dict[str, str] = field(default_factory=dict)

    def get_source(self, key: str) -> str:
        """Get the source of a config value."""
        return self._sources.get(key, "default")

    def as_dict(self) -> dict[str, Any]:
        return {key: getattr(self, key) for key in ENV_VARS}


def get_config_path() -> Path:
    """Get the config file path.

    Returns:
        Path to ~/.clicompat/config.yaml
    """
    return Path.home() / ".clicompat" / "config.yaml"


def _coerce(key: str, value: Any) -> Any:
    if key in INT_KEYS:
        return int(value)
    if key == "log_level":
        level = str(value).lower()
        if level not in LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(LEVELS)}, got {value!r}")
        return level
    return str(value)


def load_config() -> CompatSettings:
    """Load harness settings.

    Precedence (highest to lowest):
    1. Environment variables
    2. Config file (~/.clicompat/config.yaml)
    3. Defaults

    Invalid entries are logged and skipped; the lower-precedence value stays.

    Returns:
        CompatSettings with values and sources
    """
    settings = CompatSettings()
    sources: dict[str, str] = {key: "default" for key in ENV_VARS}

    config_path = get_config_path()
    if config_path.exists():
        try:
            with open(config_path) as f:
                file_config = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            logger.warning("config_file_unreadable", path=str(config_path), error=str(e))
            file_config = {}

        if not isinstance(file_config, dict):
            logger.warning("config_file_not_a_mapping", path=str(config_path))
            file_config = {}

        for key in ENV_VARS:
            if key not in file_config:
                continue
            try:
                setattr(settings, key, _coerce(key, file_config[key]))
                sources[key] = "config file"
            except (TypeError, ValueError):
                logger.warning("config_value_invalid", key=key, value=file_config[key])

    for key, env_var in ENV_VARS.items():
        raw = os.environ.get(env_var)
        if not raw:
            continue
        try:
            setattr(settings, key, _coerce(key, raw))
            sources[key] = "environment"
        except ValueError:
            logger.warning("config_value_invalid", key=key, value=raw, env_var=env_var)

    settings._sources = sources
    return settings


class ConfigFileError(ValueError):
    """The config file exists but cannot be updated safely."""


def save_config(key: str, value: Any) -> None:
    """Save a config value to the config file.

    Raises:
        KeyError: If ``key`` is not a known setting.
        ValueError: If ``value`` is invalid for ``key``.
        ConfigFileError: If the existing file is not a YAML mapping.
    """
    if key not in ENV_VARS:
        raise KeyError(key)

    coerced = _coerce(key, value)
    config_path = get_config_path()

    existing: dict[str, Any] = {}
    if config_path.exists():
        try:
            with open(config_path) as f:
                loaded = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigFileError(f"Cannot parse {config_path}: {e}") from e
        if not isinstance(loaded, dict):
            raise ConfigFileError(f"{config_path} is not a YAML mapping; fix or remove it")
        existing = loaded

    existing[key] = coerced

    config_path.parent.mkdir(parents=True, exist_ok=True)

    with open(config_path, "w") as f:
        yaml.dump(existing, f, default_flow_style=False)
