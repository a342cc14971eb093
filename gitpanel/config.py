"""Configuration management for gitpanel.

Settings are merged from, lowest to highest precedence:
- built-in defaults
- ~/.gitpanel/config.yaml (directory overridable with GITPANEL_HOME)
- GITPANEL_<FIELD> environment variables (a .env file is loaded first)

Contains:
- Settings: Runtime settings model
- load_settings / save_settings: Read and write the YAML config file
- get_config_dir / get_config_file_path: Config locations
"""

import os
from pathlib import Path
from typing import Any, Dict, Literal, Optional

import yaml
from dotenv import find_dotenv, load_dotenv
from pydantic import BaseModel, ValidationError

from gitpanel.exceptions import ConfigError

ENV_PREFIX = "GITPANEL_"
HOME_ENV_VAR = "GITPANEL_HOME"


class Settings(BaseModel):
    """Runtime settings of gitpanel."""

    status_ttl_ms: int = 1500
    diff_cache_capacity: int = 200
    watch_enabled: bool = True
    watch_debounce_ms: int = 400
    watch_poll_ms: int = 250
    max_workers: int = 4
    log_level: str = "info"
    log_format: Literal["text", "json"] = "text"


def get_config_dir() -> Path:
    """Get the gitpanel configuration directory.

    Returns:
        $GITPANEL_HOME if set, else ~/.gitpanel/
    """
    override = os.environ.get(HOME_ENV_VAR)
    if override:
        return Path(override).expanduser()
    return Path.home() / ".gitpanel"


def get_config_file_path() -> Path:
    """Get path to config.yaml file."""
    return get_config_dir() / "config.yaml"


def _load_yaml(config_file: Path) -> Dict[str, Any]:
    if not config_file.exists():
        return {}
    try:
        with open(config_file, "r") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Failed to load config from {config_file}: {e}")
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {config_file} must contain a mapping")
    return data


def _load_env() -> Dict[str, str]:
    values = {}
    for name in Settings.model_fields:
        env_value = os.environ.get(f"{ENV_PREFIX}{name.upper()}")
        if env_value is not None:
            values[name] = env_value
    return values


def load_settings(config_file: Optional[Path] = None, use_dotenv: bool = True) -> Settings:
    """Load settings from the config file and the environment.

    Args:
        config_file: Explicit YAML file (defaults to get_config_file_path()).
        use_dotenv: Load a .env file from the current directory first.

    Returns:
        Merged Settings.

    Raises:
        ConfigError: If the file cannot be parsed or a value is invalid.
    """
    if use_dotenv:
        load_dotenv(find_dotenv(usecwd=True))
    values = _load_yaml(config_file or get_config_file_path())
    values.update(_load_env())
    try:
        return Settings.model_validate(values)
    except ValidationError as e:
        raise ConfigError(f"Invalid gitpanel settings: {e}")


def save_settings(settings: Settings, config_file: Optional[Path] = None) -> Path:
    """Save settings to the YAML config file.

    Args:
        settings: Settings to write.
        config_file: Explicit YAML file (defaults to get_config_file_path()).

    Returns:
        Path of the written file.
    """
    config_file = config_file or get_config_file_path()
    try:
        config_file.parent.mkdir(parents=True, exist_ok=True)
        with open(config_file, "w") as f:
            yaml.dump(settings.model_dump(), f, default_flow_style=False, sort_keys=False)
    except OSError as e:
        raise ConfigError(f"Failed to save config to {config_file}: {e}")
    return config_file
