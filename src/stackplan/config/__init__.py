"""Configuration module: load layered settings and select the environment."""

from typing import Any, Dict, Optional
from pydantic import ValidationError as PydanticValidationError
from ..utils.errors import ConfigError
from ..utils.logging import get_logger
from .environment import resolve_environment
from .manager import load_config
from .models import Settings, ExecutorSettings, ProviderSettings, StateSettings

logger = get_logger("config")


def load_settings(config_path: Optional[str] = None, overrides: Optional[Dict[str, Any]] = None) -> Settings:
    """
    Load and validate settings.

    Args:
        config_path: Optional explicit config file
        overrides: Values from CLI flags, e.g. {"executor": {"parallelism": 4}}

    Returns:
        Settings

    Raises:
        ConfigError: If any layer is invalid
    """
    config = load_config(config_path)
    for section, values in (overrides or {}).items():
        if isinstance(values, dict):
            config.setdefault(section, {}).update({k: v for k, v in values.items() if v is not None})
        elif values is not None:
            config[section] = values

    try:
        settings = Settings(**config)
    except PydanticValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}")

    logger.debug(f"Settings: parallelism={settings.executor.parallelism}, state={settings.state.directory}")
    return settings


__all__ = [
    "load_settings",
    "load_config",
    "resolve_environment",
    "Settings",
    "ExecutorSettings",
    "ProviderSettings",
    "StateSettings",
]
