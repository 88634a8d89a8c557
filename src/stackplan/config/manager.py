"""Layered configuration manager (defaults, user, project, explicit file)."""

import yaml
from pathlib import Path
from typing import Any, Dict, List, Optional
from .paths import DEFAULTS_PATH, get_user_config_path, get_project_config_path
from ..utils.errors import ConfigError
from ..utils.logging import get_logger

logger = get_logger("config.manager")


def read_config_file(path: Path) -> Dict[str, Any]:
    """
    Read one YAML config file.

    Raises:
        ConfigError: If the file is missing, unreadable or not a mapping
    """
    if not path.exists():
        raise ConfigError(f"Config file not found: {path}")

    try:
        with open(path, 'r', encoding='utf-8') as f:
            config = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in config file {path}: {e}")
    except OSError as e:
        raise ConfigError(f"Error loading config file {path}: {e}")

    if not isinstance(config, dict):
        raise ConfigError(f"Config file {path} must contain a dictionary")
    return config


def config_layers(config_path: Optional[str] = None) -> List[Path]:
    """Config files in increasing precedence order."""
    layers = [DEFAULTS_PATH]
    user_config_path = get_user_config_path()
    if user_config_path.exists():
        layers.append(user_config_path)
    project_config_path = get_project_config_path()
    if project_config_path:
        layers.append(project_config_path)
    if config_path:
        layers.append(Path(config_path))
    return layers


def load_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """
    Load full config tree, later layers overriding earlier ones.

    Args:
        config_path: Optional explicit config file (highest precedence)

    Returns:
        Merged configuration dictionary
    """
    config: Dict[str, Any] = {}
    for path in config_layers(config_path):
        _deep_merge(config, read_config_file(path))
        logger.debug(f"Applied config layer {path}")
    return config


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> None:
    """Deep merge override into base (mutates base)."""
    for key, value in override.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value
