"""Environment selection: which state file a run works against."""

import os
import re
from pathlib import Path
from typing import Optional
import yaml
from ..utils.errors import ConfigError
from ..utils.logging import get_logger

logger = get_logger("config.environment")

DEFAULT_ENVIRONMENT = "default"
ENVIRONMENT_FILE = ".stackplan-env.yaml"
_ENVIRONMENT_NAME = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.-]*$")


def resolve_environment(explicit: Optional[str] = None) -> str:
    """
    Resolve the environment name.

    Priority:
    1. Explicit name (CLI --env)
    2. STACKPLAN_ENV environment variable
    3. .stackplan-env.yaml in the current directory or up to 3 parents
    4. "default"

    Returns:
        Environment name

    Raises:
        ConfigError: If the name is not a valid file name component
    """
    name = explicit or os.getenv("STACKPLAN_ENV") or _from_file() or DEFAULT_ENVIRONMENT
    name = name.strip().lower()
    if not _ENVIRONMENT_NAME.match(name):
        raise ConfigError(f"Invalid environment name '{name}'")
    return name


def _from_file() -> Optional[str]:
    current_dir = Path.cwd()
    for directory in [current_dir] + list(current_dir.parents)[:3]:
        config_file = directory / ENVIRONMENT_FILE
        if config_file.exists():
            return _load_from_file(config_file)
    return None


def _load_from_file(config_file: Path) -> Optional[str]:
    """Load environment name from YAML file."""
    try:
        with open(config_file, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Could not read environment file {config_file}: {e}")

    if not isinstance(data, dict) or not isinstance(data.get("environment"), dict):
        logger.warning(f"Environment file {config_file} missing 'environment' mapping")
        return None

    name = data["environment"].get("name")
    logger.debug(f"Loaded environment from {config_file}: {name}")
    return str(name) if name else None
