"""Where configuration files live."""

import os
from pathlib import Path
from typing import Optional

DEFAULTS_PATH = Path(__file__).parent / "defaults.yaml"
CONFIG_DIR_NAME = ".stackplan"
CONFIG_FILE_NAME = "config.yaml"


def get_config_home() -> Path:
    """User configuration directory: $STACKPLAN_HOME, else ~/.stackplan"""
    override = os.environ.get("STACKPLAN_HOME")
    if override:
        return Path(override).expanduser()
    return Path.home() / CONFIG_DIR_NAME


def get_user_config_path() -> Path:
    return get_config_home() / CONFIG_FILE_NAME


def get_project_config_path() -> Optional[Path]:
    """Project config in the working directory, if there is one."""
    project_config = Path.cwd() / CONFIG_DIR_NAME / CONFIG_FILE_NAME
    return project_config if project_config.is_file() else None
