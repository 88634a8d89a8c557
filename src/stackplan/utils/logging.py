"""Logging setup for stackplan: one stderr handler on the package logger."""

import logging
import os
import sys
from typing import Optional

ROOT_LOGGER = "stackplan"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def _level_from_env(default: int) -> int:
    name = os.environ.get("STACKPLAN_LOG_LEVEL", "").strip().upper()
    level = logging.getLevelName(name) if name else default
    return level if isinstance(level, int) else default


def setup_logging(level: Optional[int] = None, format_string: Optional[str] = None) -> logging.Logger:
    """
    Attach a stderr handler to the ``stackplan`` logger.

    Calling it again only adjusts the level and format. The root logger is
    left alone so applications embedding stackplan keep their own setup.

    Args:
        level: Logging level (default: $STACKPLAN_LOG_LEVEL or WARNING)
        format_string: Custom format string (optional)

    Returns:
        The package logger
    """
    logger = logging.getLogger(ROOT_LOGGER)
    formatter = logging.Formatter(format_string or LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")

    handler = next((h for h in logger.handlers if getattr(h, "_stackplan", False)), None)
    if handler is None:
        handler = logging.StreamHandler(sys.stderr)
        handler._stackplan = True
        logger.addHandler(handler)
    handler.setFormatter(formatter)

    logger.setLevel(level if level is not None else _level_from_env(logging.WARNING))
    logger.propagate = False
    return logger


def set_verbosity(verbose: bool) -> None:
    """--verbose switches to DEBUG; otherwise keep the configured level."""
    if verbose:
        logging.getLogger(ROOT_LOGGER).setLevel(logging.DEBUG)


def get_logger(name: str) -> logging.Logger:
    """Logger for one module, e.g. get_logger("planner.planner")."""
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")
