"""CLI utilities package."""

import sys
from typing import Dict, Iterable, NoReturn, Optional
import click
from ...utils.errors import InputError, StackPlanError
from ...utils.logging import get_logger
from .file_resolver import resolve_file_paths

logger = get_logger("cli.utils")

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_INVALID_INPUT = 2


def format_error(message: str, suggestion: Optional[str] = None) -> str:
    """
    Format error message with optional suggestion.

    Args:
        message: Error message
        suggestion: Optional suggestion or help text

    Returns:
        Formatted error string
    """
    error = f"Error: {message}"
    if suggestion:
        error += f"\nTip: {suggestion}"
    return error


def exit_code_for(error: Exception) -> int:
    """Map an exception to the process exit code."""
    if isinstance(error, InputError):
        return EXIT_INVALID_INPUT
    return EXIT_FAILURE


def exit_with_error(error: Exception, action: str) -> NoReturn:
    """Report an error without a stack trace and exit with its code."""
    if isinstance(error, StackPlanError):
        message = str(error)
    else:
        logger.error(f"Unexpected error during {action}: {error}", exc_info=True)
        message = f"{action.capitalize()} failed: {error}"
    click.echo(format_error(message), err=True)
    sys.exit(exit_code_for(error))


def parse_variables(values: Iterable[str]) -> Dict[str, str]:
    """
    Parse repeated ``--var key=value`` options.

    Raises:
        click.BadParameter: If an option is not in key=value form
    """
    variables = {}
    for item in values:
        key, sep, value = item.partition("=")
        if not sep or not key.strip():
            raise click.BadParameter(f"'{item}' is not in key=value form", param_hint="--var")
        variables[key.strip()] = value
    return variables


def echo_output(text: str) -> None:
    """Write to stdout, degrading to ASCII on terminals that cannot encode the text."""
    try:
        click.echo(text)
    except UnicodeEncodeError:
        click.echo(text.encode('ascii', errors='replace').decode('ascii'))


__all__ = [
    "EXIT_OK",
    "EXIT_FAILURE",
    "EXIT_INVALID_INPUT",
    "format_error",
    "exit_code_for",
    "exit_with_error",
    "parse_variables",
    "echo_output",
    "resolve_file_paths",
]
