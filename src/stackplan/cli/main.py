"""Main CLI entry point for stackplan."""

import click
from .commands.plan import plan
from .commands.apply import apply
from .commands.validate import validate
from .commands.state import state
from .commands.version import version
from ..utils.logging import get_logger, set_verbosity
from .. import __version__

logger = get_logger("cli.main")


@click.group()
@click.version_option(version=__version__, prog_name="stackplan", message="%(prog)s version %(version)s")
@click.option('--verbose', '-v', is_flag=True, help='Enable debug logging')
def cli(verbose):
    """stackplan - Plan and apply declarative cloud resources."""
    set_verbosity(verbose)


cli.add_command(plan)
cli.add_command(apply)
cli.add_command(validate)
cli.add_command(state)
cli.add_command(version)
