"""Version command."""

from importlib import metadata
import click
from ... import __version__

_LIBRARIES = ("click", "pydantic", "networkx", "PyYAML", "requests")


@click.command()
@click.option('--verbose', '-v', 'show_libraries', is_flag=True, help='Also list library versions')
def version(show_libraries):
    """Show stackplan version."""
    click.echo(f"stackplan version {__version__}")
    if show_libraries:
        for library in _LIBRARIES:
            try:
                installed = metadata.version(library)
            except metadata.PackageNotFoundError:
                installed = "not installed"
            click.echo(f"  {library} {installed}")
