"""Validate command - check resource documents without reading state."""

import click
from ...config import load_settings
from ...utils.logging import get_logger
from ..utils import exit_with_error, parse_variables, resolve_file_paths

logger = get_logger("cli.validate")


@click.command()
@click.argument('paths', nargs=-1, required=True, type=click.Path())
@click.option('--var', 'var', multiple=True, metavar='KEY=VALUE', help='Set a document variable (repeatable)')
@click.option('--config', 'config', type=click.Path(exists=True, dir_okay=False), help='Extra config file')
def validate(paths, var, config):
    """Parse documents, check types and attributes, and build the dependency graph."""
    from ... import load_graph

    variables = parse_variables(var)
    try:
        settings = load_settings(config)
        graph = load_graph(resolve_file_paths(paths), settings, variables)
        click.echo(
            f"Configuration is valid: {graph.graph.number_of_nodes()} resources, "
            f"{graph.graph.number_of_edges()} dependencies."
        )
    except Exception as e:
        exit_with_error(e, "validate")
