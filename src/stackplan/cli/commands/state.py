"""State commands - inspect the recorded snapshot and manage its lock."""

import json
import click
from ...config import load_settings, resolve_environment
from ...utils.logging import get_logger
from ..utils import EXIT_FAILURE, echo_output, exit_with_error, format_error
from ..utils.options import environment_options

logger = get_logger("cli.state")


def _open(env, config):
    from ... import open_store

    settings = load_settings(config)
    return open_store(settings, resolve_environment(env))


@click.group()
def state():
    """Inspect and repair the recorded state."""
    pass


@state.command(name="list")
@environment_options
def list_resources(env, config):
    """List resource addresses recorded in state."""
    try:
        snapshot = _open(env, config).load()
        for address in sorted(snapshot.resources):
            click.echo(address)
    except Exception as e:
        exit_with_error(e, "state list")


@state.command()
@click.argument('address')
@environment_options
def show(address, env, config):
    """Show the recorded attributes of one resource."""
    try:
        snapshot = _open(env, config).load()
        resource = snapshot.get(address)
        if resource is None:
            click.echo(format_error(f"Resource '{address}' is not in state"), err=True)
            raise SystemExit(EXIT_FAILURE)
        echo_output(json.dumps(resource.model_dump(mode="json"), indent=2, sort_keys=True))
    except Exception as e:
        exit_with_error(e, "state show")


@state.command()
@environment_options
def unlock(env, config):
    """Remove a lock left behind by an interrupted run."""
    try:
        store = _open(env, config)
        if store.force_unlock():
            click.echo(f"Removed lock {store.lock_path}")
        else:
            click.echo("State is not locked.")
    except Exception as e:
        exit_with_error(e, "state unlock")
