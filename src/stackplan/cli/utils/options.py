"""Click options shared by commands that read resource documents."""

import click


def document_options(func):
    """Attach PATHS, --var, --env, --config and --destroy."""
    decorators = [
        click.argument('paths', nargs=-1, required=True, type=click.Path()),
        click.option('--var', 'var', multiple=True, metavar='KEY=VALUE', help='Set a document variable (repeatable)'),
        click.option('--env', 'env', help='Environment name (default: STACKPLAN_ENV or "default")'),
        click.option('--config', 'config', type=click.Path(exists=True, dir_okay=False), help='Extra config file'),
        click.option('--destroy', is_flag=True, help='Plan the removal of every managed resource'),
    ]
    for decorator in reversed(decorators):
        func = decorator(func)
    return func


def environment_options(func):
    """Attach --env and --config."""
    func = click.option('--config', 'config', type=click.Path(exists=True, dir_okay=False), help='Extra config file')(func)
    func = click.option('--env', 'env', help='Environment name (default: STACKPLAN_ENV or "default")')(func)
    return func
