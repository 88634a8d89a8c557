"""Plan command - show what apply would change."""

import json as jsonlib
import click
from ...config import load_settings, resolve_environment
from ...presentation.human_formatter import format_plan
from ...utils.logging import get_logger
from ..utils import echo_output, exit_with_error, parse_variables, resolve_file_paths
from ..utils.options import document_options

logger = get_logger("cli.plan")


@click.command()
@document_options
@click.option('--json', 'json_output', is_flag=True, help='Output structured JSON instead of human-readable')
@click.option('--show-unchanged', is_flag=True, help='List unchanged resources too')
@click.option('--quiet', is_flag=True, help='Suppress progress messages')
def plan(paths, var, env, config, destroy, json_output, show_unchanged, quiet):
    """
    Compare resource documents with the recorded state and print the plan.

    Read-only: no provider call is made and the state file is not modified.
    """
    from ... import plan as plan_core

    variables = parse_variables(var)
    try:
        settings = load_settings(config)
        environment = resolve_environment(env)
        document_paths = resolve_file_paths(paths)

        if not quiet:
            click.echo(f"Planning {len(document_paths)} path(s) for environment '{environment}'", err=True)

        result = plan_core(document_paths, settings=settings, environment=environment, variables=variables, destroy=destroy)

        if json_output:
            output_text = jsonlib.dumps(result.to_dict(), indent=2)
        else:
            output_text = format_plan(result, environment=environment, show_unchanged=show_unchanged)
        echo_output(output_text)
    except Exception as e:
        exit_with_error(e, "plan")
