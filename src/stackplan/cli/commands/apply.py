"""Apply command - plan, confirm and reconcile."""

import json as jsonlib
import sys
import click
from ...config import load_settings, resolve_environment
from ...presentation.human_formatter import format_apply_result, format_plan
from ...utils.errors import PartialApplyError
from ...utils.logging import get_logger
from ..utils import EXIT_FAILURE, echo_output, exit_with_error, format_error, parse_variables, resolve_file_paths
from ..utils.options import document_options

logger = get_logger("cli.apply")


@click.command()
@document_options
@click.option('--auto-approve', is_flag=True, help='Skip the confirmation prompt')
@click.option('--parallelism', type=click.IntRange(min=1), help='Maximum concurrent operations')
@click.option('--timeout', 'operation_timeout', type=click.FloatRange(min=0, min_open=True), help='Per-operation timeout in seconds')
@click.option('--json', 'json_output', is_flag=True, help='Output the apply result as JSON')
def apply(paths, var, env, config, destroy, auto_approve, parallelism, operation_timeout, json_output):
    """
    Plan, then apply the changes against the provisioning API.

    Independent resources are provisioned concurrently. A failure stops only
    the resources that depend on the failed one; the state file is updated
    after every confirmed operation.
    """
    from ... import apply as apply_stack

    variables = parse_variables(var)
    try:
        settings = load_settings(config, overrides={
            "executor": {"parallelism": parallelism, "operation_timeout": operation_timeout},
        })
        environment = resolve_environment(env)

        def review(current_plan):
            click.echo(format_plan(current_plan, environment=environment), err=json_output)
            if not current_plan.has_changes:
                if current_plan.needs_apply:
                    click.echo("Recording updated dependencies.", err=True)
                else:
                    click.echo("Nothing to apply.", err=True)
                return True
            return auto_approve or click.confirm("\nApply these changes?", default=False, err=True)

        result = apply_stack(
            resolve_file_paths(paths),
            settings=settings,
            environment=environment,
            variables=variables,
            destroy=destroy,
            review=review,
        )
        if result is None:
            click.echo("Apply cancelled.", err=True)
            sys.exit(EXIT_FAILURE)

        _echo_result(result, json_output)
    except PartialApplyError as e:
        _echo_result(e.result, json_output)
        click.echo(format_error(str(e).splitlines()[0]), err=True)
        sys.exit(EXIT_FAILURE)
    except click.Abort:
        click.echo("\nApply cancelled.", err=True)
        sys.exit(EXIT_FAILURE)
    except Exception as e:
        exit_with_error(e, "apply")


def _echo_result(result, json_output: bool) -> None:
    if json_output:
        echo_output(jsonlib.dumps(result.to_dict(), indent=2))
    else:
        echo_output(format_apply_result(result))
