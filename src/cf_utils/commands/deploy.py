"""Deploy command - create or update a stack from a template."""

from typing import Any

import click

from cf_utils.commands.common import (
    aws_options,
    echo_change_set,
    echo_key_value,
    echo_section,
    handle_result,
    json_option,
    make_context,
    make_policy,
    timeout_option,
    to_json,
)
from cf_utils.models import (
    StackAction,
    UpsertOptions,
    UpsertRequest,
    parse_parameter_overrides,
)
from cf_utils.operations import upsert_stack


def confirm_change_set(change_set: dict[str, Any]) -> bool:
    """Show the pending changes and ask the operator to approve them."""
    echo_change_set(change_set)
    return click.confirm(
        "Changes will be made to these resources. Do you want to update the stack?",
        default=False,
    )


@click.command()
@click.argument("stack_name")
@click.argument("template")
@aws_options
@click.option(
    "--parameter",
    "-P",
    "parameters",
    multiple=True,
    metavar="KEY=VALUE",
    help="Template parameter (can specify multiple times)",
)
@click.option(
    "--review",
    is_flag=True,
    help="Preview changes to an existing stack and ask before applying them",
)
@click.option(
    "--s3-bucket",
    default=None,
    help="Stage a local template in this bucket and deploy it from there",
)
@click.option(
    "--s3-prefix",
    default="",
    help="Key prefix for the staged template",
)
@click.option(
    "--transforms/--no-transforms",
    default=None,
    help="Whether the template uses transforms (default: detect)",
)
@click.option(
    "--via-cli",
    is_flag=True,
    help="Deploy templates with transforms through `aws cloudformation deploy`",
)
@timeout_option
@json_option
def deploy(
    stack_name: str,
    template: str,
    region: str,
    profile: str | None,
    parameters: tuple[str, ...],
    review: bool,
    s3_bucket: str | None,
    s3_prefix: str,
    transforms: bool | None,
    via_cli: bool,
    timeout: int | None,
    as_json: bool,
) -> None:
    """Create or update STACK_NAME from TEMPLATE.

    TEMPLATE is a local file or an https URL of a template in S3.

    \b
    Examples:
      cf-utils deploy my-app template.yaml -P Stage=dev
      cf-utils deploy my-app template.yaml --review
      cf-utils deploy my-app sam.yaml --s3-bucket my-artifacts --s3-prefix templates/
    """
    try:
        overrides = parse_parameter_overrides(parameters)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="--parameter") from e

    request = UpsertRequest.build(
        stack_name,
        template,
        overrides,
        UpsertOptions(
            review=review,
            s3_bucket=s3_bucket,
            s3_prefix=s3_prefix,
            contains_transforms=transforms,
            via_cli=via_cli,
        ),
    )

    if not as_json:
        click.echo(f"Deploying stack: {stack_name}")
        click.echo(f"  Region:   {region}")
        click.echo(f"  Template: {template}")
        click.echo()

    ctx = make_context(region, profile)
    outcome = handle_result(
        upsert_stack(
            ctx,
            request,
            reviewer=confirm_change_set if review else None,
            policy=make_policy(timeout),
        )
    )

    if as_json:
        click.echo(
            to_json(
                {
                    "action": outcome.action,
                    "stack": outcome.stack.name if outcome.stack else stack_name,
                    "status": outcome.stack.status if outcome.stack else None,
                    "outputs": outcome.stack.outputs if outcome.stack else {},
                }
            )
        )
        return

    if outcome.action is StackAction.UNCHANGED:
        click.secho(f"Stack '{stack_name}' is up to date.", fg="green", bold=True)
    else:
        click.secho(f"Stack '{stack_name}' {outcome.action}.", fg="green", bold=True)

    if outcome.stack and outcome.stack.outputs:
        echo_section("Outputs")
        for key, value in sorted(outcome.stack.outputs.items()):
            echo_key_value(key, value, indent=1)
