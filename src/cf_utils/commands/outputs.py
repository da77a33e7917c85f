"""Outputs command - show a stack's outputs."""

import click

from cf_utils.commands.common import (
    aws_options,
    echo_key_value,
    handle_result,
    json_option,
    make_context,
    to_json,
)
from cf_utils.operations import describe_outputs


@click.command()
@click.argument("stack_name")
@aws_options
@json_option
def outputs(stack_name: str, region: str, profile: str | None, as_json: bool) -> None:
    """Show the outputs of STACK_NAME."""
    ctx = make_context(region, profile)
    values = handle_result(describe_outputs(ctx, stack_name))

    if as_json:
        click.echo(to_json(values))
        return

    if not values:
        click.echo(f"Stack '{stack_name}' has no outputs")
        return

    for key, value in sorted(values.items()):
        echo_key_value(key, value)
