"""Destroy command - empty a stack's buckets and delete the stack."""

import click

from cf_utils.commands.common import (
    aws_options,
    handle_result,
    make_context,
    make_policy,
    timeout_option,
)
from cf_utils.lib.storage.s3 import DEFAULT_MAX_WORKERS
from cf_utils.operations import delete_stack


@click.command()
@click.argument("stack_name")
@aws_options
@timeout_option
@click.option(
    "--max-workers",
    default=DEFAULT_MAX_WORKERS,
    show_default=True,
    type=click.IntRange(min=1),
    help="Threads used to empty buckets",
)
@click.option(
    "--yes",
    is_flag=True,
    help="Skip confirmation prompt",
)
def destroy(
    stack_name: str,
    region: str,
    profile: str | None,
    timeout: int | None,
    max_workers: int,
    yes: bool,
) -> None:
    """Delete STACK_NAME.

    Every S3 bucket the stack exposes through an output whose key ends in
    "Bucket" is emptied (all versions) before the stack is deleted.

    \b
    Examples:
      cf-utils destroy my-app
      cf-utils destroy my-app --yes --timeout 1800
    """
    if not yes:
        click.echo(f"This will delete stack '{stack_name}' in {region}:")
        click.echo("  - All objects and versions in its output buckets")
        click.echo("  - All resources in the stack")
        click.echo()
        if not click.confirm("Are you sure you want to continue?"):
            click.echo("Aborted.")
            return

    click.echo(f"Destroying stack '{stack_name}'...")
    click.echo()

    ctx = make_context(region, profile)

    handle_result(
        delete_stack(ctx, stack_name, policy=make_policy(timeout), max_workers=max_workers),
        success_message=f"Stack '{stack_name}' deleted successfully!",
    )
