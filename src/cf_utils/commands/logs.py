"""Log group commands."""

import click

from cf_utils.commands.common import aws_options, handle_result, make_context
from cf_utils.lib.logs import delete_log_groups


@click.group()
def logs() -> None:
    """Manage CloudWatch log groups."""
    pass


@logs.command("delete")
@click.argument("prefix")
@aws_options
@click.option(
    "--yes",
    is_flag=True,
    help="Skip confirmation prompt",
)
def delete(prefix: str, region: str, profile: str | None, yes: bool) -> None:
    """Delete every log group whose name starts with PREFIX."""
    if not yes and not click.confirm(f"Delete all log groups starting with '{prefix}'?"):
        click.echo("Aborted.")
        return

    ctx = make_context(region, profile)
    deleted = handle_result(delete_log_groups(ctx.logs, prefix))

    if not deleted:
        click.echo(f"No log groups start with '{prefix}'")
        return
    for name in deleted:
        click.echo(f"  {name}")
    click.secho(f"Deleted {len(deleted)} log group(s).", fg="green", bold=True)
