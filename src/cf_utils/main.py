"""cf-utils CLI entry point."""

import logging

import click
from botocore.exceptions import ClientError

from . import __version__
from .commands import deploy, destroy, empty, logs, outputs, params, upload
from .commands.common import handle_error

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


@click.group()
@click.version_option(version=__version__, prog_name="cf-utils")
@click.option(
    "--log-level",
    default="INFO",
    show_default=True,
    envvar="LOG_LEVEL",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    help="Logging level",
)
def cli(log_level: str) -> None:
    """cf-utils - CloudFormation stack deployment and cleanup."""
    logging.basicConfig(level=log_level.upper(), format=LOG_FORMAT)
    # botocore is chatty at DEBUG
    logging.getLogger("botocore").setLevel(max(logging.INFO, logging.getLogger().level))


# Register subcommands
cli.add_command(deploy)
cli.add_command(destroy)
cli.add_command(outputs)
cli.add_command(empty)
cli.add_command(upload)
cli.add_command(params)
cli.add_command(logs)


def main() -> None:
    """Console script entry point; reports AWS errors that escape a command."""
    try:
        cli()
    except ClientError as e:
        handle_error(e)


if __name__ == "__main__":
    main()
