"""Parameter commands - put, get, delete SSM parameters."""

from collections.abc import Callable
from typing import ParamSpec, TypeVar

import click

from cf_utils.commands.common import aws_options, handle_result, make_context
from cf_utils.lib.parameters import delete_parameter, get_parameter, put_parameter
from cf_utils.models import ResourceNames

P = ParamSpec("P")
T = TypeVar("T")


def naming_options(fn: Callable[P, T]) -> Callable[P, T]:
    """Add --stage/--project-prefix options used to qualify parameter names."""
    fn = click.option(
        "--stage",
        "-s",
        default=None,
        envvar="STAGE",
        help="Stage; when set, NAME is qualified as <prefix><stage>-<region>-NAME",
    )(fn)
    fn = click.option(
        "--project-prefix",
        default="",
        envvar="PROJECT_PREFIX",
        help="Project prefix used with --stage",
    )(fn)
    return fn


def _qualify(name: str, project_prefix: str, stage: str | None, region: str) -> str:
    if not stage:
        return name
    return ResourceNames(project_prefix, stage, region).parameter(name)


@click.group()
def params() -> None:
    """Manage SSM parameters."""
    pass


@params.command("put")
@click.argument("name")
@click.argument("value")
@aws_options
@naming_options
@click.option("--secure", is_flag=True, help="Store as SecureString")
@click.option("--description", default=None, help="Parameter description")
def put(
    name: str,
    value: str,
    region: str,
    profile: str | None,
    stage: str | None,
    project_prefix: str,
    secure: bool,
    description: str | None,
) -> None:
    """Create or overwrite parameter NAME with VALUE."""
    ctx = make_context(region, profile)
    full_name = _qualify(name, project_prefix, stage, region)
    handle_result(
        put_parameter(ctx.ssm, full_name, value, secure=secure, description=description),
        success_message=f"Parameter '{full_name}' saved.",
    )


@params.command("get")
@click.argument("name")
@aws_options
@naming_options
def get(name: str, region: str, profile: str | None, stage: str | None, project_prefix: str) -> None:
    """Print the value of parameter NAME."""
    ctx = make_context(region, profile)
    full_name = _qualify(name, project_prefix, stage, region)
    click.echo(handle_result(get_parameter(ctx.ssm, full_name)))


@params.command("delete")
@click.argument("name")
@aws_options
@naming_options
def delete(
    name: str, region: str, profile: str | None, stage: str | None, project_prefix: str
) -> None:
    """Delete parameter NAME."""
    ctx = make_context(region, profile)
    full_name = _qualify(name, project_prefix, stage, region)
    handle_result(
        delete_parameter(ctx.ssm, full_name),
        success_message=f"Parameter '{full_name}' deleted.",
    )
