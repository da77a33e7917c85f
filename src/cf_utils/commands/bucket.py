"""Bucket commands - empty a bucket, upload a directory."""

from pathlib import Path

import click

from cf_utils.commands.common import aws_options, handle_result, make_context
from cf_utils.lib.storage.s3 import DEFAULT_MAX_WORKERS, empty_bucket, upload_directory


@click.command("empty-bucket")
@click.argument("bucket")
@aws_options
@click.option(
    "--max-workers",
    default=DEFAULT_MAX_WORKERS,
    show_default=True,
    type=click.IntRange(min=1),
    help="Threads used to delete object versions",
)
@click.option(
    "--yes",
    is_flag=True,
    help="Skip confirmation prompt",
)
def empty(bucket: str, region: str, profile: str | None, max_workers: int, yes: bool) -> None:
    """Delete every object (and every version) in BUCKET."""
    if not yes and not click.confirm(f"Delete ALL objects in bucket '{bucket}'?"):
        click.echo("Aborted.")
        return

    ctx = make_context(region, profile)
    deleted = handle_result(empty_bucket(ctx.s3, bucket, max_workers=max_workers))
    click.secho(f"Bucket '{bucket}' emptied ({deleted} deleted).", fg="green", bold=True)


@click.command()
@click.argument("bucket")
@click.argument(
    "source",
    type=click.Path(file_okay=False, path_type=Path),
)
@aws_options
@click.option(
    "--prefix",
    default=None,
    help="Key prefix to upload under",
)
def upload(
    bucket: str, source: Path, region: str, profile: str | None, prefix: str | None
) -> None:
    """Upload the directory SOURCE to BUCKET.

    \b
    Examples:
      cf-utils upload my-site-bucket ./build
      cf-utils upload my-artifacts ./dist --prefix releases/1.2.0
    """
    ctx = make_context(region, profile)
    uploaded = handle_result(upload_directory(ctx.s3, bucket, source, prefix))
    click.secho(f"Uploaded {uploaded} file(s) to s3://{bucket}.", fg="green", bold=True)
