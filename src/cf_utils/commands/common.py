"""Shared CLI utilities.

Common options, AwsContext creation, error handling, output formatting.
"""

import json
import sys
from collections.abc import Callable
from dataclasses import asdict, is_dataclass
from enum import Enum
from typing import Any, ParamSpec, TypeVar

import click
from botocore.exceptions import ClientError

from cf_utils.lib.aws import AwsContext
from cf_utils.lib.errors import (
    BucketEmptyError,
    ChangeSetError,
    CliDeployError,
    LogGroupDeleteError,
    ReviewRejectedError,
    S3WriteError,
    SSMReadError,
    SSMWriteError,
    StackDeleteError,
    StackDeployError,
    StackNotFoundError,
    TemplateNotFoundError,
    UploadSourceError,
)
from cf_utils.lib.poll import PollPolicy
from cf_utils.lib.result import Err, Ok, Result

# Default values
DEFAULT_REGION = "us-east-1"

# Type variables for decorators
P = ParamSpec("P")
T = TypeVar("T")


# Common CLI options as decorators
def region_option(fn: Callable[P, T]) -> Callable[P, T]:
    """Add --region/-r option."""
    return click.option(
        "--region",
        "-r",
        default=DEFAULT_REGION,
        show_default=True,
        envvar="AWS_REGION",
        help="AWS region",
    )(fn)


def profile_option(fn: Callable[P, T]) -> Callable[P, T]:
    """Add --profile/-p option."""
    return click.option(
        "--profile",
        "-p",
        default=None,
        envvar="AWS_PROFILE",
        help="AWS profile",
    )(fn)


def json_option(fn: Callable[P, T]) -> Callable[P, T]:
    """Add --json flag for JSON output."""
    return click.option(
        "--json",
        "as_json",
        is_flag=True,
        help="Output as JSON",
    )(fn)


def timeout_option(fn: Callable[P, T]) -> Callable[P, T]:
    """Add --timeout option (seconds to wait for stack operations)."""
    return click.option(
        "--timeout",
        type=click.IntRange(min=1),
        default=None,
        help="Give up waiting for stack operations after this many seconds (default: wait)",
    )(fn)


def aws_options(fn: Callable[P, T]) -> Callable[P, T]:
    """Add all AWS-related options (region, profile)."""
    fn = region_option(fn)
    fn = profile_option(fn)
    return fn


def make_context(region: str, profile: str | None) -> AwsContext:
    """Create AwsContext from CLI options."""
    return AwsContext(region=region, profile=profile)


def make_policy(timeout: int | None) -> PollPolicy:
    """Create PollPolicy from CLI options."""
    return PollPolicy(timeout=float(timeout) if timeout else None)


def handle_result(result: Result[T, Any], success_message: str | None = None) -> T:
    """Handle a Result, exiting on error with appropriate message.

    On Ok: returns the value, optionally prints success message
    On Err: prints error and exits with code 1
    """
    match result:
        case Ok(value):
            if success_message:
                click.secho(success_message, fg="green", bold=True)
            return value
        case Err(error):
            handle_error(error)
            sys.exit(1)  # Should never reach here, but for type checker


def handle_error(error: Any) -> None:
    """Print error message and exit."""
    message = _format_error(error)
    click.secho(f"Error: {message}", fg="red", err=True)
    sys.exit(1)


def _format_error(error: Any) -> str:
    """Format error for display."""
    match error:
        case TemplateNotFoundError(path):
            return f"Template '{path}' does not exist!"

        case ReviewRejectedError(stack_name):
            return f"Reviewer rejected stack update for '{stack_name}'."

        case StackNotFoundError(stack_name):
            return f"Stack '{stack_name}' does not exist."

        case StackDeployError(stack_name, status, reason):
            return f"Stack operation failed for '{stack_name}': {status} - {reason}"

        case StackDeleteError(stack_name, status, reason):
            return f"Failed to delete stack '{stack_name}': {status} - {reason}"

        case ChangeSetError(stack_name, change_set_name, status, reason):
            return (
                f"Change set '{change_set_name}' for stack '{stack_name}' failed: "
                f"{status} - {reason}"
            )

        case CliDeployError(stack_name, exit_code, _):
            return f"Stack deploy failed for '{stack_name}' (aws cli exit code {exit_code})"

        case BucketEmptyError(bucket, reason):
            return f"Failed to empty bucket '{bucket}': {reason}"

        case S3WriteError(bucket, key, reason):
            return f"Failed to write s3://{bucket}/{key}: {reason}"

        case UploadSourceError(path):
            return (
                f"Folder '{path}' is empty or does not exist. "
                "Did you forget to build your application?"
            )

        case SSMReadError(parameter_name, reason):
            return f"Failed to read parameter '{parameter_name}': {reason}"

        case SSMWriteError(parameter_name, reason):
            return f"Failed to write parameter '{parameter_name}': {reason}"

        case LogGroupDeleteError(log_group_name, reason):
            return f"Failed to delete log group '{log_group_name}': {reason}"

        case ClientError():
            return f"AWS request failed: {error}"

        case _:
            return str(error)


def to_json(obj: Any) -> str:
    """Convert object to JSON string."""
    return json.dumps(_to_serializable(obj), indent=2)


def _to_serializable(obj: Any) -> Any:
    """Convert object to JSON-serializable form."""
    if obj is None:
        return None
    if isinstance(obj, (str, int, float, bool)):
        return obj
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, dict):
        return {k: _to_serializable(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_to_serializable(v) for v in obj]
    if is_dataclass(obj) and not isinstance(obj, type):
        return _to_serializable(asdict(obj))
    return str(obj)


def echo_key_value(key: str, value: Any, indent: int = 0) -> None:
    """Print a key-value pair with optional indentation."""
    prefix = "  " * indent
    click.echo(f"{prefix}{key}: {value}")


def echo_section(title: str) -> None:
    """Print a section header."""
    click.echo()
    click.secho(title, bold=True)
    click.echo("-" * len(title))


def echo_change_set(change_set: dict[str, Any]) -> None:
    """Print the resource changes of a change set."""
    echo_section(f"Change set {change_set.get('ChangeSetName', '')}")
    changes = change_set.get("Changes", [])
    if not changes:
        click.echo("  (no resource changes listed)")
    for change in changes:
        rc = change.get("ResourceChange", {})
        line = f"  {rc.get('Action', '?'):<8} {rc.get('LogicalResourceId', '?')} ({rc.get('ResourceType', '?')})"
        if rc.get("Replacement") in ("True", "Conditional"):
            line += f" [replacement: {rc['Replacement']}]"
        click.echo(line)
    click.echo()
