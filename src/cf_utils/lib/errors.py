"""Error types for cf-utils.

All errors are frozen dataclasses - no exceptions in business logic.
Pattern match on these in the CLI layer to provide user-friendly messages.

Transport failures (throttling, auth, network) are not modelled here: they
surface as botocore ClientError and propagate unchanged.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

# =============================================================================
# Precondition Errors
# =============================================================================


@dataclass(frozen=True, slots=True)
class TemplateNotFoundError:
    """Local template file does not exist."""

    path: Path


@dataclass(frozen=True, slots=True)
class ReviewRejectedError:
    """Reviewer declined the proposed change set."""

    stack_name: str


# =============================================================================
# Stack Errors
# =============================================================================


@dataclass(frozen=True, slots=True)
class StackNotFoundError:
    """Stack does not exist."""

    stack_name: str


@dataclass(frozen=True, slots=True)
class StackDeployError:
    """CloudFormation stack create/update failed.

    `details` holds the full describe_stacks entry when the failure was
    observed while polling.
    """

    stack_name: str
    status: str
    reason: str
    details: dict[str, Any] | None = field(default=None, compare=False)


@dataclass(frozen=True, slots=True)
class StackDeleteError:
    """CloudFormation stack deletion failed."""

    stack_name: str
    status: str
    reason: str


@dataclass(frozen=True, slots=True)
class ChangeSetError:
    """Change set creation or deletion failed."""

    stack_name: str
    change_set_name: str
    status: str
    reason: str


@dataclass(frozen=True, slots=True)
class CliDeployError:
    """`aws cloudformation deploy` exited with an error."""

    stack_name: str
    exit_code: int
    stderr: str


# =============================================================================
# Storage Errors
# =============================================================================


@dataclass(frozen=True, slots=True)
class BucketEmptyError:
    """Failed to list or delete objects while emptying a bucket."""

    bucket: str
    reason: str


@dataclass(frozen=True, slots=True)
class S3WriteError:
    """Failed to write to S3."""

    bucket: str
    key: str
    reason: str


@dataclass(frozen=True, slots=True)
class UploadSourceError:
    """Directory to upload is empty or does not exist."""

    path: Path


@dataclass(frozen=True, slots=True)
class SSMReadError:
    """Failed to read from SSM Parameter Store."""

    parameter_name: str
    reason: str


@dataclass(frozen=True, slots=True)
class SSMWriteError:
    """Failed to write to SSM Parameter Store."""

    parameter_name: str
    reason: str


@dataclass(frozen=True, slots=True)
class LogGroupDeleteError:
    """Failed to delete a CloudWatch log group."""

    log_group_name: str
    reason: str


# =============================================================================
# Type Aliases for Error Unions
# =============================================================================

type UpsertError = (
    TemplateNotFoundError
    | ReviewRejectedError
    | StackDeployError
    | ChangeSetError
    | CliDeployError
    | S3WriteError
)
type DeleteError = StackDeleteError | BucketEmptyError
type UploadError = UploadSourceError | S3WriteError
