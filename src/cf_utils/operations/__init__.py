"""Operations layer - composite operations that return Result types."""

from cf_utils.operations.stack import (
    delete_stack,
    deploy_via_cli,
    describe_outputs,
    upsert_stack,
)

__all__ = [
    "upsert_stack",
    "deploy_via_cli",
    "delete_stack",
    "describe_outputs",
]
