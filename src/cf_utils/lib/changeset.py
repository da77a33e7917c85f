"""CloudFormation change set operations.

A change set is always transient: whatever happens to it (executed, found
to be a no-op, failed, rejected by a reviewer), it must not be left behind.
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING, Any

from botocore.exceptions import ClientError

from cf_utils.lib.cfn import is_not_found, wait_for_stack
from cf_utils.lib.errors import ChangeSetError, StackDeployError
from cf_utils.lib.poll import PollPolicy, poll
from cf_utils.lib.result import Err, Ok, Result
from cf_utils.models import NoOpReason, Stack, StackStatus

if TYPE_CHECKING:
    from mypy_boto3_cloudformation import CloudFormationClient

logger = logging.getLogger(__name__)

CHANGE_SET_PREFIX = "cf-utils"


def preview_change_set_name(stack_name: str) -> str:
    """Name of the change set created for operator review."""
    return f"{CHANGE_SET_PREFIX}-{stack_name}-preview"


def generate_change_set_name() -> str:
    """Unique name for a change set that is applied straight away."""
    return f"{CHANGE_SET_PREFIX}-cloudformation-upsert-stack-{int(time.time())}"


def create_change_set(
    cfn: CloudFormationClient,
    params: dict[str, Any],
    policy: PollPolicy,
) -> Result[dict[str, Any] | None, ChangeSetError]:
    """Create a change set and wait until it is ready.

    Ok(description) if the change set has changes, Ok(None) if it turned out
    to be a no-op.
    """
    stack_name = params["StackName"]
    change_set_name = params["ChangeSetName"]
    try:
        cfn.create_change_set(**params)
    except ClientError as e:
        return Err(ChangeSetError(stack_name, change_set_name, "FAILED", str(e)))

    return wait_for_change_set(cfn, stack_name, change_set_name, policy)


def execute_change_set(
    cfn: CloudFormationClient,
    stack_name: str,
    change_set_name: str,
    policy: PollPolicy,
) -> Result[Stack | None, StackDeployError]:
    """Execute a change set, then wait for the stack (not the change set)."""
    logger.info(f"Executing change set {change_set_name}")
    try:
        cfn.execute_change_set(StackName=stack_name, ChangeSetName=change_set_name)
    except ClientError as e:
        return Err(StackDeployError(stack_name, "EXECUTE_FAILED", str(e)))

    return wait_for_stack(cfn, stack_name, policy)


def delete_change_set(
    cfn: CloudFormationClient,
    stack_name: str,
    change_set_name: str,
    policy: PollPolicy,
) -> Result[None, ChangeSetError]:
    """Delete a change set and wait until it is gone."""
    try:
        cfn.delete_change_set(StackName=stack_name, ChangeSetName=change_set_name)
    except ClientError as e:
        if not is_not_found(e):
            return Err(ChangeSetError(stack_name, change_set_name, "DELETE_FAILED", str(e)))

    match wait_for_change_set(cfn, stack_name, change_set_name, policy):
        case Err() as e:
            return e
        case Ok(_):
            return Ok(None)


def apply_change_set(
    cfn: CloudFormationClient,
    params: dict[str, Any],
    policy: PollPolicy,
) -> Result[Stack | None, ChangeSetError | StackDeployError]:
    """Create a change set and execute it if it has changes.

    Returns Ok(Stack) after execution, or Ok(None) when there was nothing
    to change (the empty change set is deleted).
    """
    stack_name = params["StackName"]
    change_set_name = params["ChangeSetName"]

    match create_change_set(cfn, params, policy):
        case Err(e):
            # Failed change sets linger in FAILED status until deleted
            match delete_change_set(cfn, stack_name, change_set_name, policy):
                case Err(cleanup_error):
                    logger.warning(f"Could not clean up change set: {cleanup_error.reason}")
            return Err(e)
        case Ok(None):
            match delete_change_set(cfn, stack_name, change_set_name, policy):
                case Err() as e:
                    return e
            return Ok(None)
        case Ok(change_set):
            pass

    return execute_change_set(
        cfn,
        change_set.get("StackName", stack_name),
        change_set.get("ChangeSetName", change_set_name),
        policy,
    )


def wait_for_change_set(
    cfn: CloudFormationClient,
    stack_name: str,
    change_set_name: str,
    policy: PollPolicy,
) -> Result[dict[str, Any] | None, ChangeSetError]:
    """Wait for the change set to reach a terminal status.

    Ok(description) on CREATE/UPDATE/DELETE_COMPLETE. Ok(None) if the change
    set no longer exists or FAILED only because it has no changes.
    """

    def check() -> Result[dict[str, Any] | None, ChangeSetError] | None:
        try:
            cs = cfn.describe_change_set(StackName=stack_name, ChangeSetName=change_set_name)
        except ClientError as e:
            if is_not_found(e):
                logger.info("Change set deleted or never existed.")
                return Ok(None)
            raise

        status = cs["Status"]
        if status in StackStatus.CHANGE_SET_SUCCESS:
            if status == "CREATE_COMPLETE":
                logger.info("Change set created")
            return Ok(cs)

        if status == StackStatus.CHANGE_SET_FAILED:
            reason = cs.get("StatusReason", "")
            if NoOpReason.match(reason) in (NoOpReason.NO_UPDATES, NoOpReason.NO_CHANGES):
                logger.info("No updates are to be performed")
                return Ok(None)
            logger.warning(f"Change set failed: {change_set_name} - {reason}")
            return Err(ChangeSetError(stack_name, change_set_name, status, reason))

        logger.info(f"Waiting for change set to be created - {status}")
        return None

    return poll(
        check,
        policy,
        on_timeout=lambda elapsed: ChangeSetError(
            stack_name,
            change_set_name,
            "TIMEOUT",
            f"Did not reach a terminal status within {elapsed:.0f}s",
        ),
    )
