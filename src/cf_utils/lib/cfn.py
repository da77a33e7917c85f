"""CloudFormation stack operations.

Low-level helpers that work with CloudFormation client.
Returns Result types for error handling; describe errors other than
"stack does not exist" propagate as ClientError.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from botocore.exceptions import ClientError

from cf_utils.lib.errors import StackDeleteError, StackDeployError
from cf_utils.lib.poll import PollPolicy, poll
from cf_utils.lib.result import Err, Ok, Result
from cf_utils.models import NoOpReason, Stack, StackStatus

if TYPE_CHECKING:
    from mypy_boto3_cloudformation import CloudFormationClient

logger = logging.getLogger(__name__)

CAPABILITIES = ["CAPABILITY_IAM", "CAPABILITY_NAMED_IAM", "CAPABILITY_AUTO_EXPAND"]


def is_not_found(error: ClientError) -> bool:
    """True if the error says the stack or change set does not exist."""
    code = error.response.get("Error", {}).get("Code", "")
    if code in ("ChangeSetNotFound", "ChangeSetNotFoundException"):
        return True
    return "does not exist" in str(error)


def describe_stack(cfn: CloudFormationClient, stack_name: str) -> dict[str, Any] | None:
    """Raw describe_stacks entry, or None if the stack doesn't exist."""
    try:
        response = cfn.describe_stacks(StackName=stack_name)
    except ClientError as e:
        if is_not_found(e):
            return None
        raise
    if not response["Stacks"]:
        return None
    return response["Stacks"][0]


def get_stack(cfn: CloudFormationClient, stack_name: str) -> Stack | None:
    """Stack, or None if it doesn't exist (or is already deleted)."""
    data = describe_stack(cfn, stack_name)
    if data is None or data["StackStatus"] == StackStatus.DELETED:
        return None
    return Stack.from_description(data)


def stack_exists(cfn: CloudFormationClient, stack_name: str) -> bool:
    """Check if stack exists (and is not deleted).

    Only "does not exist" means absent; throttling or auth errors propagate.
    """
    return get_stack(cfn, stack_name) is not None


def get_stack_status(cfn: CloudFormationClient, stack_name: str) -> str | None:
    """Get stack status, or None if doesn't exist."""
    data = describe_stack(cfn, stack_name)
    return data["StackStatus"] if data else None


def get_stack_outputs(cfn: CloudFormationClient, stack_name: str) -> dict[str, str]:
    """Get stack outputs as dict (empty if the stack doesn't exist)."""
    stack = get_stack(cfn, stack_name)
    return stack.outputs if stack else {}


def create_stack(
    cfn: CloudFormationClient,
    params: dict[str, Any],
    policy: PollPolicy,
) -> Result[Stack | None, StackDeployError]:
    """Create a stack and wait for it to finish.

    Rollback is disabled so failed resources stay around for inspection.
    """
    stack_name = params["StackName"]
    try:
        cfn.create_stack(**params, DisableRollback=True)
    except ClientError as e:
        return Err(StackDeployError(stack_name, "CREATE_FAILED", str(e)))

    return wait_for_stack(cfn, stack_name, policy)


def update_stack(
    cfn: CloudFormationClient,
    params: dict[str, Any],
    policy: PollPolicy,
) -> Result[tuple[Stack | None, bool], StackDeployError]:
    """Update a stack and wait for it to finish.

    Returns (stack, changed). "No updates are to be performed" is not an
    error: the stack is polled and returned with changed=False.
    """
    stack_name = params["StackName"]
    changed = True
    try:
        cfn.update_stack(**params)
    except ClientError as e:
        if NoOpReason.match(str(e)) is not NoOpReason.NO_UPDATES:
            return Err(StackDeployError(stack_name, "UPDATE_FAILED", str(e)))
        logger.info("There are no changes to apply, continuing....")
        changed = False

    match wait_for_stack(cfn, stack_name, policy):
        case Err() as e:
            return e
        case Ok(stack):
            return Ok((stack, changed))


def delete_stack(
    cfn: CloudFormationClient,
    stack_name: str,
    policy: PollPolicy,
) -> Result[None, StackDeleteError]:
    """Request deletion and wait until the stack is gone."""
    try:
        cfn.delete_stack(StackName=stack_name)
    except ClientError as e:
        return Err(StackDeleteError(stack_name, "DELETE_FAILED", str(e)))

    match wait_for_stack(cfn, stack_name, policy):
        case Err(e):
            return Err(StackDeleteError(stack_name, e.status, e.reason))
        case Ok(None):
            return Ok(None)
        case Ok(stack):
            # Still describable in a success state means the delete never ran
            return Err(StackDeleteError(stack_name, stack.status, "Stack still exists"))


def wait_for_stack(
    cfn: CloudFormationClient,
    stack_name: str,
    policy: PollPolicy,
) -> Result[Stack | None, StackDeployError]:
    """Wait for the stack to reach a terminal status.

    Ok(Stack) on CREATE_COMPLETE/UPDATE_COMPLETE, Ok(None) once the stack no
    longer exists, Err on any failed/rolled back status.
    """

    def check() -> Result[Stack | None, StackDeployError] | None:
        data = describe_stack(cfn, stack_name)
        if data is None or data["StackStatus"] == StackStatus.DELETED:
            logger.info("Stack deleted or never existed.")
            return Ok(None)

        status = data["StackStatus"]
        if status in StackStatus.SUCCESS:
            logger.info("Stack operation completed")
            return Ok(Stack.from_description(data))

        if status in StackStatus.FAILED:
            logger.warning(f"Stack operation failed: {stack_name} {status}")
            reason = data.get("StackStatusReason") or _get_stack_failure_reason(cfn, stack_name)
            return Err(StackDeployError(stack_name, status, reason, details=data))

        logger.info(f"Waiting for stack operation to complete. This may take some time - {status}")
        return None

    return poll(
        check,
        policy,
        on_timeout=lambda elapsed: StackDeployError(
            stack_name, "TIMEOUT", f"Did not reach a terminal status within {elapsed:.0f}s"
        ),
    )


def _get_stack_failure_reason(cfn: CloudFormationClient, stack_name: str) -> str:
    """Try to extract failure reason from stack events."""
    try:
        response = cfn.describe_stack_events(StackName=stack_name)
        for event in response.get("StackEvents", []):
            status = event.get("ResourceStatus", "")
            if "FAILED" in status and event.get("ResourceStatusReason"):
                return event["ResourceStatusReason"]
        return "Unknown failure reason"
    except ClientError:
        return "Could not retrieve failure reason"
