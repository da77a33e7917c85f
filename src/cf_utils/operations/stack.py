"""Stack operations - upsert (create, update, change set) and delete.

upsert_stack decides how to bring a stack to the desired template:

    absent                      -> create (or CREATE change set if transforms)
    exists, review requested    -> preview change set, reviewer decides,
                                   preview deleted, then update or reject
    exists                      -> update (or UPDATE change set if transforms)

Every mutation is polled to a terminal status before returning.
"""

import logging
from collections.abc import Callable, Mapping
from concurrent.futures import ThreadPoolExecutor
from dataclasses import replace
from pathlib import Path
from typing import Any

from cf_utils.lib import cfn
from cf_utils.lib.aws import AwsContext
from cf_utils.lib.changeset import (
    apply_change_set,
    create_change_set,
    delete_change_set,
    generate_change_set_name,
    preview_change_set_name,
)
from cf_utils.lib.errors import (
    BucketEmptyError,
    CliDeployError,
    DeleteError,
    ReviewRejectedError,
    StackNotFoundError,
    TemplateNotFoundError,
    UpsertError,
)
from cf_utils.lib.poll import PollPolicy
from cf_utils.lib.result import Err, Ok, Result, collect
from cf_utils.lib.storage.s3 import DEFAULT_MAX_WORKERS, empty_bucket, write_object
from cf_utils.lib.templates import (
    AwsCliRunner,
    contains_transforms,
    is_remote_template,
    staging_key,
    staging_url,
)
from cf_utils.models import NoOpReason, StackAction, UpsertOutcome, UpsertRequest

logger = logging.getLogger(__name__)

# Receives the describe_change_set response, returns True to go ahead
type Reviewer = Callable[[dict[str, Any]], bool]


def upsert_stack(
    ctx: AwsContext,
    request: UpsertRequest,
    *,
    reviewer: Reviewer | None = None,
    policy: PollPolicy = PollPolicy(),
    cli_runner: AwsCliRunner | None = None,
) -> Result[UpsertOutcome, UpsertError]:
    """Create or update a stack from a template.

    Args:
        ctx: AWS context
        request: Stack name, template (local path or S3 URL), parameters, options
        reviewer: Called with the preview change set when options.review is set
        policy: How to poll stack and change set status
        cli_runner: Runner used when options.via_cli is set
    """
    options = request.options
    stack_name = request.stack_name
    template = request.template
    remote = is_remote_template(template)

    if options.review and reviewer is None:
        raise ValueError("review requested but no reviewer supplied")

    body: str | None = None
    if not remote:
        path = Path(template)
        if not path.is_file():
            return Err(TemplateNotFoundError(path))
        body = path.read_text()

    transforms = options.contains_transforms
    if transforms is None:
        transforms = body is not None and contains_transforms(body)

    if options.via_cli and transforms:
        if body is None:
            logger.warning("CLI deploy needs a local template, using the API instead")
        else:
            return deploy_via_cli(
                ctx, stack_name, Path(template), dict(request.parameters), runner=cli_runner
            )

    # Stage local template in S3, then continue with its URL
    if options.s3_bucket and body is not None:
        key = staging_key(template, options.s3_prefix)
        match write_object(ctx.s3, options.s3_bucket, key, Path(template).read_bytes()):
            case Err() as e:
                return e
            case Ok(_):
                pass
        staged = replace(
            request,
            template=staging_url(options.s3_bucket, key),
            options=replace(options, s3_bucket=None, contains_transforms=transforms),
        )
        return upsert_stack(
            ctx, staged, reviewer=reviewer, policy=policy, cli_runner=cli_runner
        )

    params: dict[str, Any] = {
        "StackName": stack_name,
        "Capabilities": cfn.CAPABILITIES,
        "Parameters": request.cfn_parameters,
    }
    if body is None:
        params["TemplateURL"] = template
    else:
        params["TemplateBody"] = body

    if not cfn.stack_exists(ctx.cfn, stack_name):
        if transforms:
            logger.info("Stack contains transforms, deploying via change set...")
            return _apply_change_set(ctx, params, "CREATE", policy)

        logger.info(f"Stack {stack_name} does not exist, creating...")
        match cfn.create_stack(ctx.cfn, params, policy):
            case Err() as e:
                return e
            case Ok(stack):
                return Ok(UpsertOutcome(StackAction.CREATED, stack))

    if options.review:
        assert reviewer is not None
        return _review_and_update(ctx, params, transforms, reviewer, policy)

    logger.info("Stack exists, updating...")
    return _update(ctx, params, transforms, policy)


def _update(
    ctx: AwsContext,
    params: dict[str, Any],
    transforms: bool,
    policy: PollPolicy,
) -> Result[UpsertOutcome, UpsertError]:
    if transforms:
        logger.info("Stack contains transforms, deploying via change set...")
        return _apply_change_set(ctx, params, "UPDATE", policy)

    match cfn.update_stack(ctx.cfn, params, policy):
        case Err() as e:
            return e
        case Ok((stack, changed)):
            action = StackAction.UPDATED if changed else StackAction.UNCHANGED
            return Ok(UpsertOutcome(action, stack))


def _apply_change_set(
    ctx: AwsContext,
    params: dict[str, Any],
    change_set_type: str,
    policy: PollPolicy,
) -> Result[UpsertOutcome, UpsertError]:
    cs_params = {
        **params,
        "ChangeSetName": generate_change_set_name(),
        "ChangeSetType": change_set_type,
    }
    match apply_change_set(ctx.cfn, cs_params, policy):
        case Err() as e:
            return e
        case Ok(None):
            return Ok(UpsertOutcome(StackAction.UNCHANGED, None))
        case Ok(stack):
            action = StackAction.CREATED if change_set_type == "CREATE" else StackAction.UPDATED
            return Ok(UpsertOutcome(action, stack))


def _review_and_update(
    ctx: AwsContext,
    params: dict[str, Any],
    transforms: bool,
    reviewer: Reviewer,
    policy: PollPolicy,
) -> Result[UpsertOutcome, UpsertError]:
    """Preview changes with a change set and let the reviewer decide.

    The preview change set is deleted before anything else happens,
    whatever the outcome.
    """
    stack_name = params["StackName"]
    change_set_name = preview_change_set_name(stack_name)
    logger.info("Stack exists, creating changeset for review...")

    preview = create_change_set(ctx.cfn, {**params, "ChangeSetName": change_set_name}, policy)

    approved = False
    try:
        if isinstance(preview, Ok) and preview.value is not None:
            approved = reviewer(preview.value)
    finally:
        logger.info("Cleaning up review change set....")
        cleanup = delete_change_set(ctx.cfn, stack_name, change_set_name, policy)

    match cleanup:
        case Err() as e:
            return e
        case Ok(_):
            pass

    match preview:
        case Err() as e:
            return e
        case Ok(None):
            logger.info("There are no changes to apply, continuing....")
            match cfn.wait_for_stack(ctx.cfn, stack_name, policy):
                case Err() as e:
                    return e
                case Ok(stack):
                    return Ok(UpsertOutcome(StackAction.UNCHANGED, stack))

    if not approved:
        return Err(ReviewRejectedError(stack_name))

    logger.info("Reviewer has accepted updates, continuing with stack update...")
    return _update(ctx, params, transforms, policy)


def deploy_via_cli(
    ctx: AwsContext,
    stack_name: str,
    template_file: Path,
    parameters: Mapping[str, str] | None = None,
    runner: AwsCliRunner | None = None,
) -> Result[UpsertOutcome, UpsertError]:
    """Deploy a template with `aws cloudformation deploy`.

    For templates with transforms the API cannot handle. The CLI's output is
    streamed to the console; "No changes to deploy" is not a failure.
    """
    if not template_file.is_file():
        return Err(TemplateNotFoundError(template_file))

    runner = runner or AwsCliRunner(ctx.region, ctx.profile)
    existed = cfn.stack_exists(ctx.cfn, stack_name)

    result = runner.deploy(template_file, stack_name, parameters)
    action = StackAction.UPDATED if existed else StackAction.CREATED
    if result.returncode != 0:
        if NoOpReason.match(result.stderr) is not NoOpReason.CLI_NO_CHANGES:
            return Err(CliDeployError(stack_name, result.returncode, result.stderr))
        logger.info("There are no changes to apply, continuing....")
        action = StackAction.UNCHANGED

    return Ok(UpsertOutcome(action, cfn.get_stack(ctx.cfn, stack_name)))


def delete_stack(
    ctx: AwsContext,
    stack_name: str,
    *,
    policy: PollPolicy = PollPolicy(),
    max_workers: int = DEFAULT_MAX_WORKERS,
) -> Result[None, DeleteError]:
    """Delete a stack, emptying its S3 buckets first.

    Buckets are found through outputs whose key ends with "Bucket" and are
    emptied concurrently; the stack is only deleted once all of them are
    empty. Deleting a stack that does not exist succeeds.
    """
    stack = cfn.get_stack(ctx.cfn, stack_name)
    if stack is None:
        logger.info("Stack already deleted or never existed.")
        return Ok(None)

    buckets = list(stack.bucket_outputs().values())
    if buckets:
        # Workers share one client, created on this thread.
        s3 = ctx.s3

        def empty(bucket: str) -> Result[int, BucketEmptyError]:
            logger.info(f"Emptying S3 bucket {bucket}")
            return empty_bucket(s3, bucket, max_workers=max_workers)

        with ThreadPoolExecutor(max_workers=min(max_workers, len(buckets))) as executor:
            results = list(executor.map(empty, buckets))

        match collect(results):
            case Err() as e:
                return e
            case Ok(_):
                pass

    logger.info(f"Deleting stack {stack_name}")
    return cfn.delete_stack(ctx.cfn, stack_name, policy)


def describe_outputs(ctx: AwsContext, stack_name: str) -> Result[dict[str, str], StackNotFoundError]:
    """Stack outputs as a dict."""
    stack = cfn.get_stack(ctx.cfn, stack_name)
    if stack is None:
        return Err(StackNotFoundError(stack_name))
    return Ok(stack.outputs)
