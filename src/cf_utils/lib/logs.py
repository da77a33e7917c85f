"""CloudWatch log group operations."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from botocore.exceptions import ClientError

from cf_utils.lib.errors import LogGroupDeleteError
from cf_utils.lib.result import Err, Ok, Result

if TYPE_CHECKING:
    from mypy_boto3_logs import CloudWatchLogsClient

logger = logging.getLogger(__name__)


def list_log_groups(
    logs: CloudWatchLogsClient, prefix: str, next_token: str | None = None
) -> dict[str, Any]:
    """One page of log groups whose name starts with prefix."""
    kwargs: dict[str, Any] = {"logGroupNamePrefix": prefix}
    if next_token:
        kwargs["nextToken"] = next_token
    return logs.describe_log_groups(**kwargs)


def delete_log_group(logs: CloudWatchLogsClient, name: str) -> Result[None, LogGroupDeleteError]:
    """Delete a single log group."""
    try:
        logs.delete_log_group(logGroupName=name)
    except ClientError as e:
        return Err(LogGroupDeleteError(name, str(e)))
    logger.info(f"Deleted log group: {name}")
    return Ok(None)


def delete_log_groups(
    logs: CloudWatchLogsClient, prefix: str
) -> Result[list[str], LogGroupDeleteError]:
    """Delete every log group whose name starts with prefix.

    All pages are listed before the first delete. Returns the names of the deleted groups.
    """
    names: list[str] = []
    token: str | None = None
    while True:
        page = list_log_groups(logs, prefix, token)
        names.extend(group["logGroupName"] for group in page.get("logGroups", []))
        token = page.get("nextToken")
        if not token:
            break

    deleted: list[str] = []
    for name in names:
        match delete_log_group(logs, name):
            case Err() as e:
                return e
            case Ok(_):
                deleted.append(name)
    return Ok(deleted)
