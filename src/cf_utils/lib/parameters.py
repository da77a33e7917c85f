"""SSM Parameter Store operations.

Low-level helpers that work with SSM client.
Returns Result types for error handling.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from botocore.exceptions import ClientError

from cf_utils.lib.errors import SSMReadError, SSMWriteError
from cf_utils.lib.result import Err, Ok, Result

if TYPE_CHECKING:
    from mypy_boto3_ssm import SSMClient

logger = logging.getLogger(__name__)


def put_parameter(
    ssm: SSMClient,
    name: str,
    value: str,
    secure: bool = False,
    description: str | None = None,
) -> Result[str, SSMWriteError]:
    """Create or overwrite a parameter. Returns the parameter name."""
    kwargs = {
        "Name": name,
        "Value": value,
        "Type": "SecureString" if secure else "String",
        "Overwrite": True,
    }
    if description:
        kwargs["Description"] = description
    try:
        ssm.put_parameter(**kwargs)
    except ClientError as e:
        return Err(SSMWriteError(name, str(e)))
    logger.info(f"Successfully upserted parameter: {name}")
    return Ok(name)


def get_parameter(ssm: SSMClient, name: str) -> Result[str, SSMReadError]:
    """Read a parameter value (SecureStrings are decrypted)."""
    try:
        response = ssm.get_parameter(Name=name, WithDecryption=True)
    except ClientError as e:
        if e.response["Error"]["Code"] == "ParameterNotFound":
            return Err(SSMReadError(name, "Parameter not found"))
        return Err(SSMReadError(name, str(e)))
    logger.info(f"Successfully retrieved parameter: {name}")
    return Ok(response["Parameter"]["Value"])


def parameter_exists(ssm: SSMClient, name: str) -> bool:
    """Check if a parameter exists."""
    response = ssm.get_parameters(Names=[name])
    return bool(response.get("Parameters"))


def delete_parameter(ssm: SSMClient, name: str) -> Result[str, SSMWriteError]:
    """Delete a parameter. Returns the parameter name."""
    try:
        ssm.delete_parameter(Name=name)
    except ClientError as e:
        return Err(SSMWriteError(name, str(e)))
    logger.info(f"Successfully deleted parameter: {name}")
    return Ok(name)
