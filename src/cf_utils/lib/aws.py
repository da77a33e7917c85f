"""AWS session and client management.

AwsContext is created once at CLI entry and passed to all operations.
Uses cached_property for lazy client initialization.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import cached_property
from typing import TYPE_CHECKING

import boto3
from botocore.config import Config

if TYPE_CHECKING:
    from mypy_boto3_cloudformation import CloudFormationClient
    from mypy_boto3_logs import CloudWatchLogsClient
    from mypy_boto3_s3 import S3Client
    from mypy_boto3_ssm import SSMClient


@dataclass
class AwsContext:
    """AWS session and clients. Created once at CLI entry.

    Clients are lazily initialized on first access via cached_property and
    share a retry policy: a bounded number of attempts with jittered
    exponential backoff ("standard" retry mode).

    Example:
        ctx = AwsContext(region="us-east-1", profile="dev")
        ctx.cfn.describe_stacks(...)  # CloudFormation client
        ctx.s3.list_objects_v2(...)   # S3 client
    """

    region: str
    profile: str | None = None
    max_attempts: int = 7

    @cached_property
    def session(self) -> boto3.Session:
        """Boto3 session configured with region and profile."""
        return boto3.Session(region_name=self.region, profile_name=self.profile)

    @cached_property
    def config(self) -> Config:
        """Client configuration shared by every client."""
        return Config(retries={"max_attempts": self.max_attempts, "mode": "standard"})

    @cached_property
    def cfn(self) -> CloudFormationClient:
        """CloudFormation client."""
        return self.session.client("cloudformation", config=self.config)

    @cached_property
    def s3(self) -> S3Client:
        """S3 client."""
        return self.session.client("s3", config=self.config)

    @cached_property
    def ssm(self) -> SSMClient:
        """SSM Parameter Store client."""
        return self.session.client("ssm", config=self.config)

    @cached_property
    def logs(self) -> CloudWatchLogsClient:
        """CloudWatch Logs client."""
        return self.session.client("logs", config=self.config)
