"""Template source and AWS CLI helpers for cf-utils."""

import re
import subprocess
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import urlparse

import click

# Serverless (SAM) templates declare `Transform: AWS::Serverless-...`; both
# the YAML and JSON spellings are matched.
TRANSFORM_PATTERN = re.compile(r"Transform\"?\s*:\s*\"?AWS::Serverless")

S3_URL_BASE = "https://s3.amazonaws.com"


def is_remote_template(template: str) -> bool:
    """True if template is an S3 https URL rather than a local path."""
    if template.startswith("https://s3"):
        return True
    parsed = urlparse(template)
    return parsed.scheme == "https" and ".s3." in f".{parsed.netloc}"


def contains_transforms(body: str) -> bool:
    """True if the template body uses the serverless transform."""
    return TRANSFORM_PATTERN.search(body) is not None


def staging_key(template: str, prefix: str = "") -> str:
    """S3 key a local template is staged under."""
    return f"{prefix}{Path(template).as_posix().lstrip('/')}"


def staging_url(bucket: str, key: str) -> str:
    """Path-style https URL of a staged template."""
    return f"{S3_URL_BASE}/{bucket}/{key}"


@dataclass(frozen=True, slots=True)
class CliResult:
    """Outcome of an AWS CLI invocation (stdout already went to the console)."""

    returncode: int
    stderr: str


class AwsCliRunner:
    """
    Helper class to run `aws cloudformation deploy`.

    Used for templates whose transforms the CloudFormation API cannot
    update in place. Output is streamed through to the console as it
    arrives; stderr is also captured for inspection.
    """

    CAPABILITIES = ["CAPABILITY_IAM", "CAPABILITY_NAMED_IAM"]

    def __init__(self, region: str, profile: str | None = None, executable: str = "aws"):
        """
        Initialize CLI runner.

        Args:
            region: AWS region for deployment
            profile: Optional AWS profile name
            executable: AWS CLI executable
        """
        self.region = region
        self.profile = profile
        self.executable = executable

    def deploy_args(
        self,
        template_file: Path,
        stack_name: str,
        parameter_overrides: Mapping[str, str] | None = None,
    ) -> list[str]:
        """Build the argument list for `aws cloudformation deploy`."""
        cmd = [self.executable, "cloudformation", "deploy"]

        if self.profile:
            cmd.extend(["--profile", self.profile])

        cmd.extend(
            [
                "--region",
                self.region,
                "--template-file",
                str(template_file),
                "--stack-name",
                stack_name,
                "--capabilities",
                *self.CAPABILITIES,
            ]
        )

        # Parameter overrides
        if parameter_overrides:
            cmd.append("--parameter-overrides")
            cmd.extend(f"{k}={v}" for k, v in parameter_overrides.items())

        return cmd

    def deploy(
        self,
        template_file: Path,
        stack_name: str,
        parameter_overrides: Mapping[str, str] | None = None,
    ) -> CliResult:
        """
        Run `aws cloudformation deploy` for a template.

        Args:
            template_file: Local template path
            stack_name: CloudFormation stack name
            parameter_overrides: Dict of parameter name -> value

        Returns:
            CliResult with the exit code and captured stderr
        """
        cmd = self.deploy_args(template_file, stack_name, parameter_overrides)

        captured: list[str] = []
        with subprocess.Popen(cmd, stderr=subprocess.PIPE, text=True) as proc:
            assert proc.stderr is not None
            for line in proc.stderr:
                click.echo(line, nl=False, err=True)
                captured.append(line)
            returncode = proc.wait()

        return CliResult(returncode=returncode, stderr="".join(captured))
