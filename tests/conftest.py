"""Shared pytest fixtures for cf-utils tests."""

import pytest
from moto import mock_aws

from cf_utils.lib.poll import PollPolicy

REGION = "us-east-1"


@pytest.fixture
def aws_credentials(monkeypatch: pytest.MonkeyPatch) -> None:
    """Mock AWS credentials for moto."""
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_SECURITY_TOKEN", "testing")
    monkeypatch.setenv("AWS_SESSION_TOKEN", "testing")
    monkeypatch.setenv("AWS_DEFAULT_REGION", REGION)
    monkeypatch.delenv("AWS_REGION", raising=False)
    monkeypatch.delenv("AWS_PROFILE", raising=False)


@pytest.fixture
def mock_aws_context(aws_credentials):
    """Create a complete mocked AWS context."""
    from cf_utils.lib.aws import AwsContext

    with mock_aws():
        yield AwsContext(region=REGION, profile=None)


@pytest.fixture
def no_wait() -> PollPolicy:
    """Poll policy that never sleeps."""
    return PollPolicy(interval=5.0, sleep=lambda _: None)
