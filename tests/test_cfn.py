"""Tests for lib/cfn.py - CloudFormation operations.

moto completes stack operations synchronously, so status sequences
(in progress, rollback, failure) are scripted with MagicMock.
"""

from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError

from cf_utils.lib.cfn import (
    create_stack,
    delete_stack,
    get_stack,
    get_stack_outputs,
    get_stack_status,
    is_not_found,
    stack_exists,
    update_stack,
    wait_for_stack,
)
from cf_utils.lib.errors import StackDeleteError, StackDeployError
from cf_utils.lib.poll import PollPolicy
from cf_utils.lib.result import Err, Ok

# Simple template that moto can handle
SIMPLE_TEMPLATE = """
AWSTemplateFormatVersion: '2010-09-09'
Description: Simple test template
Parameters:
  BucketName:
    Type: String
    Default: test-bucket
Resources:
  DataBucket:
    Type: AWS::S3::Bucket
    Properties:
      BucketName: !Ref BucketName
Outputs:
  DataBucket:
    Value: !Ref DataBucket
  BucketArn:
    Value: !GetAtt DataBucket.Arn
"""


def client_error(code: str, message: str, operation: str = "DescribeStacks") -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": message}}, operation)


def not_found(name: str) -> ClientError:
    return client_error("ValidationError", f"Stack with id {name} does not exist")


def description(status: str, **extra) -> dict:
    return {"Stacks": [{"StackName": "test-stack", "StackStatus": status, **extra}]}


def scripted_cfn(*responses) -> MagicMock:
    """CloudFormation client whose describe_stacks returns each response in turn."""
    cfn = MagicMock()
    cfn.describe_stacks.side_effect = list(responses)
    cfn.describe_stack_events.return_value = {"StackEvents": []}
    return cfn


@pytest.fixture
def cfn_client(mock_aws_context):
    """Mocked CloudFormation client."""
    return mock_aws_context.cfn


def params(name: str = "test-stack", bucket: str = "my-test-bucket") -> dict:
    return {
        "StackName": name,
        "TemplateBody": SIMPLE_TEMPLATE,
        "Parameters": [{"ParameterKey": "BucketName", "ParameterValue": bucket}],
    }


class TestIsNotFound:
    def test_stack_does_not_exist(self) -> None:
        assert is_not_found(not_found("x"))

    def test_change_set_not_found(self) -> None:
        assert is_not_found(client_error("ChangeSetNotFound", "ChangeSet [x] does not exist"))

    def test_other_errors(self) -> None:
        assert not is_not_found(client_error("Throttling", "Rate exceeded"))


class TestStackExists:
    """Tests for stack_exists function."""

    def test_nonexistent_stack(self, cfn_client) -> None:
        assert stack_exists(cfn_client, "nonexistent-stack") is False

    def test_existing_stack(self, cfn_client) -> None:
        cfn_client.create_stack(**params())
        assert stack_exists(cfn_client, "test-stack") is True

    def test_deleted_stack(self) -> None:
        cfn = scripted_cfn(description("DELETE_COMPLETE"))
        assert stack_exists(cfn, "test-stack") is False

    def test_other_errors_propagate(self) -> None:
        cfn = MagicMock()
        cfn.describe_stacks.side_effect = client_error("AccessDenied", "not authorized")

        with pytest.raises(ClientError):
            stack_exists(cfn, "test-stack")


class TestGetStack:
    def test_status_and_outputs(self, cfn_client) -> None:
        cfn_client.create_stack(**params())

        assert get_stack_status(cfn_client, "test-stack") == "CREATE_COMPLETE"
        assert get_stack_outputs(cfn_client, "test-stack")["DataBucket"] == "my-test-bucket"

    def test_missing_stack(self, cfn_client) -> None:
        assert get_stack(cfn_client, "nope") is None
        assert get_stack_status(cfn_client, "nope") is None
        assert get_stack_outputs(cfn_client, "nope") == {}


class TestCreateStack:
    """Tests for create_stack."""

    def test_creates_and_returns_stack(self, cfn_client, no_wait) -> None:
        result = create_stack(cfn_client, params(), no_wait)

        assert isinstance(result, Ok)
        assert result.value.status == "CREATE_COMPLETE"
        assert result.value.outputs["DataBucket"] == "my-test-bucket"

    def test_disables_rollback(self, no_wait) -> None:
        cfn = scripted_cfn(description("CREATE_COMPLETE"))

        create_stack(cfn, {"StackName": "test-stack", "TemplateBody": "{}"}, no_wait)

        assert cfn.create_stack.call_args.kwargs["DisableRollback"] is True

    def test_api_rejection(self, no_wait) -> None:
        cfn = MagicMock()
        cfn.create_stack.side_effect = client_error(
            "ValidationError", "Template format error", "CreateStack"
        )

        result = create_stack(cfn, {"StackName": "test-stack"}, no_wait)

        assert isinstance(result, Err)
        assert result.error.status == "CREATE_FAILED"
        assert "Template format error" in result.error.reason


class TestUpdateStack:
    """Tests for update_stack."""

    def test_updates(self, cfn_client, no_wait) -> None:
        cfn_client.create_stack(**params())

        result = update_stack(cfn_client, params(bucket="other-bucket"), no_wait)

        assert isinstance(result, Ok)
        stack, changed = result.value
        assert changed is True
        assert stack.status == "UPDATE_COMPLETE"

    def test_no_updates_is_not_an_error(self, cfn_client, no_wait) -> None:
        cfn_client.create_stack(**params())

        result = update_stack(cfn_client, params(), no_wait)

        assert isinstance(result, Ok)
        stack, changed = result.value
        assert changed is False
        assert stack.name == "test-stack"

    def test_api_rejection(self, no_wait) -> None:
        cfn = MagicMock()
        cfn.update_stack.side_effect = client_error(
            "ValidationError", "Parameter X does not match", "UpdateStack"
        )

        result = update_stack(cfn, {"StackName": "test-stack"}, no_wait)

        assert isinstance(result, Err)
        assert result.error.status == "UPDATE_FAILED"
        cfn.describe_stacks.assert_not_called()


class TestWaitForStack:
    """Tests for wait_for_stack status handling."""

    def test_waits_through_in_progress(self) -> None:
        sleeps: list[float] = []
        cfn = scripted_cfn(
            description("CREATE_IN_PROGRESS"),
            description("CREATE_IN_PROGRESS"),
            description("CREATE_COMPLETE"),
        )

        result = wait_for_stack(cfn, "test-stack", PollPolicy(sleep=sleeps.append))

        assert isinstance(result, Ok)
        assert result.value.status == "CREATE_COMPLETE"
        assert sleeps == [5.0, 5.0]

    @pytest.mark.parametrize(
        "status",
        [
            "ROLLBACK_COMPLETE",
            "CREATE_FAILED",
            "UPDATE_FAILED",
            "DELETE_FAILED",
            "UPDATE_ROLLBACK_COMPLETE",
        ],
    )
    def test_failure_statuses(self, status: str, no_wait) -> None:
        cfn = scripted_cfn(
            description("UPDATE_IN_PROGRESS"),
            description(status, StackStatusReason="Resource creation cancelled"),
        )

        result = wait_for_stack(cfn, "test-stack", no_wait)

        assert result == Err(
            StackDeployError("test-stack", status, "Resource creation cancelled")
        )
        assert result.error.details["StackStatus"] == status

    def test_failure_reason_from_events(self, no_wait) -> None:
        cfn = scripted_cfn(description("ROLLBACK_COMPLETE"))
        cfn.describe_stack_events.return_value = {
            "StackEvents": [
                {"ResourceStatus": "CREATE_COMPLETE"},
                {"ResourceStatus": "CREATE_FAILED", "ResourceStatusReason": "Bucket exists"},
            ]
        }

        result = wait_for_stack(cfn, "test-stack", no_wait)

        assert isinstance(result, Err)
        assert result.error.reason == "Bucket exists"

    def test_absent_stack_is_success_without_stack(self, no_wait) -> None:
        cfn = MagicMock()
        cfn.describe_stacks.side_effect = not_found("test-stack")

        assert wait_for_stack(cfn, "test-stack", no_wait) == Ok(None)

    def test_delete_complete_is_success_without_stack(self, no_wait) -> None:
        cfn = scripted_cfn(description("DELETE_IN_PROGRESS"), description("DELETE_COMPLETE"))
        assert wait_for_stack(cfn, "test-stack", no_wait) == Ok(None)

    def test_timeout(self) -> None:
        cfn = MagicMock()
        cfn.describe_stacks.return_value = description("UPDATE_IN_PROGRESS")

        result = wait_for_stack(
            cfn, "test-stack", PollPolicy(interval=5.0, timeout=10.0, sleep=lambda _: None)
        )

        assert isinstance(result, Err)
        assert result.error.status == "TIMEOUT"
        assert cfn.describe_stacks.call_count == 3

    def test_transport_error_propagates(self, no_wait) -> None:
        cfn = MagicMock()
        cfn.describe_stacks.side_effect = client_error("Throttling", "Rate exceeded")

        with pytest.raises(ClientError):
            wait_for_stack(cfn, "test-stack", no_wait)


class TestDeleteStack:
    """Tests for delete_stack."""

    def test_deletes_stack(self, cfn_client, no_wait) -> None:
        cfn_client.create_stack(**params())

        result = delete_stack(cfn_client, "test-stack", no_wait)

        assert result == Ok(None)
        assert stack_exists(cfn_client, "test-stack") is False

    def test_delete_failed(self, no_wait) -> None:
        cfn = scripted_cfn(
            description("DELETE_IN_PROGRESS"),
            description("DELETE_FAILED", StackStatusReason="Bucket not empty"),
        )

        result = delete_stack(cfn, "test-stack", no_wait)

        assert result == Err(StackDeleteError("test-stack", "DELETE_FAILED", "Bucket not empty"))

    def test_api_rejection(self, no_wait) -> None:
        cfn = MagicMock()
        cfn.delete_stack.side_effect = client_error("AccessDenied", "denied", "DeleteStack")

        result = delete_stack(cfn, "test-stack", no_wait)

        assert isinstance(result, Err)
        assert result.error.status == "DELETE_FAILED"
