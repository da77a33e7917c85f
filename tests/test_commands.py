"""Tests for the CLI commands (click CliRunner)."""

import json
from pathlib import Path
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from cf_utils import __version__
from cf_utils.commands.deploy import confirm_change_set
from cf_utils.lib.errors import StackDeleteError, TemplateNotFoundError
from cf_utils.lib.result import Err, Ok
from cf_utils.main import cli
from cf_utils.models import Stack, StackAction, UpsertOutcome

STACK = Stack(
    name="app",
    stack_id="id",
    status="CREATE_COMPLETE",
    outputs={"ApiUrl": "https://api.example.com", "DataBucket": "app-data"},
)

TEMPLATE = """
AWSTemplateFormatVersion: '2010-09-09'
Resources:
  Topic:
    Type: AWS::SNS::Topic
Outputs:
  TopicArn:
    Value: !Ref Topic
"""


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


class TestMain:
    def test_version(self, runner) -> None:
        result = runner.invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_lists_commands(self, runner) -> None:
        result = runner.invoke(cli, ["--help"])
        for name in ("deploy", "destroy", "outputs", "empty-bucket", "upload", "params", "logs"):
            assert name in result.output


class TestDeploy:
    """Tests for the deploy command."""

    def test_created(self, runner) -> None:
        with patch(
            "cf_utils.commands.deploy.upsert_stack",
            return_value=Ok(UpsertOutcome(StackAction.CREATED, STACK)),
        ) as upsert:
            result = runner.invoke(cli, ["deploy", "app", "t.yaml", "-P", "Stage=dev"])

        assert result.exit_code == 0, result.output
        assert "Stack 'app' created." in result.output
        assert "ApiUrl: https://api.example.com" in result.output
        request = upsert.call_args.args[1]
        assert request.parameters == (("Stage", "dev"),)
        assert upsert.call_args.kwargs["reviewer"] is None

    def test_options(self, runner) -> None:
        with patch(
            "cf_utils.commands.deploy.upsert_stack",
            return_value=Ok(UpsertOutcome(StackAction.UNCHANGED, None)),
        ) as upsert:
            result = runner.invoke(
                cli,
                [
                    "deploy",
                    "app",
                    "t.yaml",
                    "--review",
                    "--s3-bucket",
                    "artifacts",
                    "--s3-prefix",
                    "templates/",
                    "--no-transforms",
                    "--timeout",
                    "600",
                ],
            )

        assert result.exit_code == 0, result.output
        assert "up to date" in result.output
        request = upsert.call_args.args[1]
        assert request.options.review is True
        assert request.options.s3_bucket == "artifacts"
        assert request.options.s3_prefix == "templates/"
        assert request.options.contains_transforms is False
        assert upsert.call_args.kwargs["reviewer"] is confirm_change_set
        assert upsert.call_args.kwargs["policy"].timeout == 600.0

    def test_json_output(self, runner) -> None:
        with patch(
            "cf_utils.commands.deploy.upsert_stack",
            return_value=Ok(UpsertOutcome(StackAction.UPDATED, STACK)),
        ):
            result = runner.invoke(cli, ["deploy", "app", "t.yaml", "--json"])

        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["action"] == "updated"
        assert data["outputs"]["ApiUrl"] == "https://api.example.com"

    def test_invalid_parameter(self, runner) -> None:
        result = runner.invoke(cli, ["deploy", "app", "t.yaml", "-P", "Stage"])

        assert result.exit_code == 2
        assert "KEY=VALUE" in result.output

    def test_error_exits_1(self, runner) -> None:
        with patch(
            "cf_utils.commands.deploy.upsert_stack",
            return_value=Err(TemplateNotFoundError(Path("t.yaml"))),
        ):
            result = runner.invoke(cli, ["deploy", "app", "t.yaml"])

        assert result.exit_code == 1
        assert "Template 't.yaml' does not exist!" in result.output


class TestConfirmChangeSet:
    def test_shows_changes_and_asks(self, capsys) -> None:
        change_set = {
            "ChangeSetName": "cf-utils-app-preview",
            "Changes": [
                {
                    "ResourceChange": {
                        "Action": "Modify",
                        "LogicalResourceId": "Topic",
                        "ResourceType": "AWS::SNS::Topic",
                        "Replacement": "True",
                    }
                }
            ],
        }

        with patch("cf_utils.commands.deploy.click.confirm", return_value=False) as confirm:
            approved = confirm_change_set(change_set)

        assert approved is False
        confirm.assert_called_once()
        out = capsys.readouterr().out
        assert "Topic (AWS::SNS::Topic)" in out
        assert "[replacement: True]" in out


class TestDestroy:
    def test_confirmed(self, runner) -> None:
        with patch("cf_utils.commands.destroy.delete_stack", return_value=Ok(None)) as delete:
            result = runner.invoke(cli, ["destroy", "app", "--yes", "--max-workers", "4"])

        assert result.exit_code == 0, result.output
        assert "deleted successfully" in result.output
        assert delete.call_args.kwargs["max_workers"] == 4
        assert delete.call_args.kwargs["policy"].timeout is None

    def test_aborted(self, runner) -> None:
        with patch("cf_utils.commands.destroy.delete_stack") as delete:
            result = runner.invoke(cli, ["destroy", "app"], input="n\n")

        assert "Aborted." in result.output
        delete.assert_not_called()

    def test_failure(self, runner) -> None:
        error = StackDeleteError("app", "DELETE_FAILED", "Bucket not empty")
        with patch("cf_utils.commands.destroy.delete_stack", return_value=Err(error)):
            result = runner.invoke(cli, ["destroy", "app", "--yes"])

        assert result.exit_code == 1
        assert "Bucket not empty" in result.output


class TestAwsCommands:
    """Commands run end to end against moto."""

    def test_outputs(self, runner, mock_aws_context) -> None:
        mock_aws_context.cfn.create_stack(StackName="app", TemplateBody=TEMPLATE)

        result = runner.invoke(cli, ["outputs", "app", "--json"])

        assert result.exit_code == 0, result.output
        assert "TopicArn" in json.loads(result.output)

    def test_outputs_missing_stack(self, runner, mock_aws_context) -> None:
        result = runner.invoke(cli, ["outputs", "nope"])

        assert result.exit_code == 1
        assert "Stack 'nope' does not exist." in result.output

    def test_params_roundtrip(self, runner, mock_aws_context) -> None:
        put = runner.invoke(cli, ["params", "put", "db-url", "postgres://x", "--stage", "dev"])
        assert put.exit_code == 0, put.output
        assert "dev-us-east-1-db-url" in put.output

        get = runner.invoke(cli, ["params", "get", "dev-us-east-1-db-url"])
        assert get.exit_code == 0, get.output
        assert get.output.strip() == "postgres://x"

        delete = runner.invoke(cli, ["params", "delete", "db-url", "--stage", "dev"])
        assert delete.exit_code == 0, delete.output

        missing = runner.invoke(cli, ["params", "get", "db-url", "--stage", "dev"])
        assert missing.exit_code == 1
        assert "Parameter not found" in missing.output

    def test_logs_delete(self, runner, mock_aws_context) -> None:
        mock_aws_context.logs.create_log_group(logGroupName="/aws/lambda/app-api")

        result = runner.invoke(cli, ["logs", "delete", "/aws/lambda/app-", "--yes"])

        assert result.exit_code == 0, result.output
        assert "/aws/lambda/app-api" in result.output
        assert "Deleted 1 log group(s)." in result.output

    def test_empty_bucket(self, runner, mock_aws_context) -> None:
        mock_aws_context.s3.create_bucket(Bucket="data")
        mock_aws_context.s3.put_object(Bucket="data", Key="a.txt", Body=b"a")

        result = runner.invoke(cli, ["empty-bucket", "data", "--yes"])

        assert result.exit_code == 0, result.output
        assert "(1 deleted)" in result.output

    def test_upload(self, runner, mock_aws_context, tmp_path: Path) -> None:
        mock_aws_context.s3.create_bucket(Bucket="site")
        (tmp_path / "index.html").write_text("<html/>")

        result = runner.invoke(cli, ["upload", "site", str(tmp_path), "--prefix", "v1"])

        assert result.exit_code == 0, result.output
        assert "Uploaded 1 file(s)" in result.output
        assert mock_aws_context.s3.head_object(Bucket="site", Key="v1/index.html")

    def test_upload_empty_directory(self, runner, mock_aws_context, tmp_path: Path) -> None:
        result = runner.invoke(cli, ["upload", "site", str(tmp_path)])

        assert result.exit_code == 1
        assert "is empty or does not exist" in result.output
