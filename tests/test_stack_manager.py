"""
Tests for CloudFormation stack management functionality.
"""

import json
from datetime import datetime, timedelta, timezone
from unittest.mock import Mock, patch

import pytest
from botocore.exceptions import ClientError, EndpointConnectionError, NoCredentialsError
from moto import mock_aws

from cloudformation.errors import RemoteError, RemoteFailure
from cloudformation.stack_manager import StackManager, translate_client_error

START = datetime(2024, 1, 1, tzinfo=timezone.utc)

TEMPLATE = {
    "AWSTemplateFormatVersion": "2010-09-09",
    "Parameters": {"Env": {"Type": "String", "Default": "dev"}},
    "Resources": {
        "Topic": {"Type": "AWS::SNS::Topic"},
    },
    "Outputs": {"TopicArn": {"Value": {"Ref": "Topic"}}},
}


def client_error(code: str, message: str, operation: str = "DescribeStacks") -> ClientError:
    """Build a botocore ClientError."""
    return ClientError({"Error": {"Code": code, "Message": message}}, operation)


class TestTranslateClientError:
    """Test classification of API errors."""

    def test_not_found(self) -> None:
        """Test missing stacks."""
        error = translate_client_error(
            client_error("ValidationError", "Stack with id app does not exist"), "app"
        )
        assert error.kind is RemoteFailure.NOT_FOUND
        assert error.stack_name == "app"
        assert "does not exist" in str(error)

    def test_throttled(self) -> None:
        """Test throttling errors."""
        error = translate_client_error(client_error("Throttling", "Rate exceeded"))
        assert error.kind is RemoteFailure.THROTTLED

    def test_no_updates(self) -> None:
        """Test updates with nothing to change."""
        error = translate_client_error(
            client_error("ValidationError", "No updates are to be performed.", "UpdateStack")
        )
        assert error.kind is RemoteFailure.NO_UPDATES

    def test_other(self) -> None:
        """Test everything else is a service failure."""
        error = translate_client_error(client_error("AccessDenied", "not authorized"))
        assert error.kind is RemoteFailure.SERVICE_FAILURE


class TestStackManager:
    """Test CloudFormation stack management."""

    def create_manager(self):
        """Create a test manager with mocked AWS clients."""
        with patch("boto3.Session"):
            manager = StackManager(region="us-east-1")

            # Mock AWS clients
            manager.cloudformation = Mock()

            return manager

    def test_session_arguments(self) -> None:
        """Test region and profile are passed to the boto3 session."""
        with patch("boto3.Session") as session:
            StackManager(region="eu-west-1", profile="ops")

        session.assert_called_once_with(region_name="eu-west-1", profile_name="ops")
        session.return_value.client.assert_called_once_with("cloudformation")

    def test_session_defaults(self) -> None:
        """Test boto3 defaults are used when nothing is given."""
        with patch("boto3.Session") as session:
            StackManager()

        session.assert_called_once_with()

    def test_create_stack(self) -> None:
        """Test create passes all optional arguments."""
        manager = self.create_manager()
        manager.cloudformation.create_stack.return_value = {"StackId": "arn:stack/app-dev/1"}

        stack_id = manager.create_stack(
            "app-dev",
            "{}",
            parameters=[{"ParameterKey": "Env", "ParameterValue": "dev"}],
            capabilities=["CAPABILITY_IAM"],
            role_arn="arn:aws:iam::123456789012:role/cfn",
        )

        assert stack_id == "arn:stack/app-dev/1"
        manager.cloudformation.create_stack.assert_called_once_with(
            StackName="app-dev",
            TemplateBody="{}",
            Parameters=[{"ParameterKey": "Env", "ParameterValue": "dev"}],
            Capabilities=["CAPABILITY_IAM"],
            RoleARN="arn:aws:iam::123456789012:role/cfn",
        )

    def test_create_stack_minimal(self) -> None:
        """Test create without optional arguments."""
        manager = self.create_manager()
        manager.cloudformation.create_stack.return_value = {"StackId": "id"}

        manager.create_stack("app-dev", "{}")

        manager.cloudformation.create_stack.assert_called_once_with(
            StackName="app-dev", TemplateBody="{}"
        )

    def test_create_stack_rejected(self) -> None:
        """Test a rejected create raises RemoteError."""
        manager = self.create_manager()
        manager.cloudformation.create_stack.side_effect = client_error(
            "AlreadyExistsException", "Stack [app-dev] already exists", "CreateStack"
        )

        with pytest.raises(RemoteError) as excinfo:
            manager.create_stack("app-dev", "{}")

        assert excinfo.value.kind is RemoteFailure.SERVICE_FAILURE

    def test_update_stack_no_updates(self) -> None:
        """Test an update with no changes."""
        manager = self.create_manager()
        manager.cloudformation.update_stack.side_effect = client_error(
            "ValidationError", "No updates are to be performed.", "UpdateStack"
        )

        with pytest.raises(RemoteError) as excinfo:
            manager.update_stack("app-dev", "{}", capabilities=["CAPABILITY_IAM"])

        assert excinfo.value.kind is RemoteFailure.NO_UPDATES

    def test_delete_stack(self) -> None:
        """Test delete submits the request."""
        manager = self.create_manager()

        manager.delete_stack("app-dev")

        manager.cloudformation.delete_stack.assert_called_once_with(StackName="app-dev")

    def test_delete_stack_connection_failure(self) -> None:
        """Test connection failures become service failures."""
        manager = self.create_manager()
        error = EndpointConnectionError(endpoint_url="https://cloudformation.us-east-1.amazonaws.com")
        manager.cloudformation.delete_stack.side_effect = error

        with pytest.raises(RemoteError) as excinfo:
            manager.delete_stack("app-dev")

        assert excinfo.value.kind is RemoteFailure.SERVICE_FAILURE
        assert excinfo.value.stack_name == "app-dev"
        assert excinfo.value.__cause__ is error

    def test_describe_events_no_credentials(self) -> None:
        """Test missing credentials are reported as RemoteError."""
        manager = self.create_manager()
        manager.cloudformation.get_paginator.return_value.paginate.side_effect = NoCredentialsError()

        with pytest.raises(RemoteError) as excinfo:
            manager.describe_events("app-dev")

        assert excinfo.value.kind is RemoteFailure.SERVICE_FAILURE
        assert "credentials" in str(excinfo.value)

    def test_describe_events_oldest_first(self) -> None:
        """Test events from all pages are returned oldest first."""
        manager = self.create_manager()

        def api_event(seconds, logical_id, status):
            return {
                "Timestamp": START + timedelta(seconds=seconds),
                "LogicalResourceId": logical_id,
                "ResourceType": "AWS::SNS::Topic",
                "ResourceStatus": status,
            }

        manager.cloudformation.get_paginator.return_value.paginate.return_value = [
            {"StackEvents": [api_event(3, "app-dev", "CREATE_COMPLETE"), api_event(2, "Topic", "CREATE_COMPLETE")]},
            {"StackEvents": [api_event(1, "Topic", "CREATE_IN_PROGRESS"), api_event(0, "app-dev", "CREATE_IN_PROGRESS")]},
        ]

        records = manager.describe_events("app-dev")

        assert [r.timestamp for r in records] == [START + timedelta(seconds=s) for s in range(4)]
        manager.cloudformation.get_paginator.assert_called_once_with("describe_stack_events")

    def test_describe_events_missing_stack(self) -> None:
        """Test events for a missing stack raise NOT_FOUND."""
        manager = self.create_manager()
        manager.cloudformation.get_paginator.return_value.paginate.side_effect = client_error(
            "ValidationError", "Stack [gone] does not exist", "DescribeStackEvents"
        )

        with pytest.raises(RemoteError) as excinfo:
            manager.describe_events("gone")

        assert excinfo.value.kind is RemoteFailure.NOT_FOUND

    def test_get_template_yaml_body(self) -> None:
        """Test YAML template bodies are parsed."""
        manager = self.create_manager()
        manager.cloudformation.get_template.return_value = {
            "TemplateBody": "Resources:\n  Topic:\n    Type: AWS::SNS::Topic\n"
        }

        assert manager.get_template("app") == {"Resources": {"Topic": {"Type": "AWS::SNS::Topic"}}}

    def test_get_template_parsed_body(self) -> None:
        """Test JSON bodies already decoded by botocore are returned as is."""
        manager = self.create_manager()
        manager.cloudformation.get_template.return_value = {"TemplateBody": {"Resources": {}}}

        assert manager.get_template("app") == {"Resources": {}}

    def test_describe_stack(self) -> None:
        """Test describing a stack."""
        manager = self.create_manager()
        manager.cloudformation.describe_stacks.return_value = {
            "Stacks": [{
                "StackName": "app-dev",
                "StackStatus": "UPDATE_COMPLETE",
                "Parameters": [{"ParameterKey": "Env", "ParameterValue": "dev"}],
                "Tags": [{"Key": "Owner", "Value": "ops"}],
                "Capabilities": ["CAPABILITY_IAM"],
                "Outputs": [{"OutputKey": "Url", "OutputValue": "https://example.com"}],
            }]
        }

        description = manager.describe_stack("app-dev")

        assert description.status == "UPDATE_COMPLETE"
        assert description.parameters == [{"ParameterKey": "Env", "ParameterValue": "dev"}]
        assert description.tags == {"Owner": "ops"}
        assert description.capabilities == ["CAPABILITY_IAM"]
        assert manager.get_stack_outputs("app-dev") == {"Url": "https://example.com"}

    def test_get_stack_status_not_exists(self) -> None:
        """Test getting stack status for non-existent stack."""
        manager = self.create_manager()

        manager.cloudformation.describe_stacks.side_effect = ClientError(
            {"Error": {"Message": "Stack does not exist"}}, "DescribeStacks"
        )

        assert manager.get_stack_status("test-stack") is None

    def test_get_stack_status_other_error(self) -> None:
        """Test other errors are not hidden."""
        manager = self.create_manager()
        manager.cloudformation.describe_stacks.side_effect = client_error(
            "AccessDenied", "not authorized"
        )

        with pytest.raises(RemoteError):
            manager.get_stack_status("test-stack")


@mock_aws
class TestStackManagerMoto:
    """Exercise the manager against moto's in-memory CloudFormation."""

    def setup_method(self, method=None) -> None:
        """Provide fake credentials for boto3."""
        self.env = patch.dict("os.environ", {
            "AWS_ACCESS_KEY_ID": "testing",
            "AWS_SECRET_ACCESS_KEY": "testing",
            "AWS_DEFAULT_REGION": "us-east-1",
        })
        self.env.start()

    def teardown_method(self, method=None) -> None:
        """Restore the environment."""
        self.env.stop()

    def test_create_describe_and_events(self) -> None:
        """Test a full create, describe and events round against moto."""
        manager = StackManager(region="us-east-1")

        stack_id = manager.create_stack(
            "app-dev",
            json.dumps(TEMPLATE),
            parameters=[{"ParameterKey": "Env", "ParameterValue": "prod"}],
        )

        assert "app-dev" in stack_id
        assert manager.get_stack_status("app-dev") == "CREATE_COMPLETE"
        assert manager.describe_stack("app-dev").parameters[0]["ParameterValue"] == "prod"
        assert manager.get_template("app-dev")["Resources"] == TEMPLATE["Resources"]

        records = manager.describe_events("app-dev")
        assert records
        assert records == sorted(records, key=lambda r: r.timestamp)
        assert any(
            r.logical_resource_id == "app-dev" and r.resource_status == "CREATE_COMPLETE"
            for r in records
        )

    def test_missing_stack(self) -> None:
        """Test a stack that was never created."""
        manager = StackManager(region="us-east-1")

        assert manager.get_stack_status("nope") is None
        with pytest.raises(RemoteError):
            manager.describe_events("nope")
