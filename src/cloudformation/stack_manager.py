"""
CloudFormation stack management operations.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from .errors import RemoteError, RemoteFailure
from .events import EventRecord
from .templates import parse_template

logger = logging.getLogger(__name__)

THROTTLING_CODES = ("Throttling", "ThrottlingException", "RequestLimitExceeded")


def translate_client_error(error: ClientError, stack_name: Optional[str] = None) -> RemoteError:
    """Classify a botocore ClientError as a RemoteError."""
    code = error.response.get("Error", {}).get("Code", "")
    message = error.response.get("Error", {}).get("Message", str(error))

    if "does not exist" in message:
        kind = RemoteFailure.NOT_FOUND
    elif code in THROTTLING_CODES:
        kind = RemoteFailure.THROTTLED
    elif "No updates are to be performed" in message:
        kind = RemoteFailure.NO_UPDATES
    else:
        kind = RemoteFailure.SERVICE_FAILURE

    return RemoteError(kind, stack_name, message)


def translate_botocore_error(error: BotoCoreError, stack_name: Optional[str] = None) -> RemoteError:
    """Classify a client-side botocore error (credentials, connection, timeout)."""
    return RemoteError(RemoteFailure.SERVICE_FAILURE, stack_name, str(error))


@dataclass
class StackDescription:
    """The parts of a described stack the tools care about."""
    name: str
    status: str
    parameters: List[Dict[str, Any]] = field(default_factory=list)
    tags: Dict[str, str] = field(default_factory=dict)
    capabilities: List[str] = field(default_factory=list)
    outputs: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_api(cls, stack: Dict[str, Any]) -> "StackDescription":
        """Build a description from a describe_stacks entry."""
        return cls(
            name=stack["StackName"],
            status=stack["StackStatus"],
            parameters=list(stack.get("Parameters", [])),
            tags={tag["Key"]: tag["Value"] for tag in stack.get("Tags", [])},
            capabilities=list(stack.get("Capabilities", [])),
            outputs={
                output["OutputKey"]: output["OutputValue"]
                for output in stack.get("Outputs", [])
            },
        )


class StackManager:
    """Manage CloudFormation stack operations."""

    def __init__(self, region: Optional[str] = None, profile: Optional[str] = None):
        """
        Initialize stack manager.

        Args:
            region: AWS region (boto3 default chain when omitted)
            profile: AWS profile to use
        """
        self.region = region
        self.profile = profile

        session_args = {}
        if region:
            session_args["region_name"] = region
        if profile:
            session_args["profile_name"] = profile

        session = boto3.Session(**session_args)
        self.cloudformation = session.client("cloudformation")

    def create_stack(
        self,
        stack_name: str,
        template_body: str,
        parameters: Optional[List[Dict[str, Any]]] = None,
        capabilities: Optional[List[str]] = None,
        role_arn: Optional[str] = None,
    ) -> str:
        """
        Submit a stack creation.

        Returns:
            The new stack's id

        Raises:
            RemoteError: The request was rejected
        """
        params: Dict[str, Any] = {
            "StackName": stack_name,
            "TemplateBody": template_body,
        }
        if parameters:
            params["Parameters"] = parameters
        if capabilities:
            params["Capabilities"] = capabilities
        if role_arn:
            params["RoleARN"] = role_arn

        logger.info(f"Creating stack {stack_name}")
        try:
            response = self.cloudformation.create_stack(**params)
        except ClientError as e:
            raise translate_client_error(e, stack_name) from e
        except BotoCoreError as e:
            raise translate_botocore_error(e, stack_name) from e
        return str(response["StackId"])

    def update_stack(
        self,
        stack_name: str,
        template_body: str,
        parameters: Optional[List[Dict[str, Any]]] = None,
        capabilities: Optional[List[str]] = None,
    ) -> str:
        """
        Submit a stack update.

        Returns:
            The stack's id

        Raises:
            RemoteError: The request was rejected, including NO_UPDATES
                when the template and parameters are unchanged
        """
        params: Dict[str, Any] = {
            "StackName": stack_name,
            "TemplateBody": template_body,
        }
        if parameters:
            params["Parameters"] = parameters
        if capabilities:
            params["Capabilities"] = capabilities

        logger.info(f"Updating stack {stack_name}")
        try:
            response = self.cloudformation.update_stack(**params)
        except ClientError as e:
            raise translate_client_error(e, stack_name) from e
        except BotoCoreError as e:
            raise translate_botocore_error(e, stack_name) from e
        return str(response["StackId"])

    def delete_stack(self, stack_name: str) -> None:
        """Submit a stack deletion."""
        logger.info(f"Deleting stack {stack_name}")
        try:
            self.cloudformation.delete_stack(StackName=stack_name)
        except ClientError as e:
            raise translate_client_error(e, stack_name) from e
        except BotoCoreError as e:
            raise translate_botocore_error(e, stack_name) from e

    def describe_events(self, stack_name: str) -> List[EventRecord]:
        """
        Get the full event history of a stack, oldest first.

        Raises:
            RemoteError: NOT_FOUND once the stack is gone, or any other failure
        """
        records = []
        try:
            paginator = self.cloudformation.get_paginator("describe_stack_events")
            for page in paginator.paginate(StackName=stack_name):
                for event in page["StackEvents"]:
                    records.append(EventRecord.from_api(event))
        except ClientError as e:
            raise translate_client_error(e, stack_name) from e
        except BotoCoreError as e:
            raise translate_botocore_error(e, stack_name) from e

        # The API returns newest first
        records.reverse()
        return sorted(records, key=lambda record: record.timestamp)

    def get_template(self, stack_name: str) -> Dict[str, Any]:
        """Get the live template of a stack as a parsed document."""
        try:
            response = self.cloudformation.get_template(StackName=stack_name)
        except ClientError as e:
            raise translate_client_error(e, stack_name) from e
        except BotoCoreError as e:
            raise translate_botocore_error(e, stack_name) from e

        body = response["TemplateBody"]
        if isinstance(body, str):
            return parse_template(body)
        return dict(body)

    def describe_stack(self, stack_name: str) -> StackDescription:
        """Describe a single stack."""
        try:
            response = self.cloudformation.describe_stacks(StackName=stack_name)
        except ClientError as e:
            raise translate_client_error(e, stack_name) from e
        except BotoCoreError as e:
            raise translate_botocore_error(e, stack_name) from e

        if not response["Stacks"]:
            raise RemoteError(RemoteFailure.NOT_FOUND, stack_name, "Stack does not exist")
        return StackDescription.from_api(response["Stacks"][0])

    def get_stack_status(self, stack_name: str) -> Optional[str]:
        """Get current stack status, or None if the stack does not exist."""
        try:
            return self.describe_stack(stack_name).status
        except RemoteError as e:
            if e.kind is RemoteFailure.NOT_FOUND:
                return None
            raise

    def get_stack_outputs(self, stack_name: str) -> Dict[str, str]:
        """Get outputs from a CloudFormation stack."""
        return self.describe_stack(stack_name).outputs
