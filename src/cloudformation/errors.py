"""
Exceptions raised by stack resolution, remote calls and event tailing.
"""

from enum import Enum
from typing import Optional


class ResolutionFailure(Enum):
    """Why a stack/template/params triple could not be resolved."""
    MISSING_STACK = "missing_stack"
    MISSING_TEMPLATE = "missing_template"
    MISSING_PARAMS = "missing_params"
    AMBIGUOUS = "ambiguous"


class RemoteFailure(Enum):
    """Classification of CloudFormation API failures."""
    NOT_FOUND = "not_found"
    THROTTLED = "throttled"
    SERVICE_FAILURE = "service_failure"
    NO_UPDATES = "no_updates"


class TailFailure(Enum):
    """Why an event tail stopped without a terminal status."""
    FETCH_FAILED = "fetch_failed"


class StackUtilsError(Exception):
    """Base class for all stack-utils errors."""


class ResolutionError(StackUtilsError):
    """A stack, template or params file could not be determined."""

    MESSAGES = {
        ResolutionFailure.MISSING_STACK: "Could not determine stack name",
        ResolutionFailure.MISSING_TEMPLATE: "Template file not found",
        ResolutionFailure.MISSING_PARAMS: "Parameters file not found",
        ResolutionFailure.AMBIGUOUS: "Cannot tell whether argument is a stack, template or params file",
    }

    def __init__(self, kind: ResolutionFailure, name: Optional[str] = None):
        self.kind = kind
        self.name = name
        message = self.MESSAGES[kind]
        if name:
            message = f"{message}: {name}"
        super().__init__(message)


class RemoteError(StackUtilsError):
    """A CloudFormation API call failed."""

    def __init__(self, kind: RemoteFailure, stack_name: Optional[str], message: str):
        self.kind = kind
        self.stack_name = stack_name
        self.message = message
        if stack_name:
            super().__init__(f"{stack_name}: {message}")
        else:
            super().__init__(message)


class TailError(StackUtilsError):
    """Tailing stack events stopped because events could not be fetched."""

    def __init__(self, stack_name: str, kind: TailFailure = TailFailure.FETCH_FAILED):
        self.kind = kind
        self.stack_name = stack_name
        super().__init__(f"Failed to fetch events for stack {stack_name}")
