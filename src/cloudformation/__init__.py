"""
CloudFormation stack management utilities.
"""

from .diff import StackComparison, compare_stack, diff_snapshots
from .errors import (
    RemoteError,
    RemoteFailure,
    ResolutionError,
    ResolutionFailure,
    StackUtilsError,
    TailError,
    TailFailure,
)
from .events import EventRecord, EventSnapshot, EventTailer, TailState
from .operations import BatchResult, StackOperations
from .resolver import ArtifactTriple, NameResolver, PartialTriple
from .stack_manager import StackDescription, StackManager

__all__ = [
    "ArtifactTriple",
    "BatchResult",
    "EventRecord",
    "EventSnapshot",
    "EventTailer",
    "NameResolver",
    "PartialTriple",
    "RemoteError",
    "RemoteFailure",
    "ResolutionError",
    "ResolutionFailure",
    "StackComparison",
    "StackDescription",
    "StackManager",
    "StackOperations",
    "StackUtilsError",
    "TailError",
    "TailFailure",
    "TailState",
    "compare_stack",
    "diff_snapshots",
]
