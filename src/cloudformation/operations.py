"""
Stack operations driven by resolved artifact triples.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from botocore.exceptions import BotoCoreError

from .errors import StackUtilsError
from .events import EventTailer
from .resolver import ArtifactTriple
from .stack_manager import StackManager, translate_botocore_error
from .templates import load_parameters, load_template_body

logger = logging.getLogger(__name__)


@dataclass
class BatchResult:
    """Outcome of an operation applied to several stacks."""
    succeeded: List[str] = field(default_factory=list)
    failed: Dict[str, StackUtilsError] = field(default_factory=dict)

    @property
    def success(self) -> bool:
        """Check if every stack succeeded."""
        return not self.failed


class StackOperations:
    """Create, update, delete and tail stacks."""

    def __init__(self, manager: StackManager, poll_interval: float = 1.0):
        self.manager = manager
        self.poll_interval = poll_interval

    def _parameters(self, triple: ArtifactTriple) -> Optional[List[Dict]]:
        if not triple.params:
            return None
        return load_parameters(triple.params)

    def create(
        self,
        triple: ArtifactTriple,
        capabilities: Optional[Sequence[str]] = None,
        role_arn: Optional[str] = None,
    ) -> str:
        """Submit creation of the stack described by a triple."""
        return self.manager.create_stack(
            triple.stack,
            load_template_body(triple.template),
            parameters=self._parameters(triple),
            capabilities=list(capabilities) if capabilities else None,
            role_arn=role_arn,
        )

    def update(
        self,
        triple: ArtifactTriple,
        capabilities: Optional[Sequence[str]] = None,
    ) -> str:
        """Submit an update of the stack described by a triple."""
        return self.manager.update_stack(
            triple.stack,
            load_template_body(triple.template),
            parameters=self._parameters(triple),
            capabilities=list(capabilities) if capabilities else None,
        )

    def delete(self, stack_names: Sequence[str]) -> BatchResult:
        """
        Submit deletion of several stacks.

        A failure for one stack is recorded and the rest are still deleted.
        """
        result = BatchResult()
        for stack_name in stack_names:
            try:
                self.manager.delete_stack(stack_name)
            except StackUtilsError as e:
                logger.warning(f"Failed to delete {stack_name}: {e}")
                result.failed[stack_name] = e
            except BotoCoreError as e:
                logger.warning(f"Failed to delete {stack_name}: {e}")
                result.failed[stack_name] = translate_botocore_error(e, stack_name)
            else:
                result.succeeded.append(stack_name)
        return result

    def tail(self, stack_name: str) -> EventTailer:
        """Create a tailer for a stack's events."""
        return EventTailer(
            self.manager.describe_events,
            stack_name,
            poll_interval=self.poll_interval,
        )
