"""
CloudFormation stack events and live event tailing.

The CloudFormation API only returns the full event history of a stack,
so the tailer re-fetches it on every poll and prints the lines it has
not seen before.
"""

import logging
import time
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional

from botocore.exceptions import BotoCoreError

from .diff import diff_snapshots
from .errors import RemoteError, TailError

logger = logging.getLogger(__name__)

TERMINAL_SUFFIXES = ("_COMPLETE", "_FAILED")
TRANSITIONAL_SUFFIX = "_IN_PROGRESS"


def is_terminal_status(status: str) -> bool:
    """Check if a resource status marks the end of an operation."""
    return status.endswith(TERMINAL_SUFFIXES)


def is_transitional_status(status: str) -> bool:
    """Check if a resource status marks an operation still running."""
    return status.endswith(TRANSITIONAL_SUFFIX)


def is_failure_outcome(status: Optional[str]) -> bool:
    """Check if a terminal stack status means the operation did not succeed."""
    if not status:
        return True
    return status.endswith("_FAILED") or "ROLLBACK" in status


@dataclass(frozen=True)
class EventRecord:
    """A single CloudFormation stack event."""
    timestamp: datetime
    logical_resource_id: str
    resource_type: str
    resource_status: str
    physical_resource_id: Optional[str] = None
    status_reason: Optional[str] = None

    @classmethod
    def from_api(cls, event: Dict[str, Any]) -> "EventRecord":
        """Build a record from a describe_stack_events entry."""
        return cls(
            timestamp=event["Timestamp"],
            logical_resource_id=event["LogicalResourceId"],
            resource_type=event["ResourceType"],
            resource_status=event["ResourceStatus"],
            physical_resource_id=event.get("PhysicalResourceId"),
            status_reason=event.get("ResourceStatusReason"),
        )

    def render(self) -> str:
        """Render the event as one tab-separated line."""
        fields = [
            self.timestamp.isoformat(),
            self.resource_status,
            self.resource_type,
            self.logical_resource_id,
        ]
        if self.status_reason:
            fields.append(self.status_reason)
        return "\t".join(fields)

    def belongs_to_stack(self, stack_name: str) -> bool:
        """Check if this event is about the stack itself rather than a resource."""
        return stack_name in (self.logical_resource_id, self.physical_resource_id)


class EventSnapshot:
    """The full ordered event history of a stack as of one poll."""

    def __init__(self, records: Iterable[EventRecord]):
        # sorted() is stable, so ties keep the service's order
        self.records: List[EventRecord] = sorted(records, key=lambda r: r.timestamp)
        self.lines: List[str] = [record.render() for record in self.records]

    def __len__(self) -> int:
        return len(self.records)

    def __bool__(self) -> bool:
        return bool(self.records)

    @property
    def body(self) -> List[str]:
        """All lines except the last."""
        return self.lines[:-1]

    @property
    def final_line(self) -> Optional[str]:
        return self.lines[-1] if self.lines else None

    @property
    def final_record(self) -> Optional[EventRecord]:
        return self.records[-1] if self.records else None


class TailState(Enum):
    """States of an EventTailer."""
    POLLING = "polling"
    DONE = "done"


class EventTailer:
    """Poll a stack's events and yield only the lines not yet seen."""

    def __init__(
        self,
        fetch_events: Callable[[str], List[EventRecord]],
        stack_name: str,
        poll_interval: float = 1.0,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Initialize tailer.

        Args:
            fetch_events: Returns the full event history of a stack,
                raising RemoteError on failure
            stack_name: Stack to watch
            poll_interval: Seconds between polls
            sleep: Sleep function, replaceable in tests
        """
        self.fetch_events = fetch_events
        self.stack_name = stack_name
        self.poll_interval = poll_interval
        self._sleep = sleep
        self.state = TailState.POLLING
        self.outcome: Optional[str] = None
        self.polls = 0
        self._started = False

    def is_terminal(self, record: Optional[EventRecord]) -> bool:
        """Check if a record is the stack itself reaching a terminal status."""
        if record is None:
            return False
        return record.belongs_to_stack(self.stack_name) and is_terminal_status(
            record.resource_status
        )

    def fetch_snapshot(self) -> EventSnapshot:
        """Fetch the current event history of the stack."""
        self.polls += 1
        return EventSnapshot(self.fetch_events(self.stack_name))

    def tail(self) -> Iterator[str]:
        """
        Yield rendered event lines as they appear.

        The first non-empty poll yields every line but the last; later
        polls yield only lines not present in the previous poll. The
        last line of each poll is held back until it is the stack's own
        terminal event, which is yielded before the generator finishes.
        The terminal status is then available as ``outcome``.

        Raises:
            TailError: Events could not be fetched
            RuntimeError: The tailer was already started
        """
        if self._started:
            raise RuntimeError(f"Tail of {self.stack_name} has already been started")
        self._started = True

        previous: Optional[List[str]] = None

        while self.state is TailState.POLLING:
            try:
                snapshot = self.fetch_snapshot()
            except (RemoteError, BotoCoreError) as e:
                self.state = TailState.DONE
                logger.debug(f"Stopped tailing {self.stack_name}: {e}")
                raise TailError(self.stack_name) from e

            if not snapshot:
                self._sleep(self.poll_interval)
                continue

            body = snapshot.body
            if previous is None:
                yield from body
            elif body != previous:
                yield from diff_snapshots(previous, body)
            previous = body

            final = snapshot.final_record
            if self.is_terminal(final):
                self.state = TailState.DONE
                self.outcome = final.resource_status
                logger.info(f"Stack {self.stack_name} reached {self.outcome}")
                yield snapshot.final_line
                return

            self._sleep(self.poll_interval)
