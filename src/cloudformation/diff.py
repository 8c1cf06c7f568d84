"""
Snapshot differencing and local-versus-live stack comparison.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence

from .resolver import ArtifactTriple
from .templates import load_parameters, load_template

logger = logging.getLogger(__name__)


def diff_snapshots(previous: Sequence[str], current: Sequence[str]) -> List[str]:
    """
    Lines of ``current`` that do not appear anywhere in ``previous``.

    The order of ``current`` is preserved and each new line is reported
    once, even if it occurs several times in ``current``.
    """
    seen = set(previous)
    delta = []
    for line in current:
        if line in seen:
            continue
        seen.add(line)
        delta.append(line)
    return delta


def canonicalize_document(document: Any) -> str:
    """Render a template document as JSON with stable key ordering."""
    return json.dumps(document, sort_keys=True, indent=2, default=str)


def canonicalize_sections(document: Dict[str, Any]) -> List[str]:
    """One canonical block per top-level template section."""
    return [
        canonicalize_document({key: document[key]})
        for key in sorted(document)
    ]


def canonicalize_parameters(parameters: Optional[Iterable[Dict[str, Any]]]) -> List[str]:
    """
    Render parameters as sorted ``Key=Value`` lines.

    Accepts both params file entries and the ``Parameters`` list of a
    described stack; both use ParameterKey/ParameterValue.
    """
    lines = []
    for parameter in parameters or []:
        key = parameter["ParameterKey"]
        if parameter.get("UsePreviousValue"):
            value = "<previous>"
        else:
            value = parameter.get("ParameterValue", "")
        lines.append(f"{key}={value}")
    return sorted(lines)


@dataclass
class StackComparison:
    """Differences between local artifacts and a live stack."""
    stack_name: str
    template_added: List[str] = field(default_factory=list)
    template_removed: List[str] = field(default_factory=list)
    params_added: List[str] = field(default_factory=list)
    params_removed: List[str] = field(default_factory=list)

    @property
    def has_changes(self) -> bool:
        """Check if local artifacts differ from the live stack."""
        return bool(
            self.template_added
            or self.template_removed
            or self.params_added
            or self.params_removed
        )


def compare_stack(manager: Any, triple: ArtifactTriple) -> StackComparison:
    """
    Compare a resolved triple against the live stack.

    "added" entries exist locally but not in the live stack, "removed"
    entries exist in the live stack but not locally.

    Args:
        manager: StackManager used to fetch the live template and parameters
        triple: Resolved stack, template and params

    Returns:
        StackComparison with the block-level differences
    """
    comparison = StackComparison(stack_name=triple.stack)

    if triple.template:
        local = canonicalize_sections(load_template(triple.template))
        live = canonicalize_sections(manager.get_template(triple.stack))
        comparison.template_added = diff_snapshots(live, local)
        comparison.template_removed = diff_snapshots(local, live)

    local_params = canonicalize_parameters(
        load_parameters(triple.params) if triple.params else []
    )
    live_params = canonicalize_parameters(manager.describe_stack(triple.stack).parameters)
    comparison.params_added = diff_snapshots(live_params, local_params)
    comparison.params_removed = diff_snapshots(local_params, live_params)

    logger.debug(
        f"Compared {triple.stack}: {len(comparison.template_added)} template blocks added, "
        f"{len(comparison.template_removed)} removed"
    )
    return comparison
