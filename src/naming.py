"""
Naming convention utilities for stacks, templates and parameter files.

The convention ties the three artifacts of a stack together by name:

    stack:      <token>-<env>           e.g. mywebsite-test
    template:   <token>.<ext>           e.g. mywebsite.yml
    params:     <token>-params-<env>.json  e.g. mywebsite-params-test.json

This module holds the pure string side of the convention. Filesystem
probing lives in cloudformation.resolver.
"""

import re
from enum import Enum
from pathlib import PurePath
from typing import List, Tuple


class ArgumentKind(Enum):
    """What a single positional argument refers to."""
    STACK = "stack"
    TEMPLATE = "template"
    PARAMS = "params"
    AMBIGUOUS = "ambiguous"


class StackNaming:
    """String helpers for the stack/template/params naming convention."""

    # Search order matters: the first existing extension wins
    TEMPLATE_EXTENSIONS: Tuple[str, ...] = ("json", "yml", "yaml")

    PARAMS_MARKER = "-params"

    # "-params-" anywhere, or "-params" right before the extension
    PARAMS_PATTERN = re.compile(r"-params(-|\.[^./]+$)")

    @staticmethod
    def basename(path: str) -> str:
        """Strip the directory part of a path."""
        return PurePath(path).name

    @staticmethod
    def strip_extension(name: str) -> str:
        """Drop the final extension, if any."""
        if "." not in name:
            return name
        return name.rsplit(".", 1)[0]

    @staticmethod
    def extension(name: str) -> str:
        """Return the final extension without the dot, lowercased."""
        if "." not in name:
            return ""
        return name.rsplit(".", 1)[1].lower()

    @classmethod
    def slug(cls, path: str) -> str:
        """Basename of a path without its extension."""
        return cls.strip_extension(cls.basename(path))

    @classmethod
    def strip_params_suffix(cls, name: str) -> str:
        """Remove a trailing ``-params`` token."""
        if name.endswith(cls.PARAMS_MARKER):
            return name[: -len(cls.PARAMS_MARKER)]
        return name

    @classmethod
    def template_slug_from_params(cls, path: str) -> str:
        """
        Derive the template slug from a params file path.

        Everything from ``-params`` onward is removed, so both
        ``vpc-params.json`` and ``vpc-params-prod.json`` give ``vpc``.
        """
        name = cls.basename(path)
        index = name.find(cls.PARAMS_MARKER)
        if index == -1:
            return cls.strip_extension(name)
        return name[:index]

    @classmethod
    def stack_from_params(cls, path: str) -> str:
        """
        Derive a stack name from a params file path.

        The ``.json`` extension and the ``-params`` token are removed:
        ``mywebsite-params-test.json`` gives ``mywebsite-test`` and
        ``vpc-params.json`` gives ``vpc``.
        """
        name = cls.basename(path)
        if name.endswith(".json"):
            name = name[: -len(".json")]
        name = cls.strip_params_suffix(name)
        return name.replace(f"{cls.PARAMS_MARKER}-", "-", 1)

    @staticmethod
    def truncations(stack_name: str) -> List[str]:
        """
        Candidate template stems for a stack name.

        The full name comes first, then the name with its last
        ``-<suffix>`` removed, repeatedly, until no dash remains.
        A name with k dash-separated segments yields exactly k stems.
        """
        candidates = [stack_name]
        candidate = stack_name
        while "-" in candidate:
            candidate = candidate.rsplit("-", 1)[0]
            candidates.append(candidate)
        return candidates

    @staticmethod
    def stack_suffix(stack_name: str, template_slug: str) -> str:
        """
        Part of the stack name beyond the template slug.

        ``stack_suffix("mywebsite-test", "mywebsite")`` is ``test``. When
        the slug is not a prefix the whole stack name is returned.
        """
        prefix = f"{template_slug}-"
        if stack_name.startswith(prefix):
            return stack_name[len(prefix):]
        return stack_name

    @classmethod
    def params_filename(cls, template_slug: str, suffix: str = "") -> str:
        """Conventional params filename for a template slug and env suffix."""
        if suffix:
            return f"{template_slug}{cls.PARAMS_MARKER}-{suffix}.json"
        return f"{template_slug}{cls.PARAMS_MARKER}.json"

    @classmethod
    def is_params_name(cls, token: str) -> bool:
        """Check whether a token carries the params marker."""
        return bool(cls.PARAMS_PATTERN.search(cls.basename(token)))

    @classmethod
    def classify(cls, token: str) -> ArgumentKind:
        """
        Classify a single positional argument.

        Rules are applied in order: params marker, bare name, template
        extension. Anything else is ambiguous and needs an explicit
        ``stack template [params]`` argument list.
        """
        if cls.is_params_name(token):
            return ArgumentKind.PARAMS
        if "." not in token:
            return ArgumentKind.STACK
        if cls.extension(token) in cls.TEMPLATE_EXTENSIONS:
            return ArgumentKind.TEMPLATE
        return ArgumentKind.AMBIGUOUS


def classify(token: str) -> ArgumentKind:
    """Classify a positional argument as stack, template or params."""
    return StackNaming.classify(token)
