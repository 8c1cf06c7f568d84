"""
Resolve a stack name, template file and parameters file from each other.

Given any one of the three, the other two are derived from the naming
convention in naming.StackNaming by probing the working directory and
its params/ subdirectory.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence, Union

from naming import ArgumentKind, StackNaming

from .errors import ResolutionError, ResolutionFailure

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PartialTriple:
    """Whatever the caller knows about a stack before resolution."""
    stack: Optional[str] = None
    template: Optional[str] = None
    params: Optional[str] = None


@dataclass(frozen=True)
class ArtifactTriple:
    """A fully resolved stack name with its template and params paths."""
    stack: str
    template: Optional[str] = None
    params: Optional[str] = None


class NameResolver:
    """Fill in unknown stack, template and params names by convention."""

    def __init__(
        self,
        root: Optional[Union[str, Path]] = None,
        params_dir: str = "params",
    ):
        """
        Initialize resolver.

        Args:
            root: Directory to resolve relative paths against (default: cwd)
            params_dir: Name of the sibling directory holding params files
        """
        self.root = Path(root) if root else Path.cwd()
        self.params_dir = params_dir

    def search_dirs(self) -> List[Path]:
        """Directories probed for templates and params files, in order."""
        if self.root.name == self.params_dir:
            return [self.root, self.root.parent]
        return [self.root, self.root / self.params_dir]

    def _relative(self, path: Path) -> str:
        return os.path.relpath(path, self.root)

    def _exists(self, path: str) -> bool:
        candidate = Path(path)
        if not candidate.is_absolute():
            candidate = self.root / candidate
        return candidate.is_file()

    def _find(self, filename: str) -> Optional[str]:
        for directory in self.search_dirs():
            path = directory / filename
            if path.is_file():
                return self._relative(path)
        return None

    def _find_template(self, stem: str) -> Optional[str]:
        for directory in self.search_dirs():
            for extension in StackNaming.TEMPLATE_EXTENSIONS:
                path = directory / f"{stem}.{extension}"
                if path.is_file():
                    return self._relative(path)
        return None

    def template_for_stack(self, stack_name: str) -> Optional[str]:
        """Find a template for a stack, stripping -suffix tokens until one exists."""
        for stem in StackNaming.truncations(stack_name):
            template = self._find_template(stem)
            if template:
                logger.debug(f"Resolved template {template} for stack {stack_name}")
                return template
        logger.debug(f"No template found for stack {stack_name}")
        return None

    def template_for_params(self, params_path: str) -> Optional[str]:
        """Find the template a params file belongs to."""
        slug = StackNaming.template_slug_from_params(params_path)
        if not slug:
            return None
        template = self._find_template(slug)
        if template:
            logger.debug(f"Resolved template {template} for params {params_path}")
        return template

    def params_for(self, template_path: str, stack_name: Optional[str] = None) -> Optional[str]:
        """
        Find the params file for a template, optionally for a specific stack.

        A stack name that extends the template slug selects the
        ``<slug>-params-<suffix>.json`` file; otherwise ``<slug>-params.json``
        is looked for. A missing params file is not an error.
        """
        slug = StackNaming.slug(template_path)
        suffix = ""
        if stack_name and stack_name != slug:
            suffix = StackNaming.stack_suffix(stack_name, slug)
        params = self._find(StackNaming.params_filename(slug, suffix))
        if params:
            logger.debug(f"Resolved params {params} for template {template_path}")
        return params

    def resolve(self, known: PartialTriple, require_template: bool = True) -> ArtifactTriple:
        """
        Resolve a partial triple into a full one.

        Args:
            known: The stack, template and params the caller supplied
            require_template: Fail if no existing template can be found

        Returns:
            The resolved triple. ``params`` is None when no params file
            was given or found.

        Raises:
            ResolutionError: Stack, template or explicit params file missing,
                checked in that order
        """
        stack, template, params = known.stack, known.template, known.params

        if not stack:
            if params:
                stack = StackNaming.stack_from_params(params)
            elif template:
                stack = StackNaming.slug(template)

        if not template:
            if params:
                template = self.template_for_params(params)
            elif stack:
                template = self.template_for_stack(stack)

        if not params and template:
            params = self.params_for(template, stack)

        if not stack:
            raise ResolutionError(ResolutionFailure.MISSING_STACK)
        if require_template and (not template or not self._exists(template)):
            raise ResolutionError(ResolutionFailure.MISSING_TEMPLATE, template or stack)
        if known.params and not self._exists(known.params):
            raise ResolutionError(ResolutionFailure.MISSING_PARAMS, known.params)

        return ArtifactTriple(stack=stack, template=template, params=params)

    def resolve_args(self, args: Sequence[str], require_template: bool = True) -> ArtifactTriple:
        """
        Resolve positional command-line arguments.

        A single argument is classified as a stack, template or params
        file. Two or three arguments are taken as ``stack template [params]``.
        """
        if not args:
            raise ResolutionError(ResolutionFailure.MISSING_STACK)
        if len(args) > 3:
            raise ResolutionError(ResolutionFailure.AMBIGUOUS, " ".join(args))

        if len(args) == 1:
            token = args[0]
            kind = StackNaming.classify(token)
            if kind is ArgumentKind.STACK:
                known = PartialTriple(stack=token)
            elif kind is ArgumentKind.TEMPLATE:
                known = PartialTriple(template=token)
            elif kind is ArgumentKind.PARAMS:
                known = PartialTriple(params=token)
            else:
                raise ResolutionError(ResolutionFailure.AMBIGUOUS, token)
        else:
            known = PartialTriple(
                stack=args[0],
                template=args[1],
                params=args[2] if len(args) > 2 else None,
            )

        return self.resolve(known, require_template=require_template)
