"""Mutable state threaded through one validation run.

:class:`ValidationContext` collects issues, answers "is this rule on?" for
the active :class:`~specval.options.Options`, follows references through
the :class:`~specval.parser.resolver.ReferenceResolver` and records which
components are reachable from the document root.

Usage is tracked as edges between *owners*: the document root (``None``)
or a component. Every reference followed while walking an owner adds an
edge to the component it lands on; :meth:`ValidationContext.reachable`
then walks those edges from the root, so a schema that is only used by an
unused response is itself unused.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from contextlib import contextmanager
from typing import Any, Iterator, Optional, Sequence

from specval.exceptions import (
    CyclicReference,
    ExternalReference,
    MalformedReference,
    ResolutionError,
    UnresolvedReference,
)
from specval.models import ComponentKind
from specval.options import Options
from specval.parser.resolver import ComponentPointer, ReferenceResolver
from specval.validation.issues import IssueKind, Segment, ValidationIssue

logger = logging.getLogger(__name__)

Path = tuple[Segment, ...]


class ValidationContext:
    """Issue sink, option lookup and reference bookkeeping for one run.

    Args:
        document: The document under validation.
        options: Active opt-out flags.
    """

    def __init__(self, document: Any, options: Options = Options.NONE) -> None:
        self.document = document
        self.options = options
        self.resolver = ReferenceResolver.for_document(document)
        self.issues: list[ValidationIssue] = []
        self.owner: Optional[ComponentPointer] = None
        self.edges: dict[Optional[ComponentPointer], set[ComponentPointer]] = defaultdict(set)
        self.used_tags: set[str] = set()
        self._reported_cycles: set[frozenset[str]] = set()

    # --- Options and issues ---

    def enabled(self, flag: Options) -> bool:
        """Whether the rule family switched off by *flag* is active."""
        return flag not in self.options

    def report(
        self,
        path: Sequence[Segment],
        kind: IssueKind,
        message: str,
        related: Sequence[Sequence[Segment]] = (),
    ) -> None:
        issue = ValidationIssue(
            path=tuple(path),
            kind=kind,
            message=message,
            related=tuple(tuple(r) for r in related),
        )
        logger.debug("Issue: %s", issue)
        self.issues.append(issue)

    # --- References and usage ---

    @contextmanager
    def owned_by(self, pointer: Optional[ComponentPointer]) -> Iterator[None]:
        """Attribute references followed inside the block to *pointer*."""
        previous, self.owner = self.owner, pointer
        try:
            yield
        finally:
            self.owner = previous

    def use(self, pointer: ComponentPointer) -> None:
        self.edges[self.owner].add(pointer)

    def follow(
        self,
        token: str,
        path: Sequence[Segment],
        expected_kind: Optional[ComponentKind] = None,
    ) -> Optional[Any]:
        """Look up one reference hop and report why it fails, if it does.

        Only the token itself is checked. A component that is a bare
        reference is validated where it is declared, so each broken link in
        a chain is reported once, at the link.

        Returns:
            The referenced component, or ``None`` when it cannot be found.
        """
        path = tuple(path)
        try:
            pointer, item = self.resolver.lookup(token, expected_kind)
        except MalformedReference as exc:
            self.report(path, IssueKind.MALFORMED_REFERENCE, str(exc))
            return None
        except ExternalReference as exc:
            if self.enabled(Options.IGNORE_EXTERNAL_REFERENCES):
                self.report(path, IssueKind.UNRESOLVED_REFERENCE, str(exc))
            return None
        except UnresolvedReference as exc:
            self.report(path, IssueKind.UNRESOLVED_REFERENCE, str(exc))
            return None
        self.use(pointer)
        return item

    def resolve_quietly(self, token: str, expected_kind: ComponentKind) -> Optional[Any]:
        """Return the final target of *token*, or ``None`` when it cannot be resolved.

        Used where a rule needs the target itself; the failure is reported by
        :meth:`follow` or by the component check.
        """
        try:
            return self.resolver.resolve(token, expected_kind)
        except ResolutionError:
            return None

    def check_chain(self, token: str, path: Sequence[Segment], expected_kind: ComponentKind) -> None:
        """Report a cycle when *token* starts a chain of bare references that loops.

        Each cycle is reported once, however many of its members are visited.
        Other resolution failures are left to :meth:`follow`.
        """
        try:
            self.resolver.resolve_chain(token, expected_kind)
        except CyclicReference as exc:
            members = frozenset(exc.chain[exc.chain.index(exc.token):])
            if members not in self._reported_cycles:
                self._reported_cycles.add(members)
                self.report(path, IssueKind.CYCLIC_REFERENCE, str(exc))
        except ResolutionError:
            pass

    def reachable(self) -> set[ComponentPointer]:
        """Components reachable from the document root through followed references."""
        seen: set[ComponentPointer] = set()
        stack = list(self.edges.get(None, ()))
        while stack:
            pointer = stack.pop()
            if pointer in seen:
                continue
            seen.add(pointer)
            stack.extend(self.edges.get(pointer, ()))
        return seen
