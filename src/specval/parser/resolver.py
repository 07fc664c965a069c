"""Resolve ``$ref`` tokens against a document's components.

Documents keep references as tokens (e.g. ``#/components/schemas/Pet``);
nothing is inlined. :class:`ReferenceResolver` answers "what does this token
point at?" on demand and reports why when it cannot:

* :class:`~specval.exceptions.UnresolvedReference` -- no such component, a
  pointer outside the component containers, or the wrong kind.
* :class:`~specval.exceptions.CyclicReference` -- a chain of bare
  references that comes back to a token it already visited.
* :class:`~specval.exceptions.ExternalReference` -- a well-formed token
  naming another document; such tokens are never fetched.
* :class:`~specval.exceptions.MalformedReference` -- an empty token, a bad
  ``~`` escape, or an external token that is neither a URL nor a path.

Only components that are *themselves* just a reference are followed, so a
schema whose properties point back at the schema (a tree node, a linked
list) resolves in one step and is never mistaken for a cycle.

Internal tokens use RFC 6901 JSON Pointer escaping (``~0`` for ``~``,
``~1`` for ``/``).
"""

from __future__ import annotations

import logging
import re
from typing import Any, NamedTuple, Optional
from urllib.parse import urlsplit

from specval.exceptions import (
    CyclicReference,
    ExternalReference,
    MalformedReference,
    UnresolvedReference,
)
from specval.models import ComponentKind, ComponentsContainer, PathItem, PointerStyle, Reference
from specval.schema import ReferenceSchema

logger = logging.getLogger(__name__)

MAX_REFERENCE_DEPTH = 64
"""Upper bound on the number of hops in one resolution chain."""

# Swagger 2.0 root containers and the component kind each holds.
V2_CONTAINERS: dict[str, ComponentKind] = {
    "definitions": ComponentKind.SCHEMAS,
    "parameters": ComponentKind.PARAMETERS,
    "responses": ComponentKind.RESPONSES,
    "securityDefinitions": ComponentKind.SECURITY_SCHEMES,
}

_URL_SCHEMES = ("http", "https", "file")
_BAD_PATH_CHARS = re.compile(r'[\s<>"{}|\\^`]')
_BAD_ESCAPE = re.compile(r"~(?![01])")


class ComponentPointer(NamedTuple):
    """The component an internal token addresses."""

    kind: ComponentKind
    name: str


def pointer_for(kind: ComponentKind, name: str, style: PointerStyle) -> str:
    """Build the internal token that addresses one component."""
    escaped = name.replace("~", "~0").replace("/", "~1")
    if style == PointerStyle.ROOT:
        container = next(key for key, value in V2_CONTAINERS.items() if value == kind)
        return f"#/{container}/{escaped}"
    return f"#/components/{kind.value}/{escaped}"


def is_external(token: str) -> bool:
    """Whether *token* names another document rather than this one."""
    return bool(token) and not token.startswith("#")


def check_external_syntax(token: str) -> None:
    """Check that an external token is a usable URL or file path.

    Raises:
        MalformedReference: If the token is neither.
    """
    base = token.split("#", 1)[0]
    if not base or _BAD_PATH_CHARS.search(base):
        raise MalformedReference(token, f"'{token}' is not a valid URL or file path")
    parts = urlsplit(base)
    if not parts.scheme or len(parts.scheme) == 1:
        # Relative or absolute path (a one-letter scheme is a drive letter).
        return
    if parts.scheme not in _URL_SCHEMES:
        raise MalformedReference(token, f"unsupported URL scheme '{parts.scheme}' in '{token}'")
    if parts.scheme in ("http", "https") and not parts.netloc:
        raise MalformedReference(token, f"URL '{token}' has no host")
    if parts.scheme == "file" and not parts.path:
        raise MalformedReference(token, f"URL '{token}' has no path")


def _unescape(segment: str, token: str) -> str:
    if _BAD_ESCAPE.search(segment):
        raise MalformedReference(token, f"invalid '~' escape in '{token}'")
    return segment.replace("~1", "/").replace("~0", "~")


class ReferenceResolver:
    """Resolve tokens against one :class:`~specval.models.ComponentsContainer`.

    The resolver holds no state between calls; each :meth:`resolve` call
    tracks its own visited tokens, so it can be shared freely.

    Args:
        components: The document's component registry.
        pointer_style: Token grammar to accept. Defaults to the
            container's own ``pointer_style``.
    """

    def __init__(
        self,
        components: ComponentsContainer,
        pointer_style: Optional[PointerStyle] = None,
    ) -> None:
        self.components = components
        self.pointer_style = pointer_style or components.pointer_style

    @classmethod
    def for_document(cls, document: Any) -> ReferenceResolver:
        return cls(document.components)

    def parse_pointer(self, token: str) -> ComponentPointer:
        """Split an internal token into the component kind and name.

        Raises:
            MalformedReference: If the token is empty or badly escaped.
            UnresolvedReference: If the token does not address a component
                container this dialect has.
        """
        if not token:
            raise MalformedReference(token, "empty $ref")
        if not token.startswith("#/"):
            raise UnresolvedReference(token, f"'{token}' does not point at a component")

        segments = [_unescape(s, token) for s in token[2:].split("/")]
        if self.pointer_style == PointerStyle.ROOT:
            if len(segments) == 2 and segments[0] in V2_CONTAINERS and segments[1]:
                return ComponentPointer(V2_CONTAINERS[segments[0]], segments[1])
        elif len(segments) == 3 and segments[0] == "components" and segments[2]:
            try:
                return ComponentPointer(ComponentKind(segments[1]), segments[2])
            except ValueError:
                pass
        raise UnresolvedReference(token, f"'{token}' does not point at a component")

    def lookup(
        self, token: str, expected_kind: Optional[ComponentKind] = None
    ) -> tuple[ComponentPointer, Any]:
        """Follow exactly one hop: return the component *token* names.

        Raises like :meth:`resolve`, except that a bare-reference target is
        returned as-is instead of being followed.
        """
        if is_external(token):
            check_external_syntax(token)
            raise ExternalReference(token, f"external reference '{token}' is not resolved")
        pointer = self.parse_pointer(token)
        if expected_kind is not None and pointer.kind != expected_kind:
            raise UnresolvedReference(
                token,
                f"'{token}' points at {pointer.kind.value}, expected {expected_kind.value}",
            )
        item = self.components.get(pointer.kind, pointer.name)
        if item is None:
            raise UnresolvedReference(token, f"'{token}' not found")
        return pointer, item

    def resolve(self, token: str, expected_kind: Optional[ComponentKind] = None) -> Any:
        """Return the item *token* finally points at.

        Args:
            token: The ``$ref`` value.
            expected_kind: When given, every hop must land on this kind.

        Returns:
            The first component on the chain that is not itself a bare
            reference.

        Raises:
            ResolutionError: One of its subclasses; see the module docstring.
        """
        return self.resolve_chain(token, expected_kind)[-1][1]

    def resolve_chain(
        self, token: str, expected_kind: Optional[ComponentKind] = None
    ) -> list[tuple[ComponentPointer, Any]]:
        """Return every ``(pointer, item)`` hop followed while resolving *token*.

        The last hop holds the final target. Raises like :meth:`resolve`.
        """
        chain: list[tuple[ComponentPointer, Any]] = []
        visited: list[str] = []
        current = token
        while True:
            if current in visited:
                raise CyclicReference(current, visited + [current])
            if len(visited) >= MAX_REFERENCE_DEPTH:
                raise UnresolvedReference(
                    token, f"'{token}' exceeds {MAX_REFERENCE_DEPTH} chained references"
                )
            visited.append(current)

            pointer, item = self.lookup(current, expected_kind)
            chain.append((pointer, item))

            next_token = bare_reference(item)
            if next_token is None:
                logger.debug("Resolved %s in %d hop(s)", token, len(chain))
                return chain
            current = next_token


def bare_reference(item: Any) -> Optional[str]:
    """Return the token when *item* is nothing but a reference, else ``None``."""
    if isinstance(item, (Reference, ReferenceSchema)):
        return item.ref
    if isinstance(item, PathItem) and item.ref is not None:
        if not item.operations and not item.parameters:
            return item.ref
    return None
