"""Validation issue values.

A :class:`ValidationIssue` names *where* (a structural path from the
document root), *what* (an :class:`IssueKind`) and a human-readable message.
Duplicate findings also carry the other locations involved in ``related``.

Paths are tuples of keys and indexes and render as JSON pointers::

    issue.path     # ("paths", "/pets", "get", "responses", "200")
    issue.pointer  # "#/paths/~1pets/get/responses/200"
"""

from __future__ import annotations

import enum
from typing import Sequence, Union

from pydantic import BaseModel, ConfigDict

Segment = Union[str, int]


class IssueKind(str, enum.Enum):
    """Categories of semantic problems the engine reports."""

    # Reference integrity
    UNRESOLVED_REFERENCE = "UnresolvedReference"
    CYCLIC_REFERENCE = "CyclicReference"
    MALFORMED_REFERENCE = "MalformedReference"

    # Uniqueness and declared-vs-used
    DUPLICATE_IDENTIFIER = "DuplicateIdentifier"
    UNDECLARED_TAG_USED = "UndeclaredTagUsed"
    UNDECLARED_SECURITY_SCHEME_USED = "UndeclaredSecuritySchemeUsed"
    UNDECLARED_SCOPE_USED = "UndeclaredScopeUsed"

    # Schemas
    EMPTY_COMPOSITION = "EmptyComposition"
    DANGLING_REQUIRED_PROPERTY = "DanglingRequiredProperty"
    MISPLACED_DISCRIMINATOR = "MisplacedDiscriminator"

    # Unused artifacts
    UNUSED_COMPONENT = "UnusedComponent"
    UNUSED_TAG = "UnusedTag"
    UNUSED_SERVER_VARIABLE = "UnusedServerVariable"

    # Structure
    UNDECLARED_SERVER_VARIABLE = "UndeclaredServerVariable"
    INVALID_SERVER_VARIABLE = "InvalidServerVariable"
    EMPTY_REQUIRED_FIELD = "EmptyRequiredField"
    INVALID_URL = "InvalidUrl"
    INVALID_PATH_TEMPLATE = "InvalidPathTemplate"
    INVALID_PARAMETER = "InvalidParameter"
    INVALID_RESPONSE_CODE = "InvalidResponseCode"
    INVALID_COMPONENT_NAME = "InvalidComponentName"
    INVALID_LINK = "InvalidLink"
    INVALID_EXAMPLE = "InvalidExample"


def render_pointer(path: Sequence[Segment]) -> str:
    """Render a structural path as a JSON pointer fragment (``#/a/b``)."""
    if not path:
        return "#"
    escaped = (str(p).replace("~", "~0").replace("/", "~1") for p in path)
    return "#/" + "/".join(escaped)


class ValidationIssue(BaseModel):
    """One semantic problem found in a document."""

    model_config = ConfigDict(frozen=True)

    path: tuple[Segment, ...]
    kind: IssueKind
    message: str
    related: tuple[tuple[Segment, ...], ...] = ()

    @property
    def pointer(self) -> str:
        return render_pointer(self.path)

    def to_dict(self) -> dict[str, object]:
        """JSON-friendly form used by ``specval validate --json``."""
        return {
            "path": self.pointer,
            "kind": self.kind.value,
            "message": self.message,
            "related": [render_pointer(r) for r in self.related],
        }

    def __str__(self) -> str:
        return f"{self.pointer}: {self.message} [{self.kind.value}]"
