"""Semantic validation of parsed documents.

Typical usage::

    from specval.validation import validate, ensure_valid
    from specval.options import Options

    issues = validate(doc, Options.IGNORE_UNUSED)
    for issue in issues:
        print(issue.pointer, issue.kind.value, issue.message)

    ensure_valid(doc)  # raises DocumentInvalid when issues exist

Sub-modules:

* :mod:`~specval.validation.issues` -- :class:`IssueKind` and
  :class:`ValidationIssue`.
* :mod:`~specval.validation.context` -- per-run state: issue sink, option
  lookup, reference following and usage tracking.
* :mod:`~specval.validation.rules` -- leaf checks (URLs, servers, schemas,
  security requirements).
* :mod:`~specval.validation.engine` -- the ordered document walk.
"""

from specval.validation.engine import ensure_valid, validate
from specval.validation.issues import IssueKind, ValidationIssue

__all__ = ["ensure_valid", "IssueKind", "validate", "ValidationIssue"]
