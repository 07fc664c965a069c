"""Exception hierarchy for specval.

All exceptions inherit from :class:`SpecvalError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`specval.exit_codes`.
The top-level error handler in :func:`specval.app.main` catches
``SpecvalError`` and exits with the appropriate code.

Subclass hierarchy::

    SpecvalError (exit 1)
    +-- InvalidUsageError       (exit 2)
    +-- ConfigError             (exit 1)
    +-- SpecParseError          (exit 7)
    |   +-- MalformedDocument
    |       +-- ShapeConflict
    +-- DocumentInvalid         (exit 8)
    +-- ResolutionError         (exit 1)
        +-- UnresolvedReference
        +-- CyclicReference
        +-- ExternalReference
        +-- MalformedReference

Resolution errors are raised by :class:`~specval.parser.resolver.ReferenceResolver`
and are turned into :class:`~specval.validation.ValidationIssue` values by
the validation engine; they never escape :func:`~specval.validation.validate`.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Sequence

from specval.exit_codes import (
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_SPEC_PARSE_ERROR,
    EXIT_VALIDATION_FAILURE,
)

if TYPE_CHECKING:
    from specval.validation.issues import ValidationIssue


class SpecvalError(Exception):
    """Base exception for all specval errors.

    Every subclass sets a class-level ``exit_code`` corresponding to one of
    the constants in :mod:`specval.exit_codes`. The entry point catches
    this exception type and calls ``sys.exit(exc.exit_code)``.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidUsageError(SpecvalError):
    """Raised for invalid CLI arguments, unknown option names or dialects."""

    exit_code = EXIT_INVALID_USAGE


class ConfigError(SpecvalError):
    """Raised for configuration problems (invalid JSON, bad option names in config files)."""

    exit_code = EXIT_GENERIC_FAILURE


class SpecParseError(SpecvalError):
    """Raised when a document cannot be loaded or decoded from JSON/YAML."""

    exit_code = EXIT_SPEC_PARSE_ERROR


class MalformedDocument(SpecParseError):
    """Raised when a decoded document is not structurally coherent.

    Covers absent required fields, values of the wrong type and unknown
    dialect versions. Construction stops at the first such problem.

    Args:
        message: Description of the problem.
        path: Structural location of the offending value, as a tuple of
            keys and indexes from the document root.
    """

    def __init__(self, message: str, path: Sequence[str | int] = ()):
        self.path = tuple(path)
        location = "#/" + "/".join(str(p) for p in self.path) if self.path else "#"
        super().__init__(f"{location}: {message}")


class ShapeConflict(MalformedDocument):
    """Raised when one schema node declares more than one shape (e.g. array and object)."""


class DocumentInvalid(SpecvalError):
    """Raised by :func:`~specval.validation.ensure_valid` when validation reports issues.

    Args:
        issues: The complete, ordered list of issues found.
    """

    exit_code = EXIT_VALIDATION_FAILURE

    def __init__(self, issues: Sequence[ValidationIssue]):
        self.issues = list(issues)
        lines = [f"{len(self.issues)} issue(s) found:"]
        lines.extend(f"- {issue}" for issue in self.issues)
        super().__init__("\n".join(lines))


class ResolutionError(SpecvalError):
    """Base class for failures while resolving a ``$ref`` token.

    Args:
        token: The reference token that failed.
        message: Human-readable detail.
    """

    def __init__(self, token: str, message: str):
        self.token = token
        super().__init__(message)


class UnresolvedReference(ResolutionError):
    """Raised when an internal token does not point at an existing component."""


class CyclicReference(ResolutionError):
    """Raised when a resolution chain visits the same token twice.

    Args:
        token: The token that was revisited.
        chain: Tokens followed so far, in order, ending with the revisit.
    """

    def __init__(self, token: str, chain: Sequence[str]):
        self.chain = tuple(chain)
        super().__init__(token, "reference cycle: " + " -> ".join(self.chain))


class ExternalReference(ResolutionError):
    """Raised for well-formed external tokens, which are never dereferenced."""


class MalformedReference(ResolutionError):
    """Raised for empty tokens and external tokens that are neither a URL nor a path."""
