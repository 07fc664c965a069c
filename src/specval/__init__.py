"""specval -- Typed models and semantic validation for Swagger 2.0 and OpenAPI 3.0/3.1.

This package turns an API description document into an immutable, strongly
typed model and checks it for problems that a structural JSON Schema check
cannot see: dangling ``$ref`` pointers, duplicate operation ids, tags and
security schemes that are used but never declared, empty compositions, and
more.

Typical usage::

    from specval import load_spec, parse_document, validate

    raw = load_spec("openapi.yaml")
    document = parse_document(raw)
    for issue in validate(document):
        print(issue)

Modules:
    app: Typer application and CLI entry point.
    models: Pydantic document models shared across the package.
    schema: Schema node variants (primitive, object, array, composition, reference).
    options: Combinable flags that switch individual rule families off.
    dialects: Dialect detection and per-dialect adapters.
    validation: The validation engine and the issue types it reports.
    exceptions: Exception hierarchy with exit-code mapping.
"""

__version__ = "0.1.0"

from specval.dialects import parse_document  # noqa: E402
from specval.options import Options, parse_options  # noqa: E402
from specval.parser.loader import load_spec  # noqa: E402
from specval.parser.serializer import dump_document  # noqa: E402
from specval.validation import (  # noqa: E402
    IssueKind,
    ValidationIssue,
    ensure_valid,
    validate,
)

__all__ = [
    "IssueKind",
    "Options",
    "ValidationIssue",
    "dump_document",
    "ensure_valid",
    "load_spec",
    "parse_document",
    "parse_options",
    "validate",
]
