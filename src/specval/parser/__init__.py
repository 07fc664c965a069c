"""Document parsing -- load, build typed models, resolve ``$ref`` tokens, serialize.

This sub-package turns raw text into the typed model of
:mod:`specval.models` and back.

Typical usage::

    from specval.parser import load_spec, build_document
    from specval.models import Dialect

    raw = load_spec("petstore.yaml")
    doc = build_document(raw, Dialect.V3_0)

Most callers go through :func:`specval.dialects.parse_document`, which
detects the dialect first.

Sub-modules:

* :mod:`~specval.parser.loader` -- I/O layer (URL, file, stdin) plus
  JSON/YAML decoding with duplicate-key rejection.
* :mod:`~specval.parser.schemas` -- schema node construction and the
  shape-conflict check.
* :mod:`~specval.parser.builder` -- per-dialect document construction.
* :mod:`~specval.parser.serializer` -- the inverse of the builder.
* :mod:`~specval.parser.resolver` -- on-demand ``$ref`` resolution with
  cycle detection.
"""

from specval.parser.builder import build_document
from specval.parser.loader import load_spec
from specval.parser.resolver import ReferenceResolver
from specval.parser.schemas import dump_schema, parse_schema
from specval.parser.serializer import dump_document

__all__ = [
    "build_document",
    "dump_document",
    "dump_schema",
    "load_spec",
    "parse_schema",
    "ReferenceResolver",
]
