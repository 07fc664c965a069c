"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~specval.exceptions.SpecvalError` subclass.
CI jobs can tell "the document has problems" apart from "the document could
not be read at all" without parsing stderr.

Example::

    $ specval validate openapi.yaml
    $ echo $?
    8   # EXIT_VALIDATION_FAILURE -- the report lists every issue found
"""

EXIT_SUCCESS = 0
"""The command completed successfully (the document is valid)."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments or unknown option names."""

EXIT_SPEC_PARSE_ERROR = 7
"""The document could not be loaded or is structurally malformed."""

EXIT_VALIDATION_FAILURE = 8
"""The document was parsed but validation reported one or more issues."""
