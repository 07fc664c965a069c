"""Built-in CLI sub-commands for specval.

* :mod:`~specval.commands.validate` -- validate a document and report issues.
* :mod:`~specval.commands.inspect` -- summarise what a document declares.
* :mod:`~specval.commands.options` -- list option flags and presets.
* :mod:`~specval.commands.config` -- view and modify the global config.

Single commands export a plain callback registered on the root app;
multi-command groups export a :class:`typer.Typer` sub-application.
"""

from __future__ import annotations

from typing import NoReturn, Optional, Union

import typer

from specval.exceptions import SpecvalError
from specval.models import AnySpecDocument, Dialect
from specval.output import debug, error


def fail(exc: SpecvalError) -> NoReturn:
    """Print *exc* to stderr and exit with its exit code."""
    error(str(exc))
    raise typer.Exit(code=exc.exit_code)


def load_document(source: str, dialect: Optional[Union[Dialect, str]] = None) -> AnySpecDocument:
    """Load *source* and build the typed document.

    Raises:
        SpecParseError: If the source cannot be read or decoded, or the
            document is malformed.
    """
    from specval.dialects import parse_document
    from specval.parser.loader import load_spec

    raw = load_spec(source)
    document = parse_document(raw, dialect)
    debug(f"Parsed {source} as {document.dialect.value}")
    return document
