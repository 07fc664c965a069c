"""Validate command -- check a document and report every issue.

``specval validate SOURCE`` loads a document from a path, URL or stdin
(``-``), builds the typed model and runs the validation engine. The report
goes to stdout; the summary line goes to stderr.

Exit codes:

* 0 -- no issues
* 2 -- unknown ``--ignore`` name or ``--dialect``
* 7 -- the document could not be loaded or is malformed
* 8 -- one or more issues were found
"""

from __future__ import annotations

from typing import Optional

import typer

from specval.commands import fail, load_document
from specval.exceptions import SpecvalError
from specval.exit_codes import EXIT_VALIDATION_FAILURE
from specval.models import Dialect
from specval.output import error, get_output, success, suggest, warning


def validate_command(
    source: str = typer.Argument(help="Path, http(s) URL, or '-' for stdin."),
    ignore: Optional[list[str]] = typer.Option(
        None,
        "--ignore",
        "-i",
        help="Option to switch off (repeatable), e.g. ignore-missing-tags.",
    ),
    dialect: Optional[Dialect] = typer.Option(
        None, "--dialect", "-d", help="Force dialect instead of detecting it."
    ),
) -> None:
    """Validate an API description document.

    Option names on the command line replace those from ``SPECVAL_IGNORE``
    and the config files. Run ``specval options`` to list them.

    Example::

        specval validate openapi.yaml
        specval validate swagger.json --ignore ignore-unused --json
        cat api.yaml | specval validate -
    """
    from specval.config import resolve_config
    from specval.dialects import adapter_for
    from specval.options import option_names
    from specval.validation import validate

    try:
        config = resolve_config(
            cli_ignore=ignore, cli_dialect=dialect.value if dialect else None
        )
        options = config.options()
        document = load_document(source, config.dialect)
    except SpecvalError as exc:
        fail(exc)

    inapplicable = options & ~adapter_for(document.dialect).applicable_options
    if inapplicable:
        warning(
            f"Options with no effect on {document.dialect.value}: "
            + ", ".join(option_names(inapplicable))
        )

    issues = validate(document, options)
    get_output().print_issues(issues, source)

    if issues:
        error(f"{len(issues)} issue(s) found in {source}")
        if not options:
            suggest("Switch rule families off with --ignore; see 'specval options'.")
        raise typer.Exit(code=EXIT_VALIDATION_FAILURE)
    success(f"{source} is valid ({document.dialect.value})")
