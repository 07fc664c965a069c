"""Inspect command -- summarise what a document declares.

``specval inspect SOURCE`` prints one table: dialect and version, the
number of paths and operations (and webhooks for 3.1), the component
count per kind and the declared tags. It does not validate.
"""

from __future__ import annotations

from typing import Optional

import typer

from specval.commands import fail, load_document
from specval.exceptions import SpecvalError
from specval.models import ComponentKind, Dialect
from specval.output import get_output


def inspect_command(
    source: str = typer.Argument(help="Path, http(s) URL, or '-' for stdin."),
    dialect: Optional[Dialect] = typer.Option(
        None, "--dialect", "-d", help="Force dialect instead of detecting it."
    ),
) -> None:
    """Show a summary of an API description document.

    Example::

        specval inspect openapi.yaml
        specval --json inspect swagger.json
    """
    try:
        document = load_document(source, dialect)
    except SpecvalError as exc:
        fail(exc)

    rows: list[list[str]] = [
        ["dialect", document.dialect.value],
        ["version", document.version],
        ["title", document.info.title],
        ["paths", str(len(document.paths))],
        ["operations", str(sum(1 for _ in document.iter_operations()))],
    ]
    if document.dialect == Dialect.V3_1:
        rows.append(["webhooks", str(len(document.webhooks))])

    for kind in ComponentKind:
        count = len(document.components.group(kind))
        if count:
            rows.append([f"components.{kind.value}", str(count)])

    tags = [tag.name for tag in document.iter_tags()]
    rows.append(["tags", ", ".join(tags) if tags else "-"])

    get_output().print_table(
        ["Field", "Value"], rows, title=f"{document.info.title or source} -- Summary"
    )
