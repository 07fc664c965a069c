"""Dialect adapters -- the per-version differences behind one interface.

Swagger 2.0, OpenAPI 3.0 and OpenAPI 3.1 share most of their structure.
Where they differ, the rest of the package asks the document's
:class:`DialectAdapter` instead of branching on the version:

* :meth:`~DialectAdapter.matches` -- does a raw mapping declare this dialect?
* :meth:`~DialectAdapter.build` -- construct the typed document.
* :meth:`~DialectAdapter.iter_entry_points` -- path items reachable from the
  root (3.1 adds ``webhooks``).
* :meth:`~DialectAdapter.check_root` -- root-level rules (2.0 ``host`` and
  ``basePath``, 3.x ``servers``).
* :attr:`~DialectAdapter.applicable_options` -- flags that can matter for
  the dialect.

The set is closed: :data:`ADAPTERS` holds one instance per
:class:`~specval.models.Dialect`.

Typical usage::

    from specval.dialects import parse_document

    doc = parse_document(load_spec("petstore.yaml"))
    doc = parse_document(raw, dialect="3.1")  # force, must still agree
"""

from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod
from typing import Any, Iterator, Optional, Union

from specval.exceptions import MalformedDocument
from specval.models import (
    AnySpecDocument,
    Dialect,
    OpenAPI31Document,
    PathItem,
    SwaggerDocument,
)
from specval.options import Options
from specval.parser.builder import build_document
from specval.validation.context import Path, ValidationContext
from specval.validation.issues import IssueKind
from specval.validation.rules import check_servers

logger = logging.getLogger(__name__)

_V2_HOST = re.compile(r"^[^{}/ :\\]+(?::\d+)?$")


class DialectAdapter(ABC):
    """Base class for the three dialect adapters."""

    dialect: Dialect
    version_key: str

    @property
    def applicable_options(self) -> Options:
        """Flags that can change the outcome for documents of this dialect."""
        return ~Options.NONE

    @abstractmethod
    def matches(self, raw: dict[str, Any]) -> bool:
        """Whether *raw* declares this dialect in its version field."""
        ...

    def build(self, raw: dict[str, Any]) -> AnySpecDocument:
        """Build the typed document.

        Raises:
            MalformedDocument: If *raw* is structurally incoherent.
        """
        return build_document(raw, self.dialect)

    def iter_entry_points(self, document: AnySpecDocument) -> Iterator[tuple[Path, PathItem]]:
        """Yield ``(path, path item)`` for every path item reachable from the root."""
        for route, item in document.iter_paths():
            yield ("paths", route), item

    @abstractmethod
    def check_root(self, ctx: ValidationContext, document: AnySpecDocument) -> None:
        """Report dialect-specific root-level issues."""
        ...

    def _version(self, raw: dict[str, Any]) -> Optional[str]:
        value = raw.get(self.version_key)
        return None if value is None else str(value)


class SwaggerV2Dialect(DialectAdapter):
    """Swagger 2.0 (``swagger: "2.0"``)."""

    dialect = Dialect.V2
    version_key = "swagger"

    @property
    def applicable_options(self) -> Options:
        return ~(
            Options.IGNORE_UNUSED_REQUEST_BODIES
            | Options.IGNORE_UNUSED_HEADERS
            | Options.IGNORE_UNUSED_EXAMPLES
            | Options.IGNORE_UNUSED_LINKS
            | Options.IGNORE_UNUSED_CALLBACKS
            | Options.IGNORE_UNUSED_PATH_ITEMS
            | Options.IGNORE_UNUSED_SERVER_VARIABLES
        )

    def matches(self, raw: dict[str, Any]) -> bool:
        return self._version(raw) == "2.0"

    def check_root(self, ctx: ValidationContext, document: AnySpecDocument) -> None:
        assert isinstance(document, SwaggerDocument)
        if (
            document.host is not None
            and ctx.enabled(Options.IGNORE_INVALID_URLS)
            and not _V2_HOST.match(document.host)
        ):
            ctx.report(
                ("host",),
                IssueKind.INVALID_URL,
                f"must be a host name with an optional port, found '{document.host}'",
            )
        if document.base_path is not None and not document.base_path.startswith("/"):
            ctx.report(
                ("basePath",),
                IssueKind.INVALID_PATH_TEMPLATE,
                f"must start with '/', found '{document.base_path}'",
            )


class OpenAPI30Dialect(DialectAdapter):
    """OpenAPI 3.0.x."""

    dialect = Dialect.V3_0
    version_key = "openapi"
    _pattern = re.compile(r"^3\.0(\.\d+)?(-[0-9A-Za-z.]+)?$")

    @property
    def applicable_options(self) -> Options:
        return ~Options.IGNORE_UNUSED_PATH_ITEMS

    def matches(self, raw: dict[str, Any]) -> bool:
        version = self._version(raw)
        return version is not None and bool(self._pattern.match(version))

    def check_root(self, ctx: ValidationContext, document: AnySpecDocument) -> None:
        check_servers(ctx, document.servers, ("servers",))


class OpenAPI31Dialect(OpenAPI30Dialect):
    """OpenAPI 3.1.x, which adds ``webhooks`` and reusable path items."""

    dialect = Dialect.V3_1
    _pattern = re.compile(r"^3\.1(\.\d+)?(-[0-9A-Za-z.]+)?$")

    @property
    def applicable_options(self) -> Options:
        return ~Options.NONE

    def iter_entry_points(self, document: AnySpecDocument) -> Iterator[tuple[Path, PathItem]]:
        yield from super().iter_entry_points(document)
        assert isinstance(document, OpenAPI31Document)
        for name, item in document.iter_webhooks():
            yield ("webhooks", name), item


ADAPTERS: dict[Dialect, DialectAdapter] = {
    Dialect.V2: SwaggerV2Dialect(),
    Dialect.V3_0: OpenAPI30Dialect(),
    Dialect.V3_1: OpenAPI31Dialect(),
}


def adapter_for(dialect: Union[Dialect, str]) -> DialectAdapter:
    """Return the adapter for a dialect or its version string ("2.0", "3.0", "3.1").

    Raises:
        ValueError: If *dialect* names none of the three.
    """
    return ADAPTERS[Dialect(dialect)]


def detect_dialect(raw: dict[str, Any]) -> Dialect:
    """Read the version field of *raw* and return its dialect.

    Raises:
        MalformedDocument: If there is no version field, both fields, or a
            version none of the adapters accepts.
    """
    if "swagger" in raw and "openapi" in raw:
        raise MalformedDocument("document declares both 'swagger' and 'openapi'")
    if "swagger" not in raw and "openapi" not in raw:
        raise MalformedDocument("missing 'swagger' or 'openapi' version field")
    for adapter in ADAPTERS.values():
        if adapter.matches(raw):
            logger.debug("Detected dialect %s", adapter.dialect.value)
            return adapter.dialect
    key = "swagger" if "swagger" in raw else "openapi"
    raise MalformedDocument(f"unsupported version '{raw[key]}'", (key,))


def parse_document(
    raw: dict[str, Any], dialect: Optional[Union[Dialect, str]] = None
) -> AnySpecDocument:
    """Detect (or check) the dialect of *raw* and build the typed document.

    Args:
        raw: The decoded root mapping, as returned by
            :func:`~specval.parser.loader.load_spec`.
        dialect: Force a dialect. It must agree with the version field.

    Returns:
        The typed, immutable document.

    Raises:
        MalformedDocument: If the dialect cannot be determined, the forced
            dialect contradicts the version field, or *raw* is structurally
            incoherent.
    """
    if not isinstance(raw, dict):
        raise MalformedDocument(f"document root must be an object, got {type(raw).__name__}")
    if dialect is None:
        adapter = ADAPTERS[detect_dialect(raw)]
    else:
        try:
            adapter = adapter_for(dialect)
        except ValueError:
            raise MalformedDocument(f"unknown dialect '{dialect}'") from None
        if not adapter.matches(raw):
            declared = raw.get("swagger", raw.get("openapi"))
            raise MalformedDocument(
                f"document declares version '{declared}', not dialect {adapter.dialect.value}"
            )
    return adapter.build(raw)
