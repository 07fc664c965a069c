"""Canonical Pydantic models for parsed API description documents.

This is the single source of truth for document shapes. The models fall into
three groups:

**Shared vocabulary** -- used by every dialect:
    :class:`Dialect`, :class:`HTTPMethod`, :class:`ParameterLocation`,
    :class:`ComponentKind`, :class:`Reference`, :class:`Info`,
    :class:`Tag`, :class:`Parameter`, :class:`Response`,
    :class:`Operation`, :class:`PathItem`, :class:`ComponentsContainer`.

**Dialect-specific shapes** -- :class:`SecurityDefinition` (Swagger 2.0)
    versus :class:`SecurityScheme` (OpenAPI 3.x), the 3.x-only
    :class:`Example` and :class:`Link`, and the three root documents
    :class:`SwaggerDocument`, :class:`OpenAPI30Document` and
    :class:`OpenAPI31Document`.

**Unions** -- ``RefOr...`` aliases for slots that may hold either an item
    or a :class:`Reference`, and :data:`AnySpecDocument` discriminated on
    ``dialect``.

All models are frozen: a document is built once by
:func:`~specval.parser.builder.build_document` and only read afterwards.
References are stored as tokens and resolved on demand by
:class:`~specval.parser.resolver.ReferenceResolver`; no model holds a
pointer to another part of the tree.
"""

from __future__ import annotations

import enum
from typing import Annotated, Any, Iterator, Literal, Optional, Union

import pydantic
from pydantic import BaseModel, ConfigDict, Field

from specval.schema import SchemaNode


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


# --- Enumerations ---


class Dialect(str, enum.Enum):
    """The three supported document dialects."""

    V2 = "2.0"
    V3_0 = "3.0"
    V3_1 = "3.1"


class HTTPMethod(str, enum.Enum):
    """HTTP methods recognised as operation slots on a path item."""

    GET = "get"
    PUT = "put"
    POST = "post"
    DELETE = "delete"
    OPTIONS = "options"
    HEAD = "head"
    PATCH = "patch"
    TRACE = "trace"


class ParameterLocation(str, enum.Enum):
    """Locations where a parameter can appear, per the ``in`` field.

    ``body`` and ``formData`` exist only in Swagger 2.0, ``cookie`` only in
    OpenAPI 3.x.
    """

    QUERY = "query"
    HEADER = "header"
    PATH = "path"
    COOKIE = "cookie"
    BODY = "body"
    FORM_DATA = "formData"


class ComponentKind(str, enum.Enum):
    """Kinds of reusable artifacts held by a :class:`ComponentsContainer`.

    Values are the OpenAPI 3.x key names under ``components``.
    """

    SCHEMAS = "schemas"
    RESPONSES = "responses"
    PARAMETERS = "parameters"
    EXAMPLES = "examples"
    REQUEST_BODIES = "requestBodies"
    HEADERS = "headers"
    SECURITY_SCHEMES = "securitySchemes"
    LINKS = "links"
    CALLBACKS = "callbacks"
    PATH_ITEMS = "pathItems"


class PointerStyle(str, enum.Enum):
    """How internal pointers address components.

    ``COMPONENTS`` is ``#/components/<kind>/<name>`` (OpenAPI 3.x).
    ``ROOT`` is Swagger 2.0's top-level containers such as
    ``#/definitions/<name>``.
    """

    COMPONENTS = "components"
    ROOT = "root"


# --- References ---


class Reference(_Frozen):
    """A ``$ref`` object standing in for a parameter, response, path item, ...

    Only the token is meaningful for resolution. ``summary`` and
    ``description`` override the target's in OpenAPI 3.1.
    """

    ref: str
    summary: Optional[str] = None
    description: Optional[str] = None

    @property
    def is_internal(self) -> bool:
        """Whether the token points inside the same document."""
        return self.ref.startswith("#")


def _ref_or_item(value: Any) -> str:
    """Callable discriminator for ``RefOr...`` unions."""
    if isinstance(value, dict):
        return "ref" if "ref" in value or "$ref" in value else "item"
    return "ref" if isinstance(value, Reference) else "item"


# --- Metadata ---


class ExternalDocumentation(_Frozen):
    """Link to additional documentation."""

    url: str
    description: Optional[str] = None


class Contact(_Frozen):
    name: Optional[str] = None
    url: Optional[str] = None
    email: Optional[str] = None


class License(_Frozen):
    name: str
    url: Optional[str] = None
    identifier: Optional[str] = None


class Info(_Frozen):
    """The document's *Info Object*."""

    title: str
    version: str
    description: Optional[str] = None
    summary: Optional[str] = None
    terms_of_service: Optional[str] = None
    contact: Optional[Contact] = None
    license: Optional[License] = None


class Tag(_Frozen):
    """A named grouping declared in the top-level ``tags`` list."""

    name: str
    description: Optional[str] = None
    external_docs: Optional[ExternalDocumentation] = None


class ServerVariable(_Frozen):
    default: str
    enum: Optional[tuple[str, ...]] = None
    description: Optional[str] = None


class Server(_Frozen):
    """An OpenAPI 3.x *Server Object*; ``url`` may contain ``{variable}`` templates."""

    url: str
    description: Optional[str] = None
    variables: dict[str, ServerVariable] = Field(default_factory=dict)


# --- Examples and links ---


class Example(_Frozen):
    """An OpenAPI 3.x *Example Object*.

    ``value`` and ``external_value`` are mutually exclusive; a ``value`` of
    ``None`` counts as absent.
    """

    summary: Optional[str] = None
    description: Optional[str] = None
    value: Any = None
    external_value: Optional[str] = None
    extensions: dict[str, Any] = Field(default_factory=dict)


RefOrExample = Annotated[
    Union[
        Annotated[Reference, pydantic.Tag("ref")],
        Annotated[Example, pydantic.Tag("item")],
    ],
    pydantic.Discriminator(_ref_or_item),
]


class Link(_Frozen):
    """An OpenAPI 3.x *Link Object*: a design-time relation to another operation.

    The target is named by ``operation_id`` or addressed by
    ``operation_ref``, never both.
    """

    operation_ref: Optional[str] = None
    operation_id: Optional[str] = None
    parameters: dict[str, Any] = Field(default_factory=dict)
    request_body: Any = None
    description: Optional[str] = None
    server: Optional[Server] = None
    extensions: dict[str, Any] = Field(default_factory=dict)


RefOrLink = Annotated[
    Union[
        Annotated[Reference, pydantic.Tag("ref")],
        Annotated[Link, pydantic.Tag("item")],
    ],
    pydantic.Discriminator(_ref_or_item),
]


# --- Parameters, bodies, responses ---


class Header(_Frozen):
    """A response header. Swagger 2.0 inline ``type`` is folded into ``schema_``."""

    description: Optional[str] = None
    required: bool = False
    deprecated: bool = False
    schema_: Optional[SchemaNode] = Field(default=None, alias="schema")
    content: dict[str, MediaType] = Field(default_factory=dict)

    model_config = ConfigDict(frozen=True, populate_by_name=True)


RefOrHeader = Annotated[
    Union[
        Annotated[Reference, pydantic.Tag("ref")],
        Annotated[Header, pydantic.Tag("item")],
    ],
    pydantic.Discriminator(_ref_or_item),
]


class MediaType(_Frozen):
    schema_: Optional[SchemaNode] = Field(default=None, alias="schema")
    example: Any = None
    examples: dict[str, RefOrExample] = Field(default_factory=dict)

    model_config = ConfigDict(frozen=True, populate_by_name=True)


class Parameter(_Frozen):
    """A single operation or path-level parameter.

    For Swagger 2.0 non-body parameters the inline ``type``/``format``/
    ``items`` keywords are folded into ``schema_`` so every dialect exposes
    the parameter type the same way.
    """

    name: str
    location: ParameterLocation
    description: Optional[str] = None
    required: bool = False
    deprecated: bool = False
    allow_empty_value: bool = False
    style: Optional[str] = None
    explode: Optional[bool] = None
    schema_: Optional[SchemaNode] = Field(default=None, alias="schema")
    content: dict[str, MediaType] = Field(default_factory=dict)
    example: Any = None
    examples: dict[str, RefOrExample] = Field(default_factory=dict)
    extensions: dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    @property
    def key(self) -> tuple[str, ParameterLocation]:
        """The (name, location) pair that must be unique per parameter list."""
        return (self.name, self.location)


RefOrParameter = Annotated[
    Union[
        Annotated[Reference, pydantic.Tag("ref")],
        Annotated[Parameter, pydantic.Tag("item")],
    ],
    pydantic.Discriminator(_ref_or_item),
]


class RequestBody(_Frozen):
    """An OpenAPI 3.x request body."""

    description: Optional[str] = None
    content: dict[str, MediaType] = Field(default_factory=dict)
    required: bool = False


RefOrRequestBody = Annotated[
    Union[
        Annotated[Reference, pydantic.Tag("ref")],
        Annotated[RequestBody, pydantic.Tag("item")],
    ],
    pydantic.Discriminator(_ref_or_item),
]


class Response(_Frozen):
    """A single response. ``schema_`` is Swagger 2.0, ``content`` OpenAPI 3.x."""

    description: str
    headers: dict[str, RefOrHeader] = Field(default_factory=dict)
    content: dict[str, MediaType] = Field(default_factory=dict)
    schema_: Optional[SchemaNode] = Field(default=None, alias="schema")
    links: dict[str, RefOrLink] = Field(default_factory=dict)

    model_config = ConfigDict(frozen=True, populate_by_name=True)


RefOrResponse = Annotated[
    Union[
        Annotated[Reference, pydantic.Tag("ref")],
        Annotated[Response, pydantic.Tag("item")],
    ],
    pydantic.Discriminator(_ref_or_item),
]


# --- Security ---


SecurityRequirement = dict[str, tuple[str, ...]]
"""Maps a security scheme name to the scopes an operation needs from it."""


class OAuthFlow(_Frozen):
    authorization_url: Optional[str] = None
    token_url: Optional[str] = None
    refresh_url: Optional[str] = None
    scopes: dict[str, str] = Field(default_factory=dict)


class SecurityScheme(_Frozen):
    """An OpenAPI 3.x *Security Scheme Object*.

    ``flows`` maps flow names (``implicit``, ``password``,
    ``clientCredentials``, ``authorizationCode``) to their settings.
    """

    type: str
    description: Optional[str] = None
    name: Optional[str] = None
    location: Optional[str] = None
    scheme: Optional[str] = None
    bearer_format: Optional[str] = None
    flows: dict[str, OAuthFlow] = Field(default_factory=dict)
    openid_connect_url: Optional[str] = None

    def declared_scopes(self) -> set[str]:
        """Union of the scopes declared by every flow."""
        scopes: set[str] = set()
        for flow in self.flows.values():
            scopes.update(flow.scopes)
        return scopes


class SecurityDefinition(_Frozen):
    """A Swagger 2.0 *Security Scheme Object* (under ``securityDefinitions``).

    Unlike :class:`SecurityScheme`, OAuth2 settings are flat: one ``flow``
    with its URLs and ``scopes``.
    """

    type: str
    description: Optional[str] = None
    name: Optional[str] = None
    location: Optional[str] = None
    flow: Optional[str] = None
    authorization_url: Optional[str] = None
    token_url: Optional[str] = None
    scopes: dict[str, str] = Field(default_factory=dict)

    def declared_scopes(self) -> set[str]:
        return set(self.scopes)


RefOrSecurityScheme = Annotated[
    Union[
        Annotated[Reference, pydantic.Tag("ref")],
        Annotated[SecurityScheme, pydantic.Tag("item")],
    ],
    pydantic.Discriminator(_ref_or_item),
]


# --- Operations and paths ---


class Operation(_Frozen):
    """One HTTP method on a path item."""

    operation_id: Optional[str] = None
    summary: Optional[str] = None
    description: Optional[str] = None
    tags: tuple[str, ...] = ()
    parameters: tuple[RefOrParameter, ...] = ()
    request_body: Optional[RefOrRequestBody] = None
    responses: dict[str, RefOrResponse] = Field(default_factory=dict)
    callbacks: dict[str, RefOrCallback] = Field(default_factory=dict)
    security: Optional[tuple[SecurityRequirement, ...]] = None
    servers: tuple[Server, ...] = ()
    external_docs: Optional[ExternalDocumentation] = None
    deprecated: bool = False
    consumes: tuple[str, ...] = ()
    produces: tuple[str, ...] = ()
    extensions: dict[str, Any] = Field(default_factory=dict)


class PathItem(_Frozen):
    """The operations available on one route template.

    ``ref`` is the path item's own ``$ref``; in OpenAPI 3.1 it may point at
    ``#/components/pathItems``.
    """

    ref: Optional[str] = None
    summary: Optional[str] = None
    description: Optional[str] = None
    operations: dict[HTTPMethod, Operation] = Field(default_factory=dict)
    parameters: tuple[RefOrParameter, ...] = ()
    servers: tuple[Server, ...] = ()
    extensions: dict[str, Any] = Field(default_factory=dict)

    def iter_operations(self) -> Iterator[tuple[HTTPMethod, Operation]]:
        """Yield ``(method, operation)`` pairs in :class:`HTTPMethod` order."""
        for method in HTTPMethod:
            if method in self.operations:
                yield method, self.operations[method]


Callback = dict[str, PathItem]
"""A callback maps runtime expressions to the path item invoked for each."""

RefOrCallback = Annotated[
    Union[
        Annotated[Reference, pydantic.Tag("ref")],
        Annotated[Callback, pydantic.Tag("item")],
    ],
    pydantic.Discriminator(_ref_or_item),
]


# --- Components ---


class ComponentsContainer(_Frozen):
    """Named registry of reusable artifacts, keyed per :class:`ComponentKind`.

    OpenAPI 3.x keeps these under ``components``; Swagger 2.0 spreads them
    over the root (``definitions``, ``parameters``, ``responses``,
    ``securityDefinitions``). ``pointer_style`` records which token grammar
    addresses them.
    """

    pointer_style: PointerStyle = PointerStyle.COMPONENTS
    schemas: dict[str, SchemaNode] = Field(default_factory=dict)
    responses: dict[str, RefOrResponse] = Field(default_factory=dict)
    parameters: dict[str, RefOrParameter] = Field(default_factory=dict)
    examples: dict[str, RefOrExample] = Field(default_factory=dict)
    request_bodies: dict[str, RefOrRequestBody] = Field(default_factory=dict)
    headers: dict[str, RefOrHeader] = Field(default_factory=dict)
    security_schemes: dict[str, Union[SecurityDefinition, RefOrSecurityScheme]] = Field(
        default_factory=dict
    )
    links: dict[str, RefOrLink] = Field(default_factory=dict)
    callbacks: dict[str, RefOrCallback] = Field(default_factory=dict)
    path_items: dict[str, PathItem] = Field(default_factory=dict)

    def group(self, kind: ComponentKind) -> dict[str, Any]:
        """Return the name -> item mapping for one kind."""
        return getattr(self, _GROUP_FIELDS[kind])

    def get(self, kind: ComponentKind, name: str) -> Any:
        """Return one component, or ``None`` when it is not declared."""
        return self.group(kind).get(name)

    def iter_components(
        self, kind: Optional[ComponentKind] = None
    ) -> Iterator[tuple[ComponentKind, str, Any]]:
        """Yield ``(kind, name, item)`` for one kind or, by default, every kind."""
        kinds = [kind] if kind is not None else list(ComponentKind)
        for k in kinds:
            for name, item in self.group(k).items():
                yield k, name, item

    def is_empty(self) -> bool:
        return not any(self.group(kind) for kind in ComponentKind)


_GROUP_FIELDS: dict[ComponentKind, str] = {
    ComponentKind.SCHEMAS: "schemas",
    ComponentKind.RESPONSES: "responses",
    ComponentKind.PARAMETERS: "parameters",
    ComponentKind.EXAMPLES: "examples",
    ComponentKind.REQUEST_BODIES: "request_bodies",
    ComponentKind.HEADERS: "headers",
    ComponentKind.SECURITY_SCHEMES: "security_schemes",
    ComponentKind.LINKS: "links",
    ComponentKind.CALLBACKS: "callbacks",
    ComponentKind.PATH_ITEMS: "path_items",
}


# --- Root documents ---


class SpecDocument(_Frozen):
    """Fields and traversal shared by every dialect's root document.

    Concrete documents add a ``dialect`` literal; see :data:`AnySpecDocument`.
    """

    version: str = Field(description="Raw version string (e.g. '2.0', '3.0.3', '3.1.0')")
    info: Info
    paths: dict[str, PathItem] = Field(default_factory=dict)
    components: ComponentsContainer = Field(default_factory=ComponentsContainer)
    tags: tuple[Tag, ...] = ()
    security: Optional[tuple[SecurityRequirement, ...]] = None
    external_docs: Optional[ExternalDocumentation] = None
    extensions: dict[str, Any] = Field(default_factory=dict)

    def iter_paths(self) -> Iterator[tuple[str, PathItem]]:
        """Yield ``(route template, path item)`` in document order."""
        yield from self.paths.items()

    def iter_operations(self) -> Iterator[tuple[str, HTTPMethod, Operation]]:
        """Yield every operation under ``paths``."""
        for route, item in self.iter_paths():
            for method, operation in item.iter_operations():
                yield route, method, operation

    def iter_tags(self) -> Iterator[Tag]:
        yield from self.tags

    def iter_components(
        self, kind: Optional[ComponentKind] = None
    ) -> Iterator[tuple[ComponentKind, str, Any]]:
        yield from self.components.iter_components(kind)

    def security_schemes(self) -> dict[str, Any]:
        """The security-scheme group, whatever the dialect calls it."""
        return self.components.group(ComponentKind.SECURITY_SCHEMES)


class SwaggerDocument(SpecDocument):
    """A Swagger 2.0 document."""

    dialect: Literal[Dialect.V2] = Dialect.V2
    host: Optional[str] = None
    base_path: Optional[str] = None
    schemes: tuple[str, ...] = ()
    consumes: tuple[str, ...] = ()
    produces: tuple[str, ...] = ()


class OpenAPI30Document(SpecDocument):
    """An OpenAPI 3.0.x document."""

    dialect: Literal[Dialect.V3_0] = Dialect.V3_0
    servers: tuple[Server, ...] = ()


class OpenAPI31Document(SpecDocument):
    """An OpenAPI 3.1.x document.

    ``paths`` may be empty here as long as ``webhooks`` or ``components``
    is present.
    """

    dialect: Literal[Dialect.V3_1] = Dialect.V3_1
    servers: tuple[Server, ...] = ()
    webhooks: dict[str, PathItem] = Field(default_factory=dict)
    json_schema_dialect: Optional[str] = None

    def iter_webhooks(self) -> Iterator[tuple[str, PathItem]]:
        yield from self.webhooks.items()


AnySpecDocument = Annotated[
    Union[SwaggerDocument, OpenAPI30Document, OpenAPI31Document],
    Field(discriminator="dialect"),
]

for _model in (Header, Operation, PathItem, ComponentsContainer, SpecDocument):
    _model.model_rebuild()
