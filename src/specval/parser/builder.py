"""Build typed documents from decoded JSON/YAML mappings.

:func:`build_document` is the single entry point. It assumes the dialect is
already known (see :mod:`specval.dialects` for detection) and walks the raw
mapping top-down, building each model from the leaves up. The first
structural problem aborts construction with
:class:`~specval.exceptions.MalformedDocument`, whose ``path`` names the
offending location::

    build_document({"openapi": "3.0.3", "paths": {}}, Dialect.V3_0)
    # MalformedDocument: #: missing required field 'info'

Swagger 2.0 differs from OpenAPI 3.x in a few places that are normalised
here so the rest of the package can ignore them:

* non-body parameters and response headers carry their type inline; those
  keywords are folded into ``schema_``;
* reusable items live in root containers (``definitions``, ``parameters``,
  ``responses``, ``securityDefinitions``) instead of ``components``;
* security schemes use the flat :class:`~specval.models.SecurityDefinition`
  shape.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional, TypeVar

from specval.exceptions import MalformedDocument
from specval.models import (
    AnySpecDocument,
    ComponentsContainer,
    Contact,
    Dialect,
    Example,
    ExternalDocumentation,
    Header,
    HTTPMethod,
    Info,
    License,
    Link,
    MediaType,
    OAuthFlow,
    OpenAPI30Document,
    OpenAPI31Document,
    Operation,
    Parameter,
    ParameterLocation,
    PathItem,
    PointerStyle,
    Reference,
    RequestBody,
    Response,
    SecurityDefinition,
    SecurityScheme,
    Server,
    ServerVariable,
    SwaggerDocument,
    Tag,
)
from specval.parser.schemas import build_model, parse_schema
from specval.schema import SchemaNode

logger = logging.getLogger(__name__)

Path = tuple[Any, ...]
T = TypeVar("T")

# Swagger 2.0 keys that belong to the parameter itself; every other key on a
# non-body parameter describes its type.
_V2_PARAMETER_KEYS = frozenset({"name", "in", "description", "required", "allowEmptyValue"})
_V2_HEADER_KEYS = frozenset({"description"})


def build_document(raw: dict[str, Any], dialect: Dialect) -> AnySpecDocument:
    """Build the document model for *raw* in the given dialect.

    Args:
        raw: The decoded root mapping.
        dialect: The dialect to build; it must agree with the version field.

    Returns:
        A :class:`SwaggerDocument`, :class:`OpenAPI30Document` or
        :class:`OpenAPI31Document`.

    Raises:
        MalformedDocument: On the first absent required field or value of
            the wrong type.
    """
    if not isinstance(raw, dict):
        raise MalformedDocument(f"document root must be an object, got {type(raw).__name__}")
    builder = _Builder(dialect)
    if dialect == Dialect.V2:
        document = builder.swagger(raw)
    else:
        document = builder.openapi(raw)
    logger.debug(
        "Built %s document: %d paths, %d components",
        dialect.value,
        len(document.paths),
        sum(1 for _ in document.iter_components()),
    )
    return document


# --- Primitive helpers ---


def _mapping(value: Any, path: Path, what: str = "value") -> dict[str, Any]:
    if not isinstance(value, dict):
        raise MalformedDocument(f"{what} must be an object, got {type(value).__name__}", path)
    return value


def _list(value: Any, path: Path, what: str = "value") -> list[Any]:
    if not isinstance(value, list):
        raise MalformedDocument(f"{what} must be an array, got {type(value).__name__}", path)
    return value


def _required(data: dict[str, Any], key: str, path: Path) -> Any:
    if key not in data or data[key] is None:
        raise MalformedDocument(f"missing required field '{key}'", path)
    return data[key]


def _string(data: dict[str, Any], key: str, path: Path, required: bool = False) -> Optional[str]:
    value = _required(data, key, path) if required else data.get(key)
    if value is not None and not isinstance(value, str):
        raise MalformedDocument(f"'{key}' must be a string", path + (key,))
    return value


def _strings(data: dict[str, Any], key: str, path: Path) -> tuple[str, ...]:
    values = _list(data.get(key, []), path + (key,), f"'{key}'")
    for i, value in enumerate(values):
        if not isinstance(value, str):
            raise MalformedDocument(f"'{key}' entries must be strings", path + (key, i))
    return tuple(values)


def _extensions(data: dict[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in data.items() if isinstance(key, str) and key.startswith("x-")}


def _named(
    raw: Any, path: Path, build: Callable[[Any, Path], T], what: str
) -> dict[str, T]:
    """Build every value of a ``name -> item`` mapping."""
    return {
        str(name): build(item, path + (str(name),))
        for name, item in _mapping(raw, path, what).items()
    }


# --- Builder ---


class _Builder:
    """Dialect-aware construction of the individual document objects."""

    def __init__(self, dialect: Dialect) -> None:
        self.dialect = dialect

    @property
    def is_v2(self) -> bool:
        return self.dialect == Dialect.V2

    # Roots

    def swagger(self, raw: dict[str, Any]) -> SwaggerDocument:
        for key in ("swagger", "info", "paths"):
            _required(raw, key, ())
        containers = ComponentsContainer(
            pointer_style=PointerStyle.ROOT,
            schemas=_named(raw.get("definitions", {}), ("definitions",), parse_schema, "'definitions'"),
            parameters=_named(raw.get("parameters", {}), ("parameters",), self.parameter, "'parameters'"),
            responses=_named(raw.get("responses", {}), ("responses",), self.response, "'responses'"),
            security_schemes=_named(
                raw.get("securityDefinitions", {}),
                ("securityDefinitions",),
                self.security_definition,
                "'securityDefinitions'",
            ),
        )
        return build_model(
            SwaggerDocument,
            (),
            version=str(raw["swagger"]),
            info=self.info(raw["info"], ("info",)),
            paths=self.paths(raw["paths"], ("paths",)),
            components=containers,
            tags=self.tags(raw, ()),
            security=self.security(raw, ()),
            external_docs=self.external_docs(raw, ()),
            host=_string(raw, "host", ()),
            base_path=_string(raw, "basePath", ()),
            schemes=_strings(raw, "schemes", ()),
            consumes=_strings(raw, "consumes", ()),
            produces=_strings(raw, "produces", ()),
            extensions=_extensions(raw),
        )

    def openapi(self, raw: dict[str, Any]) -> OpenAPI30Document | OpenAPI31Document:
        for key in ("openapi", "info"):
            _required(raw, key, ())
        if self.dialect == Dialect.V3_0:
            _required(raw, "paths", ())
        elif not any(raw.get(key) is not None for key in ("paths", "webhooks", "components")):
            raise MalformedDocument("document needs at least one of 'paths', 'webhooks' or 'components'")

        common: dict[str, Any] = dict(
            version=str(raw["openapi"]),
            info=self.info(raw["info"], ("info",)),
            paths=self.paths(raw.get("paths", {}), ("paths",)),
            components=self.components(raw.get("components", {}), ("components",)),
            tags=self.tags(raw, ()),
            security=self.security(raw, ()),
            external_docs=self.external_docs(raw, ()),
            servers=self.servers(raw, ()),
            extensions=_extensions(raw),
        )
        if self.dialect == Dialect.V3_0:
            return build_model(OpenAPI30Document, (), **common)
        return build_model(
            OpenAPI31Document,
            (),
            webhooks=_named(raw.get("webhooks", {}), ("webhooks",), self.path_item, "'webhooks'"),
            json_schema_dialect=_string(raw, "jsonSchemaDialect", ()),
            **common,
        )

    # Metadata

    def info(self, raw: Any, path: Path) -> Info:
        data = _mapping(raw, path, "'info'")
        version = _required(data, "version", path)
        # YAML reads an unquoted 1.0 as a number.
        if isinstance(version, (int, float)) and not isinstance(version, bool):
            version = str(version)
        contact = data.get("contact")
        license_ = data.get("license")
        return build_model(
            Info,
            path,
            title=_string(data, "title", path, required=True),
            version=version,
            description=_string(data, "description", path),
            summary=_string(data, "summary", path),
            terms_of_service=_string(data, "termsOfService", path),
            contact=self.contact(contact, path + ("contact",)) if contact is not None else None,
            license=self.license(license_, path + ("license",)) if license_ is not None else None,
        )

    def contact(self, raw: Any, path: Path) -> Contact:
        data = _mapping(raw, path, "'contact'")
        return build_model(
            Contact,
            path,
            name=_string(data, "name", path),
            url=_string(data, "url", path),
            email=_string(data, "email", path),
        )

    def license(self, raw: Any, path: Path) -> License:
        data = _mapping(raw, path, "'license'")
        return build_model(
            License,
            path,
            name=_string(data, "name", path, required=True),
            url=_string(data, "url", path),
            identifier=_string(data, "identifier", path),
        )

    def external_docs(self, data: dict[str, Any], path: Path) -> Optional[ExternalDocumentation]:
        raw = data.get("externalDocs")
        if raw is None:
            return None
        path = path + ("externalDocs",)
        docs = _mapping(raw, path, "'externalDocs'")
        return build_model(
            ExternalDocumentation,
            path,
            url=_string(docs, "url", path, required=True),
            description=_string(docs, "description", path),
        )

    def tags(self, data: dict[str, Any], path: Path) -> tuple[Tag, ...]:
        tags = []
        for i, raw in enumerate(_list(data.get("tags", []), path + ("tags",), "'tags'")):
            tag_path = path + ("tags", i)
            tag = _mapping(raw, tag_path, "tag")
            tags.append(
                build_model(
                    Tag,
                    tag_path,
                    name=_string(tag, "name", tag_path, required=True),
                    description=_string(tag, "description", tag_path),
                    external_docs=self.external_docs(tag, tag_path),
                )
            )
        return tuple(tags)

    def servers(self, data: dict[str, Any], path: Path) -> tuple[Server, ...]:
        raw = _list(data.get("servers", []), path + ("servers",), "'servers'")
        return tuple(self.server(item, path + ("servers", i)) for i, item in enumerate(raw))

    def server(self, raw: Any, path: Path) -> Server:
        server = _mapping(raw, path, "server")
        variables = {}
        for name, var in _mapping(
            server.get("variables", {}), path + ("variables",), "'variables'"
        ).items():
            var_path = path + ("variables", name)
            var = _mapping(var, var_path, "server variable")
            variables[name] = build_model(
                ServerVariable,
                var_path,
                default=_string(var, "default", var_path, required=True),
                enum=_strings(var, "enum", var_path) if "enum" in var else None,
                description=_string(var, "description", var_path),
            )
        return build_model(
            Server,
            path,
            url=_string(server, "url", path, required=True),
            description=_string(server, "description", path),
            variables=variables,
        )

    def security(self, data: dict[str, Any], path: Path) -> Optional[tuple[dict[str, tuple[str, ...]], ...]]:
        if "security" not in data:
            return None
        requirements = []
        for i, raw in enumerate(_list(data["security"], path + ("security",), "'security'")):
            req_path = path + ("security", i)
            requirement = {}
            for name, scopes in _mapping(raw, req_path, "security requirement").items():
                scope_list = _list(scopes, req_path + (name,), "scopes")
                if not all(isinstance(s, str) for s in scope_list):
                    raise MalformedDocument("scopes must be strings", req_path + (name,))
                requirement[name] = tuple(scope_list)
            requirements.append(requirement)
        return tuple(requirements)

    # References

    def ref_or(self, raw: Any, path: Path, build: Callable[[Any, Path], T]) -> Reference | T:
        data = _mapping(raw, path)
        if "$ref" not in data:
            return build(data, path)
        return build_model(
            Reference,
            path,
            ref=_string(data, "$ref", path),
            summary=_string(data, "summary", path),
            description=_string(data, "description", path),
        )

    # Paths and operations

    def paths(self, raw: Any, path: Path) -> dict[str, PathItem]:
        return _named(raw, path, self.path_item, "'paths'")

    def path_item(self, raw: Any, path: Path) -> PathItem:
        data = _mapping(raw, path, "path item")
        operations = {}
        for method in HTTPMethod:
            if method.value in data:
                operations[method] = self.operation(data[method.value], path + (method.value,))
        return build_model(
            PathItem,
            path,
            ref=_string(data, "$ref", path),
            summary=_string(data, "summary", path),
            description=_string(data, "description", path),
            operations=operations,
            parameters=self.parameter_list(data, path),
            servers=self.servers(data, path),
            extensions=_extensions(data),
        )

    def operation(self, raw: Any, path: Path) -> Operation:
        data = _mapping(raw, path, "operation")
        responses = {
            str(code): self.ref_or(response, path + ("responses", str(code)), self.response)
            for code, response in _mapping(
                data.get("responses", {}), path + ("responses",), "'responses'"
            ).items()
        }
        fields: dict[str, Any] = dict(
            operation_id=_string(data, "operationId", path),
            summary=_string(data, "summary", path),
            description=_string(data, "description", path),
            tags=_strings(data, "tags", path),
            parameters=self.parameter_list(data, path),
            responses=responses,
            security=self.security(data, path),
            external_docs=self.external_docs(data, path),
            deprecated=data.get("deprecated", False),
            extensions=_extensions(data),
        )
        if self.is_v2:
            fields["consumes"] = _strings(data, "consumes", path)
            fields["produces"] = _strings(data, "produces", path)
        else:
            if "requestBody" in data:
                fields["request_body"] = self.ref_or(
                    data["requestBody"], path + ("requestBody",), self.request_body
                )
            fields["callbacks"] = _named(
                data.get("callbacks", {}),
                path + ("callbacks",),
                lambda cb, cb_path: self.ref_or(cb, cb_path, self.callback),
                "'callbacks'",
            )
            fields["servers"] = self.servers(data, path)
        return build_model(Operation, path, **fields)

    def callback(self, raw: Any, path: Path) -> dict[str, PathItem]:
        return _named(raw, path, self.path_item, "callback")

    # Parameters, bodies, responses

    def parameter_list(self, data: dict[str, Any], path: Path) -> tuple[Reference | Parameter, ...]:
        raw = _list(data.get("parameters", []), path + ("parameters",), "'parameters'")
        return tuple(
            self.ref_or(item, path + ("parameters", i), self.parameter) for i, item in enumerate(raw)
        )

    def parameter(self, raw: Any, path: Path) -> Parameter:
        data = _mapping(raw, path, "parameter")
        name = _string(data, "name", path, required=True)
        location_raw = _required(data, "in", path)
        try:
            location = ParameterLocation(location_raw)
        except ValueError:
            raise MalformedDocument(f"unknown parameter location '{location_raw}'", path + ("in",)) from None

        fields: dict[str, Any] = dict(
            name=name,
            location=location,
            description=_string(data, "description", path),
            required=data.get("required", False),
            allow_empty_value=data.get("allowEmptyValue", False),
            extensions=_extensions(data),
        )
        if self.is_v2:
            if location == ParameterLocation.BODY:
                fields["schema_"] = parse_schema(_required(data, "schema", path), path + ("schema",))
            else:
                fields["schema_"] = self._fold_schema(data, _V2_PARAMETER_KEYS, path)
        else:
            fields.update(self._schema_or_content(data, path))
            fields.update(
                deprecated=data.get("deprecated", False),
                style=_string(data, "style", path),
                explode=data.get("explode"),
                example=data.get("example"),
                examples=self.examples(data, path),
            )
        return build_model(Parameter, path, **fields)

    def header(self, raw: Any, path: Path) -> Header:
        data = _mapping(raw, path, "header")
        if self.is_v2:
            return build_model(
                Header,
                path,
                description=_string(data, "description", path),
                schema_=self._fold_schema(data, _V2_HEADER_KEYS, path),
            )
        return build_model(
            Header,
            path,
            description=_string(data, "description", path),
            required=data.get("required", False),
            deprecated=data.get("deprecated", False),
            **self._schema_or_content(data, path),
        )

    def media_type(self, raw: Any, path: Path) -> MediaType:
        data = _mapping(raw, path, "media type")
        return build_model(
            MediaType,
            path,
            schema_=parse_schema(data["schema"], path + ("schema",)) if "schema" in data else None,
            example=data.get("example"),
            examples=self.examples(data, path),
        )

    def content(self, data: dict[str, Any], path: Path) -> dict[str, MediaType]:
        return _named(data.get("content", {}), path + ("content",), self.media_type, "'content'")

    def examples(self, data: dict[str, Any], path: Path) -> dict[str, Any]:
        return _named(
            data.get("examples", {}),
            path + ("examples",),
            lambda ex, ex_path: self.ref_or(ex, ex_path, self.example),
            "'examples'",
        )

    def example(self, raw: Any, path: Path) -> Example:
        data = _mapping(raw, path, "example")
        return build_model(
            Example,
            path,
            summary=_string(data, "summary", path),
            description=_string(data, "description", path),
            value=data.get("value"),
            external_value=_string(data, "externalValue", path),
            extensions=_extensions(data),
        )

    def link(self, raw: Any, path: Path) -> Link:
        data = _mapping(raw, path, "link")
        return build_model(
            Link,
            path,
            operation_ref=_string(data, "operationRef", path),
            operation_id=_string(data, "operationId", path),
            parameters={
                str(name): value
                for name, value in _mapping(
                    data.get("parameters", {}), path + ("parameters",), "'parameters'"
                ).items()
            },
            request_body=data.get("requestBody"),
            description=_string(data, "description", path),
            server=self.server(data["server"], path + ("server",)) if "server" in data else None,
            extensions=_extensions(data),
        )

    def request_body(self, raw: Any, path: Path) -> RequestBody:
        data = _mapping(raw, path, "request body")
        return build_model(
            RequestBody,
            path,
            description=_string(data, "description", path),
            content=self.content(data, path),
            required=data.get("required", False),
        )

    def response(self, raw: Any, path: Path) -> Response:
        data = _mapping(raw, path, "response")
        fields: dict[str, Any] = dict(
            description=_string(data, "description", path, required=True),
            headers=_named(
                data.get("headers", {}),
                path + ("headers",),
                lambda h, h_path: self.ref_or(h, h_path, self.header),
                "'headers'",
            ),
        )
        if self.is_v2:
            if "schema" in data:
                fields["schema_"] = parse_schema(data["schema"], path + ("schema",))
        else:
            fields["content"] = self.content(data, path)
            fields["links"] = _named(
                data.get("links", {}),
                path + ("links",),
                lambda link, link_path: self.ref_or(link, link_path, self.link),
                "'links'",
            )
        return build_model(Response, path, **fields)

    def _schema_or_content(self, data: dict[str, Any], path: Path) -> dict[str, Any]:
        fields: dict[str, Any] = {"content": self.content(data, path)}
        if "schema" in data:
            fields["schema_"] = parse_schema(data["schema"], path + ("schema",))
        return fields

    @staticmethod
    def _fold_schema(
        data: dict[str, Any], own_keys: frozenset[str], path: Path
    ) -> Optional[SchemaNode]:
        inline = {
            key: value
            for key, value in data.items()
            if key not in own_keys and not str(key).startswith("x-")
        }
        return parse_schema(inline, path) if inline else None

    # Security schemes

    def security_definition(self, raw: Any, path: Path) -> SecurityDefinition:
        data = _mapping(raw, path, "security definition")
        scopes = _mapping(data.get("scopes", {}), path + ("scopes",), "'scopes'")
        return build_model(
            SecurityDefinition,
            path,
            type=_string(data, "type", path, required=True),
            description=_string(data, "description", path),
            name=_string(data, "name", path),
            location=_string(data, "in", path),
            flow=_string(data, "flow", path),
            authorization_url=_string(data, "authorizationUrl", path),
            token_url=_string(data, "tokenUrl", path),
            scopes=scopes,
        )

    def security_scheme(self, raw: Any, path: Path) -> SecurityScheme:
        data = _mapping(raw, path, "security scheme")
        flows = {}
        for flow_name, flow in _mapping(data.get("flows", {}), path + ("flows",), "'flows'").items():
            flow_path = path + ("flows", flow_name)
            flow = _mapping(flow, flow_path, "OAuth flow")
            flows[flow_name] = build_model(
                OAuthFlow,
                flow_path,
                authorization_url=_string(flow, "authorizationUrl", flow_path),
                token_url=_string(flow, "tokenUrl", flow_path),
                refresh_url=_string(flow, "refreshUrl", flow_path),
                scopes=_mapping(flow.get("scopes", {}), flow_path + ("scopes",), "'scopes'"),
            )
        return build_model(
            SecurityScheme,
            path,
            type=_string(data, "type", path, required=True),
            description=_string(data, "description", path),
            name=_string(data, "name", path),
            location=_string(data, "in", path),
            scheme=_string(data, "scheme", path),
            bearer_format=_string(data, "bearerFormat", path),
            flows=flows,
            openid_connect_url=_string(data, "openIdConnectUrl", path),
        )

    # Components

    def components(self, raw: Any, path: Path) -> ComponentsContainer:
        data = _mapping(raw, path, "'components'")

        def group(key: str, build: Callable[[Any, Path], Any]) -> dict[str, Any]:
            return _named(data.get(key, {}), path + (key,), build, f"'{key}'")

        def ref_or(build: Callable[[Any, Path], Any]) -> Callable[[Any, Path], Any]:
            return lambda item, item_path: self.ref_or(item, item_path, build)

        return build_model(
            ComponentsContainer,
            path,
            pointer_style=PointerStyle.COMPONENTS,
            schemas=group("schemas", parse_schema),
            responses=group("responses", ref_or(self.response)),
            parameters=group("parameters", ref_or(self.parameter)),
            examples=group("examples", ref_or(self.example)),
            request_bodies=group("requestBodies", ref_or(self.request_body)),
            headers=group("headers", ref_or(self.header)),
            security_schemes=group("securitySchemes", ref_or(self.security_scheme)),
            links=group("links", ref_or(self.link)),
            callbacks=group("callbacks", ref_or(self.callback)),
            path_items=group("pathItems", self.path_item),
        )
