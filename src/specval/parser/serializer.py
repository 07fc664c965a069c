"""Turn a document model back into a plain JSON-compatible mapping.

The output is structural, not textual: key order, comments and formatting of
the source are not preserved, but building the output again gives an equal
model::

    raw = dump_document(doc)
    assert build_document(raw, doc.dialect) == doc

Swagger 2.0 documents are written in their own shape: root containers
instead of ``components`` and inline parameter types instead of ``schema``.
"""

from __future__ import annotations

from typing import Any, Optional

from specval.models import (
    AnySpecDocument,
    ComponentKind,
    Example,
    ExternalDocumentation,
    Header,
    Info,
    Link,
    MediaType,
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
    SwaggerDocument,
    Tag,
)
from specval.parser.schemas import dump_schema

# Swagger 2.0 root containers, in the order they are written.
_V2_CONTAINERS = {
    ComponentKind.SCHEMAS: "definitions",
    ComponentKind.PARAMETERS: "parameters",
    ComponentKind.RESPONSES: "responses",
    ComponentKind.SECURITY_SCHEMES: "securityDefinitions",
}


def dump_document(document: AnySpecDocument) -> dict[str, Any]:
    """Return the structural mapping form of *document*."""
    return _Serializer(isinstance(document, SwaggerDocument)).document(document)


def _put(out: dict[str, Any], key: str, value: Any) -> None:
    """Set *key* unless *value* is ``None`` or an empty collection."""
    if value is None:
        return
    if isinstance(value, (dict, list, tuple)) and not value:
        return
    out[key] = list(value) if isinstance(value, tuple) else value


class _Serializer:
    def __init__(self, is_v2: bool) -> None:
        self.is_v2 = is_v2

    def document(self, doc: AnySpecDocument) -> dict[str, Any]:
        out: dict[str, Any] = {}
        if self.is_v2:
            out["swagger"] = doc.version
        else:
            out["openapi"] = doc.version
        out["info"] = self.info(doc.info)

        if isinstance(doc, SwaggerDocument):
            _put(out, "host", doc.host)
            _put(out, "basePath", doc.base_path)
            _put(out, "schemes", doc.schemes)
            _put(out, "consumes", doc.consumes)
            _put(out, "produces", doc.produces)
        else:
            _put(out, "servers", [self.server(s) for s in doc.servers])
            if isinstance(doc, OpenAPI31Document):
                _put(out, "jsonSchemaDialect", doc.json_schema_dialect)

        # 3.1 may omit paths when webhooks or components stand in for them.
        if (
            doc.paths
            or not isinstance(doc, OpenAPI31Document)
            or (not doc.webhooks and doc.components.is_empty())
        ):
            out["paths"] = {route: self.path_item(item) for route, item in doc.iter_paths()}
        if isinstance(doc, OpenAPI31Document):
            _put(out, "webhooks", {name: self.path_item(item) for name, item in doc.iter_webhooks()})

        if doc.components.pointer_style == PointerStyle.ROOT:
            for kind, key in _V2_CONTAINERS.items():
                _put(out, key, {name: self.component(kind, item) for name, item in doc.components.group(kind).items()})
        elif not doc.components.is_empty():
            components: dict[str, Any] = {}
            for kind in ComponentKind:
                _put(
                    components,
                    kind.value,
                    {name: self.component(kind, item) for name, item in doc.components.group(kind).items()},
                )
            out["components"] = components

        if doc.security is not None:
            out["security"] = self.security(doc.security)
        _put(out, "tags", [self.tag(t) for t in doc.tags])
        _put(out, "externalDocs", self.external_docs(doc.external_docs))
        out.update(doc.extensions)
        return out

    # Metadata

    def info(self, info: Info) -> dict[str, Any]:
        out: dict[str, Any] = {"title": info.title, "version": info.version}
        _put(out, "summary", info.summary)
        _put(out, "description", info.description)
        _put(out, "termsOfService", info.terms_of_service)
        if info.contact is not None:
            out["contact"] = info.contact.model_dump(exclude_none=True)
        if info.license is not None:
            out["license"] = info.license.model_dump(exclude_none=True)
        return out

    def external_docs(self, docs: Optional[ExternalDocumentation]) -> Optional[dict[str, Any]]:
        if docs is None:
            return None
        return docs.model_dump(exclude_none=True)

    def tag(self, tag: Tag) -> dict[str, Any]:
        out: dict[str, Any] = {"name": tag.name}
        _put(out, "description", tag.description)
        _put(out, "externalDocs", self.external_docs(tag.external_docs))
        return out

    def server(self, server: Server) -> dict[str, Any]:
        out: dict[str, Any] = {"url": server.url}
        _put(out, "description", server.description)
        variables = {}
        for name, var in server.variables.items():
            entry: dict[str, Any] = {"default": var.default}
            if var.enum is not None:
                entry["enum"] = list(var.enum)
            _put(entry, "description", var.description)
            variables[name] = entry
        _put(out, "variables", variables)
        return out

    def security(self, requirements: tuple[dict[str, tuple[str, ...]], ...]) -> list[dict[str, Any]]:
        return [{name: list(scopes) for name, scopes in req.items()} for req in requirements]

    # Paths

    def path_item(self, item: PathItem) -> dict[str, Any]:
        out: dict[str, Any] = {}
        _put(out, "$ref", item.ref)
        _put(out, "summary", item.summary)
        _put(out, "description", item.description)
        for method, operation in item.iter_operations():
            out[method.value] = self.operation(operation)
        _put(out, "parameters", [self.ref_or(p, self.parameter) for p in item.parameters])
        _put(out, "servers", [self.server(s) for s in item.servers])
        out.update(item.extensions)
        return out

    def operation(self, op: Operation) -> dict[str, Any]:
        out: dict[str, Any] = {}
        _put(out, "tags", op.tags)
        _put(out, "summary", op.summary)
        _put(out, "description", op.description)
        _put(out, "externalDocs", self.external_docs(op.external_docs))
        _put(out, "operationId", op.operation_id)
        _put(out, "consumes", op.consumes)
        _put(out, "produces", op.produces)
        _put(out, "parameters", [self.ref_or(p, self.parameter) for p in op.parameters])
        if op.request_body is not None:
            out["requestBody"] = self.ref_or(op.request_body, self.request_body)
        out["responses"] = {code: self.ref_or(r, self.response) for code, r in op.responses.items()}
        _put(
            out,
            "callbacks",
            {name: self.ref_or(cb, self.callback) for name, cb in op.callbacks.items()},
        )
        if op.deprecated:
            out["deprecated"] = True
        if op.security is not None:
            out["security"] = self.security(op.security)
        _put(out, "servers", [self.server(s) for s in op.servers])
        out.update(op.extensions)
        return out

    def callback(self, callback: dict[str, PathItem]) -> dict[str, Any]:
        return {expression: self.path_item(item) for expression, item in callback.items()}

    # Parameters, bodies, responses

    def ref_or(self, value: Any, dump: Any) -> dict[str, Any]:
        if isinstance(value, Reference):
            out: dict[str, Any] = {"$ref": value.ref}
            _put(out, "summary", value.summary)
            _put(out, "description", value.description)
            return out
        return dump(value)

    def parameter(self, param: Parameter) -> dict[str, Any]:
        out: dict[str, Any] = {"name": param.name, "in": param.location.value}
        _put(out, "description", param.description)
        if param.required:
            out["required"] = True
        if param.allow_empty_value:
            out["allowEmptyValue"] = True
        if self.is_v2 and param.location != ParameterLocation.BODY:
            if param.schema_ is not None:
                out.update(dump_schema(param.schema_))
        else:
            if param.schema_ is not None:
                out["schema"] = dump_schema(param.schema_)
            if param.deprecated:
                out["deprecated"] = True
            _put(out, "style", param.style)
            _put(out, "explode", param.explode)
            _put(out, "example", param.example)
            _put(out, "examples", self.examples(param.examples))
            _put(out, "content", self.content(param.content))
        out.update(param.extensions)
        return out

    def header(self, header: Header) -> dict[str, Any]:
        out: dict[str, Any] = {}
        _put(out, "description", header.description)
        if self.is_v2:
            if header.schema_ is not None:
                out.update(dump_schema(header.schema_))
            return out
        if header.required:
            out["required"] = True
        if header.deprecated:
            out["deprecated"] = True
        if header.schema_ is not None:
            out["schema"] = dump_schema(header.schema_)
        _put(out, "content", self.content(header.content))
        return out

    def media_type(self, media: MediaType) -> dict[str, Any]:
        out: dict[str, Any] = {}
        if media.schema_ is not None:
            out["schema"] = dump_schema(media.schema_)
        _put(out, "example", media.example)
        _put(out, "examples", self.examples(media.examples))
        return out

    def content(self, content: dict[str, MediaType]) -> dict[str, Any]:
        return {media_type: self.media_type(m) for media_type, m in content.items()}

    def request_body(self, body: RequestBody) -> dict[str, Any]:
        out: dict[str, Any] = {}
        _put(out, "description", body.description)
        out["content"] = self.content(body.content)
        if body.required:
            out["required"] = True
        return out

    def response(self, response: Response) -> dict[str, Any]:
        out: dict[str, Any] = {"description": response.description}
        _put(out, "headers", {name: self.ref_or(h, self.header) for name, h in response.headers.items()})
        if response.schema_ is not None:
            out["schema"] = dump_schema(response.schema_)
        _put(out, "content", self.content(response.content))
        _put(out, "links", {name: self.ref_or(link, self.link) for name, link in response.links.items()})
        return out

    def examples(self, examples: dict[str, Any]) -> dict[str, Any]:
        return {name: self.ref_or(ex, self.example) for name, ex in examples.items()}

    def example(self, example: Example) -> dict[str, Any]:
        out: dict[str, Any] = {}
        _put(out, "summary", example.summary)
        _put(out, "description", example.description)
        if example.value is not None:
            out["value"] = example.value
        _put(out, "externalValue", example.external_value)
        out.update(example.extensions)
        return out

    def link(self, link: Link) -> dict[str, Any]:
        out: dict[str, Any] = {}
        _put(out, "operationRef", link.operation_ref)
        _put(out, "operationId", link.operation_id)
        _put(out, "parameters", link.parameters)
        if link.request_body is not None:
            out["requestBody"] = link.request_body
        _put(out, "description", link.description)
        if link.server is not None:
            out["server"] = self.server(link.server)
        out.update(link.extensions)
        return out

    # Components

    def component(self, kind: ComponentKind, item: Any) -> Any:
        if kind == ComponentKind.SCHEMAS:
            return dump_schema(item)
        if kind == ComponentKind.PATH_ITEMS:
            return self.path_item(item)
        if isinstance(item, SecurityDefinition):
            return self.security_definition(item)
        dump = {
            ComponentKind.RESPONSES: self.response,
            ComponentKind.PARAMETERS: self.parameter,
            ComponentKind.EXAMPLES: self.example,
            ComponentKind.REQUEST_BODIES: self.request_body,
            ComponentKind.HEADERS: self.header,
            ComponentKind.LINKS: self.link,
            ComponentKind.SECURITY_SCHEMES: self.security_scheme,
            ComponentKind.CALLBACKS: self.callback,
        }[kind]
        return self.ref_or(item, dump)

    def security_definition(self, definition: SecurityDefinition) -> dict[str, Any]:
        out: dict[str, Any] = {"type": definition.type}
        _put(out, "description", definition.description)
        _put(out, "name", definition.name)
        _put(out, "in", definition.location)
        _put(out, "flow", definition.flow)
        _put(out, "authorizationUrl", definition.authorization_url)
        _put(out, "tokenUrl", definition.token_url)
        if definition.type == "oauth2" or definition.scopes:
            out["scopes"] = dict(definition.scopes)
        return out

    def security_scheme(self, scheme: SecurityScheme) -> dict[str, Any]:
        out: dict[str, Any] = {"type": scheme.type}
        _put(out, "description", scheme.description)
        _put(out, "name", scheme.name)
        _put(out, "in", scheme.location)
        _put(out, "scheme", scheme.scheme)
        _put(out, "bearerFormat", scheme.bearer_format)
        flows = {}
        for name, flow in scheme.flows.items():
            entry: dict[str, Any] = {}
            _put(entry, "authorizationUrl", flow.authorization_url)
            _put(entry, "tokenUrl", flow.token_url)
            _put(entry, "refreshUrl", flow.refresh_url)
            entry["scopes"] = dict(flow.scopes)
            flows[name] = entry
        _put(out, "flows", flows)
        _put(out, "openIdConnectUrl", scheme.openid_connect_url)
        return out
