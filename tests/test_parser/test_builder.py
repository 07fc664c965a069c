"""Tests for specval.parser.builder via specval.dialects.parse_document."""

from __future__ import annotations

from typing import Any

import pytest
from pydantic import ValidationError

from specval.dialects import parse_document
from specval.exceptions import MalformedDocument, ShapeConflict
from specval.models import (
    ComponentKind,
    Dialect,
    Example,
    HTTPMethod,
    Link,
    OpenAPI30Document,
    OpenAPI31Document,
    Parameter,
    ParameterLocation,
    PathItem,
    PointerStyle,
    Reference,
    SecurityDefinition,
    SwaggerDocument,
)
from specval.schema import ArraySchema, ObjectSchema, PrimitiveSchema, ReferenceSchema


def _minimal_30(**extra: Any) -> dict[str, Any]:
    raw: dict[str, Any] = {"openapi": "3.0.3", "info": {"title": "T", "version": "1"}, "paths": {}}
    raw.update(extra)
    return raw


# ---------------------------------------------------------------------------
# Document roots
# ---------------------------------------------------------------------------


class TestDocumentRoots:
    """Each dialect builds its own root type."""

    def test_swagger_root(self, petstore_20: SwaggerDocument) -> None:
        assert isinstance(petstore_20, SwaggerDocument)
        assert petstore_20.dialect == Dialect.V2
        assert petstore_20.version == "2.0"
        assert petstore_20.host == "petstore.example.com"
        assert petstore_20.base_path == "/v1"
        assert petstore_20.schemes == ("https",)
        assert petstore_20.components.pointer_style == PointerStyle.ROOT

    def test_swagger_root_containers(self, petstore_20: SwaggerDocument) -> None:
        components = petstore_20.components
        assert set(components.schemas) == {"Pet", "NewPet", "Category", "Error"}
        assert set(components.parameters) == {"Limit"}
        assert set(components.responses) == {"Error"}
        assert isinstance(components.security_schemes["petstore_auth"], SecurityDefinition)
        assert components.security_schemes["petstore_auth"].declared_scopes() == {
            "read:pets",
            "write:pets",
        }

    def test_openapi_30_root(self, petstore_30: OpenAPI30Document) -> None:
        assert isinstance(petstore_30, OpenAPI30Document)
        assert petstore_30.version == "3.0.3"
        assert petstore_30.servers[0].variables["environment"].default == "api"
        assert petstore_30.components.pointer_style == PointerStyle.COMPONENTS
        assert petstore_30.external_docs is not None

    def test_openapi_31_root(self, petstore_31: OpenAPI31Document) -> None:
        assert isinstance(petstore_31, OpenAPI31Document)
        assert list(petstore_31.webhooks) == ["newPet"]
        assert "PetById" in petstore_31.components.path_items
        assert petstore_31.info.summary == "A sample pet store."

    def test_31_without_paths_is_accepted(self) -> None:
        doc = parse_document(
            {
                "openapi": "3.1.0",
                "info": {"title": "T", "version": "1"},
                "components": {"schemas": {"A": {"type": "string"}}},
            }
        )
        assert doc.paths == {}

    def test_31_needs_paths_webhooks_or_components(self) -> None:
        with pytest.raises(MalformedDocument, match="at least one of"):
            parse_document({"openapi": "3.1.0", "info": {"title": "T", "version": "1"}})

    def test_30_needs_paths(self) -> None:
        with pytest.raises(MalformedDocument, match="'paths'"):
            parse_document({"openapi": "3.0.0", "info": {"title": "T", "version": "1"}})

    def test_numeric_info_version_is_string(self) -> None:
        doc = parse_document({"openapi": "3.0.0", "info": {"title": "T", "version": 1.0}, "paths": {}})
        assert doc.info.version == "1.0"

    def test_documents_are_frozen(self, petstore_30: OpenAPI30Document) -> None:
        with pytest.raises(ValidationError):
            petstore_30.version = "3.0.0"  # type: ignore[misc]


# ---------------------------------------------------------------------------
# Paths, operations and parameters
# ---------------------------------------------------------------------------


class TestOperations:
    """Operations and their parts."""

    def test_iter_operations_in_method_order(self, petstore_30: OpenAPI30Document) -> None:
        found = [(route, method) for route, method, _ in petstore_30.iter_operations()]
        assert found == [
            ("/pets", HTTPMethod.GET),
            ("/pets", HTTPMethod.POST),
            ("/pets/{petId}", HTTPMethod.GET),
            ("/pets/{petId}", HTTPMethod.DELETE),
        ]

    def test_references_stay_tokens(self, petstore_30: OpenAPI30Document) -> None:
        get = petstore_30.paths["/pets"].operations[HTTPMethod.GET]
        assert get.parameters == (Reference(ref="#/components/parameters/Limit"),)
        assert isinstance(get.responses["default"], Reference)

    def test_inline_parameter(self, petstore_30: OpenAPI30Document) -> None:
        param = petstore_30.paths["/pets/{petId}"].parameters[0]
        assert isinstance(param, Parameter)
        assert param.key == ("petId", ParameterLocation.PATH)
        assert param.required is True
        assert isinstance(param.schema_, PrimitiveSchema)

    def test_swagger_parameter_schema_is_folded(self, petstore_20: SwaggerDocument) -> None:
        limit = petstore_20.components.parameters["Limit"]
        assert isinstance(limit, Parameter)
        assert isinstance(limit.schema_, PrimitiveSchema)
        assert limit.schema_.types == ("integer",)
        assert limit.schema_.keywords == {"maximum": 100}

    def test_swagger_body_parameter(self, petstore_20: SwaggerDocument) -> None:
        post = petstore_20.paths["/pets"].operations[HTTPMethod.POST]
        body = post.parameters[0]
        assert isinstance(body, Parameter)
        assert body.location == ParameterLocation.BODY
        assert isinstance(body.schema_, ReferenceSchema)

    def test_swagger_response_schema(self, petstore_20: SwaggerDocument) -> None:
        ok = petstore_20.paths["/pets"].operations[HTTPMethod.GET].responses["200"]
        assert isinstance(ok.schema_, ArraySchema)
        assert isinstance(ok.headers["X-Rate-Limit"].schema_, PrimitiveSchema)

    def test_request_body_content(self, petstore_31: OpenAPI31Document) -> None:
        post = petstore_31.webhooks["newPet"].operations[HTTPMethod.POST]
        schema = post.request_body.content["application/json"].schema_
        assert isinstance(schema, ReferenceSchema)
        assert schema.ref == "#/components/schemas/Pet"

    def test_path_item_reference(self, petstore_31: OpenAPI31Document) -> None:
        item = petstore_31.paths["/pets/{petId}"]
        assert isinstance(item, PathItem)
        assert item.ref == "#/components/pathItems/PetById"
        assert item.operations == {}

    def test_callbacks(self) -> None:
        raw = _minimal_30(
            paths={
                "/subscribe": {
                    "post": {
                        "responses": {"201": {"description": "ok"}},
                        "callbacks": {
                            "onEvent": {
                                "{$request.body#/url}": {
                                    "post": {"responses": {"200": {"description": "ok"}}}
                                }
                            },
                            "shared": {"$ref": "#/components/callbacks/Shared"},
                        },
                    }
                }
            }
        )
        op = parse_document(raw).paths["/subscribe"].operations[HTTPMethod.POST]
        inline = op.callbacks["onEvent"]
        assert isinstance(inline["{$request.body#/url}"], PathItem)
        assert isinstance(op.callbacks["shared"], Reference)

    def test_component_kinds(self, petstore_30: OpenAPI30Document) -> None:
        kinds = {kind for kind, _, _ in petstore_30.iter_components()}
        assert kinds == {
            ComponentKind.SCHEMAS,
            ComponentKind.PARAMETERS,
            ComponentKind.REQUEST_BODIES,
            ComponentKind.RESPONSES,
            ComponentKind.HEADERS,
            ComponentKind.SECURITY_SCHEMES,
        }
        pet = petstore_30.components.get(ComponentKind.SCHEMAS, "Pet")
        assert isinstance(pet, ObjectSchema)


# ---------------------------------------------------------------------------
# Malformed documents
# ---------------------------------------------------------------------------


class TestMalformedDocuments:
    """Structural problems stop construction with a located error."""

    def test_missing_info(self) -> None:
        with pytest.raises(MalformedDocument, match="'info'"):
            parse_document({"openapi": "3.0.0", "paths": {}})

    def test_missing_title(self) -> None:
        with pytest.raises(MalformedDocument, match="'title'") as exc_info:
            parse_document({"openapi": "3.0.0", "info": {"version": "1"}, "paths": {}})
        assert exc_info.value.path == ("info",)

    def test_paths_not_object(self) -> None:
        with pytest.raises(MalformedDocument, match="must be an object"):
            parse_document(_minimal_30(paths=["/pets"]))

    def test_unknown_parameter_location(self) -> None:
        raw = _minimal_30(
            paths={
                "/pets": {
                    "get": {
                        "parameters": [{"name": "a", "in": "matrix", "schema": {}}],
                        "responses": {},
                    }
                }
            }
        )
        with pytest.raises(MalformedDocument, match="unknown parameter location") as exc_info:
            parse_document(raw)
        assert exc_info.value.path == ("paths", "/pets", "get", "parameters", 0, "in")

    def test_response_without_description(self) -> None:
        raw = _minimal_30(paths={"/pets": {"get": {"responses": {"200": {}}}}})
        with pytest.raises(MalformedDocument, match="'description'"):
            parse_document(raw)

    def test_swagger_body_without_schema(self) -> None:
        raw = {
            "swagger": "2.0",
            "info": {"title": "T", "version": "1"},
            "paths": {"/pets": {"post": {"parameters": [{"name": "b", "in": "body"}], "responses": {}}}},
        }
        with pytest.raises(MalformedDocument, match="'schema'"):
            parse_document(raw)

    def test_shape_conflict_in_component(self) -> None:
        raw = _minimal_30(components={"schemas": {"Bad": {"properties": {}, "items": {}}}})
        with pytest.raises(ShapeConflict) as exc_info:
            parse_document(raw)
        assert exc_info.value.path == ("components", "schemas", "Bad")

    def test_non_string_tag(self) -> None:
        raw = _minimal_30(paths={"/pets": {"get": {"tags": [1], "responses": {}}}})
        with pytest.raises(MalformedDocument, match="'tags' entries must be strings"):
            parse_document(raw)

    def test_wrongly_typed_schema_keyword(self) -> None:
        raw = _minimal_30(components={"schemas": {"Pet": {"type": "object", "title": 5}}})
        with pytest.raises(MalformedDocument) as exc_info:
            parse_document(raw)
        assert exc_info.value.path == ("components", "schemas", "Pet", "title")

    def test_numeric_property_name_is_a_string(self) -> None:
        raw = _minimal_30(
            components={"schemas": {"Codes": {"type": "object", "properties": {200: {"type": "string"}}}}}
        )
        codes = parse_document(raw).components.get(ComponentKind.SCHEMAS, "Codes")
        assert isinstance(codes, ObjectSchema)
        assert list(codes.properties) == ["200"]

    def test_link_parameters_not_object(self) -> None:
        raw = _minimal_30(components={"links": {"Self": {"operationId": "a", "parameters": ["id"]}}})
        with pytest.raises(MalformedDocument, match="'parameters' must be an object") as exc_info:
            parse_document(raw)
        assert exc_info.value.path == ("components", "links", "Self", "parameters")


# ---------------------------------------------------------------------------
# Examples and links
# ---------------------------------------------------------------------------


class TestExamplesAndLinks:
    """Example and Link objects are typed, with references kept as tokens."""

    def test_media_type_examples(self) -> None:
        raw = _minimal_30(
            paths={
                "/pets": {
                    "get": {
                        "responses": {
                            "200": {
                                "description": "ok",
                                "content": {
                                    "application/json": {
                                        "examples": {
                                            "rex": {"summary": "A dog", "value": {"name": "Rex"}},
                                            "shared": {"$ref": "#/components/examples/Shared"},
                                        }
                                    }
                                },
                            }
                        }
                    }
                }
            }
        )
        response = parse_document(raw).paths["/pets"].operations[HTTPMethod.GET].responses["200"]
        examples = response.content["application/json"].examples
        assert examples["rex"] == Example(summary="A dog", value={"name": "Rex"})
        assert examples["shared"] == Reference(ref="#/components/examples/Shared")

    def test_response_links(self) -> None:
        raw = _minimal_30(
            components={
                "responses": {
                    "Created": {
                        "description": "ok",
                        "links": {
                            "self": {
                                "operationId": "showPet",
                                "parameters": {"petId": "$response.body#/id"},
                                "server": {"url": "https://{region}.example.com", "variables": {"region": {"default": "eu"}}},
                            },
                            "shared": {"$ref": "#/components/links/Shared"},
                        },
                    }
                }
            }
        )
        response = parse_document(raw).components.get(ComponentKind.RESPONSES, "Created")
        link = response.links["self"]
        assert isinstance(link, Link)
        assert link.operation_id == "showPet"
        assert link.parameters == {"petId": "$response.body#/id"}
        assert link.server is not None
        assert link.server.variables["region"].default == "eu"
        assert isinstance(response.links["shared"], Reference)

    def test_reusable_examples_and_links(self) -> None:
        raw = _minimal_30(
            components={
                "examples": {"Rex": {"externalValue": "https://example.com/rex.json", "x-source": "zoo"}},
                "links": {"Alias": {"$ref": "#/components/links/Other"}, "Other": {"operationRef": "#/paths/~1pets/get"}},
            }
        )
        doc = parse_document(raw)
        rex = doc.components.get(ComponentKind.EXAMPLES, "Rex")
        assert rex == Example(external_value="https://example.com/rex.json", extensions={"x-source": "zoo"})
        assert isinstance(doc.components.get(ComponentKind.LINKS, "Alias"), Reference)
        assert doc.components.get(ComponentKind.LINKS, "Other").operation_ref == "#/paths/~1pets/get"
