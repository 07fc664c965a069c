"""Tests for specval.parser.resolver."""

from __future__ import annotations

from typing import Any

import pytest

from specval.dialects import parse_document
from specval.exceptions import (
    CyclicReference,
    ExternalReference,
    MalformedReference,
    ResolutionError,
    UnresolvedReference,
)
from specval.models import ComponentKind, Parameter, PathItem, PointerStyle, Reference
from specval.parser.resolver import (
    MAX_REFERENCE_DEPTH,
    ComponentPointer,
    ReferenceResolver,
    bare_reference,
    check_external_syntax,
    is_external,
    pointer_for,
)
from specval.schema import ObjectSchema, PrimitiveSchema, ReferenceSchema


def _doc_with_schemas(schemas: dict[str, Any]):
    return parse_document(
        {
            "openapi": "3.0.3",
            "info": {"title": "T", "version": "1"},
            "paths": {},
            "components": {"schemas": schemas},
        }
    )


def _resolver(schemas: dict[str, Any]) -> ReferenceResolver:
    return ReferenceResolver.for_document(_doc_with_schemas(schemas))


# ---------------------------------------------------------------------------
# Pointers
# ---------------------------------------------------------------------------


class TestPointers:
    """Token grammar per pointer style."""

    def test_pointer_for_components(self) -> None:
        assert pointer_for(ComponentKind.SCHEMAS, "Pet", PointerStyle.COMPONENTS) == "#/components/schemas/Pet"
        assert (
            pointer_for(ComponentKind.PATH_ITEMS, "PetById", PointerStyle.COMPONENTS)
            == "#/components/pathItems/PetById"
        )

    def test_pointer_for_root(self) -> None:
        assert pointer_for(ComponentKind.SCHEMAS, "Pet", PointerStyle.ROOT) == "#/definitions/Pet"
        assert (
            pointer_for(ComponentKind.SECURITY_SCHEMES, "key", PointerStyle.ROOT)
            == "#/securityDefinitions/key"
        )

    def test_pointer_escapes_names(self) -> None:
        assert pointer_for(ComponentKind.SCHEMAS, "a/b~c", PointerStyle.COMPONENTS) == "#/components/schemas/a~1b~0c"

    def test_parse_pointer_unescapes(self) -> None:
        resolver = _resolver({})
        assert resolver.parse_pointer("#/components/schemas/a~1b~0c") == ComponentPointer(
            ComponentKind.SCHEMAS, "a/b~c"
        )

    def test_bad_escape_is_malformed(self) -> None:
        with pytest.raises(MalformedReference, match="escape"):
            _resolver({}).parse_pointer("#/components/schemas/a~2b")

    def test_empty_token_is_malformed(self) -> None:
        with pytest.raises(MalformedReference, match="empty"):
            _resolver({}).lookup("")

    @pytest.mark.parametrize(
        "token",
        [
            "#/components/schemas",
            "#/components/widgets/Pet",
            "#/definitions/Pet",
            "#/info/title",
            "#Pet",
        ],
    )
    def test_non_component_pointers(self, token: str) -> None:
        with pytest.raises(UnresolvedReference):
            _resolver({"Pet": {"type": "object"}}).lookup(token)

    def test_root_style_accepts_root_containers(self, petstore_20) -> None:
        resolver = ReferenceResolver.for_document(petstore_20)
        assert resolver.pointer_style == PointerStyle.ROOT
        pointer, item = resolver.lookup("#/definitions/Pet")
        assert pointer == ComponentPointer(ComponentKind.SCHEMAS, "Pet")
        assert isinstance(item, ObjectSchema)

    def test_root_style_rejects_components_pointers(self, petstore_20) -> None:
        with pytest.raises(UnresolvedReference):
            ReferenceResolver.for_document(petstore_20).lookup("#/components/schemas/Pet")


# ---------------------------------------------------------------------------
# Resolution
# ---------------------------------------------------------------------------


class TestResolve:
    """Following tokens to their targets."""

    def test_resolve_component(self, petstore_30) -> None:
        resolver = ReferenceResolver.for_document(petstore_30)
        limit = resolver.resolve("#/components/parameters/Limit")
        assert isinstance(limit, Parameter)
        assert limit.name == "limit"

    def test_missing_component(self) -> None:
        with pytest.raises(UnresolvedReference, match="not found") as exc_info:
            _resolver({}).resolve("#/components/schemas/Missing")
        assert exc_info.value.token == "#/components/schemas/Missing"

    def test_wrong_kind(self, petstore_30) -> None:
        resolver = ReferenceResolver.for_document(petstore_30)
        with pytest.raises(UnresolvedReference, match="expected parameters"):
            resolver.resolve("#/components/schemas/Pet", ComponentKind.PARAMETERS)

    def test_alias_chain_is_followed(self) -> None:
        resolver = _resolver(
            {
                "A": {"$ref": "#/components/schemas/B"},
                "B": {"$ref": "#/components/schemas/C"},
                "C": {"type": "string"},
            }
        )
        chain = resolver.resolve_chain("#/components/schemas/A")
        assert [pointer.name for pointer, _ in chain] == ["A", "B", "C"]
        assert isinstance(resolver.resolve("#/components/schemas/A"), PrimitiveSchema)

    def test_lookup_follows_one_hop(self) -> None:
        resolver = _resolver({"A": {"$ref": "#/components/schemas/B"}, "B": {"type": "string"}})
        _, item = resolver.lookup("#/components/schemas/A")
        assert isinstance(item, ReferenceSchema)

    def test_broken_link_in_chain(self) -> None:
        resolver = _resolver({"A": {"$ref": "#/components/schemas/Gone"}})
        with pytest.raises(UnresolvedReference) as exc_info:
            resolver.resolve("#/components/schemas/A")
        assert exc_info.value.token == "#/components/schemas/Gone"

    def test_cycle(self) -> None:
        resolver = _resolver(
            {
                "A": {"$ref": "#/components/schemas/B"},
                "B": {"$ref": "#/components/schemas/A"},
            }
        )
        with pytest.raises(CyclicReference) as exc_info:
            resolver.resolve("#/components/schemas/A")
        assert exc_info.value.chain == (
            "#/components/schemas/A",
            "#/components/schemas/B",
            "#/components/schemas/A",
        )

    def test_self_alias_is_a_cycle(self) -> None:
        with pytest.raises(CyclicReference):
            _resolver({"A": {"$ref": "#/components/schemas/A"}}).resolve("#/components/schemas/A")

    def test_recursive_schema_is_not_a_cycle(self) -> None:
        resolver = _resolver(
            {
                "Node": {
                    "type": "object",
                    "properties": {
                        "next": {"$ref": "#/components/schemas/Node"},
                        "children": {"type": "array", "items": {"$ref": "#/components/schemas/Node"}},
                    },
                }
            }
        )
        assert isinstance(resolver.resolve("#/components/schemas/Node"), ObjectSchema)

    def test_depth_limit(self) -> None:
        count = MAX_REFERENCE_DEPTH + 2
        schemas = {f"S{i}": {"$ref": f"#/components/schemas/S{i + 1}"} for i in range(count)}
        schemas[f"S{count}"] = {"type": "string"}
        with pytest.raises(UnresolvedReference, match="chained references"):
            _resolver(schemas).resolve("#/components/schemas/S0")

    def test_resolution_errors_share_a_base(self) -> None:
        for cls in (UnresolvedReference, CyclicReference, ExternalReference, MalformedReference):
            assert issubclass(cls, ResolutionError)


# ---------------------------------------------------------------------------
# External tokens
# ---------------------------------------------------------------------------


class TestExternal:
    """Tokens naming other documents are never fetched."""

    @pytest.mark.parametrize(
        "token",
        [
            "common.yaml#/components/schemas/Pet",
            "./schemas/pet.json",
            "https://example.com/schemas.json#/Pet",
            "file:///srv/schemas.json",
        ],
    )
    def test_well_formed_external(self, token: str) -> None:
        assert is_external(token)
        with pytest.raises(ExternalReference):
            _resolver({}).resolve(token)

    @pytest.mark.parametrize(
        "token",
        [
            "ftp://example.com/pet.json",
            "https:///pet.json",
            "has space.json",
        ],
    )
    def test_malformed_external(self, token: str) -> None:
        with pytest.raises(MalformedReference):
            check_external_syntax(token)

    def test_windows_drive_is_a_path(self) -> None:
        check_external_syntax("C:/specs/pet.json")


# ---------------------------------------------------------------------------
# Bare references
# ---------------------------------------------------------------------------


class TestBareReference:
    """Only pure references count as another hop."""

    def test_reference_and_reference_schema(self) -> None:
        assert bare_reference(Reference(ref="#/components/parameters/A")) == "#/components/parameters/A"
        assert bare_reference(ReferenceSchema(ref="#/components/schemas/A")) == "#/components/schemas/A"

    def test_path_item_with_ref_only(self) -> None:
        assert bare_reference(PathItem(ref="#/components/pathItems/A")) == "#/components/pathItems/A"

    def test_path_item_with_operations_is_not_bare(self, petstore_31) -> None:
        item = petstore_31.components.path_items["PetById"]
        assert bare_reference(item) is None

    def test_other_items_are_not_bare(self) -> None:
        assert bare_reference(PrimitiveSchema(types=("string",))) is None
