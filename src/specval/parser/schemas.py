"""Build schema nodes from raw mappings and turn them back into mappings.

:func:`parse_schema` decides which of the five variants in
:mod:`specval.schema` a raw schema is, and refuses hybrids::

    parse_schema({"type": "array", "items": {"type": "string"}})   # ArraySchema
    parse_schema({"$ref": "#/components/schemas/Pet"})             # ReferenceSchema
    parse_schema({"type": "object", "items": {}})                  # ShapeConflict

:func:`dump_schema` is the inverse used by the serializer; feeding its output
back to :func:`parse_schema` yields an equal node.
"""

from __future__ import annotations

from typing import Any, Sequence, TypeVar

from pydantic import BaseModel, ValidationError

from specval.exceptions import MalformedDocument, ShapeConflict
from specval.schema import (
    ArraySchema,
    CompositionKeyword,
    CompositionSchema,
    Discriminator,
    ObjectSchema,
    PrimitiveSchema,
    ReferenceSchema,
    SchemaNode,
    Subschemas,
)

Path = tuple[Any, ...]
M = TypeVar("M", bound=BaseModel)

_COMPOSITION_KEYS = tuple(k.value for k in CompositionKeyword)
_OBJECT_KEYS = ("properties", "additionalProperties")
_ARRAY_KEYS = ("items",)

# JSON Schema keywords whose values are schemas, by shape.
_SINGLE_SUBSCHEMA_KEYS = frozenset(
    {
        "if",
        "then",
        "else",
        "contains",
        "propertyNames",
        "unevaluatedProperties",
        "unevaluatedItems",
        "additionalItems",
        "contentSchema",
    }
)
_LIST_SUBSCHEMA_KEYS = frozenset({"prefixItems"})
_MAP_SUBSCHEMA_KEYS = frozenset({"$defs", "patternProperties", "dependentSchemas"})

# Raw key -> SchemaBase field for plain metadata copied as-is.
_METADATA_FIELDS = {
    "title": "title",
    "description": "description",
    "format": "format",
    "nullable": "nullable",
    "default": "default",
    "example": "example",
    "readOnly": "read_only",
    "writeOnly": "write_only",
    "deprecated": "deprecated",
}

_HANDLED_KEYS = frozenset(
    {"type", "enum", "discriminator", "required", "$ref"}
    | set(_METADATA_FIELDS)
    | set(_COMPOSITION_KEYS)
    | set(_OBJECT_KEYS)
    | set(_ARRAY_KEYS)
)


def build_model(cls: type[M], path: Sequence[Any], **fields: Any) -> M:
    """Instantiate *cls*, turning Pydantic errors into :class:`MalformedDocument`.

    The first error's location is appended to *path*, so a wrongly typed
    ``title`` on a schema at ``components/schemas/Pet`` is reported there.
    """
    try:
        return cls(**fields)
    except ValidationError as exc:
        error = exc.errors()[0]
        raise MalformedDocument(error["msg"], tuple(path) + tuple(error["loc"])) from exc


def parse_schema(data: Any, path: Sequence[Any] = ()) -> SchemaNode:
    """Build one schema node from a raw mapping.

    Args:
        data: The raw schema object.
        path: Structural location of *data*, used in error messages.

    Returns:
        Exactly one of the schema variants.

    Raises:
        MalformedDocument: If *data* or one of its keywords has the wrong type.
        ShapeConflict: If *data* declares more than one shape.
    """
    path = tuple(path)
    if not isinstance(data, dict):
        raise MalformedDocument(
            f"schema must be an object, got {type(data).__name__}", path
        )

    if "$ref" in data:
        ref = data["$ref"]
        if not isinstance(ref, str):
            raise MalformedDocument("$ref must be a string", path + ("$ref",))
        return build_model(
            ReferenceSchema,
            path,
            ref=ref,
            summary=_optional_str(data, "summary", path),
            description=_optional_str(data, "description", path),
        )

    types = _parse_types(data.get("type"), path)
    compositions = [key for key in _COMPOSITION_KEYS if key in data]
    object_like = any(key in data for key in _OBJECT_KEYS) or "object" in types
    array_like = any(key in data for key in _ARRAY_KEYS) or "array" in types

    if len(compositions) > 1:
        raise ShapeConflict(
            f"schema combines {' and '.join(compositions)}; use one composition keyword per node",
            path,
        )
    if compositions:
        if any(key in data for key in _OBJECT_KEYS + _ARRAY_KEYS):
            raise ShapeConflict(
                f"{compositions[0]} cannot be combined with properties or items on the same node",
                path,
            )
        return _parse_composition(data, CompositionKeyword(compositions[0]), types, path)

    if "required" in data:
        object_like = True
    if object_like and array_like:
        raise ShapeConflict("schema declares both object and array shape", path)

    common = _parse_common(data, types, path)
    if array_like:
        items = data.get("items")
        if items is not None and not isinstance(items, dict):
            raise MalformedDocument("items must be a schema object", path + ("items",))
        return build_model(
            ArraySchema,
            path,
            items=parse_schema(items, path + ("items",)) if items is not None else None,
            **common,
        )
    if object_like:
        return _parse_object(data, common, path)
    return build_model(PrimitiveSchema, path, **common)


def _parse_object(data: dict[str, Any], common: dict[str, Any], path: Path) -> ObjectSchema:
    raw_props = data.get("properties", {})
    if not isinstance(raw_props, dict):
        raise MalformedDocument("properties must be an object", path + ("properties",))
    properties = {
        str(name): parse_schema(value, path + ("properties", str(name)))
        for name, value in raw_props.items()
    }

    additional: bool | SchemaNode | None = None
    if "additionalProperties" in data:
        raw_additional = data["additionalProperties"]
        if isinstance(raw_additional, bool):
            additional = raw_additional
        else:
            additional = parse_schema(raw_additional, path + ("additionalProperties",))

    return build_model(
        ObjectSchema,
        path,
        properties=properties,
        required=_parse_required(data, path),
        additional_properties=additional,
        **common,
    )


def _parse_composition(
    data: dict[str, Any],
    keyword: CompositionKeyword,
    types: tuple[str, ...],
    path: Path,
) -> CompositionSchema:
    raw = data[keyword.value]
    if keyword == CompositionKeyword.NOT:
        members = (parse_schema(raw, path + ("not",)),)
    else:
        if not isinstance(raw, list):
            raise MalformedDocument(f"{keyword.value} must be an array", path + (keyword.value,))
        members = tuple(
            parse_schema(member, path + (keyword.value, i)) for i, member in enumerate(raw)
        )
    return build_model(
        CompositionSchema,
        path,
        keyword=keyword,
        members=members,
        required=_parse_required(data, path),
        **_parse_common(data, types, path),
    )


def _parse_common(data: dict[str, Any], types: tuple[str, ...], path: Path) -> dict[str, Any]:
    common: dict[str, Any] = {"types": types}
    for raw_key, field in _METADATA_FIELDS.items():
        if raw_key in data:
            common[field] = data[raw_key]

    if "enum" in data:
        if not isinstance(data["enum"], list):
            raise MalformedDocument("enum must be an array", path + ("enum",))
        common["enum"] = tuple(data["enum"])

    if "discriminator" in data:
        common["discriminator"] = _parse_discriminator(data["discriminator"], path)

    subschemas: dict[str, Subschemas] = {}
    keywords: dict[str, Any] = {}
    extensions: dict[str, Any] = {}
    for key, value in data.items():
        key = str(key)
        if key in _HANDLED_KEYS:
            continue
        if key.startswith("x-"):
            extensions[key] = value
            continue
        nested = _parse_subschemas(key, value, path)
        if nested is not None:
            subschemas[key] = nested
        else:
            keywords[key] = value
    common["subschemas"] = subschemas
    common["keywords"] = keywords
    common["extensions"] = extensions
    return common


def _parse_subschemas(key: str, value: Any, path: Path) -> Subschemas | None:
    """Parse a sub-schema keyword, or return ``None`` to keep it as a plain keyword.

    Boolean schemas (``unevaluatedProperties: false``) and values of an
    unexpected shape stay plain keywords.
    """
    if key in _SINGLE_SUBSCHEMA_KEYS and isinstance(value, dict):
        return parse_schema(value, path + (key,))
    if (
        key in _LIST_SUBSCHEMA_KEYS
        and isinstance(value, list)
        and all(isinstance(member, dict) for member in value)
    ):
        return tuple(parse_schema(member, path + (key, i)) for i, member in enumerate(value))
    if (
        key in _MAP_SUBSCHEMA_KEYS
        and isinstance(value, dict)
        and all(isinstance(member, dict) for member in value.values())
    ):
        return {
            str(name): parse_schema(member, path + (key, str(name)))
            for name, member in value.items()
        }
    return None


def _parse_types(raw: Any, path: Path) -> tuple[str, ...]:
    if raw is None:
        return ()
    if isinstance(raw, str):
        return (raw,)
    if isinstance(raw, list) and all(isinstance(t, str) for t in raw):
        return tuple(raw)
    raise MalformedDocument("type must be a string or an array of strings", path + ("type",))


def _parse_required(data: dict[str, Any], path: Path) -> tuple[str, ...]:
    raw = data.get("required", [])
    if not isinstance(raw, list) or not all(isinstance(name, str) for name in raw):
        raise MalformedDocument("required must be an array of strings", path + ("required",))
    return tuple(raw)


def _parse_discriminator(raw: Any, path: Path) -> Discriminator:
    # Swagger 2.0 writes the property name directly.
    if isinstance(raw, str):
        return build_model(Discriminator, path + ("discriminator",), property_name=raw)
    if not isinstance(raw, dict) or not isinstance(raw.get("propertyName"), str):
        raise MalformedDocument(
            "discriminator must name a propertyName", path + ("discriminator",)
        )
    mapping = raw.get("mapping", {})
    if not isinstance(mapping, dict) or not all(isinstance(v, str) for v in mapping.values()):
        raise MalformedDocument(
            "discriminator mapping must map strings to strings",
            path + ("discriminator", "mapping"),
        )
    return build_model(
        Discriminator,
        path + ("discriminator",),
        property_name=raw["propertyName"],
        mapping={str(value): target for value, target in mapping.items()},
    )


def _optional_str(data: dict[str, Any], key: str, path: Path) -> str | None:
    value = data.get(key)
    if value is not None and not isinstance(value, str):
        raise MalformedDocument(f"{key} must be a string", path + (key,))
    return value


# --- Serialization ---


def dump_schema(node: SchemaNode) -> dict[str, Any]:
    """Return the raw mapping form of *node*."""
    if isinstance(node, ReferenceSchema):
        out: dict[str, Any] = {"$ref": node.ref}
        if node.summary is not None:
            out["summary"] = node.summary
        if node.description is not None:
            out["description"] = node.description
        return out

    out = {}
    if len(node.types) == 1:
        out["type"] = node.types[0]
    elif node.types:
        out["type"] = list(node.types)
    for raw_key, field in _METADATA_FIELDS.items():
        value = getattr(node, field)
        if value is not None:
            out[raw_key] = value
    if node.enum is not None:
        out["enum"] = list(node.enum)
    if node.discriminator is not None:
        disc: dict[str, Any] = {"propertyName": node.discriminator.property_name}
        if node.discriminator.mapping:
            disc["mapping"] = dict(node.discriminator.mapping)
        out["discriminator"] = disc

    if isinstance(node, ObjectSchema):
        if node.properties:
            out["properties"] = {
                name: dump_schema(prop) for name, prop in node.properties.items()
            }
        if node.required:
            out["required"] = list(node.required)
        if isinstance(node.additional_properties, bool):
            out["additionalProperties"] = node.additional_properties
        elif node.additional_properties is not None:
            out["additionalProperties"] = dump_schema(node.additional_properties)
        if "object" not in node.types and not node.properties and not node.required and node.additional_properties is None:
            # An empty object schema written as {"type": ...} needs its marker back.
            out.setdefault("properties", {})
    elif isinstance(node, ArraySchema):
        if node.items is not None:
            out["items"] = dump_schema(node.items)
        elif "array" not in node.types:
            out["items"] = {}
    elif isinstance(node, CompositionSchema):
        if node.keyword == CompositionKeyword.NOT:
            out["not"] = dump_schema(node.members[0])
        else:
            out[node.keyword.value] = [dump_schema(m) for m in node.members]
        if node.required:
            out["required"] = list(node.required)

    for keyword, value in node.subschemas.items():
        if isinstance(value, tuple):
            out[keyword] = [dump_schema(member) for member in value]
        elif isinstance(value, dict):
            out[keyword] = {name: dump_schema(member) for name, member in value.items()}
        else:
            out[keyword] = dump_schema(value)
    out.update(node.keywords)
    out.update(node.extensions)
    return out
