"""Schema node variants.

A schema in an API document is one of five shapes, and every node is
exactly one of them:

* :class:`PrimitiveSchema` -- scalars and the untyped ``{}`` schema.
* :class:`ObjectSchema` -- ``properties`` / ``additionalProperties`` / ``required``.
* :class:`ArraySchema` -- ``items``.
* :class:`CompositionSchema` -- ``allOf`` / ``anyOf`` / ``oneOf`` / ``not``.
* :class:`ReferenceSchema` -- a single ``$ref`` token.

A node never contains itself. Recursive types are written with a
:class:`ReferenceSchema` member that names a component, so every tree built
from a finite document is finite; cycles only exist as chains of tokens and
are handled by :class:`~specval.parser.resolver.ReferenceResolver`.

Nodes are frozen Pydantic models. Construction from raw mappings (and the
``ShapeConflict`` check) lives in :mod:`specval.parser.schemas`.
"""

from __future__ import annotations

import enum
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class SchemaKind(str, enum.Enum):
    """Discriminator values for the schema variants."""

    PRIMITIVE = "primitive"
    OBJECT = "object"
    ARRAY = "array"
    COMPOSITION = "composition"
    REFERENCE = "reference"


class CompositionKeyword(str, enum.Enum):
    """Keyword a :class:`CompositionSchema` was written with."""

    ALL_OF = "allOf"
    ANY_OF = "anyOf"
    ONE_OF = "oneOf"
    NOT = "not"


class Discriminator(BaseModel):
    """Polymorphism hint naming the property that selects a concrete schema.

    Swagger 2.0 writes the discriminator as a bare property name; OpenAPI 3.x
    uses an object with an optional ``mapping`` of values to schema names or
    ``$ref`` tokens. Both are stored in this form.
    """

    model_config = ConfigDict(frozen=True)

    property_name: str
    mapping: dict[str, str] = Field(default_factory=dict)


class SchemaBase(BaseModel):
    """Metadata shared by every non-reference variant."""

    model_config = ConfigDict(frozen=True)

    types: tuple[str, ...] = ()
    title: Optional[str] = None
    description: Optional[str] = None
    format: Optional[str] = None
    nullable: Optional[bool] = None
    default: Any = None
    example: Any = None
    enum: Optional[tuple[Any, ...]] = None
    read_only: Optional[bool] = None
    write_only: Optional[bool] = None
    deprecated: Optional[bool] = None
    discriminator: Optional[Discriminator] = None
    subschemas: dict[str, Subschemas] = Field(
        default_factory=dict,
        description="JSON Schema keywords that hold sub-schemas ($defs, prefixItems, if, ...)",
    )
    keywords: dict[str, Any] = Field(
        default_factory=dict,
        description="Validation keywords without a dedicated field (minimum, pattern, ...)",
    )
    extensions: dict[str, Any] = Field(default_factory=dict)


class PrimitiveSchema(SchemaBase):
    """A scalar (or untyped) schema."""

    kind: Literal[SchemaKind.PRIMITIVE] = SchemaKind.PRIMITIVE


class ObjectSchema(SchemaBase):
    """A schema describing an object with named properties."""

    kind: Literal[SchemaKind.OBJECT] = SchemaKind.OBJECT
    properties: dict[str, SchemaNode] = Field(default_factory=dict)
    required: tuple[str, ...] = ()
    additional_properties: Union[bool, SchemaNode, None] = None


class ArraySchema(SchemaBase):
    """A schema describing a homogeneous array."""

    kind: Literal[SchemaKind.ARRAY] = SchemaKind.ARRAY
    items: Optional[SchemaNode] = None


class CompositionSchema(SchemaBase):
    """A schema combining member schemas with one composition keyword.

    ``members`` keeps source order for diagnostics. ``required`` may sit next
    to a composition (a common way to tighten an ``allOf``); it is kept but
    not checked against the members.
    """

    kind: Literal[SchemaKind.COMPOSITION] = SchemaKind.COMPOSITION
    keyword: CompositionKeyword
    members: tuple[SchemaNode, ...] = ()
    required: tuple[str, ...] = ()


class ReferenceSchema(BaseModel):
    """A schema that is only a pointer to another schema."""

    model_config = ConfigDict(frozen=True)

    kind: Literal[SchemaKind.REFERENCE] = SchemaKind.REFERENCE
    ref: str
    summary: Optional[str] = None
    description: Optional[str] = None


SchemaNode = Annotated[
    Union[PrimitiveSchema, ObjectSchema, ArraySchema, CompositionSchema, ReferenceSchema],
    Field(discriminator="kind"),
]

Subschemas = Union[SchemaNode, tuple[SchemaNode, ...], dict[str, SchemaNode]]
"""One sub-schema (``if``), a list of them (``prefixItems``) or a named map (``$defs``)."""

PrimitiveSchema.model_rebuild()
ObjectSchema.model_rebuild()
ArraySchema.model_rebuild()
CompositionSchema.model_rebuild()


def child_nodes(node: SchemaNode) -> list[tuple[tuple[str | int, ...], SchemaNode]]:
    """Return the direct sub-schemas of *node* with their relative paths.

    Reference nodes have no children; following them is the resolver's job.
    Shape children come first, then the JSON Schema sub-schema keywords in
    source order.
    """
    if isinstance(node, ReferenceSchema):
        return []

    children: list[tuple[tuple[str | int, ...], SchemaNode]] = []
    if isinstance(node, ObjectSchema):
        children.extend((("properties", name), prop) for name, prop in node.properties.items())
        if node.additional_properties is not None and not isinstance(
            node.additional_properties, bool
        ):
            children.append((("additionalProperties",), node.additional_properties))
    elif isinstance(node, ArraySchema):
        if node.items is not None:
            children.append((("items",), node.items))
    elif isinstance(node, CompositionSchema):
        if node.keyword == CompositionKeyword.NOT:
            children.extend(((node.keyword.value,), member) for member in node.members)
        else:
            children.extend(((node.keyword.value, i), member) for i, member in enumerate(node.members))

    for keyword, value in node.subschemas.items():
        if isinstance(value, tuple):
            children.extend(((keyword, i), member) for i, member in enumerate(value))
        elif isinstance(value, dict):
            children.extend(((keyword, name), member) for name, member in value.items())
        else:
            children.append(((keyword,), value))
    return children
