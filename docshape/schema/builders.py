"""
Declarative builders for schema definitions.

Schemas are written as a nested literal of constructor calls:

    >>> from docshape.schema import define_schema, define_table, v
    >>> schema = define_schema({
    ...     "games": define_table({
    ...         "win_count": v.int64(),
    ...         "loss_count": v.int64(),
    ...     }),
    ... })

The literal is evaluated once at load time into TypeNode / DocumentShape /
SchemaRegistry structures; nothing here is consulted at validation time.
"""

from __future__ import annotations

from typing import Mapping, Optional, Union

from .registry import SchemaRegistry
from .types import (
    AnyType,
    ArrayType,
    BooleanType,
    BytesType,
    DocumentShape,
    Float64Type,
    IdType,
    Int64Type,
    LiteralType,
    NullType,
    ObjectType,
    OptionalType,
    RecordType,
    StringType,
    TypeNode,
    UnionType,
)


class Validators:
    """Constructor namespace for type nodes, exposed as ``v``."""

    def null(self) -> NullType:
        return NullType()

    def int64(self) -> Int64Type:
        return Int64Type()

    def number(self) -> Float64Type:
        """Float64. Named after the JavaScript number type it stores."""
        return Float64Type()

    float64 = number

    def boolean(self) -> BooleanType:
        return BooleanType()

    def string(self) -> StringType:
        return StringType()

    def bytes(self) -> BytesType:
        return BytesType()

    def id(self, table: str) -> IdType:
        return IdType(table)

    def array(self, element: TypeNode) -> ArrayType:
        return ArrayType(element)

    def object(
        self,
        fields: Optional[Mapping[str, TypeNode]] = None,
        **kwargs: TypeNode,
    ) -> ObjectType:
        """Object node from a mapping and/or keyword fields, in order."""
        merged = dict(fields or {})
        merged.update(kwargs)
        return ObjectType(tuple(merged.items()))

    def record(self, key: TypeNode, value: TypeNode) -> RecordType:
        return RecordType(key, value)

    def union(self, *variants: TypeNode) -> UnionType:
        return UnionType(variants)

    def literal(self, value: Union[str, int, float, bool]) -> LiteralType:
        return LiteralType(value)

    def optional(self, inner: TypeNode) -> OptionalType:
        return OptionalType(inner)

    def any(self) -> AnyType:
        return AnyType()


v = Validators()


def define_table(
    fields: Optional[Mapping[str, TypeNode]] = None,
    *,
    description: str = "",
    **kwargs: TypeNode,
) -> DocumentShape:
    """Describe one collection's document shape.

    Args:
        fields: Ordered mapping of field name to type node
        description: Human-readable description
        **kwargs: Additional fields, appended after ``fields``

    Returns:
        DocumentShape
    """
    merged = dict(fields or {})
    merged.update(kwargs)
    return DocumentShape.of(merged, description=description)


def define_schema(
    tables: Mapping[str, DocumentShape],
    *,
    freeze: bool = False,
) -> SchemaRegistry:
    """Collect table shapes into a registry.

    Args:
        tables: Ordered mapping of collection name to shape
        freeze: Freeze the registry before returning it

    Returns:
        SchemaRegistry in the Building state, or Frozen if ``freeze`` is set
    """
    registry = SchemaRegistry()
    for name, shape in tables.items():
        registry.register(name, shape)
    if freeze:
        registry.freeze()
    return registry
