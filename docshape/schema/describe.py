"""
Stable descriptions of type nodes.

Two representations are provided:
- describe(): builder-style text, e.g. ``v.array(v.string())``
- to_descriptor() / from_descriptor(): JSON-compatible dicts, e.g.
  ``{"type": "array", "elements": {"type": "string"}}``

Invariants:
    - describe(a) == describe(b) iff a and b are structurally identical,
      including Object field order
    - from_descriptor(to_descriptor(n)) == n and preserves field order
    - Descriptor tags are the TypeKind values and never change

How to change safely:
    - Keep describe() output byte-stable: registry fingerprints hash it
"""

from __future__ import annotations

import json
from typing import Any, Dict, Mapping

from ..errors import InvalidTypeError
from .types import (
    AnyType,
    ArrayType,
    BooleanType,
    BytesType,
    Float64Type,
    IdType,
    Int64Type,
    LiteralType,
    NullType,
    ObjectType,
    OptionalType,
    RecordType,
    StringType,
    TypeKind,
    TypeNode,
    UnionType,
)

_SIMPLE_NODES = {
    TypeKind.NULL: NullType,
    TypeKind.INT64: Int64Type,
    TypeKind.FLOAT64: Float64Type,
    TypeKind.BOOLEAN: BooleanType,
    TypeKind.STRING: StringType,
    TypeKind.BYTES: BytesType,
    TypeKind.ANY: AnyType,
}

_BUILDER_NAMES = {
    TypeKind.NULL: "null",
    TypeKind.INT64: "int64",
    TypeKind.FLOAT64: "number",
    TypeKind.BOOLEAN: "boolean",
    TypeKind.STRING: "string",
    TypeKind.BYTES: "bytes",
    TypeKind.ANY: "any",
}


def describe(node: TypeNode) -> str:
    """Render a node as builder-style text.

    Args:
        node: Type node to describe

    Returns:
        Deterministic text; structurally identical trees produce identical text

    Example:
        >>> describe(ObjectType((("win_count", Int64Type()),)))
        'v.object({"win_count": v.int64()})'
    """
    if node.kind in _BUILDER_NAMES:
        return f"v.{_BUILDER_NAMES[node.kind]}()"
    if isinstance(node, IdType):
        return f"v.id({json.dumps(node.table)})"
    if isinstance(node, ArrayType):
        return f"v.array({describe(node.element)})"
    if isinstance(node, ObjectType):
        inner = ", ".join(f"{json.dumps(name)}: {describe(child)}" for name, child in node.fields)
        return f"v.object({{{inner}}})"
    if isinstance(node, RecordType):
        return f"v.record({describe(node.key)}, {describe(node.value)})"
    if isinstance(node, UnionType):
        return f"v.union({', '.join(describe(variant) for variant in node.variants)})"
    if isinstance(node, LiteralType):
        return f"v.literal({json.dumps(node.value)})"
    if isinstance(node, OptionalType):
        return f"v.optional({describe(node.inner)})"
    raise InvalidTypeError(f"Cannot describe {type(node).__name__}")


def expected_kind(node: TypeNode) -> str:
    """Short kind name for error messages (e.g. "Int64", "Id(games)")."""
    if isinstance(node, IdType):
        return f"Id({node.table})"
    if isinstance(node, LiteralType):
        return f"Literal({json.dumps(node.value)})"
    if isinstance(node, OptionalType):
        return expected_kind(node.inner)
    if isinstance(node, UnionType):
        return " | ".join(expected_kind(variant) for variant in node.variants)
    return node.kind.display


def to_descriptor(node: TypeNode) -> Dict[str, Any]:
    """Convert a node to its JSON descriptor.

    Args:
        node: Type node

    Returns:
        Dictionary with a ``type`` tag and kind-specific keys
    """
    result: Dict[str, Any] = {"type": node.kind.value}
    if isinstance(node, IdType):
        result["tableName"] = node.table
    elif isinstance(node, ArrayType):
        result["elements"] = to_descriptor(node.element)
    elif isinstance(node, ObjectType):
        result["properties"] = {name: to_descriptor(child) for name, child in node.fields}
    elif isinstance(node, RecordType):
        result["keyType"] = to_descriptor(node.key)
        result["valueType"] = to_descriptor(node.value)
    elif isinstance(node, UnionType):
        result["variants"] = [to_descriptor(variant) for variant in node.variants]
    elif isinstance(node, LiteralType):
        result["value"] = node.value
    elif isinstance(node, OptionalType):
        result["inner"] = to_descriptor(node.inner)
    return result


def from_descriptor(data: Any, context: str = "type") -> TypeNode:
    """Build a node from its JSON descriptor.

    A bare string is accepted as shorthand for a parameterless type, so
    ``"int64"`` and ``{"type": "int64"}`` are equivalent.

    Args:
        data: Descriptor dict or shorthand string
        context: Dotted location used in error messages

    Returns:
        TypeNode

    Raises:
        InvalidTypeError: If the descriptor is malformed or uses an unknown tag
    """
    if isinstance(data, str):
        data = {"type": data}
    if not isinstance(data, Mapping):
        raise InvalidTypeError(f"{context}: type descriptor must be a mapping or string")
    if "type" not in data:
        raise InvalidTypeError(f"{context}: type descriptor is missing 'type'")

    kind = TypeKind.from_str(data["type"])

    if kind in _SIMPLE_NODES:
        return _SIMPLE_NODES[kind]()
    if kind == TypeKind.ID:
        return IdType(_require(data, "tableName", context))
    if kind == TypeKind.ARRAY:
        return ArrayType(from_descriptor(_require(data, "elements", context), f"{context}.elements"))
    if kind == TypeKind.OBJECT:
        properties = data.get("properties", {})
        if not isinstance(properties, Mapping):
            raise InvalidTypeError(f"{context}: object 'properties' must be a mapping")
        return ObjectType(
            tuple(
                (name, from_descriptor(child, f"{context}.{name}"))
                for name, child in properties.items()
            )
        )
    if kind == TypeKind.RECORD:
        return RecordType(
            from_descriptor(_require(data, "keyType", context), f"{context}.keyType"),
            from_descriptor(_require(data, "valueType", context), f"{context}.valueType"),
        )
    if kind == TypeKind.UNION:
        variants = _require(data, "variants", context)
        if not isinstance(variants, list):
            raise InvalidTypeError(f"{context}: union 'variants' must be a list")
        return UnionType(
            tuple(from_descriptor(variant, f"{context}.variants[{i}]") for i, variant in enumerate(variants))
        )
    if kind == TypeKind.LITERAL:
        return LiteralType(_require(data, "value", context))
    if kind == TypeKind.OPTIONAL:
        return OptionalType(from_descriptor(_require(data, "inner", context), f"{context}.inner"))
    raise InvalidTypeError(f"{context}: unsupported type '{kind.value}'")


def _require(data: Mapping[str, Any], key: str, context: str) -> Any:
    if key not in data:
        raise InvalidTypeError(f"{context}: '{data['type']}' type requires '{key}'")
    return data[key]

