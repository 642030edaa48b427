"""
Type inference from concrete values.

Pure functions with no I/O. Used to report how stored documents drift
from their declared shapes, and by the CLI to sketch a shape from a
sample document.
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Set

from .describe import describe
from .types import (
    INT64_MAX,
    INT64_MIN,
    SYSTEM_FIELDS,
    AnyType,
    ArrayType,
    BooleanType,
    BytesType,
    DocumentId,
    DocumentShape,
    Float64Type,
    IdType,
    Int64Type,
    NullType,
    ObjectType,
    RecordType,
    StringType,
    TypeNode,
    UnionType,
)
from .validate import DEFAULT_MAX_DEPTH


def infer_node(value: Any, max_depth: int = DEFAULT_MAX_DEPTH) -> TypeNode:
    """Map a Python value to the narrowest type node that accepts it.

    Checks bool before int since bool is a subclass of int.

    Args:
        value: Any Python value from a document
        max_depth: Containers nested deeper than this are inferred as Any

    Returns:
        TypeNode. Lists of mixed kinds become Array(Union(...)) with
        alternatives in first-seen order; empty lists become Array(Any).
    """
    return _infer(value, max_depth, set())


def _infer(value: Any, budget: int, active: Set[int]) -> TypeNode:
    if value is None:
        return NullType()
    if isinstance(value, bool):
        return BooleanType()
    if isinstance(value, int):
        if INT64_MIN <= value <= INT64_MAX:
            return Int64Type()
        return AnyType()
    if isinstance(value, float):
        return Float64Type()
    if isinstance(value, str):
        return StringType()
    if isinstance(value, (bytes, bytearray)):
        return BytesType()
    if isinstance(value, DocumentId):
        return IdType(value.table)
    if budget <= 0 or id(value) in active:
        return AnyType()
    active.add(id(value))
    try:
        return _infer_container(value, budget, active)
    finally:
        active.discard(id(value))


def _infer_container(value: Any, budget: int, active: Set[int]) -> TypeNode:
    if isinstance(value, (list, tuple)):
        if not value:
            return ArrayType(AnyType())
        return ArrayType(_merge([_infer(item, budget - 1, active) for item in value]))
    if isinstance(value, Mapping):
        if all(isinstance(key, str) and key for key in value):
            return ObjectType(tuple((key, _infer(item, budget - 1, active)) for key, item in value.items()))
        return RecordType(StringType(), AnyType())
    return AnyType()


def _merge(nodes: List[TypeNode]) -> TypeNode:
    """Collapse element nodes into one node, deduplicating by describe()."""
    unique: Dict[str, TypeNode] = {}
    for node in nodes:
        unique.setdefault(describe(node), node)
    variants = list(unique.values())
    if len(variants) == 1:
        return variants[0]
    return UnionType(tuple(variants))


def infer_shape(document: Mapping[str, Any], description: str = "") -> DocumentShape:
    """Infer a DocumentShape from a stored document.

    System fields (_id, _creationTime) are skipped. Field order follows
    the document's key order.

    Args:
        document: Document mapping
        description: Description for the returned shape

    Returns:
        DocumentShape with one non-optional field per document key
    """
    fields = tuple(
        (name, infer_node(value))
        for name, value in document.items()
        if name not in SYSTEM_FIELDS
    )
    return DocumentShape(fields, description=description)
