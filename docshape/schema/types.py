"""
Core type definitions for the docshape schema language.

This module defines the closed set of type nodes that describe a
document's shape:
- Scalars: NullType, Int64Type, Float64Type, BooleanType, StringType, BytesType
- References: IdType (identifier scoped to a collection)
- Composites: ArrayType, ObjectType, RecordType, UnionType, OptionalType
- LiteralType: a single concrete scalar
- AnyType: matches every value
- DocumentShape: named field set for one collection

It also defines the runtime value types the nodes describe that have no
native Python counterpart: DocumentId and the ABSENT marker.

Invariants:
    - Type nodes are frozen; a node tree can never contain a cycle
    - Object field names are unique; field order matters for describe()
      and fingerprints but not for equality
    - Union has at least one alternative
    - Record keys are String, Id or a string Literal
    - Literal values are int64 / finite float / bool / str scalars

How to change safely:
    - Adding a new node kind means adding it to TypeKind, validate.py,
      describe.py, codec.py and codegen.py in the same change
    - Never change a TypeKind value: descriptor files and fingerprints use it

Example:
    >>> from docshape.schema.types import ObjectType, Int64Type
    >>> Game = ObjectType((("win_count", Int64Type()), ("loss_count", Int64Type())))
    >>> Game.field_names()
    ['win_count', 'loss_count']
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from dataclasses import field as dataclass_field
from enum import Enum
from typing import Any, ClassVar, Dict, Iterator, Mapping, Optional, Tuple, Union

from ..errors import InvalidTypeError

INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1

SYSTEM_FIELDS = ("_id", "_creationTime")


class TypeKind(Enum):
    """Tags of the type language.

    The values are the descriptor tags used in schema files.
    """

    NULL = "null"
    INT64 = "int64"
    FLOAT64 = "number"
    BOOLEAN = "boolean"
    STRING = "string"
    BYTES = "bytes"
    ID = "id"
    ARRAY = "array"
    OBJECT = "object"
    RECORD = "record"
    UNION = "union"
    LITERAL = "literal"
    OPTIONAL = "optional"
    ANY = "any"

    @classmethod
    def from_str(cls, value: str) -> TypeKind:
        """Convert a descriptor tag to a TypeKind.

        Args:
            value: Descriptor tag (e.g. "int64", "number", "object")

        Returns:
            Corresponding TypeKind

        Raises:
            InvalidTypeError: If the tag is not part of the language
        """
        for kind in cls:
            if kind.value == value:
                return kind
        valid = [k.value for k in cls]
        raise InvalidTypeError(f"Invalid type '{value}'. Valid types: {valid}", valid_types=valid)

    @property
    def display(self) -> str:
        """Human readable kind name used in error messages."""
        return _DISPLAY_NAMES[self]


_DISPLAY_NAMES = {
    TypeKind.NULL: "Null",
    TypeKind.INT64: "Int64",
    TypeKind.FLOAT64: "Float64",
    TypeKind.BOOLEAN: "Boolean",
    TypeKind.STRING: "String",
    TypeKind.BYTES: "Bytes",
    TypeKind.ID: "Id",
    TypeKind.ARRAY: "Array",
    TypeKind.OBJECT: "Object",
    TypeKind.RECORD: "Record",
    TypeKind.UNION: "Union",
    TypeKind.LITERAL: "Literal",
    TypeKind.OPTIONAL: "Optional",
    TypeKind.ANY: "Any",
}


class _Absent:
    """Marker for a field that is entirely missing (as opposed to null)."""

    _instance: Optional[_Absent] = None

    def __new__(cls) -> _Absent:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "ABSENT"

    def __bool__(self) -> bool:
        return False

    def __reduce__(self) -> str:
        return "ABSENT"


ABSENT = _Absent()


@dataclass(frozen=True)
class DocumentId:
    """Identifier of one document, scoped to its collection.

    Attributes:
        table: Collection the document belongs to
        id: Opaque identifier assigned by the storage engine
    """

    table: str
    id: str

    def __str__(self) -> str:
        return f"{self.table}:{self.id}"


# =============================================================================
# Type nodes
# =============================================================================


@dataclass(frozen=True)
class TypeNode:
    """Base class of every node in the type language."""

    kind: ClassVar[TypeKind]

    def children(self) -> Tuple[TypeNode, ...]:
        """Direct child nodes, in declaration order."""
        return ()

    def walk(self) -> Iterator[TypeNode]:
        """Iterate over this node and all descendants, depth first."""
        yield self
        for child in self.children():
            yield from child.walk()

    @property
    def is_optional(self) -> bool:
        """Whether a field of this type may be missing from an object."""
        return False


@dataclass(frozen=True)
class NullType(TypeNode):
    """Matches only ``None``."""

    kind: ClassVar[TypeKind] = TypeKind.NULL


@dataclass(frozen=True)
class Int64Type(TypeNode):
    """64-bit signed integer."""

    kind: ClassVar[TypeKind] = TypeKind.INT64


@dataclass(frozen=True)
class Float64Type(TypeNode):
    """IEEE-754 double."""

    kind: ClassVar[TypeKind] = TypeKind.FLOAT64


@dataclass(frozen=True)
class BooleanType(TypeNode):
    kind: ClassVar[TypeKind] = TypeKind.BOOLEAN


@dataclass(frozen=True)
class StringType(TypeNode):
    kind: ClassVar[TypeKind] = TypeKind.STRING


@dataclass(frozen=True)
class BytesType(TypeNode):
    kind: ClassVar[TypeKind] = TypeKind.BYTES


@dataclass(frozen=True)
class AnyType(TypeNode):
    """Matches every value. Terminates open-ended shapes."""

    kind: ClassVar[TypeKind] = TypeKind.ANY


@dataclass(frozen=True)
class IdType(TypeNode):
    """Reference to a document of the named collection."""

    table: str
    kind: ClassVar[TypeKind] = TypeKind.ID

    def __post_init__(self) -> None:
        if not isinstance(self.table, str) or not self.table:
            raise InvalidTypeError("Id table name must be a non-empty string")


@dataclass(frozen=True)
class ArrayType(TypeNode):
    """Ordered sequence whose every element matches ``element``."""

    element: TypeNode
    kind: ClassVar[TypeKind] = TypeKind.ARRAY

    def __post_init__(self) -> None:
        _require_node(self.element, "Array element")

    def children(self) -> Tuple[TypeNode, ...]:
        return (self.element,)


@dataclass(frozen=True, eq=False)
class ObjectType(TypeNode):
    """Fixed set of named fields.

    Attributes:
        fields: (name, node) pairs in declaration order

    Equality and hashing ignore field order; describe() does not.
    """

    fields: Tuple[Tuple[str, TypeNode], ...] = ()
    kind: ClassVar[TypeKind] = TypeKind.OBJECT

    def __post_init__(self) -> None:
        if isinstance(self.fields, Mapping):
            object.__setattr__(self, "fields", tuple(self.fields.items()))
        else:
            object.__setattr__(self, "fields", tuple(tuple(pair) for pair in self.fields))

        seen = set()
        for name, node in self.fields:
            if not isinstance(name, str) or not name:
                raise InvalidTypeError(f"Object field names must be non-empty strings, got {name!r}")
            if name in seen:
                raise InvalidTypeError(f"Duplicate object field '{name}'")
            seen.add(name)
            _require_node(node, f"Object field '{name}'")

    def children(self) -> Tuple[TypeNode, ...]:
        return tuple(node for _, node in self.fields)

    def field_names(self) -> list[str]:
        """Declared field names in order."""
        return [name for name, _ in self.fields]

    def get_field(self, name: str) -> Optional[TypeNode]:
        """Get a field's node by name.

        Returns:
            TypeNode if declared, None otherwise
        """
        for field_name, node in self.fields:
            if field_name == name:
                return node
        return None

    def as_dict(self) -> Dict[str, TypeNode]:
        return dict(self.fields)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ObjectType):
            return NotImplemented
        return self.as_dict() == other.as_dict()

    def __hash__(self) -> int:
        return hash((TypeKind.OBJECT, frozenset(self.fields)))


@dataclass(frozen=True)
class RecordType(TypeNode):
    """Open-ended mapping with statically unknown keys."""

    key: TypeNode
    value: TypeNode
    kind: ClassVar[TypeKind] = TypeKind.RECORD

    def __post_init__(self) -> None:
        _require_node(self.key, "Record key")
        _require_node(self.value, "Record value")
        if not is_valid_record_key(self.key):
            raise InvalidTypeError(
                f"Record key type must be String, Id or a string Literal, "
                f"got {self.key.kind.display}"
            )

    def children(self) -> Tuple[TypeNode, ...]:
        return (self.key, self.value)


@dataclass(frozen=True)
class UnionType(TypeNode):
    """Matches if any alternative matches; the first match wins."""

    variants: Tuple[TypeNode, ...]
    kind: ClassVar[TypeKind] = TypeKind.UNION

    def __post_init__(self) -> None:
        object.__setattr__(self, "variants", tuple(self.variants))
        if not self.variants:
            raise InvalidTypeError("Union must have at least one alternative")
        for i, variant in enumerate(self.variants):
            _require_node(variant, f"Union alternative {i}")

    def children(self) -> Tuple[TypeNode, ...]:
        return self.variants


@dataclass(frozen=True, eq=False)
class LiteralType(TypeNode):
    """Matches only values of the same kind equal to ``value``."""

    value: Union[str, int, float, bool]
    kind: ClassVar[TypeKind] = TypeKind.LITERAL

    def __post_init__(self) -> None:
        value = self.value
        if isinstance(value, bool) or isinstance(value, str):
            return
        if isinstance(value, int):
            if not INT64_MIN <= value <= INT64_MAX:
                raise InvalidTypeError(f"Literal integer {value} is outside the int64 range")
            return
        if isinstance(value, float):
            if not math.isfinite(value):
                raise InvalidTypeError(f"Literal float must be finite, got {value}")
            return
        raise InvalidTypeError(
            f"Literal value must be a str, int, float or bool, got {type(value).__name__}"
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, LiteralType):
            return NotImplemented
        return type(self.value) is type(other.value) and self.value == other.value

    def __hash__(self) -> int:
        return hash((TypeKind.LITERAL, type(self.value).__name__, self.value))


@dataclass(frozen=True)
class OptionalType(TypeNode):
    """Matches ``inner`` or the ABSENT marker."""

    inner: TypeNode
    kind: ClassVar[TypeKind] = TypeKind.OPTIONAL

    def __post_init__(self) -> None:
        _require_node(self.inner, "Optional inner type")

    def children(self) -> Tuple[TypeNode, ...]:
        return (self.inner,)

    @property
    def is_optional(self) -> bool:
        return True


def _require_node(value: Any, what: str) -> None:
    if not isinstance(value, TypeNode):
        raise InvalidTypeError(f"{what} must be a type node, got {type(value).__name__}")


def is_valid_record_key(node: TypeNode) -> bool:
    """Whether ``node`` may be used as a Record key type."""
    if isinstance(node, (StringType, IdType)):
        return True
    return isinstance(node, LiteralType) and isinstance(node.value, str)


# =============================================================================
# Document shapes
# =============================================================================


@dataclass(frozen=True, eq=False)
class DocumentShape:
    """Field set describing one collection of documents.

    Attributes:
        fields: (name, node) pairs in declaration order
        description: Human-readable description

    Invariants:
        - Field names are unique
        - System fields (_id, _creationTime) are implicit and cannot be declared

    Example:
        >>> games = DocumentShape.of({"win_count": Int64Type(), "loss_count": Int64Type()})
    """

    fields: Tuple[Tuple[str, TypeNode], ...] = dataclass_field(default_factory=tuple)
    description: str = ""

    def __post_init__(self) -> None:
        # ObjectType performs the name/uniqueness checks
        node = ObjectType(self.fields)
        object.__setattr__(self, "fields", node.fields)
        reserved = [name for name in node.field_names() if name in SYSTEM_FIELDS]
        if reserved:
            raise InvalidTypeError(f"System fields cannot be declared: {reserved}")

    @classmethod
    def of(cls, fields: Mapping[str, TypeNode], description: str = "") -> DocumentShape:
        """Build a shape from an ordered mapping."""
        return cls(tuple(fields.items()), description=description)

    def as_object(self) -> ObjectType:
        """The shape's fields as an Object node (without system fields)."""
        return ObjectType(self.fields)

    def field_names(self) -> list[str]:
        return [name for name, _ in self.fields]

    def get_field(self, name: str) -> Optional[TypeNode]:
        for field_name, node in self.fields:
            if field_name == name:
                return node
        return None

    def get_required_fields(self) -> list[str]:
        """Names of fields that must be present on every document."""
        return [name for name, node in self.fields if not node.is_optional]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, DocumentShape):
            return NotImplemented
        return self.as_object() == other.as_object() and self.description == other.description

    def __hash__(self) -> int:
        return hash((self.as_object(), self.description))
