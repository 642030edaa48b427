"""
Schema module for docshape.

This module provides the document type language, including:
- Type nodes (ObjectType, UnionType, IdType, ...) and the ``v`` builders
- Validation, description and the JSON value codec
- Schema registry for collection shapes
- Compatibility checking for schema evolution

The schema file loader lives in ``docshape.schema.format``.

Invariants:
    - Type nodes are immutable and acyclic
    - All collections must be registered before the registry is frozen
    - Documents are validated only against a frozen registry

How to change safely:
    - Add new collections and optional fields
    - Use schema CLI to verify compatibility before deployment
"""

from .builders import Validators, define_schema, define_table, v
from .codec import decode_value, encode_value
from .compat import (
    ChangeKind,
    CompatibilityError,
    SchemaChange,
    check_compatibility,
    compare_shapes,
    document_drift,
    generate_fingerprint,
    validate_breaking_changes,
)
from .describe import describe, expected_kind, from_descriptor, to_descriptor
from .infer import infer_node, infer_shape
from .registry import (
    RegistryState,
    SchemaRegistry,
    freeze_registry,
    get_registry,
    reset_registry,
)
from .types import (
    ABSENT,
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
from .validate import ValidationResult, is_valid, kind_of, validate, validate_or_raise

__all__ = [
    # Types
    "TypeKind",
    "TypeNode",
    "NullType",
    "Int64Type",
    "Float64Type",
    "BooleanType",
    "StringType",
    "BytesType",
    "IdType",
    "ArrayType",
    "ObjectType",
    "RecordType",
    "UnionType",
    "LiteralType",
    "OptionalType",
    "AnyType",
    "DocumentShape",
    "DocumentId",
    "ABSENT",
    "SYSTEM_FIELDS",
    # Builders
    "Validators",
    "v",
    "define_table",
    "define_schema",
    # Validation
    "validate",
    "validate_or_raise",
    "is_valid",
    "kind_of",
    "ValidationResult",
    # Description and encoding
    "describe",
    "expected_kind",
    "to_descriptor",
    "from_descriptor",
    "encode_value",
    "decode_value",
    "infer_node",
    "infer_shape",
    # Registry
    "RegistryState",
    "SchemaRegistry",
    "get_registry",
    "freeze_registry",
    "reset_registry",
    # Compatibility
    "SchemaChange",
    "ChangeKind",
    "CompatibilityError",
    "check_compatibility",
    "compare_shapes",
    "document_drift",
    "generate_fingerprint",
    "validate_breaking_changes",
]
