"""
docshape - Document shape descriptions and validation for document databases.

This package provides a recursive type language for documents:
- Type nodes and the ``v`` builders (``v.int64()``, ``v.object({...})``)
- A schema registry of collection shapes with a build-then-freeze lifecycle
- Query/mutation signatures whose arguments are validated before dispatch
- An in-memory document store that validates every write
- Compatibility checks, schema files and Python type generation

Example:
    >>> from docshape import define_schema, define_table, v
    >>>
    >>> schema = define_schema({
    ...     "games": define_table({
    ...         "win_count": v.int64(),
    ...         "loss_count": v.int64(),
    ...     }),
    ... }, freeze=True)
    >>> schema.validate_document("games", {"_id": game_id, "win_count": 3, "loss_count": 0}).ok
    True

Invariants:
    - Type nodes and shapes are immutable after construction
    - Documents are validated only against a frozen registry
    - Validation failures are values (ValidationResult), raised only on request

Version: 1.0.0
"""

__version__ = "1.0.0"

from .errors import (
    ArgumentValidationError,
    DocShapeError,
    DocumentNotFoundError,
    DuplicateCollectionError,
    DuplicateFunctionError,
    InvalidTypeError,
    ReturnValidationError,
    SchemaFrozenError,
    SchemaLoadError,
    SchemaNotFrozenError,
    TooDeepError,
    UnknownCollectionError,
    UnknownFunctionError,
    ValidationError,
)
from .functions import FunctionContext, FunctionKind, FunctionRegistry, FunctionSignature
from .schema import (
    ABSENT,
    DocumentId,
    DocumentShape,
    SchemaRegistry,
    ValidationResult,
    define_schema,
    define_table,
    describe,
    v,
    validate,
)
from .schema.format import SchemaFile, dump_schema, load_schema
from .store import DatabaseReader, DatabaseWriter, DocumentStore, Query

__all__ = [
    # Version
    "__version__",
    # Schema
    "v",
    "define_table",
    "define_schema",
    "DocumentShape",
    "DocumentId",
    "ABSENT",
    "SchemaRegistry",
    "validate",
    "ValidationResult",
    "describe",
    # Schema files
    "SchemaFile",
    "load_schema",
    "dump_schema",
    # Functions
    "FunctionKind",
    "FunctionSignature",
    "FunctionRegistry",
    "FunctionContext",
    # Store
    "DocumentStore",
    "DatabaseReader",
    "DatabaseWriter",
    "Query",
    # Errors
    "DocShapeError",
    "ValidationError",
    "TooDeepError",
    "ArgumentValidationError",
    "ReturnValidationError",
    "InvalidTypeError",
    "DuplicateCollectionError",
    "DuplicateFunctionError",
    "SchemaFrozenError",
    "SchemaNotFrozenError",
    "UnknownCollectionError",
    "SchemaLoadError",
    "UnknownFunctionError",
    "DocumentNotFoundError",
]
