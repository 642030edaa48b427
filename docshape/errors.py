"""
Error types for docshape.

This module defines all exception types raised by the library:
- DocShapeError: Base exception
- ValidationError: A value does not conform to its declared type node
- TooDeepError: Value nesting exceeded the configured bound
- DuplicateCollectionError / SchemaFrozenError: Registry misuse
- InvalidTypeError: A type node was built from invalid parts

Invariants:
    - All errors inherit from DocShapeError
    - Errors carry a machine-readable code and details dict
    - Validation errors always carry the full path from the root value
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

PathElement = Union[str, int]
Path = Tuple[PathElement, ...]


def format_path(path: Sequence[PathElement]) -> str:
    """Render a value path as ``field.sub[0].key``.

    An empty path renders as ``<root>``.
    """
    if not path:
        return "<root>"
    parts: List[str] = []
    for element in path:
        if isinstance(element, int):
            parts.append(f"[{element}]")
        elif parts:
            parts.append(f".{element}")
        else:
            parts.append(str(element))
    return "".join(parts)


class DocShapeError(Exception):
    """Base exception for all docshape errors.

    Attributes:
        message: Error message
        code: Error code for programmatic handling
        details: Additional error context
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or "DOCSHAPE_ERROR"
        self.details = details or {}


class ValidationError(DocShapeError):
    """A value does not conform to its declared type node.

    Always recoverable: the caller rejects the write or call and surfaces
    the path and kinds to the user.

    Attributes:
        path: Field names, array indices and record keys from the root
        expected_kind: Kind the type node required (e.g. "Int64")
        actual_kind: Kind of the offending value (e.g. "Float64", "missing")
    """

    default_code = "VALIDATION_ERROR"

    def __init__(
        self,
        path: Sequence[PathElement],
        expected_kind: str,
        actual_kind: str,
        message: Optional[str] = None,
    ) -> None:
        self.path: Path = tuple(path)
        self.expected_kind = expected_kind
        self.actual_kind = actual_kind
        super().__init__(
            message
            or f"{format_path(self.path)}: expected {expected_kind}, got {actual_kind}",
            code=self.default_code,
            details={
                "path": list(self.path),
                "expected_kind": expected_kind,
                "actual_kind": actual_kind,
            },
        )

    @property
    def path_str(self) -> str:
        """Dotted rendering of the path."""
        return format_path(self.path)


class TooDeepError(ValidationError):
    """Value nesting exceeded the recursion bound.

    Raised for pathologically deep or self-referential values. Treated as
    an ordinary validation failure, never a crash.
    """

    default_code = "TOO_DEEP"

    def __init__(
        self,
        path: Sequence[PathElement],
        expected_kind: str = "depth <= limit",
        actual_kind: str = "too deep",
        message: Optional[str] = None,
    ) -> None:
        super().__init__(
            path,
            expected_kind,
            actual_kind,
            message or f"{format_path(tuple(path))}: value nesting exceeds {expected_kind}",
        )


class ArgumentValidationError(ValidationError):
    """Function arguments did not match the declared argument object."""

    default_code = "INVALID_ARGUMENTS"


class ReturnValidationError(ValidationError):
    """A handler returned a value that does not match its declared return type."""

    default_code = "INVALID_RETURN"


class InvalidTypeError(DocShapeError, ValueError):
    """A type node or shape was constructed from invalid parts.

    Raised at schema build time, never at validate time. For example a
    Record whose key type is an Object, a Union with no alternatives, or
    an unknown descriptor tag.
    """

    def __init__(self, message: str, valid_types: Optional[List[str]] = None) -> None:
        super().__init__(
            message,
            code="INVALID_TYPE",
            details={"valid_types": valid_types or []},
        )
        self.valid_types = valid_types or []


class DuplicateCollectionError(DocShapeError):
    """A collection name was registered twice."""

    def __init__(self, name: str) -> None:
        super().__init__(
            f"Collection '{name}' is already registered",
            code="DUPLICATE_COLLECTION",
            details={"name": name},
        )
        self.name = name


class SchemaFrozenError(DocShapeError):
    """The registry is frozen and cannot be modified."""

    def __init__(self, message: str = "Schema registry is frozen") -> None:
        super().__init__(message, code="SCHEMA_FROZEN")


class SchemaNotFrozenError(DocShapeError):
    """Validation was requested before the registry was frozen."""

    def __init__(self, message: str = "Schema registry must be frozen before validation") -> None:
        super().__init__(message, code="SCHEMA_NOT_FROZEN")


class UnknownCollectionError(DocShapeError):
    """No shape is registered under the requested collection name."""

    def __init__(self, name: str, known: Optional[List[str]] = None) -> None:
        known = known or []
        msg = f"Unknown collection '{name}'"
        if known:
            msg += f". Known collections: {', '.join(known)}"
        super().__init__(
            msg,
            code="UNKNOWN_COLLECTION",
            details={"name": name, "known": known},
        )
        self.name = name


class SchemaLoadError(DocShapeError):
    """A schema file could not be parsed into type nodes.

    Attributes:
        context: Dotted location inside the schema (e.g. "schema.games.win_count")
    """

    def __init__(self, context: str, details: str) -> None:
        super().__init__(
            f"Invalid schema at {context}: {details}",
            code="SCHEMA_LOAD_ERROR",
            details={"context": context, "details": details},
        )
        self.context = context


class UnknownFunctionError(DocShapeError):
    """No query or mutation is registered under the requested name."""

    def __init__(self, name: str) -> None:
        super().__init__(
            f"Unknown function '{name}'",
            code="UNKNOWN_FUNCTION",
            details={"name": name},
        )
        self.name = name


class DocumentNotFoundError(DocShapeError):
    """No document exists for the given identifier."""

    def __init__(self, document_id: Any) -> None:
        super().__init__(
            f"Document {document_id} not found",
            code="NOT_FOUND",
            details={"id": str(document_id)},
        )
        self.document_id = document_id


class DuplicateFunctionError(DocShapeError):
    """A query or mutation name was registered twice."""

    def __init__(self, name: str) -> None:
        super().__init__(
            f"Function '{name}' is already registered",
            code="DUPLICATE_FUNCTION",
            details={"name": name},
        )
        self.name = name
