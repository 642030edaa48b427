"""
Schema Registry for docshape.

The SchemaRegistry is the central authority for document shapes.
It provides:
- Registration of collection shapes by name
- Lookup by collection name
- Document validation (declared fields plus system fields)
- Schema fingerprinting for consistency checks
- Freeze mechanism to prevent runtime modifications

Invariants:
    - Registry is Building during startup, Frozen before serving
    - Once frozen, no new collections can be registered
    - Collection names are unique
    - Documents are only validated against a frozen registry
    - Fingerprint changes whenever any shape's describe() text changes

How to change safely:
    - Register all collections before calling freeze_registry()
    - Use the schema CLI to verify compatibility before deployment
    - Never reconstruct the registry per request; pass the frozen one around

Example:
    >>> from docshape.schema import SchemaRegistry, define_table, v
    >>> registry = SchemaRegistry()
    >>> registry.register("games", define_table({"win_count": v.int64()}))
    >>> registry.freeze()
    'sha256:...'
    >>> registry.lookup("games").field_names()
    ['win_count']
"""

from __future__ import annotations

import hashlib
import json
import threading
from enum import Enum
from typing import Any, Dict, Iterator, Optional
import logging

from ..errors import (
    DuplicateCollectionError,
    InvalidTypeError,
    SchemaFrozenError,
    SchemaNotFrozenError,
    UnknownCollectionError,
)
from .describe import describe, from_descriptor, to_descriptor
from .types import DocumentShape, Float64Type, IdType, ObjectType, OptionalType
from .validate import ValidationResult, validate

logger = logging.getLogger(__name__)

# Global registry instance
_global_registry: Optional[SchemaRegistry] = None
_registry_lock = threading.Lock()


class RegistryState(Enum):
    """Lifecycle states of a registry."""

    BUILDING = "building"
    FROZEN = "frozen"


class SchemaRegistry:
    """Central registry for all collection shapes.

    Thread-safety:
        - Registration is thread-safe (uses internal lock)
        - Lookups and validation after freeze are lock-free
        - Freeze is atomic and irreversible

    Attributes:
        state: Building or Frozen
        fingerprint: SHA-256 hash of the schema (computed on freeze)
        max_depth: Nesting bound used by validate_document

    Example:
        >>> registry = SchemaRegistry()
        >>> registry.register("games", games_shape)
        >>> registry.freeze()
        >>> registry.validate_document("games", doc).ok
        True
    """

    def __init__(self, max_depth: Optional[int] = None) -> None:
        """Initialize an empty, mutable registry.

        Args:
            max_depth: Nesting bound for document validation (None for default)
        """
        self._shapes: Dict[str, DocumentShape] = {}
        self._document_nodes: Dict[str, ObjectType] = {}
        self._state = RegistryState.BUILDING
        self._fingerprint: Optional[str] = None
        self._lock = threading.Lock()
        self.max_depth = max_depth

    @property
    def state(self) -> RegistryState:
        return self._state

    @property
    def frozen(self) -> bool:
        """Whether the registry is frozen."""
        return self._state is RegistryState.FROZEN

    @property
    def fingerprint(self) -> Optional[str]:
        """Schema fingerprint (available after freeze)."""
        return self._fingerprint

    def register(self, name: str, shape: DocumentShape) -> None:
        """Register a collection shape.

        Args:
            name: Collection name
            shape: Document shape for the collection

        Raises:
            SchemaFrozenError: If registry is frozen
            DuplicateCollectionError: If the name is already registered
            InvalidTypeError: If the name is empty or shape is not a DocumentShape
        """
        if not isinstance(name, str) or not name:
            raise InvalidTypeError("Collection name must be a non-empty string")
        if not isinstance(shape, DocumentShape):
            raise InvalidTypeError(
                f"Collection '{name}' must be a DocumentShape, got {type(shape).__name__}"
            )

        with self._lock:
            if self.frozen:
                raise SchemaFrozenError(f"Cannot register collection '{name}': registry is frozen")
            if name in self._shapes:
                raise DuplicateCollectionError(name)

            self._shapes[name] = shape
            logger.debug(f"Registered collection: {name} ({len(shape.fields)} fields)")

    def lookup(self, name: str) -> Optional[DocumentShape]:
        """Get a collection's shape.

        Returns:
            DocumentShape if registered, None otherwise
        """
        return self._shapes.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self._shapes

    def __len__(self) -> int:
        return len(self._shapes)

    def collections(self) -> Iterator[str]:
        """Iterate over collection names in registration order."""
        yield from self._shapes.keys()

    def items(self) -> Iterator[tuple[str, DocumentShape]]:
        yield from self._shapes.items()

    def freeze(self) -> str:
        """Freeze the registry and compute fingerprint.

        After freezing, no new collections can be registered and documents
        can be validated.

        Returns:
            Schema fingerprint string

        Raises:
            SchemaFrozenError: If already frozen
        """
        with self._lock:
            if self.frozen:
                raise SchemaFrozenError("Registry is already frozen")

            self._document_nodes = {
                name: _document_node(name, shape) for name, shape in self._shapes.items()
            }
            self._fingerprint = self._compute_fingerprint()
            self._state = RegistryState.FROZEN
            logger.info(
                f"Schema registry frozen with {len(self._shapes)} collections, "
                f"fingerprint={self._fingerprint}"
            )
            return self._fingerprint

    def document_node(self, name: str) -> ObjectType:
        """The Object node a stored document of ``name`` must satisfy.

        It is the declared shape plus the system fields ``_id: Id(name)``
        and ``_creationTime: Optional(Float64)``.

        Raises:
            UnknownCollectionError: If the collection is not registered
        """
        node = self._document_nodes.get(name)
        if node is not None:
            return node
        shape = self._shapes.get(name)
        if shape is None:
            raise UnknownCollectionError(name, list(self._shapes))
        return _document_node(name, shape)

    def validate_document(self, name: str, value: Any) -> ValidationResult:
        """Validate a stored document against its collection shape.

        Args:
            name: Collection name
            value: Document mapping including ``_id``

        Returns:
            ValidationResult (check ``.ok`` / ``.error``)

        Raises:
            SchemaNotFrozenError: If the registry is still Building
            UnknownCollectionError: If the collection is not registered
        """
        if not self.frozen:
            raise SchemaNotFrozenError()
        result = validate(self.document_node(name), value, max_depth=self.max_depth)
        if not result.ok:
            logger.debug(f"Document rejected for collection '{name}': {result.error}")
        return result

    def _compute_fingerprint(self) -> str:
        """Compute SHA-256 fingerprint of the schema.

        The fingerprint hashes each shape's describe() text, keyed by
        collection name, so it tracks field order as well as types.

        Returns:
            Fingerprint string in format 'sha256:<hash>'
        """
        return _fingerprint(self)

    def to_dict(self) -> dict:
        """Convert registry to dictionary representation.

        Returns:
            Dictionary with a 'tables' mapping in registration order; each
            table holds its field descriptors and description.
        """
        tables: Dict[str, Any] = {}
        for name, shape in self._shapes.items():
            table: Dict[str, Any] = {
                "fields": {field_name: to_descriptor(node) for field_name, node in shape.fields},
            }
            if shape.description:
                table["description"] = shape.description
            tables[name] = table
        return {"tables": tables}

    def to_json(self, indent: Optional[int] = 2) -> str:
        """Convert registry to JSON string.

        Field order is preserved; keys are not sorted.
        """
        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_dict(cls, data: dict) -> SchemaRegistry:
        """Create registry from dictionary representation.

        Args:
            data: Dictionary with a 'tables' mapping

        Returns:
            New SchemaRegistry with collections registered (not frozen)
        """
        registry = cls()
        for name, table in data.get("tables", {}).items():
            fields = tuple(
                (field_name, from_descriptor(descriptor, f"{name}.{field_name}"))
                for field_name, descriptor in table.get("fields", {}).items()
            )
            registry.register(name, DocumentShape(fields, description=table.get("description", "")))
        return registry

    @classmethod
    def from_json(cls, json_str: str) -> SchemaRegistry:
        """Create registry from JSON string (not frozen)."""
        return cls.from_dict(json.loads(json_str))

    def drift(self, name: str, document: Any) -> list:
        """Report how a stored document's shape differs from the declared one.

        Args:
            name: Collection name
            document: Stored document

        Returns:
            List of SchemaChange, empty when the document matches exactly
        """
        from .compat import document_drift

        declared = self.lookup(name)
        if declared is None:
            raise UnknownCollectionError(name, list(self._shapes))
        changes = document_drift(name, declared, document)
        if changes:
            logger.warning(f"Document in '{name}' drifted from declared shape: {len(changes)} change(s)")
        return changes


def _document_node(name: str, shape: DocumentShape) -> ObjectType:
    return ObjectType(
        (("_id", IdType(name)), ("_creationTime", OptionalType(Float64Type()))) + shape.fields
    )


def _fingerprint(registry: SchemaRegistry) -> str:
    canonical = json.dumps(
        {name: describe(shape.as_object()) for name, shape in registry.items()},
        sort_keys=True,
        separators=(",", ":"),
    )
    hash_bytes = hashlib.sha256(canonical.encode("utf-8")).hexdigest()
    return f"sha256:{hash_bytes}"


def get_registry() -> SchemaRegistry:
    """Get the global schema registry.

    Creates a new registry if none exists.

    Returns:
        Global SchemaRegistry instance
    """
    global _global_registry
    with _registry_lock:
        if _global_registry is None:
            _global_registry = SchemaRegistry()
        return _global_registry


def freeze_registry() -> str:
    """Freeze the global registry.

    This should be called after all collections are registered
    and before any request traffic is accepted.

    Returns:
        Schema fingerprint

    Raises:
        SchemaFrozenError: If already frozen
    """
    return get_registry().freeze()


def reset_registry() -> None:
    """Reset the global registry (for testing only).

    Warning: This is intended for test cleanup only.
    Never use in production code.
    """
    global _global_registry
    with _registry_lock:
        _global_registry = None
