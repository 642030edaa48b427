"""
Schema compatibility checking for docshape.

This module decides whether documents written under an old schema are
still valid under a new one:
- Collections can be added but not removed
- Optional fields can be added; required fields cannot
- Fields cannot be removed (stored documents would carry an extra field)
- A field's type cannot change, except wrapping it in Optional
- Field reordering is allowed (it only changes describe() and fingerprints)

Invariants:
    - Breaking changes are NEVER allowed
    - Type comparisons use describe() text, so they are exact and ordered
    - Compatibility is checked before deployment

How to change safely:
    - Add new collections and optional fields
    - Run `docshape check` before every deployment

Example:
    >>> from docshape.schema.compat import check_compatibility
    >>> changes = check_compatibility(old_registry, new_registry)
    >>> breaking = [c for c in changes if c.is_breaking]
    >>> if breaking:
    ...     raise CompatibilityError(breaking)
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from typing import Any, List, Mapping, Optional
import logging

from .describe import describe
from .registry import SchemaRegistry, _fingerprint
from .infer import infer_node
from .types import ABSENT, SYSTEM_FIELDS, DocumentShape, OptionalType, TypeNode
from .validate import is_valid

logger = logging.getLogger(__name__)


class ChangeKind(Enum):
    """Types of schema changes."""
    # Non-breaking changes (allowed)
    COLLECTION_ADDED = auto()
    FIELD_ADDED = auto()
    FIELD_MADE_OPTIONAL = auto()
    FIELDS_REORDERED = auto()
    DESCRIPTION_CHANGED = auto()

    # Breaking changes (forbidden)
    COLLECTION_REMOVED = auto()
    REQUIRED_FIELD_ADDED = auto()
    FIELD_REMOVED = auto()
    FIELD_TYPE_CHANGED = auto()
    FIELD_MADE_REQUIRED = auto()

    @property
    def is_breaking(self) -> bool:
        """Whether this change kind is a breaking change."""
        breaking_kinds = {
            ChangeKind.COLLECTION_REMOVED,
            ChangeKind.REQUIRED_FIELD_ADDED,
            ChangeKind.FIELD_REMOVED,
            ChangeKind.FIELD_TYPE_CHANGED,
            ChangeKind.FIELD_MADE_REQUIRED,
        }
        return self in breaking_kinds


@dataclass
class SchemaChange:
    """Represents a single schema change between versions.

    Attributes:
        kind: The type of change
        path: Path to the changed element (e.g., "games.win_count")
        old_value: Previous value (if applicable)
        new_value: New value (if applicable)
        message: Human-readable description of the change
    """
    kind: ChangeKind
    path: str
    old_value: Optional[Any] = None
    new_value: Optional[Any] = None
    message: str = ""

    @property
    def is_breaking(self) -> bool:
        """Whether this is a breaking change."""
        return self.kind.is_breaking

    def to_dict(self) -> dict:
        return {
            "kind": self.kind.name,
            "path": self.path,
            "old_value": self.old_value,
            "new_value": self.new_value,
            "message": self.message,
            "is_breaking": self.is_breaking,
        }

    def __str__(self) -> str:
        status = "BREAKING" if self.is_breaking else "OK"
        return f"[{status}] {self.kind.name}: {self.path} - {self.message}"


class CompatibilityError(Exception):
    """Raised when breaking schema changes are detected.

    Attributes:
        changes: List of breaking changes detected
    """

    def __init__(self, changes: List[SchemaChange]):
        self.changes = changes
        messages = [str(c) for c in changes]
        super().__init__(
            f"Schema compatibility check failed with {len(changes)} breaking change(s):\n"
            + "\n".join(messages)
        )


def check_compatibility(
    old_registry: SchemaRegistry,
    new_registry: SchemaRegistry,
) -> List[SchemaChange]:
    """Check compatibility between two schema versions.

    Args:
        old_registry: The baseline (currently deployed) schema
        new_registry: The new (to be deployed) schema

    Returns:
        List of SchemaChange objects describing all differences
    """
    changes: List[SchemaChange] = []

    for name, old_shape in old_registry.items():
        new_shape = new_registry.lookup(name)
        if new_shape is None:
            changes.append(SchemaChange(
                kind=ChangeKind.COLLECTION_REMOVED,
                path=name,
                message=f"Collection '{name}' was removed"
            ))
        else:
            changes.extend(compare_shapes(name, old_shape, new_shape))

    for name, _ in new_registry.items():
        if name not in old_registry:
            changes.append(SchemaChange(
                kind=ChangeKind.COLLECTION_ADDED,
                path=name,
                message=f"Collection '{name}' added"
            ))

    return changes


def compare_shapes(
    name: str,
    old_shape: DocumentShape,
    new_shape: DocumentShape,
) -> List[SchemaChange]:
    """Check differences between two versions of one collection's shape."""
    changes: List[SchemaChange] = []
    old_fields = dict(old_shape.fields)
    new_fields = dict(new_shape.fields)

    # Check for removed fields
    for field_name, old_node in old_fields.items():
        if field_name not in new_fields:
            changes.append(SchemaChange(
                kind=ChangeKind.FIELD_REMOVED,
                path=f"{name}.{field_name}",
                old_value=describe(old_node),
                message=f"Field '{field_name}' was removed"
            ))

    # Check for added and modified fields
    for field_name, new_node in new_fields.items():
        path = f"{name}.{field_name}"
        if field_name not in old_fields:
            if new_node.is_optional:
                changes.append(SchemaChange(
                    kind=ChangeKind.FIELD_ADDED,
                    path=path,
                    new_value=describe(new_node),
                    message=f"Optional field '{field_name}' added"
                ))
            else:
                changes.append(SchemaChange(
                    kind=ChangeKind.REQUIRED_FIELD_ADDED,
                    path=path,
                    new_value=describe(new_node),
                    message=f"Required field '{field_name}' added; existing documents lack it"
                ))
        else:
            change = _check_field_diff(path, old_fields[field_name], new_node)
            if change is not None:
                changes.append(change)

    # Check order of the fields both versions share
    shared_old = [f for f in old_fields if f in new_fields]
    shared_new = [f for f in new_fields if f in old_fields]
    if shared_old != shared_new:
        changes.append(SchemaChange(
            kind=ChangeKind.FIELDS_REORDERED,
            path=name,
            old_value=shared_old,
            new_value=shared_new,
            message="Fields were reordered"
        ))

    if old_shape.description != new_shape.description:
        changes.append(SchemaChange(
            kind=ChangeKind.DESCRIPTION_CHANGED,
            path=name,
            old_value=old_shape.description,
            new_value=new_shape.description,
            message="Description changed"
        ))

    return changes


def _check_field_diff(path: str, old_node: TypeNode, new_node: TypeNode) -> Optional[SchemaChange]:
    """Classify the change of one field's type, if any."""
    old_text = describe(old_node)
    new_text = describe(new_node)
    if old_text == new_text:
        return None

    if isinstance(new_node, OptionalType) and describe(new_node.inner) == old_text:
        return SchemaChange(
            kind=ChangeKind.FIELD_MADE_OPTIONAL,
            path=path,
            old_value=old_text,
            new_value=new_text,
            message="Field changed from required to optional"
        )
    if isinstance(old_node, OptionalType) and describe(old_node.inner) == new_text:
        return SchemaChange(
            kind=ChangeKind.FIELD_MADE_REQUIRED,
            path=path,
            old_value=old_text,
            new_value=new_text,
            message="Field changed from optional to required"
        )
    return SchemaChange(
        kind=ChangeKind.FIELD_TYPE_CHANGED,
        path=path,
        old_value=old_text,
        new_value=new_text,
        message=f"Field type changed from {old_text} to {new_text}"
    )


def generate_fingerprint(registry: SchemaRegistry) -> str:
    """Generate a schema fingerprint from a registry.

    Matches the fingerprint the registry computes on freeze, but works on
    a Building registry too.

    Returns:
        Fingerprint string in format 'sha256:<hash>'
    """
    return _fingerprint(registry)


def validate_breaking_changes(
    old_registry: SchemaRegistry,
    new_registry: SchemaRegistry,
) -> None:
    """Validate that there are no breaking changes.

    This is a convenience function for CI/CD pipelines.

    Raises:
        CompatibilityError: If breaking changes are detected
    """
    changes = check_compatibility(old_registry, new_registry)
    breaking = [c for c in changes if c.is_breaking]
    if breaking:
        raise CompatibilityError(breaking)
    logger.info(f"Schema compatibility check passed with {len(changes)} non-breaking changes")


def document_drift(name: str, declared: DocumentShape, document: Mapping[str, Any]) -> List[SchemaChange]:
    """Report how one stored document departs from its declared shape.

    Unlike compare_shapes(), only real departures are reported: a missing
    optional field or a differing key order is not drift.

    Args:
        name: Collection name
        declared: Registered shape
        document: Stored document (system fields are ignored)

    Returns:
        List of SchemaChange; new_value holds the inferred type of the
        document's field
    """
    changes: List[SchemaChange] = []
    for field_name, node in declared.fields:
        value = document.get(field_name, ABSENT)
        path = f"{name}.{field_name}"
        if value is ABSENT:
            if not node.is_optional:
                changes.append(SchemaChange(
                    kind=ChangeKind.FIELD_REMOVED,
                    path=path,
                    old_value=describe(node),
                    message=f"Document is missing required field '{field_name}'"
                ))
        elif not is_valid(node, value):
            changes.append(SchemaChange(
                kind=ChangeKind.FIELD_TYPE_CHANGED,
                path=path,
                old_value=describe(node),
                new_value=describe(infer_node(value)),
                message=f"Field '{field_name}' holds {describe(infer_node(value))}"
            ))

    declared_names = set(declared.field_names()) | set(SYSTEM_FIELDS)
    for field_name, value in document.items():
        if field_name not in declared_names:
            changes.append(SchemaChange(
                kind=ChangeKind.FIELD_ADDED,
                path=f"{name}.{field_name}",
                new_value=describe(infer_node(value)),
                message=f"Document carries undeclared field '{field_name}'"
            ))
    return changes
