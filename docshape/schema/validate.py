"""
Value validation against type nodes.

This module provides:
- validate(): structural check of a value against a node, returning a
  ValidationResult instead of raising
- validate_or_raise() / is_valid(): convenience wrappers
- kind_of(): the runtime kind name of a Python value

Invariants:
    - Validation is deterministic and has no shared mutable state
    - No numeric coercion: bool is never Int64, 3.0 is never Int64,
      3 is never Float64
    - The first failing path is reported, declared fields before extras
    - Union alternatives are tried in declaration order; the first match
      is recorded as the matched arm for its value path; unions nested
      at the same path append their own index, outermost first
    - Value nesting deeper than max_depth fails with TooDeepError, so
      self-referential values cannot recurse forever

How to change safely:
    - Keep error paths stable: callers match on them
    - New node kinds need an entry in _Validator._checks
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Mapping, Optional, Tuple

from ..errors import Path, TooDeepError, ValidationError, format_path
from .describe import expected_kind
from .types import (
    ABSENT,
    INT64_MAX,
    INT64_MIN,
    AnyType,
    ArrayType,
    BooleanType,
    BytesType,
    DocumentId,
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

logger = logging.getLogger(__name__)

DEFAULT_MAX_DEPTH = 64

MISSING = "missing"


def kind_of(value: Any) -> str:
    """Name the runtime kind of a value, using the type language's names.

    Checks bool before int since bool is a subclass of int.

    Args:
        value: Any Python value

    Returns:
        Kind name such as "Int64", "Float64", "Id(games)" or "missing"
    """
    if value is ABSENT:
        return MISSING
    if value is None:
        return "Null"
    if isinstance(value, bool):
        return "Boolean"
    if isinstance(value, int):
        return "Int64" if INT64_MIN <= value <= INT64_MAX else "BigInt"
    if isinstance(value, float):
        return "Float64"
    if isinstance(value, str):
        return "String"
    if isinstance(value, (bytes, bytearray)):
        return "Bytes"
    if isinstance(value, DocumentId):
        return f"Id({value.table})"
    if isinstance(value, (list, tuple)):
        return "Array"
    if isinstance(value, Mapping):
        return "Object"
    return type(value).__name__


@dataclass
class ValidationResult:
    """Outcome of validating one value.

    Attributes:
        error: First mismatch found, or None if the value conforms
        arms: Matched union alternative indices per value path, outermost
            union first (nested unions at one path each add an index)
    """

    error: Optional[ValidationError] = None
    arms: Dict[Path, Tuple[int, ...]] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.error is None

    def __bool__(self) -> bool:
        return self.ok

    def matched_arm(self, path: Path = ()) -> Optional[int]:
        """Index of the outermost union alternative that matched at ``path``.

        Returns:
            Alternative index, or None if no union was matched there
        """
        chain = self.arms.get(tuple(path))
        return chain[0] if chain else None

    def matched_arms(self, path: Path = ()) -> Tuple[int, ...]:
        """Indices chosen by each union at ``path``, outermost first."""
        return self.arms.get(tuple(path), ())

    def raise_for_error(self) -> None:
        """Raise the recorded error, if any."""
        if self.error is not None:
            raise self.error


class _Validator:
    """Single validation pass. Holds only configuration, never per-value state."""

    def __init__(self, max_depth: int) -> None:
        self.max_depth = max_depth
        self._checks: Dict[type, Callable[..., Optional[ValidationError]]] = {
            NullType: self._check_null,
            Int64Type: self._check_int64,
            Float64Type: self._check_float64,
            BooleanType: self._check_boolean,
            StringType: self._check_string,
            BytesType: self._check_bytes,
            IdType: self._check_id,
            ArrayType: self._check_array,
            ObjectType: self._check_object,
            RecordType: self._check_record,
            UnionType: self._check_union,
            LiteralType: self._check_literal,
            OptionalType: self._check_optional,
            AnyType: self._check_any,
        }

    def check(
        self,
        node: TypeNode,
        value: Any,
        path: Path,
        depth: int,
        arms: Dict[Path, Tuple[int, ...]],
    ) -> Optional[ValidationError]:
        if depth > self.max_depth:
            return TooDeepError(path, expected_kind=f"depth <= {self.max_depth}")
        return self._checks[type(node)](node, value, path, depth, arms)

    @staticmethod
    def _mismatch(node: TypeNode, value: Any, path: Path) -> ValidationError:
        return ValidationError(path, expected_kind(node), kind_of(value))

    # Scalars

    def _check_null(self, node, value, path, depth, arms):
        return None if value is None else self._mismatch(node, value, path)

    def _check_int64(self, node, value, path, depth, arms):
        if isinstance(value, int) and not isinstance(value, bool) and INT64_MIN <= value <= INT64_MAX:
            return None
        return self._mismatch(node, value, path)

    def _check_float64(self, node, value, path, depth, arms):
        return None if isinstance(value, float) else self._mismatch(node, value, path)

    def _check_boolean(self, node, value, path, depth, arms):
        return None if isinstance(value, bool) else self._mismatch(node, value, path)

    def _check_string(self, node, value, path, depth, arms):
        return None if isinstance(value, str) else self._mismatch(node, value, path)

    def _check_bytes(self, node, value, path, depth, arms):
        return None if isinstance(value, (bytes, bytearray)) else self._mismatch(node, value, path)

    def _check_id(self, node, value, path, depth, arms):
        if isinstance(value, DocumentId) and value.table == node.table:
            return None
        return self._mismatch(node, value, path)

    def _check_literal(self, node, value, path, depth, arms):
        if kind_of(value) == kind_of(node.value) and value == node.value:
            return None
        return ValidationError(
            path,
            expected_kind(node),
            kind_of(value),
            message=f"{format_path(path)}: expected {expected_kind(node)}, got {value!r}",
        )

    # Composites

    def _check_array(self, node, value, path, depth, arms):
        if not isinstance(value, (list, tuple)):
            return self._mismatch(node, value, path)
        for index, item in enumerate(value):
            error = self.check(node.element, item, path + (index,), depth + 1, arms)
            if error is not None:
                return error
        return None

    def _check_object(self, node, value, path, depth, arms):
        if not isinstance(value, Mapping):
            return self._mismatch(node, value, path)
        declared = set()
        for name, field_node in node.fields:
            declared.add(name)
            item = value.get(name, ABSENT)
            if item is ABSENT and not field_node.is_optional:
                return ValidationError(path + (name,), expected_kind(field_node), MISSING)
            error = self.check(field_node, item, path + (name,), depth + 1, arms)
            if error is not None:
                return error
        for key, item in value.items():
            if key not in declared:
                return ValidationError(
                    path + (key,),
                    MISSING,
                    kind_of(item),
                    message=f"{format_path(path + (key,))}: unexpected field",
                )
        return None

    def _check_record(self, node, value, path, depth, arms):
        if not isinstance(value, Mapping):
            return self._mismatch(node, value, path)
        for key, item in value.items():
            key_path = path + (str(key),)
            error = self.check(node.key, key, key_path, depth + 1, arms)
            if error is None:
                error = self.check(node.value, item, key_path, depth + 1, arms)
            if error is not None:
                return error
        return None

    def _check_union(self, node, value, path, depth, arms):
        for index, variant in enumerate(node.variants):
            variant_arms: Dict[Path, Tuple[int, ...]] = {}
            error = self.check(variant, value, path, depth, variant_arms)
            if error is None:
                inner = variant_arms.pop(path, ())
                arms.update(variant_arms)
                arms[path] = (index,) + inner
                return None
            if isinstance(error, TooDeepError):
                return error
        return self._mismatch(node, value, path)

    def _check_optional(self, node, value, path, depth, arms):
        if value is ABSENT:
            return None
        return self.check(node.inner, value, path, depth, arms)

    def _check_any(self, node, value, path, depth, arms):
        # Accepts everything, but still bounds container nesting
        stack = [(value, path, depth)]
        while stack:
            item, item_path, item_depth = stack.pop()
            if item_depth > self.max_depth:
                return TooDeepError(item_path, expected_kind=f"depth <= {self.max_depth}")
            if isinstance(item, (list, tuple)):
                stack.extend((child, item_path + (i,), item_depth + 1) for i, child in enumerate(item))
            elif isinstance(item, Mapping):
                stack.extend((child, item_path + (str(k),), item_depth + 1) for k, child in item.items())
        return None


def validate(
    node: TypeNode,
    value: Any,
    *,
    max_depth: Optional[int] = None,
) -> ValidationResult:
    """Validate a value against a type node.

    Args:
        node: Type node describing the expected shape
        value: Value to check (use ABSENT for a missing value)
        max_depth: Nesting bound; defaults to DEFAULT_MAX_DEPTH

    Returns:
        ValidationResult with the first error (if any) and matched union arms

    Example:
        >>> result = validate(v.union(v.literal("a"), v.string()), "a")
        >>> result.ok, result.matched_arm()
        (True, 0)
    """
    validator = _Validator(DEFAULT_MAX_DEPTH if max_depth is None else max_depth)
    arms: Dict[Path, Tuple[int, ...]] = {}
    error = validator.check(node, value, (), 0, arms)
    if error is not None:
        logger.debug(f"Validation failed: {error}")
        return ValidationResult(error=error)
    return ValidationResult(arms=arms)


def validate_or_raise(
    node: TypeNode,
    value: Any,
    *,
    max_depth: Optional[int] = None,
) -> ValidationResult:
    """Validate and raise the first mismatch.

    Raises:
        ValidationError: If the value does not conform (TooDeepError for
            values nested past the bound)
    """
    result = validate(node, value, max_depth=max_depth)
    result.raise_for_error()
    return result


def is_valid(node: TypeNode, value: Any, *, max_depth: Optional[int] = None) -> bool:
    """Whether ``value`` conforms to ``node``."""
    return validate(node, value, max_depth=max_depth).ok
