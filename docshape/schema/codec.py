"""
Shape-directed conversion between Python values and JSON values.

Python values carry kinds JSON cannot express (bytes, document ids,
non-finite floats, the int/float distinction). The codec uses the type
node to pick a JSON form on the way out and to restore the Python kind on
the way back in:

    Bytes       -> base64 text
    Id(table)   -> the id string (the table is implied by the node)
    Float64     -> number, or {"$float": "NaN" | "Infinity" | "-Infinity"}
    Array       -> list (tuples become lists)
    Union       -> the matched alternative's encoding

Invariants:
    - encode_value() validates before encoding; it never emits JSON for a
      value that does not conform
    - decode_value() returns values that validate against the node
    - Union decoding keeps the first alternative that decodes and validates

How to change safely:
    - Never change an existing JSON form; stored snapshots depend on it
"""

from __future__ import annotations

import base64
import binascii
import math
from typing import Any, Dict, Mapping, Optional, Tuple

from ..errors import Path, TooDeepError, ValidationError, format_path
from .describe import expected_kind
from .types import (
    ABSENT,
    AnyType,
    ArrayType,
    BytesType,
    DocumentId,
    Float64Type,
    IdType,
    Int64Type,
    LiteralType,
    ObjectType,
    OptionalType,
    RecordType,
    TypeNode,
    UnionType,
)
from .validate import DEFAULT_MAX_DEPTH, MISSING, is_valid, kind_of, validate_or_raise

FLOAT_TAG = "$float"

_SPECIAL_FLOATS = {
    "NaN": math.nan,
    "Infinity": math.inf,
    "-Infinity": -math.inf,
}


def encode_value(node: TypeNode, value: Any, *, max_depth: Optional[int] = None) -> Any:
    """Encode a Python value as a JSON-compatible value.

    Args:
        node: Type node the value must satisfy
        value: Python value
        max_depth: Nesting bound used for the validation pass

    Returns:
        JSON-compatible value (dict/list/str/int/float/bool/None)

    Raises:
        ValidationError: If the value does not conform to ``node``
    """
    result = validate_or_raise(node, value, max_depth=max_depth)
    return _encode(node, value, (), result.arms)


def _encode(
    node: TypeNode,
    value: Any,
    path: Path,
    arms: Dict[Path, Tuple[int, ...]],
    level: int = 0,
) -> Any:
    # level counts the unions already entered at this path
    if isinstance(node, OptionalType):
        return _encode(node.inner, value, path, arms, level)
    if isinstance(node, UnionType):
        variant = node.variants[arms[path][level]]
        return _encode(variant, value, path, arms, level + 1)
    if isinstance(node, Float64Type):
        return _encode_float(value)
    if isinstance(node, BytesType):
        return base64.b64encode(bytes(value)).decode("ascii")
    if isinstance(node, IdType):
        return value.id
    if isinstance(node, ArrayType):
        return [_encode(node.element, item, path + (i,), arms) for i, item in enumerate(value)]
    if isinstance(node, ObjectType):
        encoded = {}
        for name, field_node in node.fields:
            item = value.get(name, ABSENT)
            if item is not ABSENT:
                encoded[name] = _encode(field_node, item, path + (name,), arms)
        return encoded
    if isinstance(node, RecordType):
        return {
            _encode(node.key, key, path + (str(key),), arms): _encode(node.value, item, path + (str(key),), arms)
            for key, item in value.items()
        }
    if isinstance(node, AnyType):
        return _encode_any(value)
    # Null, Int64, Boolean, String and Literal are already JSON values
    return value


def _encode_float(value: float) -> Any:
    if math.isnan(value):
        return {FLOAT_TAG: "NaN"}
    if math.isinf(value):
        return {FLOAT_TAG: "Infinity" if value > 0 else "-Infinity"}
    return value


def _encode_any(value: Any) -> Any:
    """Best-effort JSON form for a value accepted by Any."""
    if isinstance(value, bool) or value is None or isinstance(value, (int, str)):
        return value
    if isinstance(value, float):
        return _encode_float(value)
    if isinstance(value, (bytes, bytearray)):
        return base64.b64encode(bytes(value)).decode("ascii")
    if isinstance(value, DocumentId):
        return value.id
    if isinstance(value, (list, tuple)):
        return [_encode_any(item) for item in value]
    if isinstance(value, Mapping):
        return {str(key): _encode_any(item) for key, item in value.items()}
    raise ValidationError((), "JSON value", kind_of(value))


def decode_value(node: TypeNode, data: Any, *, max_depth: Optional[int] = None) -> Any:
    """Decode a JSON-compatible value into the Python value ``node`` describes.

    A JSON integer is accepted where Float64 is expected (JSON cannot tell
    ``3.0`` from ``3``); the reverse is never done.

    Args:
        node: Type node describing the expected value
        data: Value produced by json.loads (or encode_value)
        max_depth: Nesting bound; defaults to DEFAULT_MAX_DEPTH

    Returns:
        Python value that validates against ``node``

    Raises:
        ValidationError: If ``data`` cannot be decoded as ``node``
    """
    decoder = _Decoder(DEFAULT_MAX_DEPTH if max_depth is None else max_depth)
    value = decoder.decode(node, data, (), 0)
    validate_or_raise(node, value, max_depth=decoder.max_depth)
    return value


class _Decoder:
    def __init__(self, max_depth: int) -> None:
        self.max_depth = max_depth

    def decode(self, node: TypeNode, data: Any, path: Path, depth: int) -> Any:
        if depth > self.max_depth:
            raise TooDeepError(path, expected_kind=f"depth <= {self.max_depth}")

        if isinstance(node, OptionalType):
            if data is ABSENT:
                return ABSENT
            return self.decode(node.inner, data, path, depth)
        if isinstance(node, UnionType):
            return self._decode_union(node, data, path, depth)
        if isinstance(node, Float64Type):
            return self._decode_float(node, data, path)
        if isinstance(node, Int64Type):
            if isinstance(data, int) and not isinstance(data, bool):
                return data
            raise self._mismatch(node, data, path)
        if isinstance(node, BytesType):
            if not isinstance(data, str):
                raise self._mismatch(node, data, path)
            try:
                return base64.b64decode(data, validate=True)
            except (binascii.Error, ValueError) as e:
                raise ValidationError(path, "Bytes", "String", message=f"{format_path(path)}: invalid base64: {e}")
        if isinstance(node, IdType):
            if isinstance(data, DocumentId):
                return data
            if isinstance(data, str) and data:
                return DocumentId(node.table, data)
            raise self._mismatch(node, data, path)
        if isinstance(node, ArrayType):
            if not isinstance(data, (list, tuple)):
                raise self._mismatch(node, data, path)
            return [self.decode(node.element, item, path + (i,), depth + 1) for i, item in enumerate(data)]
        if isinstance(node, ObjectType):
            return self._decode_object(node, data, path, depth)
        if isinstance(node, RecordType):
            if not isinstance(data, Mapping):
                raise self._mismatch(node, data, path)
            return {
                self.decode(node.key, key, path + (str(key),), depth + 1):
                    self.decode(node.value, item, path + (str(key),), depth + 1)
                for key, item in data.items()
            }
        if isinstance(node, LiteralType):
            if isinstance(node.value, float) and isinstance(data, int) and not isinstance(data, bool):
                data = float(data)
            return data
        # Null, Boolean, String and Any pass through; the final validate checks them
        return data

    def _decode_float(self, node: TypeNode, data: Any, path: Path) -> float:
        if isinstance(data, float):
            return data
        if isinstance(data, int) and not isinstance(data, bool):
            return float(data)
        if isinstance(data, Mapping) and set(data) == {FLOAT_TAG} and data[FLOAT_TAG] in _SPECIAL_FLOATS:
            return _SPECIAL_FLOATS[data[FLOAT_TAG]]
        raise self._mismatch(node, data, path)

    def _decode_object(self, node: ObjectType, data: Any, path: Path, depth: int) -> Dict[str, Any]:
        if not isinstance(data, Mapping):
            raise self._mismatch(node, data, path)
        decoded: Dict[str, Any] = {}
        for name, field_node in node.fields:
            item = data.get(name, ABSENT)
            if item is ABSENT:
                if not field_node.is_optional:
                    raise ValidationError(path + (name,), expected_kind(field_node), MISSING)
                continue
            decoded[name] = self.decode(field_node, item, path + (name,), depth + 1)
        for key, item in data.items():
            if node.get_field(key) is None:
                raise ValidationError(path + (key,), MISSING, kind_of(item))
        return decoded

    def _decode_union(self, node: UnionType, data: Any, path: Path, depth: int) -> Any:
        for variant in node.variants:
            try:
                value = self.decode(variant, data, path, depth)
            except TooDeepError:
                raise
            except ValidationError:
                continue
            if is_valid(variant, value, max_depth=self.max_depth - depth):
                return value
        raise self._mismatch(node, data, path)

    @staticmethod
    def _mismatch(node: TypeNode, data: Any, path: Path) -> ValidationError:
        return ValidationError(path, expected_kind(node), kind_of(data))
