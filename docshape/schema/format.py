"""
YAML/JSON schema file format for docshape.

A schema file declares collections and, optionally, function signatures
using the JSON type descriptors of describe.to_descriptor(). A bare
string is shorthand for a parameterless type.

Example schema:
    version: 1
    tables:
      games:
        description: win/loss counter
        fields:
          win_count: int64
          loss_count: {type: int64}
    functions:
      getGame:
        kind: query
        args: {}
      winGame:
        kind: mutation

Errors name the failing location with a dotted context such as
``schema.games.win_count`` or ``functions.winGame.args.amount``.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, Optional, Union

import yaml

from ..errors import DocShapeError, SchemaLoadError
from ..functions import FunctionKind, FunctionSignature
from .describe import from_descriptor, to_descriptor
from .registry import SchemaRegistry
from .types import DocumentShape, ObjectType, TypeNode

logger = logging.getLogger(__name__)

SUPPORTED_VERSIONS = {1}

_TOP_LEVEL_KEYS = {"version", "tables", "functions"}


@dataclass
class SchemaFile:
    """Contents of one schema file.

    Attributes:
        registry: Collections, in file order (not frozen)
        functions: Function signatures by name, in file order
        version: Format version
    """

    registry: SchemaRegistry
    functions: Dict[str, FunctionSignature] = field(default_factory=dict)
    version: int = 1

    def to_dict(self) -> dict[str, Any]:
        return schema_to_dict(self.registry, self.functions.values(), self.version)

    def to_yaml(self) -> str:
        """Convert to YAML string."""
        return yaml.safe_dump(self.to_dict(), default_flow_style=False, sort_keys=False)

    def to_json(self) -> str:
        """Convert to JSON string."""
        return json.dumps(self.to_dict(), indent=2)


def _node(descriptor: Any, context: str) -> TypeNode:
    # YAML reads a bare `null` as None; it names the null type here
    if descriptor is None:
        descriptor = "null"
    try:
        return from_descriptor(descriptor, context)
    except DocShapeError as e:
        raise SchemaLoadError(context, _strip_context(e.message, context)) from e


def _strip_context(message: str, context: str) -> str:
    prefix = f"{context}: "
    return message[len(prefix):] if message.startswith(prefix) else message


def _mapping(data: Any, context: str) -> dict[str, Any]:
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise SchemaLoadError(context, f"expected a mapping, got {type(data).__name__}")
    return data


def _fields(data: Any, context: str) -> tuple[tuple[str, TypeNode], ...]:
    return tuple(
        (str(name), _node(descriptor, f"{context}.{name}"))
        for name, descriptor in _mapping(data, context).items()
    )


def parse_table(name: str, data: Any) -> DocumentShape:
    """Parse one table entry into a DocumentShape."""
    context = f"schema.{name}"
    table = _mapping(data, context)
    unknown = set(table) - {"fields", "description"}
    if unknown:
        raise SchemaLoadError(context, f"unknown key(s): {sorted(unknown)}")
    fields = _fields(table.get("fields"), context)
    try:
        return DocumentShape(fields, description=str(table.get("description") or ""))
    except DocShapeError as e:
        raise SchemaLoadError(context, e.message) from e


def parse_function(name: str, data: Any) -> FunctionSignature:
    """Parse one function entry into a FunctionSignature."""
    context = f"functions.{name}"
    entry = _mapping(data, context)
    if "kind" not in entry:
        raise SchemaLoadError(context, "missing 'kind' (query or mutation)")
    try:
        kind = FunctionKind.from_str(entry["kind"])
    except DocShapeError as e:
        raise SchemaLoadError(f"{context}.kind", e.message) from e
    args = ObjectType(_fields(entry.get("args"), f"{context}.args"))
    returns = _node(entry["returns"], f"{context}.returns") if "returns" in entry else None
    return FunctionSignature(name, kind, args, returns)


def parse_schema(data: Any) -> SchemaFile:
    """Parse a complete schema from dict."""
    data = _mapping(data, "schema")
    unknown = set(data) - _TOP_LEVEL_KEYS
    if unknown:
        raise SchemaLoadError("schema", f"unknown key(s): {sorted(unknown)}")

    version = data.get("version", 1)
    if version not in SUPPORTED_VERSIONS:
        raise SchemaLoadError("schema.version", f"unsupported version {version!r}")

    registry = SchemaRegistry()
    for name, table in _mapping(data.get("tables"), "schema.tables").items():
        registry.register(str(name), parse_table(str(name), table))

    functions = {
        str(name): parse_function(str(name), entry)
        for name, entry in _mapping(data.get("functions"), "functions").items()
    }
    return SchemaFile(registry=registry, functions=functions, version=version)


def parse_yaml(yaml_str: str) -> SchemaFile:
    """Parse schema from YAML string."""
    try:
        data = yaml.safe_load(yaml_str)
    except yaml.YAMLError as e:
        raise SchemaLoadError("schema", f"invalid YAML: {e}") from e
    return parse_schema(data or {})


def parse_json(json_str: str) -> SchemaFile:
    """Parse schema from JSON string."""
    try:
        data = json.loads(json_str)
    except json.JSONDecodeError as e:
        raise SchemaLoadError("schema", f"invalid JSON: {e}") from e
    return parse_schema(data or {})


def load_schema(path: Union[str, Path]) -> SchemaFile:
    """Load a schema file. ``.json`` files are read as JSON, anything else as YAML.

    Raises:
        SchemaLoadError: If the file is missing or malformed
    """
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise SchemaLoadError(str(path), f"cannot read schema file: {e}") from e

    schema = parse_json(text) if path.suffix == ".json" else parse_yaml(text)
    logger.info(
        f"Loaded schema {path}: {len(schema.registry)} collections, {len(schema.functions)} functions"
    )
    return schema


def schema_to_dict(
    registry: SchemaRegistry,
    functions: Optional[Iterable[FunctionSignature]] = None,
    version: int = 1,
) -> dict[str, Any]:
    """Convert a registry and signatures to the schema file structure."""
    d: dict[str, Any] = {"version": version, "tables": registry.to_dict()["tables"]}
    entries: dict[str, Any] = {}
    for signature in functions or ():
        entry: dict[str, Any] = {
            "kind": signature.kind.value,
            "args": {name: to_descriptor(node) for name, node in signature.args.fields},
        }
        if signature.returns is not None:
            entry["returns"] = to_descriptor(signature.returns)
        entries[signature.name] = entry
    if entries:
        d["functions"] = entries
    return d


def dump_schema(
    registry: SchemaRegistry,
    functions: Optional[Iterable[FunctionSignature]] = None,
    fmt: str = "yaml",
) -> str:
    """Render a registry and signatures in the schema file format.

    Args:
        registry: Collections to write
        functions: Function signatures to write
        fmt: "yaml" or "json"
    """
    schema = SchemaFile(registry, {signature.name: signature for signature in functions or ()})
    return schema.to_json() if fmt == "json" else schema.to_yaml()
