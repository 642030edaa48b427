"""
Code generation from a schema registry and function signatures.

Generates a Python typing module: one TypedDict per collection (named
``<Table>Table``), one per function's arguments (``<Function>Args``) and a
``<Function>Return`` alias for declared return types. Nested objects become
their own TypedDicts, named after the path that reaches them.

The schema is the source of truth - generated code is always derived.
"""

from __future__ import annotations

import json
import keyword
import logging
import re
from pathlib import Path
from typing import Iterable, List, Optional, Set, Tuple, Union

from .functions import FunctionSignature
from .schema.registry import SchemaRegistry
from .schema.types import (
    AnyType,
    ArrayType,
    BooleanType,
    BytesType,
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

_SCALARS = {
    NullType: "None",
    Int64Type: "int",
    Float64Type: "float",
    BooleanType: "bool",
    StringType: "str",
    BytesType: "bytes",
    IdType: "DocumentId",
    AnyType: "Any",
}

Fields = Tuple[Tuple[str, TypeNode], ...]


def pascal_case(name: str) -> str:
    """Convert ``win_count`` / ``getGame`` / ``user-profiles`` to PascalCase."""
    parts = [part for part in re.split(r"[^0-9A-Za-z]+", name) if part]
    result = "".join(part[0].upper() + part[1:] for part in parts)
    if not result or result[0].isdigit():
        result = "T" + result
    return result


class _Emitter:
    """Collects TypedDict definitions in dependency order."""

    def __init__(self) -> None:
        self.blocks: List[List[str]] = []
        self.names: Set[str] = set()

    def unique_name(self, name: str) -> str:
        candidate = name
        suffix = 2
        while candidate in self.names:
            candidate = f"{name}{suffix}"
            suffix += 1
        self.names.add(candidate)
        return candidate

    def typed_dict(self, name: str, fields: Fields, prefix_lines: Iterable[str] = ()) -> str:
        """Emit a TypedDict for ``fields`` and return its (unique) name."""
        name = self.unique_name(name)
        entries = list(prefix_lines)
        for field_name, node in fields:
            entries.append(self.field_entry(name, field_name, node))

        if all(field_name.isidentifier() and not keyword.iskeyword(field_name) for field_name, _ in fields):
            lines = [f"class {name}(TypedDict):"]
            lines.extend(f"    {entry}" for entry in entries)
            if not entries:
                lines.append("    pass")
        else:
            lines = [f'{name} = TypedDict("{name}", {{']
            for entry in entries:
                key, annotation = entry.split(": ", 1)
                lines.append(f"    {json.dumps(key)}: {annotation},")
            lines.append("})")
        self.blocks.append(lines)
        return name

    def field_entry(self, owner: str, field_name: str, node: TypeNode) -> str:
        hint = owner + pascal_case(field_name)
        if isinstance(node, OptionalType):
            return f"{field_name}: NotRequired[{self.type_expr(node.inner, hint)}]"
        return f"{field_name}: {self.type_expr(node, hint)}"

    def type_expr(self, node: TypeNode, hint: str) -> str:
        """Python annotation text for ``node``; nested objects are emitted as classes."""
        scalar = _SCALARS.get(type(node))
        if scalar is not None:
            return scalar
        if isinstance(node, ArrayType):
            return f"list[{self.type_expr(node.element, hint + 'Item')}]"
        if isinstance(node, ObjectType):
            return self.typed_dict(hint, node.fields)
        if isinstance(node, RecordType):
            key = self.type_expr(node.key, hint + "Key")
            value = self.type_expr(node.value, hint + "Value")
            return f"dict[{key}, {value}]"
        if isinstance(node, UnionType):
            variants = [
                self.type_expr(variant, f"{hint}Variant{i}") for i, variant in enumerate(node.variants)
            ]
            return f"Union[{', '.join(dict.fromkeys(variants))}]"
        if isinstance(node, LiteralType):
            if isinstance(node.value, float):
                # typing.Literal cannot hold floats
                return "float"
            return f"Literal[{_literal_text(node.value)}]"
        if isinstance(node, OptionalType):
            return self.type_expr(node.inner, hint)
        raise TypeError(f"Cannot generate a type for {type(node).__name__}")


def _literal_text(value: Union[str, int, bool]) -> str:
    if isinstance(value, bool):
        return "True" if value else "False"
    if isinstance(value, int):
        return str(value)
    return json.dumps(value)


def generate_python_types(
    registry: SchemaRegistry,
    functions: Optional[Iterable[FunctionSignature]] = None,
    source: str = "schema",
) -> str:
    """Generate a Python typing module for a schema.

    Args:
        registry: Collections to generate table types for
        functions: Function signatures to generate argument types for
        source: Schema location named in the module docstring

    Returns:
        Module source text
    """
    emitter = _Emitter()
    table_names = []
    for name, shape in registry.items():
        table_names.append(emitter.typed_dict(
            pascal_case(name) + "Table",
            shape.fields,
            prefix_lines=("_id: DocumentId", "_creationTime: NotRequired[float]"),
        ))

    function_names = []
    aliases = []
    for signature in functions or ():
        base = pascal_case(signature.name)
        function_names.append(emitter.typed_dict(base + "Args", signature.args.fields))
        if signature.returns is not None:
            alias = emitter.unique_name(base + "Return")
            aliases.append(f"{alias} = {emitter.type_expr(signature.returns, base + 'Return')}")
            function_names.append(alias)

    lines = [
        '"""',
        f"Types generated by docshape from {source}.",
        "",
        "Do not edit directly - modify the schema instead.",
        '"""',
        "",
        "from __future__ import annotations",
        "",
        "from typing import Any, Literal, NotRequired, TypedDict, Union",
        "",
        "from docshape.schema import DocumentId",
        "",
    ]
    for block in emitter.blocks:
        lines.append("")
        lines.extend(block)
        lines.append("")
    if aliases:
        lines.append("")
        lines.extend(aliases)
    lines.append("")
    lines.append("__all__ = [")
    for name in table_names + function_names:
        lines.append(f'    "{name}",')
    lines.append("]")
    lines.append("")
    return "\n".join(lines)


def write_python_types(
    path: Union[str, Path],
    registry: SchemaRegistry,
    functions: Optional[Iterable[FunctionSignature]] = None,
    source: str = "schema",
) -> Path:
    """Generate types and write them to ``path``.

    Returns:
        The written path
    """
    path = Path(path)
    code = generate_python_types(registry, functions, source=source)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(code, encoding="utf-8")
    logger.info(f"Wrote generated types to {path}")
    return path
