"""
Schema CLI tool for docshape.

This tool manages schema definitions and compatibility:
- describe: Print each collection's shape in builder form
- snapshot: Export current schema to JSON file
- check: Verify compatibility with baseline
- diff: Show differences between schemas
- validate: Validate the schema, and optionally documents against it
- codegen: Generate a Python typing module

Usage:
    docshape snapshot --schema convex/schema.yaml > schema.lock.json
    docshape check --baseline schema.lock.json
    docshape diff --old schema.v1.json --new schema.v2.yaml
    docshape validate --collection games --document game.json
    docshape codegen --out convex_types.py

Invariants:
    - Breaking changes cause non-zero exit code
    - Snapshots keep registration and field order
    - Compatibility rules match docshape.schema.compat

How to change safely:
    - Add new commands, don't modify existing ones
    - Keep output format stable for CI parsing
"""

from __future__ import annotations

import argparse
import importlib
import json
import logging
import sys
from pathlib import Path
from typing import Any, Optional

from ..codegen import write_python_types
from ..config import Settings, get_settings, setup_logging
from ..errors import DocShapeError, UnknownCollectionError, ValidationError
from ..functions import FunctionRegistry, FunctionSignature
from ..schema import (
    SchemaRegistry,
    check_compatibility,
    decode_value,
    describe,
)
from ..schema.format import load_schema

logger = logging.getLogger(__name__)


class SchemaCLI:
    """CLI tool for schema management.

    Provides commands for:
    - Exporting schema to JSON
    - Checking compatibility with baseline
    - Showing schema differences
    - Validating documents

    Example:
        >>> cli = SchemaCLI()
        >>> cli.snapshot(registry)  # JSON text
        >>> cli.check(registry, "schema.lock.json")  # (ok, issues)
    """

    def describe(self, registry: SchemaRegistry, collection: Optional[str] = None) -> list[str]:
        """Builder-form description of each collection."""
        names = [collection] if collection else list(registry.collections())
        lines = []
        for name in names:
            shape = registry.lookup(name)
            if shape is None:
                raise UnknownCollectionError(name, list(registry.collections()))
            lines.append(f"{name}: {describe(shape.as_object())}")
        return lines

    def snapshot(self, registry: SchemaRegistry) -> str:
        """Export schema to JSON.

        Args:
            registry: Schema registry to export

        Returns:
            JSON string representation
        """
        output = {
            "version": 1,
            "fingerprint": registry.fingerprint or "unfrozen",
            "schema": registry.to_dict(),
        }
        return json.dumps(output, indent=2)

    def check(
        self,
        registry: SchemaRegistry,
        baseline_path: str,
    ) -> tuple[bool, list[str]]:
        """Check compatibility with baseline.

        Args:
            registry: Current schema registry
            baseline_path: Path to a snapshot or schema file

        Returns:
            Tuple of (is_compatible, list_of_issues)
        """
        baseline_registry = read_registry(baseline_path)
        changes = check_compatibility(baseline_registry, registry)
        issues = [str(change) for change in changes if change.is_breaking]
        return len(issues) == 0, issues

    def diff(
        self,
        old_path: str,
        new_path: str,
    ) -> list[dict[str, Any]]:
        """Show differences between two schemas.

        Args:
            old_path: Path to old snapshot or schema file
            new_path: Path to new snapshot or schema file

        Returns:
            List of change dictionaries
        """
        changes = check_compatibility(read_registry(old_path), read_registry(new_path))
        return [change.to_dict() for change in changes]

    def validate_documents(
        self,
        registry: SchemaRegistry,
        collection: str,
        documents: list[Any],
    ) -> list[str]:
        """Validate JSON documents against a collection.

        Documents are decoded with the collection's document node first, so
        ``_id`` strings become DocumentId values and base64 text becomes bytes.

        Returns:
            One message per invalid document (empty when all are valid)
        """
        if not registry.frozen:
            registry.freeze()
        node = registry.document_node(collection)
        errors = []
        for index, data in enumerate(documents):
            try:
                value = decode_value(node, data, max_depth=registry.max_depth)
            except ValidationError as e:
                errors.append(f"document {index}: {e.message}")
                continue
            result = registry.validate_document(collection, value)
            if not result.ok:
                errors.append(f"document {index}: {result.error.message}")
        return errors


def read_registry(path: str) -> SchemaRegistry:
    """Read a registry from a snapshot JSON file or a schema file."""
    if path.endswith(".json"):
        with open(path) as f:
            data = json.load(f)
        if isinstance(data, dict) and "schema" in data:
            return SchemaRegistry.from_dict(data["schema"])
    return load_schema(path).registry


def _load_schema(
    schema_path: Optional[str] = None,
    module_path: Optional[str] = None,
    max_depth: Optional[int] = None,
) -> tuple[SchemaRegistry, list[FunctionSignature]]:
    """Load schema registry and function signatures from a module or file.

    Args:
        schema_path: Schema file (YAML or JSON)
        module_path: Python module exposing ``schema`` or ``registry`` and,
            optionally, ``functions``
        max_depth: Nesting bound for the loaded registry

    Returns:
        (SchemaRegistry, list of FunctionSignature)
    """
    if module_path:
        module = importlib.import_module(module_path)
        registry = getattr(module, "schema", None)
        if registry is None:
            registry = getattr(module, "registry", None)
        if registry is None and hasattr(module, "get_registry"):
            registry = module.get_registry()
        if not isinstance(registry, SchemaRegistry):
            raise DocShapeError(f"Module {module_path} has no 'schema', 'registry' or 'get_registry()'")
        functions = getattr(module, "functions", None)
        signatures = list(functions.signatures()) if isinstance(functions, FunctionRegistry) else []
    else:
        schema_file = load_schema(schema_path)
        registry = schema_file.registry
        signatures = list(schema_file.functions.values())

    if max_depth is not None:
        registry.max_depth = max_depth
    return registry, signatures


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="docshape", description="docshape schema management tool")
    parser.add_argument("--log-level", help="Logging level (default: DOCSHAPE_LOG_LEVEL)")
    parser.add_argument("--log-format", choices=["text", "json"], help="Logging format")
    subparsers = parser.add_subparsers(dest="command", required=True)

    def add_source(sub: argparse.ArgumentParser) -> None:
        sub.add_argument("--schema", "-s", help="Schema file (default: DOCSHAPE_SCHEMA_PATH)")
        sub.add_argument("--module", help="Python module containing schema definitions")

    # describe command
    describe_parser = subparsers.add_parser("describe", help="Print collection shapes")
    add_source(describe_parser)
    describe_parser.add_argument("--collection", "-c", help="Only this collection")

    # snapshot command
    snapshot_parser = subparsers.add_parser("snapshot", help="Export schema to JSON")
    add_source(snapshot_parser)
    snapshot_parser.add_argument("--output", "-o", help="Output file (default: stdout)")

    # check command
    check_parser = subparsers.add_parser("check", help="Check compatibility with baseline")
    add_source(check_parser)
    check_parser.add_argument(
        "--baseline", "-b", required=True, help="Path to baseline snapshot or schema file"
    )

    # diff command
    diff_parser = subparsers.add_parser("diff", help="Show differences between schemas")
    diff_parser.add_argument("--old", required=True, help="Path to old snapshot or schema file")
    diff_parser.add_argument("--new", required=True, help="Path to new snapshot or schema file")
    diff_parser.add_argument(
        "--format", choices=["text", "json"], default="text", help="Output format"
    )

    # validate command
    validate_parser = subparsers.add_parser("validate", help="Validate schema and documents")
    add_source(validate_parser)
    validate_parser.add_argument("--collection", "-c", help="Collection the documents belong to")
    validate_parser.add_argument(
        "--document", "-d", help="JSON file with one document or a list of documents"
    )
    validate_parser.add_argument("--max-depth", type=int, help="Value nesting bound")

    # codegen command
    codegen_parser = subparsers.add_parser("codegen", help="Generate Python types")
    add_source(codegen_parser)
    codegen_parser.add_argument("--out", "-o", help="Output file (default: DOCSHAPE_OUT_FILE)")

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    """CLI entry point for schema tool.

    Returns:
        Process exit code: 0 on success, 1 for breaking changes or invalid
        documents, 2 for unusable input
    """
    args = _build_parser().parse_args(argv)
    settings = get_settings()
    overrides = {k: v for k, v in (("log_level", args.log_level), ("log_format", args.log_format)) if v}
    if overrides:
        settings = Settings(**{**settings.model_dump(), **overrides})
    setup_logging(settings)

    try:
        return _run(args, settings)
    except DocShapeError as e:
        print(f"error: {e.message}", file=sys.stderr)
        return 2


def _run(args: argparse.Namespace, settings: Settings) -> int:
    cli = SchemaCLI()

    def source() -> tuple[SchemaRegistry, list[FunctionSignature]]:
        return _load_schema(
            args.schema or settings.schema_path,
            args.module,
            getattr(args, "max_depth", None) or settings.max_depth,
        )

    if args.command == "describe":
        registry, _ = source()
        for line in cli.describe(registry, args.collection):
            print(line)
        return 0

    if args.command == "snapshot":
        registry, _ = source()
        if registry.fingerprint is None:
            registry.freeze()
        output = cli.snapshot(registry)
        if args.output:
            with open(args.output, "w") as f:
                f.write(output)
            print(f"Schema exported to {args.output}", file=sys.stderr)
        else:
            print(output)
        return 0

    if args.command == "check":
        registry, _ = source()
        is_compatible, issues = cli.check(registry, args.baseline)
        if is_compatible:
            print("Schema is compatible with baseline")
            return 0
        print(f"Schema compatibility check FAILED with {len(issues)} breaking change(s):")
        for issue in issues:
            print(f"  - {issue}")
        return 1

    if args.command == "diff":
        changes = cli.diff(args.old, args.new)
        if args.format == "json":
            print(json.dumps(changes, indent=2))
        elif not changes:
            print("No changes detected")
        else:
            print(f"Found {len(changes)} change(s):")
            for change in changes:
                status = "BREAKING" if change["is_breaking"] else "OK"
                print(f"  [{status}] {change['kind']}: {change['path']}")
                print(f"          {change['message']}")
        breaking = [c for c in changes if c["is_breaking"]]
        return 1 if breaking else 0

    if args.command == "validate":
        registry, signatures = source()
        if not args.document:
            print(f"Schema is valid: {len(registry)} collection(s), {len(signatures)} function(s)")
            return 0
        if not args.collection:
            print("error: --document requires --collection", file=sys.stderr)
            return 2
        with open(args.document) as f:
            data = json.load(f)
        documents = data if isinstance(data, list) else [data]
        errors = cli.validate_documents(registry, args.collection, documents)
        if not errors:
            print(f"{len(documents)} document(s) valid")
            return 0
        print(f"Validation failed for {len(errors)} document(s):")
        for error in errors:
            print(f"  - {error}")
        return 1

    if args.command == "codegen":
        registry, signatures = source()
        out = Path(args.out or settings.out_file)
        write_python_types(out, registry, signatures, source=args.module or args.schema or settings.schema_path)
        print(f"Types written to {out}")
        return 0

    raise DocShapeError(f"Unknown command {args.command}")


if __name__ == "__main__":
    sys.exit(main())
