"""
CLI tools for docshape.

This module provides the `docshape` command:
- describe / snapshot: Print the schema in builder or JSON form
- check / diff: Compatibility against a baseline
- validate: Check documents against their collection shape
- codegen: Write a Python typing module for the schema

Invariants:
    - Tools work offline from a schema file or module
    - Breaking changes and invalid documents give a non-zero exit code
"""

from .schema_cli import SchemaCLI, main

__all__ = ["SchemaCLI", "main"]
