"""
Schema of the win/loss counter.

The same schema is declared in schema.yaml for the CLI and code generator;
tests check the two stay identical.
"""

from __future__ import annotations

from docshape import SchemaRegistry, define_schema, define_table, v


def build_schema(freeze: bool = True, max_depth: int | None = None) -> SchemaRegistry:
    """Build a fresh registry holding the ``games`` collection."""
    registry = define_schema({
        "games": define_table(
            {
                "win_count": v.int64(),
                "loss_count": v.int64(),
            },
            description="win/loss counter",
        ),
    })
    registry.max_depth = max_depth
    if freeze:
        registry.freeze()
    return registry


schema = build_schema()
