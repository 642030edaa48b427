"""
Unit tests for the YAML/JSON schema file format.
"""

import json

import pytest

from docshape.errors import SchemaLoadError
from docshape.functions import FunctionKind
from docshape.schema import describe, v
from docshape.schema.format import dump_schema, load_schema, parse_json, parse_yaml

GAMES_YAML = """
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
  addWins:
    kind: mutation
    args:
      amount: int64
    returns: {type: optional, inner: number}
"""


class TestParse:
    """Tests for parsing schema files."""

    def test_parse_yaml(self):
        """YAML schemas produce a registry and signatures."""
        schema = parse_yaml(GAMES_YAML)
        games = schema.registry.lookup("games")
        assert games.field_names() == ["win_count", "loss_count"]
        assert games.description == "win/loss counter"
        assert schema.registry.frozen is False

        assert list(schema.functions) == ["getGame", "addWins"]
        add_wins = schema.functions["addWins"]
        assert add_wins.kind is FunctionKind.MUTATION
        assert add_wins.args == v.object({"amount": v.int64()})
        assert add_wins.returns == v.optional(v.number())
        assert schema.functions["getGame"].returns is None

    def test_parse_json(self):
        """JSON schemas use the same structure."""
        schema = parse_json(json.dumps({"tables": {"games": {"fields": {"tags": {"type": "array", "elements": "string"}}}}}))
        assert describe(schema.registry.lookup("games").as_object()) == 'v.object({"tags": v.array(v.string())})'

    def test_yaml_null_names_null_type(self):
        """A bare YAML null is the null type."""
        schema = parse_yaml("tables:\n  t:\n    fields:\n      nothing: null\n")
        assert schema.registry.lookup("t").get_field("nothing") == v.null()

    def test_empty_document(self):
        """An empty file is an empty schema."""
        schema = parse_yaml("")
        assert len(schema.registry) == 0
        assert schema.functions == {}


class TestErrors:
    """Tests for error contexts."""

    def test_bad_field_type_context(self):
        """Errors name the failing field."""
        with pytest.raises(SchemaLoadError) as exc_info:
            parse_yaml("tables:\n  games:\n    fields:\n      win_count: float\n")
        assert exc_info.value.context == "schema.games.win_count"
        assert "Invalid type 'float'" in exc_info.value.message

    def test_bad_function_arg_context(self):
        """Function argument errors name the argument."""
        with pytest.raises(SchemaLoadError) as exc_info:
            parse_yaml("functions:\n  f:\n    kind: query\n    args:\n      x: {type: array}\n")
        assert exc_info.value.context == "functions.f.args.x"

    def test_bad_function_kind(self):
        """Unknown function kinds are rejected."""
        with pytest.raises(SchemaLoadError, match="functions.f.kind"):
            parse_yaml("functions:\n  f:\n    kind: action\n")

    def test_system_field_rejected(self):
        """Tables cannot declare system fields."""
        with pytest.raises(SchemaLoadError, match="schema.games"):
            parse_yaml("tables:\n  games:\n    fields:\n      _id: string\n")

    def test_unknown_top_level_key(self):
        """Unknown keys are reported."""
        with pytest.raises(SchemaLoadError, match="unknown key"):
            parse_yaml("tablez: {}\n")

    def test_unsupported_version(self):
        """Only version 1 is supported."""
        with pytest.raises(SchemaLoadError, match="unsupported version"):
            parse_yaml("version: 2\n")

    def test_invalid_yaml(self):
        """Syntax errors become SchemaLoadError."""
        with pytest.raises(SchemaLoadError, match="invalid YAML"):
            parse_yaml("tables: [\n")

    def test_missing_file(self, tmp_path):
        """Missing files raise SchemaLoadError."""
        with pytest.raises(SchemaLoadError, match="cannot read schema file"):
            load_schema(tmp_path / "missing.yaml")


class TestDump:
    """Tests for writing schema files."""

    def test_dump_and_load_yaml(self, tmp_path):
        """A dumped schema loads back identically."""
        schema = parse_yaml(GAMES_YAML)
        path = tmp_path / "schema.yaml"
        path.write_text(dump_schema(schema.registry, schema.functions.values()))

        loaded = load_schema(path)
        assert loaded.registry.to_dict() == schema.registry.to_dict()
        assert loaded.functions == schema.functions

    def test_dump_json(self, tmp_path):
        """JSON output is read by extension."""
        schema = parse_yaml(GAMES_YAML)
        path = tmp_path / "schema.json"
        path.write_text(schema.to_json())
        assert load_schema(path).registry.to_dict() == schema.registry.to_dict()

    def test_schema_file_text_forms(self):
        """to_yaml and to_json parse back to the same schema."""
        schema = parse_yaml(GAMES_YAML)
        for reparsed in (parse_yaml(schema.to_yaml()), parse_json(schema.to_json())):
            assert reparsed.registry.to_dict() == schema.registry.to_dict()
            assert reparsed.functions == schema.functions
            assert reparsed.version == 1

    def test_dump_json_format(self):
        """dump_schema with fmt="json" writes JSON."""
        schema = parse_yaml(GAMES_YAML)
        data = json.loads(dump_schema(schema.registry, schema.functions.values(), fmt="json"))
        assert data["version"] == 1
        assert list(data["functions"]) == ["getGame", "addWins"]
