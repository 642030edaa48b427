"""
Unit tests for value validation.

Tests cover:
- Exact scalar kinds with no numeric coercion
- Object fields: missing, optional and unexpected
- Records, arrays, unions (matched arm) and literals
- Error paths and kinds
- Depth bound and self-referential values
"""

import pytest

from docshape.errors import TooDeepError, ValidationError
from docshape.schema import ABSENT, DocumentId, is_valid, kind_of, v, validate, validate_or_raise


class TestScalars:
    """Tests for scalar nodes."""

    @pytest.mark.parametrize(
        "node,value",
        [
            (v.null(), None),
            (v.int64(), 3),
            (v.int64(), -(2**63)),
            (v.number(), 3.5),
            (v.number(), float("nan")),
            (v.boolean(), False),
            (v.string(), ""),
            (v.bytes(), b"\x00"),
            (v.bytes(), bytearray(b"ab")),
            (v.id("games"), DocumentId("games", "abc")),
            (v.any(), object()),
        ],
    )
    def test_accepts(self, node, value):
        """Each scalar accepts its own kind."""
        assert validate(node, value).ok

    def test_bool_is_not_int64(self):
        """bool is never an Int64."""
        result = validate(v.int64(), True)
        assert result.error.expected_kind == "Int64"
        assert result.error.actual_kind == "Boolean"

    def test_float_is_not_int64(self):
        """3.0 is never an Int64."""
        result = validate(v.int64(), 3.0)
        assert not result.ok
        assert result.error.actual_kind == "Float64"

    def test_int_is_not_float64(self):
        """3 is never a Float64."""
        result = validate(v.number(), 3)
        assert result.error.expected_kind == "Float64"
        assert result.error.actual_kind == "Int64"

    def test_int64_range(self):
        """Ints outside int64 are BigInt."""
        result = validate(v.int64(), 2**63)
        assert result.error.actual_kind == "BigInt"

    def test_id_table_must_match(self):
        """Ids of another table are rejected."""
        result = validate(v.id("games"), DocumentId("users", "abc"))
        assert result.error.expected_kind == "Id(games)"
        assert result.error.actual_kind == "Id(users)"

    def test_id_rejects_plain_string(self):
        """A bare string is not an Id."""
        assert not is_valid(v.id("games"), "abc")

    def test_null_rejects_absent(self):
        """ABSENT is not null."""
        result = validate(v.null(), ABSENT)
        assert result.error.actual_kind == "missing"


class TestObjects:
    """Tests for Object nodes."""

    def test_exact_fields_pass(self):
        """An object with exactly the declared fields passes."""
        node = v.object({"a": v.int64(), "b": v.string()})
        assert validate(node, {"a": 1, "b": "x"}).ok

    def test_missing_required_field(self):
        """A missing required field fails with actual kind missing."""
        node = v.object({"a": v.int64(), "b": v.string()})
        error = validate(node, {"a": 1}).error
        assert error.path == ("b",)
        assert error.expected_kind == "String"
        assert error.actual_kind == "missing"

    def test_optional_field_may_be_missing(self):
        """Optional fields may be omitted or ABSENT."""
        node = v.object({"a": v.int64(), "b": v.optional(v.string())})
        assert validate(node, {"a": 1}).ok
        assert validate(node, {"a": 1, "b": ABSENT}).ok
        assert validate(node, {"a": 1, "b": "x"}).ok

    def test_optional_field_is_not_nullable(self):
        """Optional does not accept null unless the inner type does."""
        node = v.object({"b": v.optional(v.string())})
        error = validate(node, {"b": None}).error
        assert error.path == ("b",)
        assert error.actual_kind == "Null"

    def test_unexpected_field(self):
        """Extra fields fail with expected kind missing."""
        node = v.object({"a": v.int64()})
        error = validate(node, {"a": 1, "z": True}).error
        assert error.path == ("z",)
        assert error.expected_kind == "missing"
        assert error.actual_kind == "Boolean"
        assert "unexpected field" in error.message

    def test_nested_error_message_names_full_path(self):
        """Errors deep in a value are reported from the root."""
        node = v.object({"games": v.array(v.object({"wins": v.int64()}))})
        error = validate(node, {"games": [{"wins": 1}, {"wins": 1.5}]}).error
        assert error.path == ("games", 1, "wins")
        assert error.path_str == "games[1].wins"
        assert error.message == "games[1].wins: expected Int64, got Float64"

    def test_declared_fields_checked_before_extras(self):
        """A bad declared field is reported before an extra one."""
        node = v.object({"a": v.int64()})
        error = validate(node, {"z": 1, "a": "x"}).error
        assert error.path == ("a",)

    def test_first_failing_field_in_declaration_order(self):
        """Declared fields are checked in declaration order."""
        node = v.object({"a": v.int64(), "b": v.int64()})
        error = validate(node, {"b": "x", "a": "y"}).error
        assert error.path == ("a",)

    def test_not_a_mapping(self):
        """Non-mappings fail at the object path."""
        error = validate(v.object({}), [1]).error
        assert error.path == ()
        assert error.expected_kind == "Object"
        assert error.actual_kind == "Array"

    def test_nested_path(self):
        """Errors carry the full path from the root."""
        node = v.object({"items": v.array(v.object({"n": v.int64()}))})
        error = validate(node, {"items": [{"n": 1}, {"n": 2.5}]}).error
        assert error.path == ("items", 1, "n")
        assert error.path_str == "items[1].n"


class TestArraysAndRecords:
    """Tests for Array and Record nodes."""

    def test_empty_array(self):
        """Empty arrays pass."""
        assert validate(v.array(v.int64()), []).ok

    def test_tuple_is_array(self):
        """Tuples are arrays."""
        assert validate(v.array(v.int64()), (1, 2)).ok

    def test_array_element_error(self):
        """Element errors carry the index."""
        error = validate(v.array(v.int64()), [1, "two"]).error
        assert error.path == (1,)

    def test_record(self):
        """Record keys and values are validated."""
        node = v.record(v.string(), v.number())
        assert validate(node, {"a": 1.0, "b": 2.0}).ok
        error = validate(node, {"a": 1.0, "b": "x"}).error
        assert error.path == ("b",)
        assert error.expected_kind == "Float64"

    def test_record_key_error(self):
        """Bad keys fail at the key's path."""
        node = v.record(v.string(), v.number())
        error = validate(node, {1: 1.0}).error
        assert error.path == ("1",)
        assert error.expected_kind == "String"

    def test_record_literal_key(self):
        """Literal keys only accept that key."""
        node = v.record(v.literal("only"), v.int64())
        assert validate(node, {"only": 1}).ok
        assert not validate(node, {"other": 1}).ok


class TestUnionsAndLiterals:
    """Tests for Union and Literal nodes."""

    def test_first_match_wins(self):
        """The first matching alternative is recorded as the arm."""
        node = v.union(v.literal("a"), v.string())
        result = validate(node, "a")
        assert result.ok
        assert result.matched_arm() == 0
        assert validate(node, "b").matched_arm() == 1

    def test_union_inside_union_keeps_both_arms(self):
        """A union nested in a union records its own index after the outer one."""
        node = v.union(v.string(), v.union(v.number(), v.bytes()))
        result = validate(node, 1.5)
        assert result.matched_arm() == 1
        assert result.matched_arms() == (1, 0)
        assert validate(node, b"hi").matched_arms() == (1, 1)
        assert validate(node, "s").matched_arms() == (0,)

    def test_nested_union_arm_path(self):
        """Arms are recorded at the value path of the union."""
        node = v.object({"status": v.union(v.literal("on"), v.literal("off"))})
        result = validate(node, {"status": "off"})
        assert result.matched_arm(("status",)) == 1
        assert result.matched_arm() is None

    def test_union_mismatch(self):
        """No matching alternative reports every expected kind."""
        error = validate(v.union(v.int64(), v.string()), 1.5).error
        assert error.expected_kind == "Int64 | String"
        assert error.actual_kind == "Float64"

    def test_failed_arms_do_not_leak(self):
        """Arms from failed alternatives are discarded."""
        inner = v.union(v.literal("x"), v.string())
        node = v.union(v.object({"a": inner, "b": v.int64()}), v.object({"a": v.string()}))
        result = validate(node, {"a": "x"})
        assert result.matched_arm() == 1
        assert result.matched_arm(("a",)) is None

    def test_literal_kind_exact(self):
        """Literals need the same kind and value."""
        assert validate(v.literal(1), 1).ok
        assert not validate(v.literal(1), True).ok
        assert not validate(v.literal(1), 1.0).ok
        error = validate(v.literal("a"), "b").error
        assert error.expected_kind == 'Literal("a")'


class TestDepthBound:
    """Tests for the nesting bound."""

    def test_self_referential_list_fails(self):
        """A list containing itself fails with TooDeep instead of recursing forever."""
        value = []
        value.append(value)
        node = v.array(v.any())
        result = validate(node, value)
        assert isinstance(result.error, TooDeepError)

    def test_self_referential_dict_under_any(self):
        """Any still bounds nesting."""
        value = {}
        value["self"] = value
        result = validate(v.any(), value, max_depth=10)
        assert isinstance(result.error, TooDeepError)
        assert result.error.code == "TOO_DEEP"

    def test_deep_typed_nesting(self):
        """Typed recursion past the bound fails too."""
        node = v.int64()
        value = 1
        for _ in range(5):
            node = v.array(node)
            value = [value]
        assert validate(node, value, max_depth=5).ok
        assert isinstance(validate(node, value, max_depth=4).error, TooDeepError)

    def test_too_deep_inside_union_propagates(self):
        """TooDeep is not masked by trying another alternative."""
        value = []
        value.append(value)
        node = v.union(v.array(v.any()), v.any())
        assert isinstance(validate(node, value, max_depth=3).error, TooDeepError)


class TestHelpers:
    """Tests for validate_or_raise, is_valid and kind_of."""

    def test_validate_or_raise(self):
        """validate_or_raise raises the first error."""
        with pytest.raises(ValidationError, match="expected Int64, got String"):
            validate_or_raise(v.object({"a": v.int64()}), {"a": "x"})

    def test_raise_for_error_noop_when_ok(self):
        """raise_for_error does nothing for a valid value."""
        validate(v.string(), "x").raise_for_error()

    def test_result_truthiness(self):
        """Results are truthy when ok."""
        assert validate(v.string(), "x")
        assert not validate(v.string(), 1)

    def test_deterministic(self):
        """Validation is deterministic."""
        node = v.object({"a": v.union(v.int64(), v.string()), "b": v.array(v.number())})
        value = {"a": "x", "b": [1.0, "bad"]}
        first = validate(node, value).error
        second = validate(node, value).error
        assert (first.path, first.expected_kind, first.actual_kind) == (
            second.path,
            second.expected_kind,
            second.actual_kind,
        )

    @pytest.mark.parametrize(
        "value,kind",
        [(None, "Null"), (True, "Boolean"), (1, "Int64"), (1.0, "Float64"), ({}, "Object"), (ABSENT, "missing")],
    )
    def test_kind_of(self, value, kind):
        """kind_of names runtime kinds."""
        assert kind_of(value) == kind
