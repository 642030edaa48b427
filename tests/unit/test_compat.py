"""
Unit tests for schema compatibility checking.

Tests cover:
- Detection of breaking changes
- Detection of non-breaking changes
- Specific change types
"""

import pytest

from docshape.schema import (
    ChangeKind,
    CompatibilityError,
    check_compatibility,
    define_schema,
    define_table,
    generate_fingerprint,
    v,
    validate_breaking_changes,
)


def make_registry(**tables):
    """Helper to create a registry from table field mappings."""
    return define_schema({name: define_table(fields) for name, fields in tables.items()})


GAMES = {"win_count": v.int64(), "loss_count": v.int64()}


class TestCompatibilityChecking:
    """Tests for compatibility checking."""

    def test_no_changes(self):
        """Identical schemas have no changes."""
        assert check_compatibility(make_registry(games=GAMES), make_registry(games=GAMES)) == []

    def test_collection_added(self):
        """Adding a collection is non-breaking."""
        changes = check_compatibility(make_registry(games=GAMES), make_registry(games=GAMES, users={}))
        assert [c.kind for c in changes] == [ChangeKind.COLLECTION_ADDED]
        assert not changes[0].is_breaking

    def test_collection_removed(self):
        """Removing a collection is breaking."""
        changes = check_compatibility(make_registry(games=GAMES, users={}), make_registry(games=GAMES))
        assert [c.kind for c in changes] == [ChangeKind.COLLECTION_REMOVED]
        assert changes[0].is_breaking

    def test_optional_field_added(self):
        """Adding an optional field is non-breaking."""
        new = make_registry(games={**GAMES, "note": v.optional(v.string())})
        changes = check_compatibility(make_registry(games=GAMES), new)
        assert [c.kind for c in changes] == [ChangeKind.FIELD_ADDED]
        assert changes[0].path == "games.note"
        assert not changes[0].is_breaking

    def test_required_field_added(self):
        """Adding a required field is breaking."""
        new = make_registry(games={**GAMES, "draws": v.int64()})
        changes = check_compatibility(make_registry(games=GAMES), new)
        assert [c.kind for c in changes] == [ChangeKind.REQUIRED_FIELD_ADDED]
        assert changes[0].is_breaking

    def test_field_removed(self):
        """Removing a field is breaking."""
        changes = check_compatibility(
            make_registry(games=GAMES), make_registry(games={"win_count": v.int64()})
        )
        assert [c.kind for c in changes] == [ChangeKind.FIELD_REMOVED]
        assert changes[0].old_value == "v.int64()"

    def test_field_type_changed(self):
        """Changing a field's type is breaking."""
        new = make_registry(games={"win_count": v.number(), "loss_count": v.int64()})
        changes = check_compatibility(make_registry(games=GAMES), new)
        assert [c.kind for c in changes] == [ChangeKind.FIELD_TYPE_CHANGED]
        assert changes[0].old_value == "v.int64()"
        assert changes[0].new_value == "v.number()"

    def test_made_optional(self):
        """Wrapping a field in Optional is non-breaking."""
        new = make_registry(games={"win_count": v.optional(v.int64()), "loss_count": v.int64()})
        changes = check_compatibility(make_registry(games=GAMES), new)
        assert [c.kind for c in changes] == [ChangeKind.FIELD_MADE_OPTIONAL]
        assert not changes[0].is_breaking

    def test_made_required(self):
        """Unwrapping an Optional field is breaking."""
        old = make_registry(games={"win_count": v.optional(v.int64())})
        new = make_registry(games={"win_count": v.int64()})
        changes = check_compatibility(old, new)
        assert [c.kind for c in changes] == [ChangeKind.FIELD_MADE_REQUIRED]
        assert changes[0].is_breaking

    def test_fields_reordered(self):
        """Reordering fields is non-breaking."""
        new = make_registry(games={"loss_count": v.int64(), "win_count": v.int64()})
        changes = check_compatibility(make_registry(games=GAMES), new)
        assert [c.kind for c in changes] == [ChangeKind.FIELDS_REORDERED]
        assert not changes[0].is_breaking

    def test_description_changed(self):
        """Description changes are non-breaking."""
        old = define_schema({"games": define_table(GAMES, description="a")})
        new = define_schema({"games": define_table(GAMES, description="b")})
        changes = check_compatibility(old, new)
        assert [c.kind for c in changes] == [ChangeKind.DESCRIPTION_CHANGED]

    def test_nested_change_is_type_change(self):
        """Changes inside a nested object change the field's type."""
        old = make_registry(users={"profile": v.object({"age": v.int64()})})
        new = make_registry(users={"profile": v.object({"age": v.number()})})
        changes = check_compatibility(old, new)
        assert [c.kind for c in changes] == [ChangeKind.FIELD_TYPE_CHANGED]
        assert changes[0].path == "users.profile"


class TestValidateBreakingChanges:
    """Tests for validate_breaking_changes."""

    def test_passes_without_breaking(self):
        """Non-breaking changes pass."""
        validate_breaking_changes(make_registry(games=GAMES), make_registry(games=GAMES, users={}))

    def test_raises_on_breaking(self):
        """Breaking changes raise CompatibilityError."""
        with pytest.raises(CompatibilityError, match="1 breaking change") as exc_info:
            validate_breaking_changes(make_registry(games=GAMES), make_registry())
        assert exc_info.value.changes[0].kind == ChangeKind.COLLECTION_REMOVED


class TestFingerprint:
    """Tests for generate_fingerprint."""

    def test_matches_freeze(self):
        """generate_fingerprint equals the fingerprint computed on freeze."""
        registry = make_registry(games=GAMES)
        before = generate_fingerprint(registry)
        assert registry.freeze() == before

    def test_change_to_dict(self):
        """Changes serialize for CI output."""
        change = check_compatibility(make_registry(games=GAMES), make_registry())[0]
        assert change.to_dict()["kind"] == "COLLECTION_REMOVED"
        assert change.to_dict()["is_breaking"] is True
        assert str(change).startswith("[BREAKING] COLLECTION_REMOVED: games")
