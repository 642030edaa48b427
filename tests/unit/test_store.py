"""
Unit tests for the in-memory document store.

Tests cover:
- Insert, get, patch, replace and delete
- Rejected writes leave the store unchanged
- System fields are assigned by the store
- Query refinement
"""

import pytest

from docshape.errors import (
    DocumentNotFoundError,
    SchemaNotFrozenError,
    UnknownCollectionError,
    ValidationError,
)
from docshape.schema import ABSENT, DocumentId, define_schema, define_table, v
from docshape.store import DocumentStore


class FakeClock:
    """Clock advancing one second per call."""

    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        self.now += 1.0
        return self.now


def make_registry():
    return define_schema(
        {
            "games": define_table({"win_count": v.int64(), "loss_count": v.int64()}),
            "notes": define_table({"text": v.string(), "tag": v.optional(v.string())}),
        },
        freeze=True,
    )


@pytest.fixture
def store():
    return DocumentStore(make_registry(), clock=FakeClock())


class TestWrites:
    """Tests for store writes."""

    def test_requires_frozen_registry(self):
        """A Building registry cannot back a store."""
        registry = define_schema({"games": define_table({})})
        with pytest.raises(SchemaNotFrozenError):
            DocumentStore(registry)

    def test_insert_assigns_system_fields(self, store):
        """Inserted documents get an id and a creation time in milliseconds."""
        doc_id = store.insert("games", {"win_count": 1, "loss_count": 0})
        assert doc_id.table == "games"

        doc = store.get(doc_id)
        assert doc["_id"] == doc_id
        assert doc["_creationTime"] == 1001.0 * 1000
        assert doc["win_count"] == 1

    def test_insert_invalid_rejected(self, store):
        """Invalid documents are not stored."""
        with pytest.raises(ValidationError) as exc_info:
            store.insert("games", {"win_count": 3.5, "loss_count": 0})
        assert exc_info.value.path == ("win_count",)
        assert len(store.query("games")) == 0

    def test_insert_system_field_rejected(self, store):
        """Callers cannot supply system fields."""
        with pytest.raises(ValidationError, match="assigned by the store"):
            store.insert("games", {"_id": "x", "win_count": 0, "loss_count": 0})

    def test_unknown_collection(self, store):
        """Writes to unknown collections raise."""
        with pytest.raises(UnknownCollectionError):
            store.insert("players", {})

    def test_patch_merges(self, store):
        """Patch updates only the given fields."""
        doc_id = store.insert("games", {"win_count": 1, "loss_count": 0})
        store.patch(doc_id, {"win_count": 2})
        doc = store.get(doc_id)
        assert (doc["win_count"], doc["loss_count"]) == (2, 0)

    def test_patch_absent_removes_optional(self, store):
        """ABSENT removes a field."""
        doc_id = store.insert("notes", {"text": "hi", "tag": "x"})
        store.patch(doc_id, {"tag": ABSENT})
        assert "tag" not in store.get(doc_id)

    def test_patch_invalid_leaves_document(self, store):
        """A rejected patch keeps the previous document."""
        doc_id = store.insert("notes", {"text": "hi"})
        with pytest.raises(ValidationError):
            store.patch(doc_id, {"text": ABSENT})
        assert store.get(doc_id)["text"] == "hi"

    def test_replace_keeps_system_fields(self, store):
        """Replace swaps declared fields and keeps _id and _creationTime."""
        doc_id = store.insert("notes", {"text": "hi", "tag": "x"})
        before = store.get(doc_id)
        store.replace(doc_id, {"text": "bye"})
        after = store.get(doc_id)
        assert after == {"_id": doc_id, "_creationTime": before["_creationTime"], "text": "bye"}

    def test_delete(self, store):
        """Deleted documents are gone."""
        doc_id = store.insert("notes", {"text": "hi"})
        store.delete(doc_id)
        assert store.get(doc_id) is None
        with pytest.raises(DocumentNotFoundError):
            store.delete(doc_id)

    def test_missing_document(self, store):
        """Patching a missing document raises."""
        with pytest.raises(DocumentNotFoundError):
            store.patch(DocumentId("notes", "nope"), {"text": "x"})

    def test_returned_documents_are_copies(self, store):
        """Mutating a returned document does not change the store."""
        doc_id = store.insert("notes", {"text": "hi"})
        store.get(doc_id)["text"] = "changed"
        assert store.get(doc_id)["text"] == "hi"

    def test_insert_copies_input(self, store):
        """Mutating the inserted mapping does not change the store."""
        fields = {"text": "hi"}
        doc_id = store.insert("notes", fields)
        fields["text"] = 1
        assert store.get(doc_id)["text"] == "hi"


class TestQuery:
    """Tests for Query."""

    def _insert_notes(self, store, *texts):
        return [store.insert("notes", {"text": text}) for text in texts]

    def test_insertion_order(self, store):
        """Queries iterate in insertion order."""
        self._insert_notes(store, "a", "b", "c")
        assert [doc["text"] for doc in store.query("notes")] == ["a", "b", "c"]

    def test_order_desc(self, store):
        """order('desc') returns newest first."""
        self._insert_notes(store, "a", "b", "c")
        assert [doc["text"] for doc in store.query("notes").order("desc")] == ["c", "b", "a"]

    def test_order_invalid(self, store):
        """Only asc and desc are accepted."""
        with pytest.raises(ValueError):
            store.query("notes").order("up")

    def test_filter_take_first(self, store):
        """Refinements compose."""
        self._insert_notes(store, "a", "bb", "cc", "d")
        query = store.query("notes").filter(lambda doc: len(doc["text"]) == 2)
        assert [doc["text"] for doc in query.take(1)] == ["bb"]
        assert query.first()["text"] == "bb"
        assert len(query.collect()) == 2

    def test_first_empty(self, store):
        """first() on an empty query is None."""
        assert store.query("games").first() is None

    def test_unique(self, store):
        """unique() fails when several documents match."""
        self._insert_notes(store, "a", "b")
        assert store.query("notes").filter(lambda doc: doc["text"] == "a").unique()["text"] == "a"
        with pytest.raises(ValueError):
            store.query("notes").unique()


class TestViews:
    """Tests for reader and writer views."""

    def test_reader_is_read_only(self, store):
        """Readers expose get and query only."""
        reader = store.reader()
        assert not hasattr(reader, "insert")
        assert reader.query("games").first() is None

    def test_writer_writes(self, store):
        """Writers forward to the store."""
        writer = store.writer()
        doc_id = writer.insert("games", {"win_count": 0, "loss_count": 0})
        writer.patch(doc_id, {"loss_count": 1})
        assert writer.get(doc_id)["loss_count"] == 1
        writer.delete(doc_id)
        assert store.get(doc_id) is None
