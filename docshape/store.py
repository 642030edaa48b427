"""
In-memory document store.

This module provides a small collection store used by the example
application and tests. It is not a database: it keeps documents in
dictionaries and offers no durability.

Every write is checked through SchemaRegistry.validate_document before
anything is stored, so a rejected write leaves the store unchanged.

Invariants:
    - The registry must be frozen before a store is created
    - Stored documents always validate against their collection shape
    - System fields (_id, _creationTime) are assigned by the store and
      cannot be written by callers
    - Queries iterate in insertion order unless reordered

Example:
    >>> store = DocumentStore(registry)
    >>> game_id = store.insert("games", {"win_count": 0, "loss_count": 0})
    >>> store.patch(game_id, {"win_count": 1})
    >>> store.query("games").first()["win_count"]
    1
"""

from __future__ import annotations

import copy
import logging
import threading
import time
import uuid
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional

from .errors import (
    DocumentNotFoundError,
    SchemaNotFrozenError,
    UnknownCollectionError,
    ValidationError,
)
from .schema.registry import SchemaRegistry
from .schema.types import ABSENT, SYSTEM_FIELDS, DocumentId
from .schema.validate import kind_of

logger = logging.getLogger(__name__)

Document = Dict[str, Any]


class Query:
    """Lazy view over one collection's documents.

    Each refinement returns a new Query; the underlying snapshot is taken
    when the query is created.
    """

    def __init__(self, table: str, documents: List[Document]) -> None:
        self.table = table
        self._documents = documents

    def filter(self, predicate: Callable[[Document], bool]) -> Query:
        """Keep documents for which ``predicate`` returns true."""
        return Query(self.table, [doc for doc in self._documents if predicate(doc)])

    def order(self, direction: str = "asc") -> Query:
        """Order by creation time, "asc" or "desc"."""
        if direction not in ("asc", "desc"):
            raise ValueError(f"order must be 'asc' or 'desc', got {direction!r}")
        documents = sorted(self._documents, key=lambda doc: doc["_creationTime"])
        if direction == "desc":
            documents.reverse()
        return Query(self.table, documents)

    def collect(self) -> List[Document]:
        return list(self._documents)

    def take(self, n: int) -> List[Document]:
        return self._documents[:n]

    def first(self) -> Optional[Document]:
        """First matching document, or None if there are none."""
        return self._documents[0] if self._documents else None

    def unique(self) -> Optional[Document]:
        """The single matching document.

        Raises:
            ValueError: If more than one document matches
        """
        if len(self._documents) > 1:
            raise ValueError(f"Query on '{self.table}' matched {len(self._documents)} documents")
        return self.first()

    def __iter__(self) -> Iterator[Document]:
        return iter(self._documents)

    def __len__(self) -> int:
        return len(self._documents)


class DocumentStore:
    """Collection store that validates every write against a frozen registry.

    Thread-safety:
        - All reads and writes take one internal lock
        - Returned documents are copies; mutating them does not change the store
    """

    def __init__(self, registry: SchemaRegistry, clock: Callable[[], float] = time.time) -> None:
        """Create an empty store.

        Args:
            registry: Frozen schema registry
            clock: Seconds since the epoch; _creationTime is stored in milliseconds

        Raises:
            SchemaNotFrozenError: If the registry is still Building
        """
        if not registry.frozen:
            raise SchemaNotFrozenError("Document store requires a frozen schema registry")
        self.registry = registry
        self._clock = clock
        self._tables: Dict[str, Dict[str, Document]] = {name: {} for name in registry.collections()}
        self._lock = threading.Lock()

    def insert(self, table: str, fields: Mapping[str, Any]) -> DocumentId:
        """Insert a new document.

        Args:
            table: Collection name
            fields: Declared fields of the document

        Returns:
            Identifier of the new document

        Raises:
            UnknownCollectionError: If the collection is not registered
            ValidationError: If the document does not match its shape
        """
        self._reject_system_fields(fields)
        documents = self._table(table)
        doc_id = DocumentId(table, uuid.uuid4().hex)
        document: Document = {"_id": doc_id, "_creationTime": self._clock() * 1000.0}
        document.update(copy.deepcopy(dict(fields)))
        self.registry.validate_document(table, document).raise_for_error()

        with self._lock:
            documents[doc_id.id] = document
        logger.info(f"Inserted document {doc_id}")
        return doc_id

    def get(self, doc_id: DocumentId) -> Optional[Document]:
        """Get a document by id, or None if it does not exist."""
        with self._lock:
            document = self._table(doc_id.table).get(doc_id.id)
            return copy.deepcopy(document) if document is not None else None

    def patch(self, doc_id: DocumentId, fields: Mapping[str, Any]) -> None:
        """Shallow-merge ``fields`` into an existing document.

        A field set to ABSENT is removed.

        Raises:
            DocumentNotFoundError: If the document does not exist
            ValidationError: If the merged document does not match its shape
        """
        self._reject_system_fields(fields)
        with self._lock:
            current = self._existing(doc_id)
            merged = dict(current)
            for name, value in fields.items():
                if value is ABSENT:
                    merged.pop(name, None)
                else:
                    merged[name] = copy.deepcopy(value)
            self.registry.validate_document(doc_id.table, merged).raise_for_error()
            self._tables[doc_id.table][doc_id.id] = merged
        logger.info(f"Patched document {doc_id}: {sorted(fields)}")

    def replace(self, doc_id: DocumentId, fields: Mapping[str, Any]) -> None:
        """Replace every declared field of an existing document.

        Raises:
            DocumentNotFoundError: If the document does not exist
            ValidationError: If the new document does not match its shape
        """
        self._reject_system_fields(fields)
        with self._lock:
            current = self._existing(doc_id)
            document: Document = {"_id": current["_id"], "_creationTime": current["_creationTime"]}
            document.update(copy.deepcopy(dict(fields)))
            self.registry.validate_document(doc_id.table, document).raise_for_error()
            self._tables[doc_id.table][doc_id.id] = document
        logger.info(f"Replaced document {doc_id}")

    def delete(self, doc_id: DocumentId) -> None:
        """Delete a document.

        Raises:
            DocumentNotFoundError: If the document does not exist
        """
        with self._lock:
            self._existing(doc_id)
            del self._tables[doc_id.table][doc_id.id]
        logger.info(f"Deleted document {doc_id}")

    def query(self, table: str) -> Query:
        """Start a query over one collection, in insertion order."""
        with self._lock:
            documents = [copy.deepcopy(doc) for doc in self._table(table).values()]
        return Query(table, documents)

    def reader(self) -> DatabaseReader:
        return DatabaseReader(self)

    def writer(self) -> DatabaseWriter:
        return DatabaseWriter(self)

    def _table(self, table: str) -> Dict[str, Document]:
        documents = self._tables.get(table)
        if documents is None:
            raise UnknownCollectionError(table, list(self._tables))
        return documents

    def _existing(self, doc_id: DocumentId) -> Document:
        document = self._table(doc_id.table).get(doc_id.id)
        if document is None:
            raise DocumentNotFoundError(doc_id)
        return document

    @staticmethod
    def _reject_system_fields(fields: Mapping[str, Any]) -> None:
        for name in SYSTEM_FIELDS:
            if name in fields:
                raise ValidationError(
                    (name,),
                    "missing",
                    kind_of(fields[name]),
                    message=f"{name}: system fields are assigned by the store",
                )


class DatabaseReader:
    """Read-only view handed to query handlers."""

    def __init__(self, store: DocumentStore) -> None:
        self._store = store

    def get(self, doc_id: DocumentId) -> Optional[Document]:
        return self._store.get(doc_id)

    def query(self, table: str) -> Query:
        return self._store.query(table)


class DatabaseWriter(DatabaseReader):
    """Read-write view handed to mutation handlers."""

    def insert(self, table: str, fields: Mapping[str, Any]) -> DocumentId:
        return self._store.insert(table, fields)

    def patch(self, doc_id: DocumentId, fields: Mapping[str, Any]) -> None:
        self._store.patch(doc_id, fields)

    def replace(self, doc_id: DocumentId, fields: Mapping[str, Any]) -> None:
        self._store.replace(doc_id, fields)

    def delete(self, doc_id: DocumentId) -> None:
        self._store.delete(doc_id)
