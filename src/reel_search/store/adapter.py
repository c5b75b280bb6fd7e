"""Document store contract and an in-memory reference adapter."""

from __future__ import annotations

import dataclasses
import logging
import threading
from collections.abc import Iterable
from typing import Protocol

from reel_search.query.compiler import QueryPlan, ensure_utc
from reel_search.types import IndexedDocument

logger = logging.getLogger(__name__)


class DocumentStore(Protocol):
    """Minimal store contract consumed by the search core."""

    def fetch(self, plan: QueryPlan) -> list[IndexedDocument]:
        """Return every document satisfying the plan's filters and text terms."""

    def upsert(self, documents: Iterable[IndexedDocument]) -> None:
        """Insert or replace documents by id."""

    def remove(self, document_id: str) -> bool:
        """Remove a document; return whether it existed."""


class InMemoryDocumentStore:
    """Deterministic store used for tests and local prototyping.

    ``fetch`` returns candidates in id order so callers never depend on
    insertion order.
    """

    def __init__(self, documents: Iterable[IndexedDocument] | None = None) -> None:
        self._documents: dict[str, IndexedDocument] = {}
        self._lock = threading.Lock()
        if documents is not None:
            self.upsert(documents)

    def upsert(self, documents: Iterable[IndexedDocument]) -> None:
        prepared = [
            dataclasses.replace(doc, created_at=ensure_utc(doc.created_at))
            for doc in documents
        ]
        for doc in prepared:
            if not doc.title.strip():
                raise ValueError(f"document {doc.id} has an empty title")
            if doc.duration_seconds <= 0:
                raise ValueError(f"document {doc.id} must have a positive duration")
        with self._lock:
            for doc in prepared:
                self._documents[doc.id] = doc
        logger.debug("Upserted %d documents", len(prepared))

    def remove(self, document_id: str) -> bool:
        with self._lock:
            return self._documents.pop(document_id, None) is not None

    def get(self, document_id: str) -> IndexedDocument | None:
        with self._lock:
            return self._documents.get(document_id)

    def count(self) -> int:
        with self._lock:
            return len(self._documents)

    def all(self) -> list[IndexedDocument]:
        with self._lock:
            return [self._documents[key] for key in sorted(self._documents)]

    def fetch(self, plan: QueryPlan) -> list[IndexedDocument]:
        return [doc for doc in self.all() if plan.matches(doc)]
