"""Retry wrapper that turns store failures into ``IndexUnavailable``."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable

from reel_search.errors import IndexUnavailable, SearchError
from reel_search.query.compiler import QueryPlan
from reel_search.store.adapter import DocumentStore
from reel_search.types import IndexedDocument

logger = logging.getLogger(__name__)


class RetryingDocumentStore:
    """Retries failed fetches ``retries`` times with linear backoff.

    Search errors other than ``IndexUnavailable`` are the caller's fault and
    propagate untouched. Anything else that survives the retries is surfaced
    as ``IndexUnavailable``.
    """

    def __init__(
        self,
        inner: DocumentStore,
        *,
        retries: int = 1,
        backoff_seconds: float = 0.1,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.inner = inner
        self.retries = retries
        self.backoff_seconds = backoff_seconds
        self._sleep = sleep

    def fetch(self, plan: QueryPlan) -> list[IndexedDocument]:
        attempt = 0
        while True:
            try:
                return self.inner.fetch(plan)
            except SearchError as exc:
                if not isinstance(exc, IndexUnavailable):
                    raise
                failure: Exception = exc
            except Exception as exc:
                failure = exc

            if attempt >= self.retries:
                if isinstance(failure, IndexUnavailable):
                    raise failure
                raise IndexUnavailable(
                    f"Document store unavailable: {failure}",
                    hint="Try again shortly",
                ) from failure
            attempt += 1
            logger.warning(
                "Document store fetch failed (attempt %d/%d): %s",
                attempt,
                self.retries + 1,
                failure,
            )
            self._sleep(self.backoff_seconds * attempt)

    def upsert(self, documents: Iterable[IndexedDocument]) -> None:
        self.inner.upsert(documents)

    def remove(self, document_id: str) -> bool:
        return self.inner.remove(document_id)
