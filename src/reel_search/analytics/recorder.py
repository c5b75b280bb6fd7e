"""Fire-and-forget analytics recording and suggestion usage aggregation."""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterator
from concurrent.futures import Future, ThreadPoolExecutor, wait
from datetime import datetime, timezone
from typing import Protocol

from reel_search.analytics.metrics import SearchMetrics, summarize
from reel_search.suggest.vocabulary import SuggestionVocabulary
from reel_search.types import AnalyticsEvent, QueryType, Suggestion, SuggestionType

logger = logging.getLogger(__name__)


class AnalyticsSink(Protocol):
    """Durable destination for analytics events, owned by an external service."""

    def write(self, event: AnalyticsEvent) -> None:
        """Persist one event."""


class InMemoryAnalyticsSink:
    def __init__(self) -> None:
        self.events: list[AnalyticsEvent] = []
        self._lock = threading.Lock()

    def write(self, event: AnalyticsEvent) -> None:
        with self._lock:
            self.events.append(event)


def usage_increments(
    event: AnalyticsEvent,
    vocabulary: SuggestionVocabulary,
    suggestion: Suggestion | None = None,
) -> Iterator[tuple[SuggestionType, str, datetime]]:
    """Vocabulary increments implied by one event.

    Searches that returned something count as a use of the ``query`` term.
    Clicks credit the suggestion that produced the query, or failing that any
    vocabulary entry whose value equals the query text.
    """

    query = event.query.strip()
    if not event.is_click:
        if query and event.result_count > 0:
            yield SuggestionType.QUERY, query, event.timestamp
        return
    if suggestion is not None:
        yield suggestion.type, suggestion.value, event.timestamp
        return
    if query:
        for entry in vocabulary.find(query):
            yield entry.type, entry.value, event.timestamp


class AnalyticsRecorder:
    """Append-only analytics log written on a single background worker.

    Callers never wait on persistence: both entry points enqueue and return.
    Sink and aggregation failures are logged and dropped so they can never
    surface as search errors.
    """

    def __init__(
        self,
        vocabulary: SuggestionVocabulary | None = None,
        sink: AnalyticsSink | None = None,
    ) -> None:
        self.vocabulary = vocabulary if vocabulary is not None else SuggestionVocabulary()
        self.sink: AnalyticsSink = sink or InMemoryAnalyticsSink()
        self._log: list[AnalyticsEvent] = []
        self._lock = threading.Lock()
        self._pending: set[Future[None]] = set()
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="analytics")

    def record_search(self, event: AnalyticsEvent) -> None:
        self._submit(event, None)

    def record_click(
        self,
        document_id: str,
        position: int,
        session_id: str | None = None,
        *,
        query: str = "",
        suggestion: Suggestion | None = None,
    ) -> None:
        event = AnalyticsEvent(
            query=query,
            query_type=QueryType.TEXT,
            filters={},
            result_count=0,
            execution_time_ms=0.0,
            timestamp=datetime.now(timezone.utc),
            clicked_result_id=document_id,
            clicked_position=position,
            session_id=session_id,
        )
        self._submit(event, suggestion)

    def flush(self, timeout: float | None = None) -> None:
        """Block until every queued event has been processed."""
        with self._lock:
            pending = list(self._pending)
        wait(pending, timeout=timeout)

    def close(self) -> None:
        self._executor.shutdown(wait=True)

    def events(self) -> list[AnalyticsEvent]:
        with self._lock:
            return list(self._log)

    def metrics(self) -> SearchMetrics:
        return summarize(self.events())

    def clear(self) -> None:
        with self._lock:
            self._log.clear()

    def _submit(self, event: AnalyticsEvent, suggestion: Suggestion | None) -> None:
        try:
            future = self._executor.submit(self._process, event, suggestion)
        except RuntimeError:
            logger.warning("Analytics recorder is closed; dropping %s event", event.query_type.value)
            return
        with self._lock:
            self._pending.add(future)
        future.add_done_callback(self._forget)

    def _forget(self, future: Future[None]) -> None:
        with self._lock:
            self._pending.discard(future)

    def _process(self, event: AnalyticsEvent, suggestion: Suggestion | None) -> None:
        with self._lock:
            self._log.append(event)
        try:
            self.sink.write(event)
        except Exception:
            logger.warning("Analytics sink write failed", exc_info=True)
        try:
            self.vocabulary.apply(usage_increments(event, self.vocabulary, suggestion))
        except Exception:
            logger.warning("Suggestion usage update failed", exc_info=True)
