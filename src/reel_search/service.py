"""Request orchestration: compile, fetch, rank and facet, paginate, record."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from typing import Any

from reel_search.analytics.recorder import AnalyticsRecorder
from reel_search.config import QueryConfig, RankingConfig, SearchConfig, SuggestionConfig
from reel_search.errors import InvalidQuery, SearchError, UnknownSearchError
from reel_search.obs.timing import Timer
from reel_search.query.compiler import AccessScope, QueryCompiler
from reel_search.query.models import AutocompleteRequest, SearchRequest, parse_model
from reel_search.ranking.engine import RankingEngine
from reel_search.ranking.facets import FacetAggregator
from reel_search.store.adapter import DocumentStore
from reel_search.store.retry import RetryingDocumentStore
from reel_search.suggest.engine import SuggestionEngine
from reel_search.suggest.vocabulary import SuggestionVocabulary
from reel_search.types import (
    AnalyticsEvent,
    AutocompleteResponse,
    IndexedDocument,
    Pagination,
    QueryType,
    SearchResponse,
)

logger = logging.getLogger(__name__)

_FACET_FILTER_KEYS = frozenset({"tags", "machine_model", "process_type", "tooling", "skill_level"})


class SearchService:
    """Runs one search or autocomplete request end to end.

    Ranking and facet aggregation share no mutable state and run in parallel
    on a small thread pool. Store failures are retried once before surfacing
    as ``IndexUnavailable``; analytics are handed off without waiting.
    """

    def __init__(
        self,
        store: DocumentStore,
        *,
        vocabulary: SuggestionVocabulary | None = None,
        recorder: AnalyticsRecorder | None = None,
        config: SearchConfig | None = None,
        query_config: QueryConfig | None = None,
        ranking_config: RankingConfig | None = None,
        suggestion_config: SuggestionConfig | None = None,
    ) -> None:
        self.config = config or SearchConfig()
        self.store = store
        self.vocabulary = vocabulary if vocabulary is not None else SuggestionVocabulary()
        self.recorder = recorder or AnalyticsRecorder(self.vocabulary)
        self.compiler = QueryCompiler(query_config)
        self.ranking = RankingEngine(ranking_config)
        self._reader = RetryingDocumentStore(
            store, retries=1, backoff_seconds=self.config.retry_backoff_seconds
        )
        self.facets = FacetAggregator(self._reader)
        self.suggestions = SuggestionEngine(self.vocabulary, suggestion_config)
        self._pool = ThreadPoolExecutor(
            max_workers=self.config.parallel_workers, thread_name_prefix="search"
        )

    def search(
        self,
        request: SearchRequest | dict[str, Any],
        *,
        session_id: str | None = None,
        scope: AccessScope | None = None,
    ) -> SearchResponse:
        request = parse_model(SearchRequest, request)
        if "limit" not in request.model_fields_set:
            request = request.model_copy(update={"limit": self.config.default_limit})
        if request.limit > self.config.max_limit:
            raise InvalidQuery(
                f"limit must be at most {self.config.max_limit}",
                hint="Request fewer results per page",
            )
        query = request.effective_query

        try:
            with Timer() as timer:
                plan = self.compiler.compile(query, request.filters, scope=scope)
                candidates = self._reader.fetch(plan)
                ranked_future = self._pool.submit(
                    self.ranking.rank,
                    plan,
                    candidates,
                    sort_by=request.sort_by,
                    sort_order=request.sort_order,
                )
                facet_future = (
                    self._pool.submit(self.facets.aggregate, plan)
                    if request.include_facets
                    else None
                )
                ranked = ranked_future.result()
                facets = facet_future.result() if facet_future is not None else []
                suggestions = (
                    self.suggestions.suggest(query, limit=self.config.suggestion_limit)
                    if request.include_suggestions and query.strip()
                    else None
                )
        except SearchError:
            raise
        except Exception as exc:
            logger.exception("Search failed unexpectedly")
            raise UnknownSearchError("Search failed") from exc

        pagination = Pagination.build(page=request.page, limit=request.limit, total=len(ranked))
        start = (request.page - 1) * request.limit
        page_results = ranked[start : start + request.limit]
        filters = request.filters.snapshot()

        logger.info(
            "search query=%r filters=%s total=%d page=%d in %.1fms",
            query,
            filters,
            pagination.total,
            pagination.page,
            timer.elapsed_ms,
        )
        self.recorder.record_search(
            AnalyticsEvent(
                query=query,
                query_type=_query_type(query, filters),
                filters=filters,
                result_count=pagination.total,
                execution_time_ms=timer.elapsed_ms,
                timestamp=timer.started_at or datetime.now(timezone.utc),
                session_id=session_id,
            )
        )
        return SearchResponse(
            results=page_results,
            facets=facets,
            pagination=pagination,
            execution_time_ms=timer.elapsed_ms,
            query=query,
            filters=filters,
            suggestions=suggestions,
        )

    async def asearch(
        self,
        request: SearchRequest | dict[str, Any],
        *,
        session_id: str | None = None,
        scope: AccessScope | None = None,
    ) -> SearchResponse:
        return await asyncio.to_thread(self.search, request, session_id=session_id, scope=scope)

    def autocomplete(self, request: AutocompleteRequest | dict[str, Any]) -> AutocompleteResponse:
        request = parse_model(AutocompleteRequest, request)
        with Timer() as timer:
            suggestions = self.suggestions.suggest(
                request.query, types=request.types, limit=request.limit
            )
        return AutocompleteResponse(
            suggestions=suggestions,
            query=request.query,
            execution_time_ms=timer.elapsed_ms,
        )

    def index_document(self, document: IndexedDocument) -> None:
        self.store.upsert([document])
        self.vocabulary.seed_from_documents([document])
        logger.info("Indexed document %s", document.id)

    def sync_documents(self, documents: Iterable[IndexedDocument]) -> tuple[int, int]:
        """Reindex ``documents`` one by one and return ``(synced, errors)``.

        A document the store rejects is logged and counted, and the remaining
        documents are still indexed.
        """
        synced = errors = 0
        for document in documents:
            try:
                self.index_document(document)
            except ValueError as exc:
                errors += 1
                logger.warning("Skipped document %s during sync: %s", document.id, exc)
            else:
                synced += 1
        logger.info("Index sync finished: synced=%d errors=%d", synced, errors)
        return synced, errors

    def remove_document(self, document_id: str) -> bool:
        removed = self.store.remove(document_id)
        logger.info("Removed document %s (found=%s)", document_id, removed)
        return removed

    def close(self) -> None:
        self._pool.shutdown(wait=True)
        self.recorder.close()


def _query_type(query: str, filters: dict[str, Any]) -> QueryType:
    if query.strip():
        return QueryType.TEXT
    if _FACET_FILTER_KEYS.intersection(filters):
        return QueryType.FACETED
    return QueryType.FILTER
