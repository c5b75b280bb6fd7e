"""Field-weighted relevance scoring and deterministic ordering."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from reel_search.config import RankingConfig
from reel_search.query.compiler import QueryPlan, ensure_utc
from reel_search.query.text import field_matches, highlight, snippet
from reel_search.types import IndexedDocument, SearchResult, SortBy, SortOrder

_SortKey = Callable[[tuple[float, IndexedDocument]], Any]


class RankingEngine:
    """Scores candidates and orders them into a total order.

    Ordering rules:
    1. ``relevance`` with a query: ``score desc -> view_count desc ->
       created_at desc -> id asc``. ``sort_order=asc`` flips the score only.
    2. ``relevance`` without a query: every score is 0, so ordering falls back
       to ``created_at`` in the requested direction, then the same tie-breaks.
    3. ``created_at``/``view_count``/``title``: that field in the requested
       direction, then ``id asc``.

    The final ``id asc`` key makes the order total, which is what keeps
    pagination stable across repeated executions.
    """

    def __init__(self, config: RankingConfig | None = None) -> None:
        self.config = config or RankingConfig()

    def score(self, plan: QueryPlan, document: IndexedDocument) -> float:
        """Sum of field weights, each counted once per matching field."""

        if plan.is_browse:
            return 0.0
        terms = plan.tokens
        weights = (
            (self.config.title_weight, document.title),
            (self.config.description_weight, document.description),
            (self.config.tag_weight, " ".join(sorted(document.tags))),
            (self.config.machine_model_weight, document.machine_model),
            (self.config.process_type_weight, document.process_type),
        )
        return float(sum(weight for weight, text in weights if field_matches(terms, text)))

    def rank(
        self,
        plan: QueryPlan,
        candidates: list[IndexedDocument],
        *,
        sort_by: SortBy = SortBy.RELEVANCE,
        sort_order: SortOrder = SortOrder.DESC,
    ) -> list[SearchResult]:
        scored: list[tuple[float, IndexedDocument]] = []
        for document in candidates:
            value = self.score(plan, document)
            if not plan.is_browse and value <= self.config.min_score:
                continue
            scored.append((value, document))

        descending = sort_order is SortOrder.DESC
        for key, reverse in reversed(self._sort_chain(plan, sort_by, descending)):
            scored.sort(key=key, reverse=reverse)

        return [self._to_result(plan, value, document) for value, document in scored]

    @staticmethod
    def _sort_chain(
        plan: QueryPlan, sort_by: SortBy, descending: bool
    ) -> list[tuple[_SortKey, bool]]:
        by_id: tuple[_SortKey, bool] = (lambda item: item[1].id, False)
        by_views: tuple[_SortKey, bool] = (lambda item: item[1].view_count, True)
        by_created: _SortKey = lambda item: ensure_utc(item[1].created_at)

        if sort_by is SortBy.RELEVANCE:
            if plan.is_browse:
                return [(by_created, descending), by_views, by_id]
            return [
                (lambda item: item[0], descending),
                by_views,
                (by_created, True),
                by_id,
            ]
        if sort_by is SortBy.CREATED_AT:
            return [(by_created, descending), by_id]
        if sort_by is SortBy.VIEW_COUNT:
            return [(lambda item: item[1].view_count, descending), by_id]
        return [(lambda item: item[1].title.casefold(), descending), by_id]

    def _to_result(
        self, plan: QueryPlan, value: float, document: IndexedDocument
    ) -> SearchResult:
        highlights: dict[str, str] = {}
        if not plan.is_browse:
            if field_matches(plan.tokens, document.title):
                highlights["title"] = highlight(document.title, plan.tokens)
            if document.description and field_matches(plan.tokens, document.description):
                highlights["description"] = snippet(
                    document.description,
                    plan.tokens,
                    max_words=self.config.snippet_words,
                )
        return SearchResult(
            document_id=document.id,
            score=value,
            title=document.title,
            description=document.description,
            thumbnail_url=document.thumbnail_url,
            duration_seconds=document.duration_seconds,
            tags=sorted(document.tags),
            machine_model=document.machine_model,
            process_type=document.process_type,
            tooling=document.tooling,
            skill_level=document.skill_level,
            author_id=document.author_id,
            view_count=document.view_count,
            bookmark_count=document.bookmark_count,
            created_at=document.created_at,
            highlights=highlights,
        )
