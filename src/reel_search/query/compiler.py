"""Compiles raw queries and filter criteria into canonical query plans."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from datetime import datetime

from reel_search.config import QueryConfig
from reel_search.errors import InvalidQuery, PermissionDenied
from reel_search.query.models import FilterCriteria, ensure_utc
from reel_search.query.text import any_field_matches, normalize_text, unique_tokens
from reel_search.types import FacetDimension, IndexedDocument


def _fold(value: str | None) -> str | None:
    if value is None:
        return None
    folded = value.strip().casefold()
    return folded or None


@dataclass(frozen=True, slots=True)
class AccessScope:
    """Visibility and status values a caller is allowed to filter on.

    ``None`` means unrestricted.
    """

    visibilities: frozenset[str] | None = None
    statuses: frozenset[str] | None = None


@dataclass(frozen=True, slots=True)
class QueryPlan:
    """Canonical, hashable form of a query plus its filter predicates.

    Filter predicates are ANDed together; ``tags`` is an OR within the
    dimension, and ``tokens`` is an OR of term variants over the searchable
    fields.
    """

    text: str = ""
    tokens: tuple[str, ...] = ()
    tags: tuple[str, ...] = ()
    machine_model: str | None = None
    process_type: str | None = None
    tooling: str | None = None
    skill_level: str | None = None
    status: str | None = None
    visibility: str | None = None
    author_id: str | None = None
    duration_min: int | None = None
    duration_max: int | None = None
    date_start: datetime | None = None
    date_end: datetime | None = None

    @property
    def is_browse(self) -> bool:
        return not self.tokens

    def without(self, dimension: FacetDimension) -> "QueryPlan":
        """Return this plan with one facet dimension's predicate removed."""
        if dimension is FacetDimension.TAGS:
            return dataclasses.replace(self, tags=())
        return dataclasses.replace(self, **{dimension.value: None})

    def matches(self, document: IndexedDocument) -> bool:
        return self.matches_filters(document) and self.matches_text(document)

    def matches_text(self, document: IndexedDocument) -> bool:
        if not self.tokens:
            return True
        return any_field_matches(
            self.tokens,
            (
                document.title,
                document.description,
                " ".join(document.tags),
                document.machine_model,
                document.process_type,
            ),
        )

    def matches_filters(self, document: IndexedDocument) -> bool:
        if self.tags:
            doc_tags = {tag.casefold() for tag in document.tags}
            if not doc_tags.intersection(self.tags):
                return False
        for name in (
            "machine_model",
            "process_type",
            "tooling",
            "skill_level",
            "status",
            "visibility",
            "author_id",
        ):
            wanted = getattr(self, name)
            if wanted is not None and _fold(getattr(document, name)) != wanted:
                return False
        if self.duration_min is not None and document.duration_seconds < self.duration_min:
            return False
        if self.duration_max is not None and document.duration_seconds > self.duration_max:
            return False
        created = ensure_utc(document.created_at)
        if self.date_start is not None and created < self.date_start:
            return False
        if self.date_end is not None and created > self.date_end:
            return False
        return True


class QueryCompiler:
    """Pure translation of ``(query, FilterCriteria)`` into a ``QueryPlan``."""

    def __init__(self, config: QueryConfig | None = None) -> None:
        self.config = config or QueryConfig()

    def compile(
        self,
        query: str | None,
        criteria: FilterCriteria | None = None,
        *,
        scope: AccessScope | None = None,
    ) -> QueryPlan:
        criteria = criteria or FilterCriteria()
        raw = query if query else (criteria.query or "")
        text = normalize_text(raw)

        if len(text) < self.config.min_query_length:
            raise InvalidQuery(
                f"Query must be at least {self.config.min_query_length} characters",
            )
        if len(text) > self.config.max_query_length:
            raise InvalidQuery(
                f"Query must be at most {self.config.max_query_length} characters",
                hint="Shorten the search text",
            )

        status = _fold(criteria.status) or _fold(self.config.default_status)
        visibility = _fold(criteria.visibility)
        if scope is not None:
            _check_scope("visibility", visibility, scope.visibilities)
            _check_scope("status", status, scope.statuses)

        duration = criteria.duration_range
        dates = criteria.date_range
        return QueryPlan(
            text=text,
            tokens=unique_tokens(text),
            tags=tuple(sorted({tag.casefold() for tag in criteria.tags})),
            machine_model=_fold(criteria.machine_model),
            process_type=_fold(criteria.process_type),
            tooling=_fold(criteria.tooling),
            skill_level=_fold(criteria.skill_level),
            status=status,
            visibility=visibility,
            author_id=_fold(criteria.author_id),
            duration_min=duration.min if duration else None,
            duration_max=duration.max if duration else None,
            date_start=ensure_utc(dates.start) if dates and dates.start else None,
            date_end=ensure_utc(dates.end) if dates and dates.end else None,
        )


def _check_scope(name: str, value: str | None, allowed: frozenset[str] | None) -> None:
    if value is None or allowed is None:
        return
    if value not in {item.casefold() for item in allowed}:
        raise PermissionDenied(
            f"Filter {name}={value!r} is outside the caller's access scope",
        )
