"""Shared domain models."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class SortBy(str, Enum):
    RELEVANCE = "relevance"
    CREATED_AT = "created_at"
    VIEW_COUNT = "view_count"
    TITLE = "title"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


class SuggestionType(str, Enum):
    TAG = "tag"
    MACHINE_MODEL = "machine_model"
    PROCESS_TYPE = "process_type"
    TOOLING = "tooling"
    AUTHOR = "author"
    TITLE = "title"
    QUERY = "query"


class QueryType(str, Enum):
    TEXT = "text"
    FILTER = "filter"
    FACETED = "faceted"
    AUTOCOMPLETE = "autocomplete"


class FacetDimension(str, Enum):
    TAGS = "tags"
    MACHINE_MODEL = "machine_model"
    PROCESS_TYPE = "process_type"
    TOOLING = "tooling"
    SKILL_LEVEL = "skill_level"


@dataclass(frozen=True, slots=True)
class IndexedDocument:
    """Immutable snapshot of one reel as seen by a single query."""

    id: str
    title: str
    duration_seconds: int
    created_at: datetime
    description: str | None = None
    tags: frozenset[str] = frozenset()
    machine_model: str | None = None
    process_type: str | None = None
    tooling: str | None = None
    skill_level: str | None = None
    status: str = "published"
    visibility: str = "public"
    author_id: str | None = None
    thumbnail_url: str | None = None
    view_count: int = 0
    bookmark_count: int = 0


@dataclass(slots=True)
class SearchResult:
    """A ranked hit with the display subset of its document."""

    document_id: str
    score: float
    title: str
    description: str | None
    thumbnail_url: str | None
    duration_seconds: int
    tags: list[str]
    machine_model: str | None
    process_type: str | None
    tooling: str | None
    skill_level: str | None
    author_id: str | None
    view_count: int
    bookmark_count: int
    created_at: datetime
    highlights: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        payload = asdict(self)
        payload["created_at"] = self.created_at.isoformat()
        return payload


@dataclass(frozen=True, slots=True)
class Facet:
    dimension: FacetDimension
    value: str
    count: int

    def to_dict(self) -> dict[str, Any]:
        return {"dimension": self.dimension.value, "value": self.value, "count": self.count}


@dataclass(slots=True)
class VocabularyEntry:
    """Autocomplete term with its usage statistics."""

    type: SuggestionType
    value: str
    usage_count: int = 0
    last_used_at: datetime | None = None


@dataclass(frozen=True, slots=True)
class Suggestion:
    type: SuggestionType
    value: str
    score: float
    usage_count: int = 0
    similarity: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type.value,
            "value": self.value,
            "score": self.score,
            "usage_count": self.usage_count,
            "similarity": self.similarity,
        }


@dataclass(frozen=True, slots=True)
class Pagination:
    page: int
    limit: int
    total: int
    total_pages: int
    has_next: bool
    has_prev: bool

    @classmethod
    def build(cls, *, page: int, limit: int, total: int) -> "Pagination":
        total_pages = (total + limit - 1) // limit if total else 0
        return cls(
            page=page,
            limit=limit,
            total=total,
            total_pages=total_pages,
            has_next=page < total_pages,
            has_prev=page > 1,
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True, slots=True)
class AnalyticsEvent:
    """Write-once record of one executed query or one result click."""

    query: str
    query_type: QueryType
    filters: dict[str, Any]
    result_count: int
    execution_time_ms: float
    timestamp: datetime
    clicked_result_id: str | None = None
    clicked_position: int | None = None
    session_id: str | None = None

    @property
    def is_click(self) -> bool:
        return self.clicked_result_id is not None


@dataclass(slots=True)
class SearchResponse:
    results: list[SearchResult]
    facets: list[Facet]
    pagination: Pagination
    execution_time_ms: float
    query: str
    filters: dict[str, Any]
    suggestions: list[Suggestion] | None = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "results": [result.to_dict() for result in self.results],
            "facets": [facet.to_dict() for facet in self.facets],
            "pagination": self.pagination.to_dict(),
            "execution_time_ms": self.execution_time_ms,
            "query": self.query,
            "filters": self.filters,
        }
        if self.suggestions is not None:
            payload["suggestions"] = [item.to_dict() for item in self.suggestions]
        return payload


@dataclass(slots=True)
class AutocompleteResponse:
    suggestions: list[Suggestion]
    query: str
    execution_time_ms: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "suggestions": [item.to_dict() for item in self.suggestions],
            "query": self.query,
            "execution_time_ms": self.execution_time_ms,
        }
