"""Search session snapshots and their pure transition functions."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

from reel_search.errors import ErrorKind, SearchError
from reel_search.query.models import FilterCriteria, SearchRequest
from reel_search.types import (
    Facet,
    Pagination,
    SearchResponse,
    SearchResult,
    SortBy,
    SortOrder,
    Suggestion,
)


class SessionPhase(str, Enum):
    IDLE = "idle"
    DEBOUNCING = "debouncing"
    QUERYING = "querying"
    READY = "ready"
    ERRORED = "errored"


@dataclass(frozen=True, slots=True)
class SessionError:
    kind: ErrorKind
    message: str
    hint: str = ""

    @classmethod
    def from_exception(cls, exc: SearchError) -> "SessionError":
        return cls(kind=exc.kind, message=exc.message, hint=exc.hint)


@dataclass(frozen=True, slots=True)
class SearchSession:
    """Immutable snapshot of one user's interactive search state.

    ``active_request_token`` names the only request whose response may still
    be applied; ``None`` means nothing is in flight or the in-flight request
    has been superseded by a later edit.
    """

    session_id: str
    phase: SessionPhase = SessionPhase.IDLE
    query: str = ""
    filters: FilterCriteria = field(default_factory=FilterCriteria)
    sort_by: SortBy = SortBy.RELEVANCE
    sort_order: SortOrder = SortOrder.DESC
    page: int = 1
    limit: int = 10
    results: tuple[SearchResult, ...] = ()
    facets: tuple[Facet, ...] = ()
    suggestions: tuple[Suggestion, ...] = ()
    loading: bool = False
    error: SessionError | None = None
    pagination: Pagination | None = None
    active_request_token: int | None = None
    last_issued_token: int = 0
    last_search_time: datetime | None = None

    def to_request(self, *, include_facets: bool = True, include_suggestions: bool = False) -> SearchRequest:
        return SearchRequest(
            query=self.query,
            filters=self.filters,
            sort_by=self.sort_by,
            sort_order=self.sort_order,
            page=self.page,
            limit=self.limit,
            include_facets=include_facets,
            include_suggestions=include_suggestions,
        )


@dataclass(frozen=True, slots=True)
class Mutation:
    """A user edit; ``None`` fields are left unchanged."""

    query: str | None = None
    filters: FilterCriteria | None = None
    sort_by: SortBy | None = None
    sort_order: SortOrder | None = None
    page: int | None = None
    limit: int | None = None


def apply_mutation(session: SearchSession, mutation: Mutation) -> SearchSession:
    """Apply an edit, supersede any in-flight request and start debouncing.

    Query, filter and page-size changes return to the first page unless the
    same edit sets the page explicitly.
    """

    changes = {
        item.name: getattr(mutation, item.name)
        for item in dataclasses.fields(mutation)
        if getattr(mutation, item.name) is not None
    }
    resets_page = any(
        (
            mutation.query is not None and mutation.query != session.query,
            mutation.filters is not None and mutation.filters != session.filters,
            mutation.limit is not None and mutation.limit != session.limit,
        )
    )
    if mutation.page is None and resets_page:
        changes["page"] = 1
    return dataclasses.replace(
        session,
        **changes,
        phase=SessionPhase.DEBOUNCING,
        active_request_token=None,
    )


def begin_query(session: SearchSession) -> tuple[SearchSession, int]:
    """Issue the next request token once the debounce delay has elapsed."""

    token = session.last_issued_token + 1
    return (
        dataclasses.replace(
            session,
            phase=SessionPhase.QUERYING,
            loading=True,
            active_request_token=token,
            last_issued_token=token,
        ),
        token,
    )


def apply_response(session: SearchSession, token: int, response: SearchResponse) -> SearchSession:
    """Apply a response atomically; stale tokens return ``session`` unchanged."""

    if token != session.active_request_token:
        return session
    return dataclasses.replace(
        session,
        phase=SessionPhase.READY,
        results=tuple(response.results),
        facets=tuple(response.facets),
        suggestions=tuple(response.suggestions or ()),
        pagination=response.pagination,
        loading=False,
        error=None,
        active_request_token=None,
        last_search_time=datetime.now(timezone.utc),
    )


def apply_failure(session: SearchSession, token: int, error: SearchError) -> SearchSession:
    """Record a failure, keeping the last good results on screen."""

    if token != session.active_request_token:
        return session
    return dataclasses.replace(
        session,
        phase=SessionPhase.ERRORED,
        loading=False,
        error=SessionError.from_exception(error),
        active_request_token=None,
    )


def clear_search(session: SearchSession) -> SearchSession:
    return dataclasses.replace(
        session,
        phase=SessionPhase.IDLE,
        query="",
        page=1,
        results=(),
        facets=(),
        suggestions=(),
        pagination=None,
        error=None,
        loading=False,
        active_request_token=None,
    )


def reset_filters(session: SearchSession) -> SearchSession:
    return apply_mutation(session, Mutation(filters=FilterCriteria(), page=1))
