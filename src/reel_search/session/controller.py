"""Asyncio driver for one interactive search session."""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import Awaitable, Callable
from typing import Any, Protocol

from reel_search.config import SessionConfig
from reel_search.errors import IndexUnavailable, InvalidQuery, SearchError, UnknownSearchError
from reel_search.query.models import FilterCriteria, SearchRequest, parse_model
from reel_search.session.state import (
    Mutation,
    SearchSession,
    apply_failure,
    apply_mutation,
    apply_response,
    begin_query,
    clear_search,
    reset_filters,
)
from reel_search.types import SearchResponse, SortBy, SortOrder

logger = logging.getLogger(__name__)

Subscriber = Callable[[SearchSession], None]


class SearchExecutor(Protocol):
    def __call__(
        self, request: SearchRequest, *, session_id: str | None = None
    ) -> Awaitable[SearchResponse]:
        """Run one search round trip."""


class SessionController:
    """Owns a ``SearchSession`` and drives it through debounce and query cycles.

    Every edit supersedes whatever is in flight and rearms a fixed debounce
    delay. When the delay elapses one request is issued under a fresh token;
    only the response carrying the active token is applied, so a slow, stale
    response can never overwrite newer results. Pagination and sort changes
    take the same path as any other edit.

    All methods must be called from the event loop that owns the session.
    """

    def __init__(
        self,
        search: SearchExecutor,
        *,
        session_id: str | None = None,
        config: SessionConfig | None = None,
        include_suggestions: bool = False,
    ) -> None:
        self.config = config or SessionConfig()
        self._search = search
        self._include_suggestions = include_suggestions
        self._state = SearchSession(
            session_id=session_id or uuid.uuid4().hex,
            limit=self.config.default_limit,
        )
        self._subscribers: list[Subscriber] = []
        self._debounce_task: asyncio.Task[None] | None = None
        self._inflight: set[asyncio.Task[None]] = set()
        self._closed = False

    @property
    def state(self) -> SearchSession:
        return self._state

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Receive every new snapshot; returns an unsubscribe function."""
        self._subscribers.append(callback)

        def _unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return _unsubscribe

    def set_query(self, query: str) -> None:
        self._mutate(Mutation(query=query))

    def set_filters(self, filters: FilterCriteria | dict[str, Any], *, merge: bool = True) -> None:
        """Replace or merge filters; unknown filter keys raise ``InvalidQuery``."""
        if isinstance(filters, FilterCriteria):
            updates = filters.model_dump(exclude_unset=True)
        else:
            updates = dict(filters)
        base = self._state.filters.model_dump(exclude_none=True) if merge else {}
        self._mutate(Mutation(filters=parse_model(FilterCriteria, {**base, **updates})))

    def set_sort(self, sort_by: SortBy | str, sort_order: SortOrder | str = SortOrder.DESC) -> None:
        if isinstance(sort_order, str) and not isinstance(sort_order, SortOrder):
            sort_order = sort_order.lower()
        try:
            mutation = Mutation(sort_by=SortBy(sort_by), sort_order=SortOrder(sort_order))
        except ValueError as exc:
            raise InvalidQuery(str(exc)) from exc
        self._mutate(mutation)

    def set_page(self, page: int) -> None:
        if page < 1:
            raise InvalidQuery("page must be at least 1")
        self._mutate(Mutation(page=page))

    def set_limit(self, limit: int) -> None:
        if limit < 1:
            raise InvalidQuery("limit must be at least 1")
        self._mutate(Mutation(limit=limit))

    def refresh(self) -> None:
        self._mutate(Mutation())

    def reset_filters(self) -> None:
        self._ensure_open()
        self._transition(reset_filters(self._state))
        self._arm_debounce()

    def clear_search(self) -> None:
        self._ensure_open()
        self._cancel_debounce()
        self._transition(clear_search(self._state))

    async def settle(self) -> None:
        """Wait until no debounce timer or request is outstanding."""
        while True:
            pending: list[asyncio.Task[None]] = list(self._inflight)
            if self._debounce_task is not None and not self._debounce_task.done():
                pending.append(self._debounce_task)
            if not pending:
                return
            await asyncio.gather(*pending, return_exceptions=True)

    async def close(self) -> None:
        self._closed = True
        self._cancel_debounce()
        for task in list(self._inflight):
            task.cancel()
        await asyncio.gather(*self._inflight, return_exceptions=True)
        self._subscribers.clear()

    def _mutate(self, mutation: Mutation) -> None:
        self._ensure_open()
        self._transition(apply_mutation(self._state, mutation))
        self._arm_debounce()

    def _ensure_open(self) -> None:
        if self._closed:
            raise RuntimeError("session is closed")

    def _transition(self, session: SearchSession) -> None:
        if session is self._state:
            return
        self._state = session
        for callback in list(self._subscribers):
            callback(session)

    def _cancel_debounce(self) -> None:
        if self._debounce_task is not None and not self._debounce_task.done():
            self._debounce_task.cancel()
        self._debounce_task = None

    def _arm_debounce(self) -> None:
        self._cancel_debounce()
        self._debounce_task = asyncio.get_running_loop().create_task(self._debounce())

    async def _debounce(self) -> None:
        await asyncio.sleep(self.config.debounce_ms / 1000.0)
        session, token = begin_query(self._state)
        request = session.to_request(include_suggestions=self._include_suggestions)
        self._transition(session)
        task = asyncio.get_running_loop().create_task(self._execute(token, request))
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)

    async def _execute(self, token: int, request: SearchRequest) -> None:
        try:
            response = await asyncio.wait_for(
                self._search(request, session_id=self._state.session_id),
                timeout=self.config.request_timeout_seconds,
            )
        except asyncio.TimeoutError:
            error: SearchError = IndexUnavailable(
                f"Search timed out after {self.config.request_timeout_seconds}s",
                hint="Try again shortly",
            )
        except SearchError as exc:
            error = exc
        except Exception as exc:
            logger.exception("Session %s request %d failed", self._state.session_id, token)
            error = UnknownSearchError(str(exc) or "Search failed")
        else:
            updated = apply_response(self._state, token, response)
            if updated is self._state:
                logger.debug("Discarded stale response token=%d", token)
            self._transition(updated)
            return

        updated = apply_failure(self._state, token, error)
        if updated is self._state:
            logger.debug("Discarded stale failure token=%d: %s", token, error.message)
        self._transition(updated)
