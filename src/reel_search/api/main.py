"""FastAPI entrypoint for search, autocomplete, analytics and index endpoints."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from fastapi import FastAPI, Header, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from reel_search.analytics.recorder import AnalyticsRecorder
from reel_search.config import ServiceSettings
from reel_search.errors import ErrorKind, RateLimited, SearchError
from reel_search.query.models import AnalyticsIngestRequest, AutocompleteRequest, SearchRequest
from reel_search.ratelimit import SlidingWindowRateLimiter
from reel_search.service import SearchService
from reel_search.store.adapter import InMemoryDocumentStore
from reel_search.suggest.vocabulary import SuggestionVocabulary
from reel_search.types import AnalyticsEvent, IndexedDocument, Suggestion, SuggestionType

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)
logger = logging.getLogger(__name__)

_STATUS_BY_KIND = {
    ErrorKind.INVALID_QUERY: 400,
    ErrorKind.PERMISSION_DENIED: 403,
    ErrorKind.RATE_LIMITED: 429,
    ErrorKind.INDEX_UNAVAILABLE: 503,
    ErrorKind.UNKNOWN: 500,
}


class SuggestionRef(BaseModel):
    type: SuggestionType
    value: str = Field(min_length=1)


class ClickRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    document_id: str = Field(min_length=1)
    position: int = Field(ge=0)
    session_id: str | None = None
    query: str = ""
    suggestion: SuggestionRef | None = None


class IndexDocumentRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    title: str = Field(min_length=1)
    duration_seconds: int = Field(gt=0)
    description: str | None = None
    tags: list[str] = Field(default_factory=list)
    machine_model: str | None = None
    process_type: str | None = None
    tooling: str | None = None
    skill_level: str | None = None
    status: str = "published"
    visibility: str = "public"
    author_id: str | None = None
    thumbnail_url: str | None = None
    view_count: int = Field(default=0, ge=0)
    bookmark_count: int = Field(default=0, ge=0)
    created_at: datetime | None = None

    def to_document(self, document_id: str) -> IndexedDocument:
        return IndexedDocument(
            id=document_id,
            title=self.title,
            description=self.description,
            tags=frozenset(self.tags),
            machine_model=self.machine_model,
            process_type=self.process_type,
            tooling=self.tooling,
            skill_level=self.skill_level,
            status=self.status,
            visibility=self.visibility,
            author_id=self.author_id,
            thumbnail_url=self.thumbnail_url,
            duration_seconds=self.duration_seconds,
            view_count=self.view_count,
            bookmark_count=self.bookmark_count,
            created_at=self.created_at or datetime.now(timezone.utc),
        )


class SyncDocument(IndexDocumentRequest):
    """One reel in a bulk sync; content checks are left to the store."""

    id: str = Field(min_length=1)
    title: str
    duration_seconds: int


class SyncRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    documents: list[SyncDocument] = Field(default_factory=list)


def error_response(code: int, kind: str, msg: str, hint: str = "") -> JSONResponse:
    """Unified error response format."""
    return JSONResponse(
        status_code=code,
        content={
            "code": code,
            "kind": kind,
            "msg": msg,
            "hint": hint,
            "ts": datetime.now(timezone.utc).isoformat(),
        },
    )


def create_app(
    service: SearchService | None = None,
    settings: ServiceSettings | None = None,
) -> FastAPI:
    settings = settings or ServiceSettings()
    logging.getLogger("reel_search").setLevel(settings.log_level.upper())
    if service is None:
        vocabulary = SuggestionVocabulary()
        service = SearchService(
            InMemoryDocumentStore(),
            vocabulary=vocabulary,
            recorder=AnalyticsRecorder(vocabulary),
            config=settings.search_config(),
        )
    limiter = SlidingWindowRateLimiter(
        settings.rate_limit_max, settings.rate_limit_window_seconds
    )

    app = FastAPI(title="Reel Search", version="0.1.0")
    app.state.service = service

    @app.exception_handler(SearchError)
    async def _search_error(request: Request, exc: SearchError) -> JSONResponse:
        status = _STATUS_BY_KIND[exc.kind]
        if status >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        response = error_response(status, exc.kind.value, exc.message, exc.hint)
        if isinstance(exc, RateLimited):
            response.headers["Retry-After"] = str(max(1, round(exc.retry_after)))
        return response

    @app.exception_handler(RequestValidationError)
    async def _validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        errors = exc.errors()
        msg = errors[0].get("msg", "Validation error") if errors else "Validation error"
        return error_response(
            400,
            ErrorKind.INVALID_QUERY.value,
            msg,
            "Check request body format and field constraints",
        )

    def _client_key(request: Request) -> str:
        return request.client.host if request.client else "anonymous"

    @app.get("/health")
    def health() -> dict[str, Any]:
        store = service.store
        return {
            "status": "ok",
            "documents": store.count() if isinstance(store, InMemoryDocumentStore) else None,
            "vocabulary_size": len(service.vocabulary),
        }

    @app.post("/search")
    def search(
        body: SearchRequest,
        request: Request,
        x_session_id: str | None = Header(default=None),
    ) -> dict[str, Any]:
        limiter.check(_client_key(request))
        return service.search(body, session_id=x_session_id).to_dict()

    @app.post("/autocomplete")
    def autocomplete(body: AutocompleteRequest, request: Request) -> dict[str, Any]:
        limiter.check(_client_key(request))
        return service.autocomplete(body).to_dict()

    @app.post("/analytics", status_code=202)
    def ingest_analytics(body: AnalyticsIngestRequest) -> dict[str, Any]:
        if body.clicked_result_id is not None:
            service.recorder.record_click(
                body.clicked_result_id,
                body.clicked_result_position or 0,
                body.session_id,
                query=body.query,
            )
        else:
            service.recorder.record_search(
                AnalyticsEvent(
                    query=body.query,
                    query_type=body.query_type,
                    filters=body.filters,
                    result_count=body.result_count,
                    execution_time_ms=body.execution_time_ms,
                    timestamp=datetime.now(timezone.utc),
                    session_id=body.session_id,
                )
            )
        return {"accepted": True}

    @app.post("/analytics/click", status_code=202)
    def record_click(body: ClickRequest) -> dict[str, Any]:
        suggestion = (
            Suggestion(type=body.suggestion.type, value=body.suggestion.value, score=0.0)
            if body.suggestion is not None
            else None
        )
        service.recorder.record_click(
            body.document_id,
            body.position,
            body.session_id,
            query=body.query,
            suggestion=suggestion,
        )
        return {"accepted": True}

    @app.delete("/analytics")
    def clear_analytics() -> dict[str, Any]:
        service.recorder.clear()
        return {"cleared": True}

    @app.get("/metrics")
    def metrics() -> dict[str, Any]:
        return service.recorder.metrics().to_dict()

    @app.put("/index/{document_id}", response_model=None)
    def index_document(
        document_id: str, body: IndexDocumentRequest
    ) -> dict[str, Any] | JSONResponse:
        try:
            service.index_document(body.to_document(document_id))
        except ValueError as exc:
            return error_response(
                400, ErrorKind.INVALID_QUERY.value, str(exc), "Check the reel's title and duration"
            )
        return {"document_id": document_id, "indexed": True}

    @app.post("/index/sync")
    def sync_index(body: SyncRequest) -> dict[str, int]:
        synced, errors = service.sync_documents(
            document.to_document(document.id) for document in body.documents
        )
        return {"synced": synced, "errors": errors}

    @app.delete("/index/{document_id}", response_model=None)
    def remove_document(document_id: str) -> dict[str, Any] | JSONResponse:
        if not service.remove_document(document_id):
            return error_response(
                404, "not_found", f"Document not found: {document_id}", "Check the reel id"
            )
        return {"document_id": document_id, "removed": True}

    return app


app = create_app()
