from __future__ import annotations

from collections.abc import Callable, Iterator
from datetime import datetime, timedelta, timezone
from typing import Any

import pytest

from reel_search.analytics.recorder import AnalyticsRecorder
from reel_search.config import SearchConfig
from reel_search.service import SearchService
from reel_search.store.adapter import InMemoryDocumentStore
from reel_search.suggest.vocabulary import SuggestionVocabulary
from reel_search.types import IndexedDocument, Pagination, SearchResponse, SearchResult

BASE_TIME = datetime(2024, 1, 1, tzinfo=timezone.utc)


def build_doc(doc_id: str, title: str, **overrides: Any) -> IndexedDocument:
    fields: dict[str, Any] = {
        "id": doc_id,
        "title": title,
        "duration_seconds": 60,
        "created_at": BASE_TIME,
    }
    if "tags" in overrides:
        overrides["tags"] = frozenset(overrides["tags"])
    fields.update(overrides)
    return IndexedDocument(**fields)


def build_response(*document_ids: str, query: str = "") -> SearchResponse:
    results = [
        SearchResult(
            document_id=doc_id,
            score=1.0,
            title=doc_id,
            description=None,
            thumbnail_url=None,
            duration_seconds=60,
            tags=[],
            machine_model=None,
            process_type=None,
            tooling=None,
            skill_level=None,
            author_id=None,
            view_count=0,
            bookmark_count=0,
            created_at=BASE_TIME,
        )
        for doc_id in document_ids
    ]
    return SearchResponse(
        results=results,
        facets=[],
        pagination=Pagination.build(page=1, limit=10, total=len(results)),
        execution_time_ms=1.0,
        query=query,
        filters={},
    )


@pytest.fixture
def make_doc() -> Callable[..., IndexedDocument]:
    return build_doc


@pytest.fixture
def make_response() -> Callable[..., SearchResponse]:
    return build_response


@pytest.fixture
def corpus() -> list[IndexedDocument]:
    day = timedelta(days=1)
    return [
        build_doc(
            "r1",
            "CNC Mill Setup",
            description="Zeroing the work offsets before the first cut on a vertical mill.",
            tags={"Setup", "Safety"},
            machine_model="Haas VF-2",
            process_type="Milling",
            tooling="End Mill",
            skill_level="beginner",
            author_id="alice",
            view_count=120,
            created_at=BASE_TIME + 1 * day,
        ),
        build_doc(
            "r2",
            "Lathe Safety Check",
            description="Daily chuck guard and e-stop inspection.",
            tags={"Safety"},
            machine_model="Lathe",
            process_type="Turning",
            skill_level="beginner",
            author_id="bob",
            view_count=300,
            created_at=BASE_TIME + 2 * day,
        ),
        build_doc(
            "r3",
            "Grinder Maintenance",
            description="Dressing the wheel and checking coolant flow.",
            tags={"Maintenance"},
            machine_model="Okamoto",
            process_type="Grinding",
            skill_level="advanced",
            author_id="carol",
            view_count=45,
            created_at=BASE_TIME + 3 * day,
        ),
        build_doc(
            "r4",
            "Lathe Tool Change",
            description="Swapping inserts on the turret without losing offsets.",
            tags={"Safety", "Tooling"},
            machine_model="Lathe",
            process_type="Turning",
            tooling="Insert",
            skill_level="intermediate",
            author_id="alice",
            view_count=80,
            created_at=BASE_TIME + 4 * day,
        ),
        build_doc(
            "r5",
            "Mill Spindle Warmup",
            description="Running the spindle warmup program before production.",
            tags={"Maintenance", "Setup"},
            machine_model="Haas VF-2",
            process_type="Milling",
            skill_level="intermediate",
            author_id="bob",
            view_count=80,
            created_at=BASE_TIME + 5 * day,
        ),
        build_doc(
            "r6",
            "Draft: Deburring Basics",
            tags={"Safety"},
            machine_model="Lathe",
            status="draft",
            created_at=BASE_TIME + 6 * day,
        ),
    ]


@pytest.fixture
def service(corpus: list[IndexedDocument]) -> Iterator[SearchService]:
    vocabulary = SuggestionVocabulary()
    vocabulary.seed_from_documents(corpus)
    instance = SearchService(
        InMemoryDocumentStore(corpus),
        vocabulary=vocabulary,
        recorder=AnalyticsRecorder(vocabulary),
        config=SearchConfig(retry_backoff_seconds=0.0),
    )
    yield instance
    instance.close()
