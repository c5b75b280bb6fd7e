from fastapi.testclient import TestClient

from reel_search.api.main import create_app
from reel_search.config import ServiceSettings


def _client(**settings) -> TestClient:
    return TestClient(create_app(settings=ServiceSettings(**settings)))


def _index(client: TestClient) -> None:
    reels = {
        "r1": {
            "title": "Lathe Safety Check",
            "description": "Daily chuck guard inspection.",
            "duration_seconds": 90,
            "tags": ["Safety"],
            "machine_model": "Lathe",
            "created_at": "2024-03-01T00:00:00Z",
            "view_count": 10,
        },
        "r2": {
            "title": "Lathe Tool Change",
            "duration_seconds": 120,
            "tags": ["Tooling", "Safety"],
            "machine_model": "Lathe",
            "created_at": "2024-03-02T00:00:00Z",
        },
        "r3": {
            "title": "Mill Spindle Warmup",
            "duration_seconds": 60,
            "tags": ["Maintenance"],
            "machine_model": "Haas VF-2",
            "created_at": "2024-03-03T00:00:00Z",
        },
    }
    for reel_id, body in reels.items():
        response = client.put(f"/index/{reel_id}", json=body)
        assert response.status_code == 200
        assert response.json() == {"document_id": reel_id, "indexed": True}


def test_api_index_search_autocomplete_metrics() -> None:
    client = _client(rate_limit_max=100)
    _index(client)

    health = client.get("/health")
    assert health.status_code == 200
    assert health.json()["documents"] == 3

    search = client.post(
        "/search",
        json={"query": "lathe", "filters": {"tags": ["Safety"]}, "sort_order": "DESC"},
        headers={"X-Session-Id": "s1"},
    )
    assert search.status_code == 200
    payload = search.json()
    assert [item["document_id"] for item in payload["results"]] == ["r1", "r2"]
    assert payload["results"][0]["created_at"].startswith("2024-03-01")
    assert payload["pagination"]["total"] == 2
    assert {"dimension": "machine_model", "value": "Lathe", "count": 2} in payload["facets"]

    autocomplete = client.post("/autocomplete", json={"query": "main", "types": ["tag"]})
    assert autocomplete.status_code == 200
    assert [item["value"] for item in autocomplete.json()["suggestions"]] == ["Maintenance"]

    assert client.post(
        "/analytics", json={"query": "bandsaw", "result_count": 0}
    ).status_code == 202
    assert client.post(
        "/analytics",
        json={"query": "lathe", "clicked_result_id": "r1", "clicked_result_position": 0},
    ).status_code == 202
    assert client.post(
        "/analytics/click",
        json={
            "document_id": "r2",
            "position": 1,
            "query": "lat",
            "suggestion": {"type": "machine_model", "value": "Lathe"},
        },
    ).status_code == 202
    client.app.state.service.recorder.flush(timeout=2)

    metrics = client.get("/metrics").json()
    assert metrics["total_queries"] == 2
    assert metrics["click_through_rate"] == 1.0
    assert metrics["zero_result_rate"] == 0.5

    assert client.delete("/analytics").json() == {"cleared": True}
    assert client.get("/metrics").json()["total_queries"] == 0


def test_api_rejects_invalid_requests_with_unified_errors() -> None:
    client = _client()

    unknown_filter = client.post("/search", json={"filters": {"colour": "red"}})
    assert unknown_filter.status_code == 400
    body = unknown_filter.json()
    assert body["kind"] == "invalid_query"
    assert body["code"] == 400
    assert body["ts"]

    too_many = client.post("/search", json={"limit": 1000})
    assert too_many.status_code == 400
    assert "limit" in too_many.json()["msg"]

    empty_prefix = client.post("/autocomplete", json={"query": ""})
    assert empty_prefix.status_code == 400

    bad_reel = client.put("/index/r1", json={"title": "No duration", "duration_seconds": 0})
    assert bad_reel.status_code == 400

    blank_title = client.put("/index/r1", json={"title": "   ", "duration_seconds": 30})
    assert blank_title.status_code == 400
    assert blank_title.json()["kind"] == "invalid_query"
    assert "empty title" in blank_title.json()["msg"]

    missing = client.delete("/index/missing")
    assert missing.status_code == 404
    assert missing.json()["kind"] == "not_found"
    assert missing.json()["code"] == 404

    mixed_dates = client.post(
        "/search",
        json={
            "filters": {
                "date_range": {"start": "2024-01-01T00:00:00", "end": "2024-02-01T00:00:00Z"}
            }
        },
    )
    assert mixed_dates.status_code == 200


def test_api_rate_limits_per_client() -> None:
    client = _client(rate_limit_max=2, rate_limit_window_seconds=60)

    assert client.post("/search", json={}).status_code == 200
    assert client.post("/autocomplete", json={"types": ["tag"]}).status_code == 200
    limited = client.post("/search", json={})

    assert limited.status_code == 429
    assert limited.json()["kind"] == "rate_limited"
    assert int(limited.headers["Retry-After"]) >= 1


def test_api_remove_document() -> None:
    client = _client()
    _index(client)

    removed = client.delete("/index/r3")
    assert removed.status_code == 200
    assert client.post("/search", json={"query": "spindle"}).json()["results"] == []


def test_api_sync_skips_invalid_reels() -> None:
    client = _client()

    response = client.post(
        "/index/sync",
        json={
            "documents": [
                {"id": "r1", "title": "Lathe Safety Check", "duration_seconds": 90},
                {"id": "r2", "title": "Broken upload", "duration_seconds": 0},
                {"id": "r3", "title": "Mill Spindle Warmup", "duration_seconds": 60},
            ]
        },
    )

    assert response.status_code == 200
    assert response.json() == {"synced": 2, "errors": 1}
    assert client.get("/health").json()["documents"] == 2
