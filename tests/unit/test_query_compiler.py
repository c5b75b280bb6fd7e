from datetime import datetime, timezone

import pytest

from reel_search.config import QueryConfig
from reel_search.errors import InvalidQuery, PermissionDenied
from reel_search.query.compiler import AccessScope, QueryCompiler
from reel_search.query.models import FilterCriteria, SearchRequest, parse_model
from reel_search.types import FacetDimension


def test_compile_normalizes_text_and_deduplicates_tokens() -> None:
    plan = QueryCompiler().compile("  CNC   mill  cnc ")

    assert plan.text == "cnc mill cnc"
    assert plan.tokens == ("cnc", "mill")
    assert not plan.is_browse


def test_compile_defaults_status_to_published() -> None:
    compiler = QueryCompiler()

    assert compiler.compile("").status == "published"
    assert compiler.compile("", FilterCriteria(status="Draft")).status == "draft"
    assert QueryCompiler(QueryConfig(default_status=None)).compile("").status is None


def test_compile_falls_back_to_filter_query() -> None:
    plan = QueryCompiler().compile("", FilterCriteria(query="Lathe"))

    assert plan.tokens == ("lathe",)


def test_compile_rejects_out_of_bounds_query_length() -> None:
    compiler = QueryCompiler(QueryConfig(min_query_length=2, max_query_length=10))

    with pytest.raises(InvalidQuery):
        compiler.compile("a")
    with pytest.raises(InvalidQuery) as excinfo:
        compiler.compile("x" * 11)
    assert excinfo.value.hint


def test_compile_casefolds_filters_and_sorts_tags() -> None:
    plan = QueryCompiler().compile(
        "",
        FilterCriteria(tags=["Setup", " safety ", "SAFETY"], machine_model=" Lathe "),
    )

    assert plan.tags == ("safety", "setup")
    assert plan.machine_model == "lathe"


def test_equal_inputs_compile_to_equal_hashable_plans() -> None:
    compiler = QueryCompiler()
    left = compiler.compile("mill", FilterCriteria(tags=["b", "a"]))
    right = compiler.compile("MILL", FilterCriteria(tags=["a", "b"]))

    assert left == right
    assert len({left, right}) == 1


def test_without_drops_only_the_named_dimension() -> None:
    plan = QueryCompiler().compile(
        "mill", FilterCriteria(tags=["Safety"], machine_model="Lathe")
    )

    relaxed = plan.without(FacetDimension.MACHINE_MODEL)
    assert relaxed.machine_model is None
    assert relaxed.tags == ("safety",)
    assert plan.without(FacetDimension.TAGS).tags == ()


def test_access_scope_rejects_restricted_filters() -> None:
    compiler = QueryCompiler()
    scope = AccessScope(visibilities=frozenset({"public"}), statuses=frozenset({"published"}))

    compiler.compile("", FilterCriteria(visibility="Public"), scope=scope)
    with pytest.raises(PermissionDenied):
        compiler.compile("", FilterCriteria(visibility="private"), scope=scope)
    with pytest.raises(PermissionDenied):
        compiler.compile("", FilterCriteria(status="draft"), scope=scope)


def test_plan_matches_tags_with_or_and_dimensions_with_and(make_doc) -> None:
    compiler = QueryCompiler()
    doc = make_doc("d1", "Lathe Tool Change", tags={"Tooling"}, machine_model="Lathe")

    assert compiler.compile("", FilterCriteria(tags=["safety", "tooling"])).matches(doc)
    assert not compiler.compile(
        "", FilterCriteria(tags=["tooling"], machine_model="Mill")
    ).matches(doc)
    assert compiler.compile("tool", FilterCriteria(machine_model="LATHE")).matches(doc)
    assert not compiler.compile("grinder").matches(doc)


def test_plan_applies_duration_and_date_bounds(make_doc) -> None:
    compiler = QueryCompiler()
    doc = make_doc(
        "d1",
        "Short clip",
        duration_seconds=45,
        created_at=datetime(2024, 3, 1, 12, 0),
    )

    within = FilterCriteria.model_validate(
        {
            "duration_range": {"min": 30, "max": 60},
            "date_range": {"start": "2024-03-01T00:00:00Z", "end": "2024-03-02T00:00:00Z"},
        }
    )
    assert compiler.compile("", within).matches(doc)

    too_long = FilterCriteria.model_validate({"duration_range": {"min": 50}})
    assert not compiler.compile("", too_long).matches(doc)

    too_late = FilterCriteria.model_validate(
        {"date_range": {"end": datetime(2024, 2, 1, tzinfo=timezone.utc)}}
    )
    assert not compiler.compile("", too_late).matches(doc)


def test_unknown_filter_keys_are_rejected_at_the_boundary() -> None:
    with pytest.raises(InvalidQuery) as excinfo:
        parse_model(SearchRequest, {"query": "mill", "filters": {"colour": "red"}})

    assert "colour" in excinfo.value.message


def test_reversed_ranges_are_invalid() -> None:
    with pytest.raises(InvalidQuery):
        parse_model(SearchRequest, {"filters": {"duration_range": {"min": 90, "max": 30}}})
    with pytest.raises(InvalidQuery):
        parse_model(
            FilterCriteria,
            {"date_range": {"start": "2024-05-01T00:00:00Z", "end": "2024-01-01T00:00:00Z"}},
        )


def test_naive_date_bounds_are_read_as_utc() -> None:
    request = parse_model(
        SearchRequest,
        {"filters": {"date_range": {"start": "2024-01-01T00:00:00", "end": "2024-02-01T00:00:00Z"}}},
    )

    assert request.filters.date_range.start == datetime(2024, 1, 1, tzinfo=timezone.utc)
    assert request.filters.date_range.end == datetime(2024, 2, 1, tzinfo=timezone.utc)
    with pytest.raises(InvalidQuery):
        parse_model(
            FilterCriteria,
            {"date_range": {"start": "2024-03-01T00:00:00", "end": "2024-02-01T00:00:00+00:00"}},
        )


def test_search_request_accepts_uppercase_sort_order() -> None:
    request = parse_model(SearchRequest, {"sort_by": "title", "sort_order": "ASC"})

    assert request.sort_order.value == "asc"


def test_filter_snapshot_holds_only_populated_fields() -> None:
    criteria = FilterCriteria(tags=["Safety"], machine_model="Lathe")

    assert criteria.snapshot() == {"tags": ["Safety"], "machine_model": "Lathe"}
    assert FilterCriteria().is_empty()
