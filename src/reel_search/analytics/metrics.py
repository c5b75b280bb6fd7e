"""Aggregate search metrics computed from the analytics event log."""

from __future__ import annotations

from collections import Counter
from collections.abc import Sequence
from dataclasses import asdict, dataclass, field
from typing import Any

from reel_search.types import AnalyticsEvent


@dataclass(slots=True)
class SearchMetrics:
    total_queries: int = 0
    average_execution_time_ms: float = 0.0
    p95_execution_time_ms: float = 0.0
    most_searched_terms: list[dict[str, Any]] = field(default_factory=list)
    popular_filters: list[dict[str, Any]] = field(default_factory=list)
    click_through_rate: float = 0.0
    zero_result_rate: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def summarize(events: Sequence[AnalyticsEvent], *, top_n: int = 10) -> SearchMetrics:
    """Aggregate core search metrics for dashboard display.

    Click events count towards the click-through rate only; every other
    figure is computed over executed queries.
    """

    queries = [event for event in events if not event.is_click]
    clicks = sum(1 for event in events if event.is_click)
    total = len(queries)
    if total == 0:
        return SearchMetrics()

    latencies = sorted(event.execution_time_ms for event in queries)
    p95_index = max(0, int((len(latencies) * 0.95) - 1))

    terms = Counter(event.query for event in queries if event.query.strip())
    most_searched = [
        {"term": term, "count": count}
        for term, count in sorted(terms.items(), key=lambda item: (-item[1], item[0]))[:top_n]
    ]

    filter_counts: Counter[tuple[str, str]] = Counter()
    for event in queries:
        for key, value in event.filters.items():
            values = value if isinstance(value, list) else [value]
            for item in values:
                filter_counts[(key, str(item))] += 1
    popular_filters = [
        {"filter_type": key, "filter_value": value, "count": count}
        for (key, value), count in sorted(
            filter_counts.items(), key=lambda item: (-item[1], item[0])
        )[:top_n]
    ]

    return SearchMetrics(
        total_queries=total,
        average_execution_time_ms=sum(latencies) / total,
        p95_execution_time_ms=latencies[p95_index],
        most_searched_terms=most_searched,
        popular_filters=popular_filters,
        click_through_rate=clicks / total,
        zero_result_rate=sum(1 for event in queries if event.result_count == 0) / total,
    )
