"""Facet aggregation with per-dimension filter exclusion."""

from __future__ import annotations

from collections import Counter, defaultdict
from collections.abc import Iterable, Sequence

from reel_search.query.compiler import QueryPlan
from reel_search.store.adapter import DocumentStore
from reel_search.types import Facet, FacetDimension, IndexedDocument

DEFAULT_DIMENSIONS: tuple[FacetDimension, ...] = (
    FacetDimension.TAGS,
    FacetDimension.MACHINE_MODEL,
    FacetDimension.PROCESS_TYPE,
    FacetDimension.TOOLING,
    FacetDimension.SKILL_LEVEL,
)


def count_facets(
    dimension: FacetDimension, documents: Iterable[IndexedDocument]
) -> list[Facet]:
    """Count values of one dimension, sorted ``count desc`` then ``value asc``.

    Values are grouped case-insensitively, the same way filters compare them.
    Each group is shown under its most frequent spelling.
    """

    counts: Counter[str] = Counter()
    spellings: defaultdict[str, Counter[str]] = defaultdict(Counter)
    for document in documents:
        if dimension is FacetDimension.TAGS:
            values: dict[str, str] = {}
            for tag in sorted(document.tags):
                if tag.strip():
                    values.setdefault(tag.casefold(), tag)
        else:
            value = (getattr(document, dimension.value) or "").strip()
            values = {value.casefold(): value} if value else {}
        for key, spelling in values.items():
            counts[key] += 1
            spellings[key][spelling] += 1

    labels = {
        key: min(seen.items(), key=lambda item: (-item[1], item[0]))[0]
        for key, seen in spellings.items()
    }
    ordered = sorted(counts.items(), key=lambda item: (-item[1], labels[item[0]]))
    return [Facet(dimension=dimension, value=labels[key], count=count) for key, count in ordered]


class FacetAggregator:
    """Computes facet counts independently of ranking.

    For each dimension the store is queried with that dimension's own
    predicate removed, so a facet shows what selecting each of its values
    would yield under all the *other* active filters.
    """

    def __init__(
        self,
        store: DocumentStore,
        dimensions: Sequence[FacetDimension] = DEFAULT_DIMENSIONS,
    ) -> None:
        self.store = store
        self.dimensions = tuple(dimensions)

    def aggregate(self, plan: QueryPlan) -> list[Facet]:
        facets: list[Facet] = []
        cache: dict[QueryPlan, list[IndexedDocument]] = {}
        for dimension in self.dimensions:
            relaxed = plan.without(dimension)
            if relaxed not in cache:
                cache[relaxed] = self.store.fetch(relaxed)
            facets.extend(count_facets(dimension, cache[relaxed]))
        return facets
