"""Autocomplete ranking over the shared suggestion vocabulary."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime, timezone

from reel_search.config import SuggestionConfig
from reel_search.errors import InvalidQuery
from reel_search.query.compiler import ensure_utc
from reel_search.suggest.vocabulary import SuggestionVocabulary
from reel_search.types import Suggestion, SuggestionType, VocabularyEntry

PREFIX_SIMILARITY = 1.0
SUBSTRING_SIMILARITY = 0.6
FUZZY_SIMILARITY = 0.3


class SuggestionEngine:
    """Ranks vocabulary entries for a partial query.

    Composite score::

        similarity * w_similarity + normalized_usage * w_usage + recency * w_recency

    ``similarity`` is 1.0 for a prefix match, 0.6 for a substring match and a
    scaled 0.3 for a fuzzy match. Fuzzy matching allows one edit per
    ``fuzzy_min_prefix`` typed characters, capped at ``max_edit_distance``. Entries
    with zero similarity are never suggested, however popular they are.
    ``normalized_usage`` divides by the most used matching entry and
    ``recency`` halves every ``recency_half_life_days``.
    """

    def __init__(
        self,
        vocabulary: SuggestionVocabulary,
        config: SuggestionConfig | None = None,
    ) -> None:
        self.vocabulary = vocabulary
        self.config = config or SuggestionConfig()

    def suggest(
        self,
        prefix: str,
        *,
        types: Sequence[SuggestionType] | None = None,
        limit: int | None = None,
        now: datetime | None = None,
    ) -> list[Suggestion]:
        needle = " ".join(prefix.split()).casefold()
        if not needle and not types:
            raise InvalidQuery(
                "Autocomplete needs a prefix or at least one suggestion type",
                hint="Type at least one character or choose suggestion types",
            )
        limit = min(limit or self.config.default_limit, self.config.max_limit)
        now = ensure_utc(now) if now is not None else datetime.now(timezone.utc)

        matched: list[tuple[VocabularyEntry, float]] = []
        for entry in self.vocabulary.entries(types):
            value = self.similarity(needle, entry.value)
            if value > 0.0:
                matched.append((entry, value))
        if not matched:
            return []

        top_usage = max(entry.usage_count for entry, _ in matched)
        suggestions = [
            Suggestion(
                type=entry.type,
                value=entry.value,
                score=(
                    similarity * self.config.similarity_weight
                    + (entry.usage_count / top_usage if top_usage else 0.0)
                    * self.config.usage_weight
                    + self._recency(entry, now) * self.config.recency_weight
                ),
                usage_count=entry.usage_count,
                similarity=similarity,
            )
            for entry, similarity in matched
        ]
        suggestions.sort(key=lambda item: (-item.score, -item.usage_count, item.value, item.type.value))
        return suggestions[:limit]

    def similarity(self, needle: str, value: str) -> float:
        if not needle:
            return PREFIX_SIMILARITY
        candidate = value.casefold()
        if candidate.startswith(needle):
            return PREFIX_SIMILARITY
        if needle in candidate:
            return SUBSTRING_SIMILARITY

        max_distance = min(
            self.config.max_edit_distance, len(needle) // self.config.fuzzy_min_prefix
        )
        if max_distance == 0:
            return 0.0
        distance = min(
            edit_distance(needle, candidate[: len(needle)], max_distance),
            edit_distance(needle, candidate, max_distance),
        )
        if distance > max_distance:
            return 0.0
        return FUZZY_SIMILARITY * (1.0 - distance / (max_distance + 1))

    def _recency(self, entry: VocabularyEntry, now: datetime) -> float:
        if entry.last_used_at is None:
            return 0.0
        age_days = max(0.0, (now - ensure_utc(entry.last_used_at)).total_seconds() / 86400.0)
        return 0.5 ** (age_days / self.config.recency_half_life_days)


def edit_distance(a: str, b: str, cap: int) -> int:
    """Levenshtein distance, returning ``cap + 1`` once it must exceed ``cap``."""

    if abs(len(a) - len(b)) > cap:
        return cap + 1
    previous = list(range(len(b) + 1))
    for i, char_a in enumerate(a, start=1):
        current = [i]
        for j, char_b in enumerate(b, start=1):
            current.append(
                min(
                    previous[j] + 1,
                    current[j - 1] + 1,
                    previous[j - 1] + (char_a != char_b),
                )
            )
        if min(current) > cap:
            return cap + 1
        previous = current
    return min(previous[-1], cap + 1)
