"""Shared autocomplete vocabulary with commutative usage counters."""

from __future__ import annotations

import threading
from collections.abc import Iterable
from datetime import datetime

from reel_search.types import IndexedDocument, SuggestionType, VocabularyEntry

_Key = tuple[SuggestionType, str]


class SuggestionVocabulary:
    """Thread-safe store of suggestion terms shared across sessions.

    Usage updates are increments, never replacements, so concurrent writers
    may apply them in any order and converge on the same counts.
    """

    def __init__(self) -> None:
        self._entries: dict[_Key, VocabularyEntry] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def add(self, kind: SuggestionType, value: str) -> None:
        value = value.strip()
        if not value:
            return
        with self._lock:
            self._entries.setdefault((kind, value), VocabularyEntry(type=kind, value=value))

    def increment(
        self,
        kind: SuggestionType,
        value: str,
        *,
        at: datetime | None = None,
        by: int = 1,
    ) -> None:
        value = value.strip()
        if not value:
            return
        with self._lock:
            entry = self._entries.setdefault(
                (kind, value), VocabularyEntry(type=kind, value=value)
            )
            entry.usage_count += by
            if at is not None and (entry.last_used_at is None or at > entry.last_used_at):
                entry.last_used_at = at

    def apply(self, increments: Iterable[tuple[SuggestionType, str, datetime | None]]) -> None:
        """Apply a batch of ``(type, value, used_at)`` increments."""
        for kind, value, used_at in increments:
            self.increment(kind, value, at=used_at)

    def get(self, kind: SuggestionType, value: str) -> VocabularyEntry | None:
        with self._lock:
            entry = self._entries.get((kind, value.strip()))
            return None if entry is None else _copy(entry)

    def find(self, value: str) -> list[VocabularyEntry]:
        """Entries of any type whose value equals ``value`` case-insensitively."""
        needle = value.strip().casefold()
        with self._lock:
            return [
                _copy(entry)
                for entry in self._entries.values()
                if entry.value.casefold() == needle
            ]

    def entries(self, kinds: Iterable[SuggestionType] | None = None) -> list[VocabularyEntry]:
        wanted = set(kinds) if kinds is not None else None
        with self._lock:
            return [
                _copy(entry)
                for entry in self._entries.values()
                if wanted is None or entry.type in wanted
            ]

    def seed_from_documents(self, documents: Iterable[IndexedDocument]) -> None:
        """Register corpus terms (tags, categoricals, authors, titles)."""
        for doc in documents:
            for tag in doc.tags:
                self.add(SuggestionType.TAG, tag)
            if doc.machine_model:
                self.add(SuggestionType.MACHINE_MODEL, doc.machine_model)
            if doc.process_type:
                self.add(SuggestionType.PROCESS_TYPE, doc.process_type)
            if doc.tooling:
                self.add(SuggestionType.TOOLING, doc.tooling)
            if doc.author_id:
                self.add(SuggestionType.AUTHOR, doc.author_id)
            self.add(SuggestionType.TITLE, doc.title)


def _copy(entry: VocabularyEntry) -> VocabularyEntry:
    return VocabularyEntry(
        type=entry.type,
        value=entry.value,
        usage_count=entry.usage_count,
        last_used_at=entry.last_used_at,
    )
