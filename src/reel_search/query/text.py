"""Tokenization and term matching shared by the store, ranking and highlighting."""

from __future__ import annotations

import html
import re
from collections.abc import Iterable

_TOKEN_PATTERN = re.compile(r"\w+", flags=re.UNICODE)
_WHITESPACE = re.compile(r"\s+")


def normalize_text(text: str) -> str:
    return _WHITESPACE.sub(" ", text).strip().casefold()


def tokenize(text: str | None) -> list[str]:
    if not text:
        return []
    return [token.casefold() for token in _TOKEN_PATTERN.findall(text)]


def unique_tokens(text: str) -> tuple[str, ...]:
    seen: dict[str, None] = {}
    for token in tokenize(text):
        seen.setdefault(token, None)
    return tuple(seen)


def token_matches(term: str, word: str) -> bool:
    """A query term matches a word when it equals or prefixes it."""
    return word.startswith(term)


def field_matches(terms: Iterable[str], text: str | None) -> bool:
    words = tokenize(text)
    if not words:
        return False
    return any(token_matches(term, word) for term in terms for word in words)


def any_field_matches(terms: Iterable[str], texts: Iterable[str | None]) -> bool:
    terms = tuple(terms)
    return any(field_matches(terms, text) for text in texts)


def highlight(text: str, terms: Iterable[str], *, tag: str = "mark") -> str:
    """Wrap every word matched by ``terms`` in ``<tag>`` markers.

    The surrounding text is HTML-escaped so only the markers are live markup.
    """

    terms = tuple(terms)
    parts: list[str] = []
    last = 0
    for match in _TOKEN_PATTERN.finditer(text):
        parts.append(html.escape(text[last : match.start()]))
        word = html.escape(match.group(0))
        if any(token_matches(term, match.group(0).casefold()) for term in terms):
            word = f"<{tag}>{word}</{tag}>"
        parts.append(word)
        last = match.end()
    parts.append(html.escape(text[last:]))
    return "".join(parts)


def snippet(text: str, terms: Iterable[str], *, max_words: int) -> str:
    """Return a highlighted window of ``max_words`` words around the first match."""

    terms = tuple(terms)
    words = text.split()
    if len(words) <= max_words:
        return highlight(text, terms)

    first = 0
    for index, word in enumerate(words):
        if any(token_matches(term, part) for term in terms for part in tokenize(word)):
            first = index
            break

    start = max(0, min(first - max_words // 3, len(words) - max_words))
    window = " ".join(words[start : start + max_words])
    prefix = "... " if start > 0 else ""
    suffix = " ..." if start + max_words < len(words) else ""
    return prefix + highlight(window, terms) + suffix
