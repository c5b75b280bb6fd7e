"""Error kinds surfaced by the search core."""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    INVALID_QUERY = "invalid_query"
    RATE_LIMITED = "rate_limited"
    INDEX_UNAVAILABLE = "index_unavailable"
    PERMISSION_DENIED = "permission_denied"
    UNKNOWN = "unknown"


class SearchError(Exception):
    """Base class for every error the core raises to its callers."""

    kind: ErrorKind = ErrorKind.UNKNOWN

    def __init__(self, message: str, *, hint: str = "") -> None:
        super().__init__(message)
        self.message = message
        self.hint = hint

    def to_dict(self) -> dict[str, str]:
        return {"kind": self.kind.value, "msg": self.message, "hint": self.hint}


class InvalidQuery(SearchError):
    """Malformed or out-of-bounds query, filter or suggestion request."""

    kind = ErrorKind.INVALID_QUERY


class RateLimited(SearchError):
    """Caller exceeded its request budget and must back off."""

    kind = ErrorKind.RATE_LIMITED

    def __init__(self, message: str, *, retry_after: float, hint: str = "") -> None:
        super().__init__(message, hint=hint or f"Retry after {retry_after:.1f}s")
        self.retry_after = retry_after


class IndexUnavailable(SearchError):
    """The document store failed or timed out."""

    kind = ErrorKind.INDEX_UNAVAILABLE


class PermissionDenied(SearchError):
    """Filters reference a scope the caller cannot access."""

    kind = ErrorKind.PERMISSION_DENIED


class UnknownSearchError(SearchError):
    kind = ErrorKind.UNKNOWN
