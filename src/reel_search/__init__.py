"""Reel Search package."""

from .config import QueryConfig, RankingConfig, SearchConfig, SessionConfig, SuggestionConfig
from .errors import SearchError
from .service import SearchService

__all__ = [
    "QueryConfig",
    "RankingConfig",
    "SearchConfig",
    "SearchError",
    "SearchService",
    "SessionConfig",
    "SuggestionConfig",
]
