"""Configuration models for the search core."""

from __future__ import annotations

from pydantic import BaseModel, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class QueryConfig(BaseModel):
    """Configures query validation and normalization."""

    min_query_length: int = Field(default=0, ge=0)
    max_query_length: int = Field(default=256, ge=1)
    default_status: str | None = "published"

    @model_validator(mode="after")
    def _check_bounds(self) -> "QueryConfig":
        if self.min_query_length > self.max_query_length:
            raise ValueError("min_query_length must not exceed max_query_length")
        return self


class RankingConfig(BaseModel):
    """Per-field relevance weights and snippet settings.

    The weights are tunable defaults rather than fixed constants; adjust them
    against real query logs.
    """

    title_weight: float = Field(default=10.0, ge=0.0)
    description_weight: float = Field(default=5.0, ge=0.0)
    tag_weight: float = Field(default=3.0, ge=0.0)
    machine_model_weight: float = Field(default=2.0, ge=0.0)
    process_type_weight: float = Field(default=2.0, ge=0.0)
    min_score: float = Field(default=0.0, ge=0.0)
    snippet_words: int = Field(default=30, ge=5)


class SuggestionConfig(BaseModel):
    """Composite-score weights for autocomplete ranking."""

    similarity_weight: float = Field(default=1.0, ge=0.0)
    usage_weight: float = Field(default=1.0, ge=0.0)
    recency_weight: float = Field(default=1.0, ge=0.0)
    recency_half_life_days: float = Field(default=30.0, gt=0.0)
    max_edit_distance: int = Field(default=2, ge=0)
    fuzzy_min_prefix: int = Field(default=3, ge=1)
    default_limit: int = Field(default=10, ge=1)
    max_limit: int = Field(default=50, ge=1)


class SessionConfig(BaseModel):
    """Debounce and timeout settings for interactive sessions."""

    debounce_ms: int = Field(default=300, ge=0)
    request_timeout_seconds: float = Field(default=5.0, gt=0.0)
    default_limit: int = Field(default=10, ge=1)


class SearchConfig(BaseModel):
    """Request-level limits and store retry policy."""

    default_limit: int = Field(default=10, ge=1)
    max_limit: int = Field(default=100, ge=1)
    retry_backoff_seconds: float = Field(default=0.1, ge=0.0)
    parallel_workers: int = Field(default=2, ge=1)
    suggestion_limit: int = Field(default=10, ge=1)


class ServiceSettings(BaseSettings):
    """Process-level settings read from the environment (``REEL_SEARCH_*``)."""

    model_config = SettingsConfigDict(
        env_prefix="REEL_SEARCH_", env_file=".env", extra="ignore"
    )

    rate_limit_max: int = 50
    rate_limit_window_seconds: float = 1.0
    default_limit: int = 10
    max_limit: int = 100
    request_timeout_seconds: float = 5.0
    debounce_ms: int = 300
    log_level: str = "INFO"

    def search_config(self) -> SearchConfig:
        return SearchConfig(default_limit=self.default_limit, max_limit=self.max_limit)

    def session_config(self) -> SessionConfig:
        return SessionConfig(
            debounce_ms=self.debounce_ms,
            request_timeout_seconds=self.request_timeout_seconds,
            default_limit=self.default_limit,
        )
