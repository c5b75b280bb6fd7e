"""Boundary request models validated with Pydantic v2."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from reel_search.errors import InvalidQuery
from reel_search.types import QueryType, SortBy, SortOrder, SuggestionType

_ModelT = TypeVar("_ModelT", bound=BaseModel)


def ensure_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC and convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class DurationRange(BaseModel):
    """Inclusive duration bounds in seconds."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    min: int | None = Field(default=None, ge=0)
    max: int | None = Field(default=None, ge=0)

    @model_validator(mode="after")
    def _ordered(self) -> "DurationRange":
        if self.min is not None and self.max is not None and self.min > self.max:
            raise ValueError("duration_range.min must not exceed duration_range.max")
        return self


class DateRange(BaseModel):
    """Inclusive creation-date bounds."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    start: datetime | None = None
    end: datetime | None = None

    @field_validator("start", "end", mode="after")
    @classmethod
    def _as_utc(cls, value: datetime | None) -> datetime | None:
        return ensure_utc(value) if value is not None else None

    @model_validator(mode="after")
    def _ordered(self) -> "DateRange":
        if self.start is not None and self.end is not None and self.start > self.end:
            raise ValueError("date_range.start must not be after date_range.end")
        return self


class FilterCriteria(BaseModel):
    """One optional field per supported filter dimension.

    Unknown keys are rejected. Tags use OR semantics within the dimension; all
    populated dimensions are combined with AND.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    query: str | None = None
    tags: list[str] = Field(default_factory=list)
    machine_model: str | None = None
    process_type: str | None = None
    tooling: str | None = None
    skill_level: str | None = None
    status: str | None = None
    visibility: str | None = None
    author_id: str | None = None
    duration_range: DurationRange | None = None
    date_range: DateRange | None = None

    @field_validator("tags")
    @classmethod
    def _strip_tags(cls, value: list[str]) -> list[str]:
        return [tag.strip() for tag in value if tag and tag.strip()]

    def is_empty(self) -> bool:
        return not self.snapshot()

    def snapshot(self) -> dict[str, Any]:
        """JSON-friendly dict holding only the populated fields."""
        return self.model_dump(mode="json", exclude_none=True, exclude_defaults=True)


class SearchRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    query: str = ""
    filters: FilterCriteria = Field(default_factory=FilterCriteria)
    sort_by: SortBy = SortBy.RELEVANCE
    sort_order: SortOrder = SortOrder.DESC
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=10, ge=1)
    include_facets: bool = True
    include_suggestions: bool = False

    @field_validator("sort_order", mode="before")
    @classmethod
    def _lower_sort_order(cls, value: Any) -> Any:
        return value.lower() if isinstance(value, str) else value

    @property
    def effective_query(self) -> str:
        return self.query or self.filters.query or ""


class AutocompleteRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    query: str = ""
    types: list[SuggestionType] | None = None
    limit: int | None = Field(default=None, ge=1)


class AnalyticsIngestRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    query: str
    query_type: QueryType = QueryType.TEXT
    filters: dict[str, Any] = Field(default_factory=dict)
    result_count: int = Field(default=0, ge=0)
    execution_time_ms: float = Field(default=0.0, ge=0.0)
    clicked_result_id: str | None = None
    clicked_result_position: int | None = Field(default=None, ge=0)
    session_id: str | None = None


def parse_model(model: type[_ModelT], payload: Any) -> _ModelT:
    """Validate ``payload`` into ``model``, reporting failures as ``InvalidQuery``."""

    if isinstance(payload, model):
        return payload
    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        errors = exc.errors()
        first = errors[0] if errors else {}
        location = ".".join(str(part) for part in first.get("loc", ()))
        message = first.get("msg", "Validation error")
        raise InvalidQuery(
            f"{location}: {message}" if location else message,
            hint="Check request body format and field constraints",
        ) from exc
