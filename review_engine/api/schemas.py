"""Pydantic schemas for API request/response models."""

from datetime import UTC, datetime
from typing import Annotated, Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, JsonValue, PlainSerializer, field_validator, model_validator
from pydantic_core import PydanticCustomError

from review_engine.config import settings, to_naive_utc
from review_engine.srs.history import EventQuery, StatsQuery
from review_engine.srs.session import ReviewEntry, ReviewSessionCommand
from review_engine.srs.sm2 import ReviewOutcome


def _as_utc_iso(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).isoformat()


# Stored datetimes are naive UTC; emit them with an explicit offset
UtcDatetime = Annotated[datetime, PlainSerializer(_as_utc_iso, return_type=str)]


def format_validation_errors(errors: list[dict[str, Any]]) -> str:
    """Join pydantic error entries into one human-readable message."""
    messages = []
    for error in errors:
        loc = [str(part) for part in error.get("loc", ()) if part not in ("body", "query")]
        prefix = f"{'.'.join(loc)}: " if loc else ""
        messages.append(f"{prefix}{error.get('msg', 'Invalid value.')}")
    return "; ".join(messages)


# --- Review sessions ---


class ReviewEntryIn(BaseModel):
    """One review recorded during a session."""

    card_id: UUID
    outcome: ReviewOutcome
    response_time_ms: int | None = Field(default=None, gt=0)
    prev_interval_days: int | None = Field(default=None, ge=0)
    next_interval_days: int | None = Field(default=None, ge=0)
    was_learning_step: bool | None = None
    payload: JsonValue | None = None


class SubmitSessionRequest(BaseModel):
    """Request to log every review from a completed study session."""

    session_id: UUID
    started_at: datetime
    completed_at: datetime
    reviews: list[ReviewEntryIn] = Field(min_length=1, max_length=settings.max_reviews_per_session)

    @model_validator(mode="after")
    def check_session_window(self) -> "SubmitSessionRequest":
        if to_naive_utc(self.completed_at) < to_naive_utc(self.started_at):
            raise PydanticCustomError("session_window", "Completed at must not be before started at.")
        return self

    def to_command(self) -> ReviewSessionCommand:
        return ReviewSessionCommand(
            session_id=str(self.session_id),
            started_at=to_naive_utc(self.started_at),
            completed_at=to_naive_utc(self.completed_at),
            reviews=[
                ReviewEntry(
                    card_id=str(entry.card_id),
                    outcome=entry.outcome,
                    response_time_ms=entry.response_time_ms,
                    prev_interval_days=entry.prev_interval_days,
                    next_interval_days=entry.next_interval_days,
                    was_learning_step=bool(entry.was_learning_step),
                    payload=entry.payload,
                )
                for entry in self.reviews
            ],
        )


class SubmitSessionResponse(BaseModel):
    logged: int


# --- Listing ---


class PageInfo(BaseModel):
    next_cursor: str | None
    has_more: bool


class ReviewEventOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    card_id: str
    user_id: str
    session_id: str | None
    outcome: str
    grade: int
    response_time_ms: int | None
    prev_interval_days: int | None
    next_interval_days: int
    ease_factor: float
    was_learning_step: bool
    payload: Any
    reviewed_at: UtcDatetime


class ReviewEventListResponse(BaseModel):
    data: list[ReviewEventOut]
    page: PageInfo


class ReviewStatsOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    card_id: str
    user_id: str
    total_reviews: int
    successes: int
    consecutive_successes: int
    last_outcome: str | None
    last_interval_days: int | None
    ease_factor: float | None
    next_review_at: UtcDatetime | None
    last_reviewed_at: UtcDatetime | None
    aggregates: dict[str, Any] | None


class ReviewStatsListResponse(BaseModel):
    data: list[ReviewStatsOut]
    page: PageInfo


class _ListQuery(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    limit: int = settings.default_page_limit
    cursor: str | None = None

    @field_validator("limit", mode="before")
    @classmethod
    def parse_limit(cls, value: Any) -> int:
        if value is None or value == "":
            return settings.default_page_limit
        try:
            limit = int(value)
        except (TypeError, ValueError):
            limit = 0
        if not 1 <= limit <= settings.max_page_limit:
            raise PydanticCustomError(
                "limit_range",
                "Limit must be between 1 and {max_limit}.",
                {"max_limit": settings.max_page_limit},
            )
        return limit

    @field_validator("cursor", mode="before")
    @classmethod
    def blank_cursor(cls, value: Any) -> Any:
        return value or None


class ReviewEventsQuery(_ListQuery):
    card_id: UUID | None = None
    from_: datetime | None = Field(default=None, alias="from")
    to: datetime | None = None

    @field_validator("card_id", "from_", "to", mode="before")
    @classmethod
    def blank_to_none(cls, value: Any) -> Any:
        return value or None

    def to_query(self) -> EventQuery:
        return EventQuery(
            card_id=str(self.card_id) if self.card_id else None,
            from_=self.from_,
            to=self.to,
            limit=self.limit,
            cursor=self.cursor,
        )


class ReviewStatsQuery(_ListQuery):
    card_id: UUID | None = None
    next_review_before: datetime | None = None

    @field_validator("card_id", "next_review_before", mode="before")
    @classmethod
    def blank_to_none(cls, value: Any) -> Any:
        return value or None

    def to_query(self) -> StatsQuery:
        return StatsQuery(
            card_id=str(self.card_id) if self.card_id else None,
            next_review_before=self.next_review_before,
            limit=self.limit,
            cursor=self.cursor,
        )
