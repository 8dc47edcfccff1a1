"""Cursor-paginated read access to the review event log and derived stats.

Both listings fetch ``limit + 1`` rows: the extra row only signals that another
page exists. The next cursor is the sort key of the last returned row, with a
unique tie-breaker so rows sharing a timestamp are never skipped or repeated.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Generic, TypeVar

from sqlalchemy import Select, and_, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from review_engine.config import settings, to_naive_utc
from review_engine.errors import ErrorCode, InvalidInput, StorageFailure
from review_engine.models.review_event import ReviewEvent
from review_engine.models.review_stats import ReviewStats
from review_engine.srs.cursor import (
    decode_event_cursor,
    decode_stats_cursor,
    encode_event_cursor,
    encode_stats_cursor,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

PAGINATION_OVERFETCH = 1


@dataclass
class Page(Generic[T]):
    items: list[T] = field(default_factory=list)
    next_cursor: str | None = None
    has_more: bool = False


@dataclass
class EventQuery:
    """Filters for the event history, newest first."""

    card_id: str | None = None
    from_: datetime | None = None  # inclusive
    to: datetime | None = None  # inclusive
    limit: int = settings.default_page_limit
    cursor: str | None = None


@dataclass
class StatsQuery:
    """Filters for current stats, soonest due first."""

    card_id: str | None = None
    next_review_before: datetime | None = None  # exclusive
    limit: int = settings.default_page_limit
    cursor: str | None = None


def check_limit(limit: int) -> int:
    if not 1 <= limit <= settings.max_page_limit:
        raise InvalidInput(
            f"Limit must be between 1 and {settings.max_page_limit}.",
            code=ErrorCode.INVALID_QUERY,
        )
    return limit


async def _fetch_page(db: AsyncSession, stmt: Select, limit: int) -> tuple[list, bool]:
    try:
        rows = list((await db.execute(stmt.limit(limit + PAGINATION_OVERFETCH))).scalars().all())
    except SQLAlchemyError as exc:
        logger.error("Storage failure during paginated read: %s", exc)
        raise StorageFailure() from exc
    has_more = len(rows) > limit
    return rows[:limit], has_more


async def list_review_events(
    db: AsyncSession,
    user_id: str,
    query: EventQuery,
) -> Page[ReviewEvent]:
    """List the caller's review events, newest first."""
    limit = check_limit(query.limit)
    # Decode before touching storage so a bad cursor never costs a query
    after = decode_event_cursor(query.cursor) if query.cursor else None

    stmt = select(ReviewEvent).where(ReviewEvent.user_id == user_id)
    if query.card_id:
        stmt = stmt.where(ReviewEvent.card_id == query.card_id)
    if query.from_:
        stmt = stmt.where(ReviewEvent.reviewed_at >= to_naive_utc(query.from_))
    if query.to:
        stmt = stmt.where(ReviewEvent.reviewed_at <= to_naive_utc(query.to))
    if after:
        reviewed_at, event_id = after
        stmt = stmt.where(
            or_(
                ReviewEvent.reviewed_at < reviewed_at,
                and_(ReviewEvent.reviewed_at == reviewed_at, ReviewEvent.id < event_id),
            )
        )
    stmt = stmt.order_by(ReviewEvent.reviewed_at.desc(), ReviewEvent.id.desc())

    items, has_more = await _fetch_page(db, stmt, limit)
    next_cursor = None
    if has_more and items:
        last = items[-1]
        next_cursor = encode_event_cursor(last.reviewed_at, last.id)

    logger.debug("Listed %d review event(s) for user %s (has_more=%s)", len(items), user_id, has_more)
    return Page(items=items, next_cursor=next_cursor, has_more=has_more)


async def list_review_stats(
    db: AsyncSession,
    user_id: str,
    query: StatsQuery,
) -> Page[ReviewStats]:
    """List the caller's per-card stats, soonest next review first.

    Rows without a scheduled next review are not listed.
    """
    limit = check_limit(query.limit)
    after = decode_stats_cursor(query.cursor) if query.cursor else None

    stmt = select(ReviewStats).where(
        and_(ReviewStats.user_id == user_id, ReviewStats.next_review_at.is_not(None))
    )
    if query.card_id:
        stmt = stmt.where(ReviewStats.card_id == query.card_id)
    if query.next_review_before:
        stmt = stmt.where(ReviewStats.next_review_at < to_naive_utc(query.next_review_before))
    if after:
        next_review_at, card_id = after
        stmt = stmt.where(
            or_(
                ReviewStats.next_review_at > next_review_at,
                and_(ReviewStats.next_review_at == next_review_at, ReviewStats.card_id > card_id),
            )
        )
    stmt = stmt.order_by(ReviewStats.next_review_at.asc(), ReviewStats.card_id.asc())

    items, has_more = await _fetch_page(db, stmt, limit)
    next_cursor = None
    if has_more and items:
        last = items[-1]
        next_cursor = encode_stats_cursor(last.next_review_at, last.card_id)

    logger.debug("Listed %d stats row(s) for user %s (has_more=%s)", len(items), user_id, has_more)
    return Page(items=items, next_cursor=next_cursor, has_more=has_more)
