"""Batch review session processor.

Takes every review recorded during one study session, checks the caller owns
all referenced cards, advances each card's SM-2 state, and appends one
immutable review event per entry. Either the whole batch is logged or nothing
is.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from review_engine.config import settings, utcnow
from review_engine.errors import InvalidInput, ReviewEngineError, StorageFailure, Unauthenticated
from review_engine.models.review_event import ReviewEvent
from review_engine.models.review_stats import ReviewStats
from review_engine.srs.ownership import ensure_cards_owned
from review_engine.srs.sm2 import MemoryState, ReviewOutcome, advance
from review_engine.storage.event_log import append_events, load_stats

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReviewEntry:
    """One review outcome as submitted by the client."""

    card_id: str
    outcome: ReviewOutcome | str
    response_time_ms: int | None = None
    prev_interval_days: int | None = None
    next_interval_days: int | None = None  # client hint only; the computed interval is stored
    was_learning_step: bool = False
    payload: Any = None


@dataclass
class ReviewSessionCommand:
    session_id: str
    started_at: datetime
    completed_at: datetime
    reviews: list[ReviewEntry] = field(default_factory=list)


@dataclass
class ReviewSessionResult:
    logged: int


@dataclass
class CardProgress:
    """Scheduling state of a card as it evolves within one batch."""

    state: MemoryState
    last_interval_days: int | None


def initial_state() -> MemoryState:
    return MemoryState(ease_factor=settings.default_ease_factor)


def progress_from_stats(stats: ReviewStats | None) -> CardProgress:
    """Build the starting progress for a card from its stats row, if any."""
    if stats is None:
        return CardProgress(state=initial_state(), last_interval_days=None)

    state = MemoryState(
        interval_days=stats.last_interval_days or 0,
        repetition_count=stats.consecutive_successes,
        ease_factor=stats.ease_factor or settings.default_ease_factor,
    )
    return CardProgress(state=state, last_interval_days=stats.last_interval_days)


def build_event(
    user_id: str,
    session_id: str | None,
    entry: ReviewEntry,
    progress: CardProgress,
    reviewed_at: datetime,
) -> tuple[ReviewEvent, CardProgress]:
    """Schedule one entry and return its event plus the card's updated progress."""
    outcome = ReviewOutcome.parse(entry.outcome)
    new_state = advance(progress.state, outcome)

    prev_interval = entry.prev_interval_days
    if prev_interval is None:
        prev_interval = progress.last_interval_days

    event = ReviewEvent(
        card_id=entry.card_id,
        user_id=user_id,
        session_id=session_id,
        outcome=outcome.value,
        grade=outcome.grade,
        response_time_ms=entry.response_time_ms,
        prev_interval_days=prev_interval,
        next_interval_days=new_state.interval_days,
        ease_factor=new_state.ease_factor,
        was_learning_step=entry.was_learning_step,
        payload=entry.payload,
        reviewed_at=reviewed_at,
    )
    return event, CardProgress(state=new_state, last_interval_days=new_state.interval_days)


async def process_review_session(
    db: AsyncSession,
    user_id: str,
    command: ReviewSessionCommand,
    now: datetime | None = None,
) -> ReviewSessionResult:
    """Validate, schedule, and log a batch of reviews.

    Args:
        db: Database session; committed on success, rolled back on failure.
        user_id: The authenticated caller.
        command: The session and its ordered review entries.
        now: Review timestamp shared by every event in the batch (defaults to utcnow).

    Returns:
        ReviewSessionResult with the number of events logged.

    Raises:
        Unauthenticated: ``user_id`` is empty.
        InvalidInput: too many entries or an unknown outcome.
        CardNotFound: any referenced card is missing or not owned; nothing is written.
        StorageFailure: the database rejected a read or the write.
    """
    reviews = command.reviews
    if not reviews:
        return ReviewSessionResult(logged=0)

    if not user_id:
        raise Unauthenticated()

    if len(reviews) > settings.max_reviews_per_session:
        raise InvalidInput(
            f"Cannot process more than {settings.max_reviews_per_session} reviews at once."
        )

    for entry in reviews:
        ReviewOutcome.parse(entry.outcome)

    logger.info(
        "Processing session %s for user %s: %d review(s)",
        command.session_id,
        user_id,
        len(reviews),
    )

    try:
        card_ids = await ensure_cards_owned(
            db, user_id, (entry.card_id for entry in reviews), lock=True
        )
        stats_by_card = await load_stats(db, user_id, card_ids)

        # Later entries for a card see the state produced by earlier ones
        progress = {card_id: progress_from_stats(stats_by_card.get(card_id)) for card_id in card_ids}

        reviewed_at = now or utcnow()
        events: list[ReviewEvent] = []
        for entry in reviews:
            event, progress[entry.card_id] = build_event(
                user_id, command.session_id, entry, progress[entry.card_id], reviewed_at
            )
            events.append(event)

        logged = await append_events(db, events)
        await db.commit()
    except ReviewEngineError:
        await db.rollback()
        raise
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.error("Storage failure logging session %s for user %s: %s", command.session_id, user_id, exc)
        raise StorageFailure() from exc

    logger.info("Logged %d review event(s) for session %s", logged, command.session_id)
    return ReviewSessionResult(logged=logged)
