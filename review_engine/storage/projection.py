"""Derived per-card review stats.

``review_stats`` is a materialized view over ``review_events``: whenever events
are appended, the rows for the touched (card, user) pairs are recomputed from
the full event log inside the same transaction. Nothing else writes stats.
"""

import logging
from collections.abc import Iterable, Sequence
from datetime import timedelta
from itertools import groupby
from typing import Any

from sqlalchemy import and_, select
from sqlalchemy.ext.asyncio import AsyncSession

from review_engine.models.review_event import ReviewEvent
from review_engine.models.review_stats import ReviewStats
from review_engine.srs.sm2 import is_success

logger = logging.getLogger(__name__)


def fold_events(events: Sequence[ReviewEvent]) -> dict[str, Any]:
    """Summarize one card's events, oldest first, into ReviewStats column values."""
    if not events:
        raise ValueError("cannot summarize an empty event stream")

    successes = 0
    streak = 0
    for event in events:
        if is_success(event.outcome):
            successes += 1
            streak += 1
        else:
            streak = 0

    total = len(events)
    last = events[-1]
    average_interval = sum(e.next_interval_days for e in events) / total

    return {
        "total_reviews": total,
        "successes": successes,
        "consecutive_successes": streak,
        "last_outcome": last.outcome,
        "last_interval_days": last.next_interval_days,
        "ease_factor": last.ease_factor,
        "last_reviewed_at": last.reviewed_at,
        "next_review_at": last.reviewed_at + timedelta(days=last.next_interval_days),
        "aggregates": {
            "average_interval": round(average_interval, 2),
            "success_rate": round(successes / total, 3),
            "current_streak": streak,
        },
    }


async def refresh_stats(
    db: AsyncSession,
    user_id: str,
    card_ids: Iterable[str],
) -> list[ReviewStats]:
    """Recompute ReviewStats rows for ``card_ids`` from the event log.

    Must run in the transaction that appended the events; the caller commits.
    """
    ids = list(dict.fromkeys(card_ids))
    if not ids:
        return []

    events_stmt = (
        select(ReviewEvent)
        .where(and_(ReviewEvent.user_id == user_id, ReviewEvent.card_id.in_(ids)))
        .order_by(ReviewEvent.card_id, ReviewEvent.reviewed_at, ReviewEvent.id)
    )
    events = (await db.execute(events_stmt)).scalars().all()

    stats_stmt = select(ReviewStats).where(
        and_(ReviewStats.user_id == user_id, ReviewStats.card_id.in_(ids))
    )
    existing = {row.card_id: row for row in (await db.execute(stats_stmt)).scalars().all()}

    refreshed: list[ReviewStats] = []
    for card_id, card_events in groupby(events, key=lambda e: e.card_id):
        values = fold_events(list(card_events))
        row = existing.get(card_id)
        if row is None:
            row = ReviewStats(card_id=card_id, user_id=user_id, **values)
            db.add(row)
        else:
            for column, value in values.items():
                setattr(row, column, value)
        refreshed.append(row)

    await db.flush()
    logger.debug("Refreshed stats for user %s: %d card(s)", user_id, len(refreshed))
    return refreshed
