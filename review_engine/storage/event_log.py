"""Storage contract used by the review engine: stats reads and event appends."""

import logging
from collections.abc import Iterable, Sequence

from sqlalchemy import and_, select
from sqlalchemy.ext.asyncio import AsyncSession

from review_engine.models.review_event import ReviewEvent
from review_engine.models.review_stats import ReviewStats
from review_engine.storage.projection import refresh_stats

logger = logging.getLogger(__name__)


async def load_stats(
    db: AsyncSession,
    user_id: str,
    card_ids: Iterable[str],
    lock: bool = True,
) -> dict[str, ReviewStats]:
    """Fetch existing ReviewStats for the given cards in one read, keyed by card id.

    With ``lock`` the rows are selected FOR UPDATE so concurrent batches touching
    the same cards serialize until this transaction commits. Backends without
    row locks (SQLite) ignore the clause and serialize writers instead.
    """
    ids = list(dict.fromkeys(card_ids))
    if not ids:
        return {}

    stmt = select(ReviewStats).where(
        and_(ReviewStats.user_id == user_id, ReviewStats.card_id.in_(ids))
    )
    if lock:
        stmt = stmt.with_for_update()
    result = await db.execute(stmt)
    return {row.card_id: row for row in result.scalars().all()}


async def append_events(db: AsyncSession, events: Sequence[ReviewEvent]) -> int:
    """Insert review events in bulk and refresh the derived stats they touch.

    Events for a single batch always share one user. Does not commit.
    """
    if not events:
        return 0

    db.add_all(events)
    await db.flush()

    by_user: dict[str, list[str]] = {}
    for event in events:
        by_user.setdefault(event.user_id, []).append(event.card_id)
    for user_id, card_ids in by_user.items():
        await refresh_stats(db, user_id, card_ids)

    logger.debug("Appended %d review event(s)", len(events))
    return len(events)
