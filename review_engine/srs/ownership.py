"""Card ownership checks run before any review is written."""

import logging
from collections.abc import Iterable

from sqlalchemy import and_, select
from sqlalchemy.ext.asyncio import AsyncSession

from review_engine.errors import CardNotFound
from review_engine.models.card import Card

logger = logging.getLogger(__name__)


def unique_card_ids(card_ids: Iterable[str]) -> list[str]:
    """De-duplicate card ids, keeping first-seen order."""
    return list(dict.fromkeys(card_ids))


async def find_owned_card_ids(
    db: AsyncSession,
    user_id: str,
    card_ids: Iterable[str],
    lock: bool = False,
) -> set[str]:
    """Return the subset of ``card_ids`` owned by ``user_id`` and not soft-deleted.

    Issues a single read against the distinct set of ids. With ``lock`` the owned
    card rows are selected FOR UPDATE, which serializes concurrent batches on the
    same cards even before any stats row exists for them.
    """
    ids = unique_card_ids(card_ids)
    if not ids:
        return set()

    stmt = select(Card.id).where(
        and_(
            Card.owner_id == user_id,
            Card.id.in_(ids),
            Card.deleted_at.is_(None),
        )
    )
    if lock:
        stmt = stmt.with_for_update()
    result = await db.execute(stmt)
    return set(result.scalars().all())


async def ensure_cards_owned(
    db: AsyncSession,
    user_id: str,
    card_ids: Iterable[str],
    lock: bool = False,
) -> list[str]:
    """Check that every card in ``card_ids`` belongs to ``user_id``.

    Returns:
        The distinct card ids in first-seen order.

    Raises:
        CardNotFound: naming every id that is missing, deleted, or owned by someone else.
    """
    ids = unique_card_ids(card_ids)
    owned = await find_owned_card_ids(db, user_id, ids, lock=lock)
    missing = [card_id for card_id in ids if card_id not in owned]
    if missing:
        logger.info("Rejecting batch for user %s: %d card(s) not owned", user_id, len(missing))
        raise CardNotFound(missing)
    return ids
