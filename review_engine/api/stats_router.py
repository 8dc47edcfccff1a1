"""API routes for derived per-card review stats."""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from review_engine.api.deps import get_current_user_id, get_stats_query
from review_engine.api.schemas import PageInfo, ReviewStatsListResponse, ReviewStatsOut, ReviewStatsQuery
from review_engine.database import get_session
from review_engine.srs.history import list_review_stats

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/review-stats", tags=["review-stats"])


@router.get("", response_model=ReviewStatsListResponse)
async def get_review_stats(
    user_id: str = Depends(get_current_user_id),
    query: ReviewStatsQuery = Depends(get_stats_query),
    db: AsyncSession = Depends(get_session),
) -> ReviewStatsListResponse:
    """List the caller's per-card stats, soonest next review first."""
    page = await list_review_stats(db, user_id, query.to_query())

    logger.info(
        "api/review-stats status=200 user=%s count=%d has_more=%s",
        user_id,
        len(page.items),
        page.has_more,
    )
    return ReviewStatsListResponse(
        data=[ReviewStatsOut.model_validate(row) for row in page.items],
        page=PageInfo(next_cursor=page.next_cursor, has_more=page.has_more),
    )
