"""API routes for the review event history."""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from review_engine.api.deps import get_current_user_id, get_events_query
from review_engine.api.schemas import PageInfo, ReviewEventListResponse, ReviewEventOut, ReviewEventsQuery
from review_engine.database import get_session
from review_engine.srs.history import list_review_events

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/review-events", tags=["review-events"])


@router.get("", response_model=ReviewEventListResponse)
async def get_review_events(
    user_id: str = Depends(get_current_user_id),
    query: ReviewEventsQuery = Depends(get_events_query),
    db: AsyncSession = Depends(get_session),
) -> ReviewEventListResponse:
    """List the caller's review events, newest first."""
    page = await list_review_events(db, user_id, query.to_query())

    logger.info(
        "api/review-events status=200 user=%s count=%d has_more=%s",
        user_id,
        len(page.items),
        page.has_more,
    )
    return ReviewEventListResponse(
        data=[ReviewEventOut.model_validate(event) for event in page.items],
        page=PageInfo(next_cursor=page.next_cursor, has_more=page.has_more),
    )
