"""API routes for submitting review sessions."""

import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from review_engine.api.deps import get_current_user_id
from review_engine.api.schemas import SubmitSessionRequest, SubmitSessionResponse
from review_engine.database import get_session
from review_engine.srs.session import process_review_session

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/review-sessions", tags=["review-sessions"])


@router.post("", response_model=SubmitSessionResponse, status_code=status.HTTP_201_CREATED)
async def submit_review_session(
    payload: SubmitSessionRequest,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_session),
) -> SubmitSessionResponse:
    """Log every review from a completed study session."""
    result = await process_review_session(db, user_id, payload.to_command())

    logger.info(
        "api/review-sessions status=201 user=%s session=%s logged=%d",
        user_id,
        payload.session_id,
        result.logged,
    )
    return SubmitSessionResponse(logged=result.logged)
