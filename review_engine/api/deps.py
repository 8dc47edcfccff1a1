"""Shared FastAPI dependencies: caller identity and query-string parsing."""

from fastapi import Request
from pydantic import ValidationError

from review_engine.api.schemas import ReviewEventsQuery, ReviewStatsQuery, format_validation_errors
from review_engine.config import settings
from review_engine.errors import ErrorCode, InvalidInput, Unauthenticated


async def get_current_user_id(request: Request) -> str:
    """Return the caller identity forwarded by the upstream auth layer."""
    user_id = request.headers.get(settings.identity_header, "").strip()
    if not user_id:
        raise Unauthenticated()
    return user_id


def _parse_query(model: type[ReviewEventsQuery] | type[ReviewStatsQuery], request: Request):
    try:
        return model.model_validate(dict(request.query_params))
    except ValidationError as exc:
        raise InvalidInput(
            format_validation_errors(exc.errors()) or "Query parameters are invalid.",
            code=ErrorCode.INVALID_QUERY,
        ) from None


async def get_events_query(request: Request) -> ReviewEventsQuery:
    return _parse_query(ReviewEventsQuery, request)


async def get_stats_query(request: Request) -> ReviewStatsQuery:
    return _parse_query(ReviewStatsQuery, request)
