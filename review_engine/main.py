"""FastAPI application entry point and configuration."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from review_engine.api.events_router import router as events_router
from review_engine.api.schemas import format_validation_errors
from review_engine.api.session_router import router as session_router
from review_engine.api.stats_router import router as stats_router
from review_engine.config import settings
from review_engine.database import engine, get_session, init_db
from review_engine.errors import ErrorCode, InvalidInput, ReviewEngineError, UnexpectedFailure

logger = logging.getLogger(__name__)


def configure_logging() -> None:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Initialize database on startup and cleanup on shutdown."""
    configure_logging()
    await init_db()
    yield
    await engine.dispose()


app = FastAPI(
    title=settings.app_name,
    description="Spaced repetition review engine for study flashcards",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(session_router)
app.include_router(events_router)
app.include_router(stats_router)


@app.exception_handler(ReviewEngineError)
async def review_engine_error_handler(request: Request, exc: ReviewEngineError) -> JSONResponse:
    level = logging.ERROR if exc.status_code >= 500 else logging.INFO
    logger.log(level, "%s status=%d code=%s", request.url.path, exc.status_code, exc.code)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    error = InvalidInput(
        format_validation_errors(list(exc.errors())) or "Request body is invalid.",
        code=ErrorCode.INVALID_BODY,
    )
    return await review_engine_error_handler(request, error)


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("%s unexpected failure", request.url.path)
    error = UnexpectedFailure()
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


@app.get("/health")
async def health_check(db: AsyncSession = Depends(get_session)) -> dict[str, str]:
    """Check database connectivity and return status."""
    await db.execute(text("SELECT 1"))
    return {"status": "ok"}
