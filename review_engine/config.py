from datetime import UTC, datetime
from pathlib import Path

from pydantic_settings import BaseSettings


def utcnow() -> datetime:
    """Return the current UTC time as a naive datetime.

    Datetimes stay naive so they compare cleanly with values read back from
    SQLite (which doesn't store tz info).
    """
    return datetime.now(UTC).replace(tzinfo=None)


def to_naive_utc(value: datetime) -> datetime:
    """Normalize an incoming datetime to naive UTC for storage comparisons."""
    if value.tzinfo is None:
        return value
    return value.astimezone(UTC).replace(tzinfo=None)


class Settings(BaseSettings):
    app_name: str = "Review Engine"
    database_url: str = f"sqlite+aiosqlite:///{Path(__file__).resolve().parent.parent / 'data' / 'review_engine.db'}"
    debug: bool = False
    log_level: str = "INFO"
    identity_header: str = "X-User-Id"  # set by the upstream auth proxy
    default_page_limit: int = 20
    max_page_limit: int = 100
    max_reviews_per_session: int = 100
    default_ease_factor: float = 2.5
    cors_origins: list[str] = ["http://localhost:4321", "http://localhost:3000"]

    model_config = {"env_prefix": "REVIEW_ENGINE_", "env_file": ".env"}


settings = Settings()
