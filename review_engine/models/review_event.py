from datetime import datetime
from typing import Any

from sqlalchemy import JSON, Boolean, DateTime, Float, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from review_engine.config import utcnow
from review_engine.models.base import Base


class ReviewEvent(Base):
    """One immutable outcome of reviewing one card. Rows are only ever inserted."""

    __tablename__ = "review_events"
    __table_args__ = (
        Index("ix_review_events_user_reviewed", "user_id", "reviewed_at", "id"),
        Index("ix_review_events_user_card_reviewed", "user_id", "card_id", "reviewed_at"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    card_id: Mapped[str] = mapped_column(ForeignKey("cards.id"), nullable=False)
    user_id: Mapped[str] = mapped_column(String(36), nullable=False)
    session_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    outcome: Mapped[str] = mapped_column(String(10), nullable=False)  # again, fail, hard, good, easy
    grade: Mapped[int] = mapped_column(Integer, nullable=False)  # 0-4
    response_time_ms: Mapped[int | None] = mapped_column(Integer, nullable=True)
    prev_interval_days: Mapped[int | None] = mapped_column(Integer, nullable=True)
    next_interval_days: Mapped[int] = mapped_column(Integer, nullable=False)
    ease_factor: Mapped[float] = mapped_column(Float, nullable=False)  # after this review
    was_learning_step: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    payload: Mapped[Any] = mapped_column(JSON, nullable=True)
    reviewed_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)

    card: Mapped["Card"] = relationship(back_populates="review_events")  # type: ignore[name-defined] # noqa: F821
