from datetime import datetime

from sqlalchemy import JSON, DateTime, Float, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from review_engine.models.base import Base


class ReviewStats(Base):
    """Per (card, user) summary derived from the review event log.

    Written only by ``review_engine.storage.projection`` when events are appended.
    """

    __tablename__ = "review_stats"
    __table_args__ = (Index("ix_review_stats_user_next_review", "user_id", "next_review_at", "card_id"),)

    card_id: Mapped[str] = mapped_column(ForeignKey("cards.id"), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(36), primary_key=True)
    total_reviews: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    successes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    consecutive_successes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_outcome: Mapped[str | None] = mapped_column(String(10), nullable=True)
    last_interval_days: Mapped[int | None] = mapped_column(Integer, nullable=True)
    ease_factor: Mapped[float | None] = mapped_column(Float, nullable=True)
    next_review_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    last_reviewed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    aggregates: Mapped[dict | None] = mapped_column(JSON, nullable=True)  # average_interval, success_rate, current_streak
