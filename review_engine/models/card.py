"""Reviewable card as seen by the review engine: identity and ownership only."""

import uuid
from datetime import datetime

from sqlalchemy import DateTime, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from review_engine.models.base import Base, TimestampMixin


class Card(Base, TimestampMixin):
    """A flashcard owned by a single user. Rows with ``deleted_at`` set are soft-deleted."""

    __tablename__ = "cards"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    owner_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    review_events: Mapped[list["ReviewEvent"]] = relationship(back_populates="card")  # type: ignore[name-defined] # noqa: F821
