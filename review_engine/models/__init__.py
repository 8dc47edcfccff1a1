"""SQLAlchemy ORM models for the review engine database."""

from review_engine.models.base import Base
from review_engine.models.card import Card
from review_engine.models.review_event import ReviewEvent
from review_engine.models.review_stats import ReviewStats

__all__ = ["Base", "Card", "ReviewEvent", "ReviewStats"]
