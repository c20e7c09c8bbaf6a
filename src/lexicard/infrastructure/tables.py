"""SQLAlchemy table models for lexicard"""

from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Column,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base
from sqlalchemy.types import TypeDecorator

from lexicard.domain.constants import INITIAL_EASE_FACTOR, MIN_DEPTH_LEVEL
from lexicard.domain.models import format_timestamp, parse_timestamp

Base = declarative_base()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class IsoTimestamp(TypeDecorator):
    """Aware datetime stored as fixed-width ISO-8601 UTC text."""

    impl = String(32)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        return format_timestamp(value)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return parse_timestamp(value)


class VocabularyCardRow(Base):
    """Base dictionary and user-added words"""

    __tablename__ = "vocabulary_cards"

    id = Column(Integer, primary_key=True, autoincrement=True)
    word = Column(String(255), nullable=False, index=True)
    definition = Column(Text, nullable=False)
    part_of_speech = Column(String(50), nullable=False)
    ipa = Column(String(255))
    example_sentence = Column(Text)
    audio_url_american = Column(String(500))
    audio_url_british = Column(String(500))
    image_url = Column(String(500))
    difficulty_level = Column(Integer, nullable=False, default=0, index=True)
    topic_tags = Column(JSON, default=list)
    created_at = Column(IsoTimestamp, nullable=False, default=_utcnow)


class ScheduleRow(Base):
    """Spaced-repetition schedule per user/card"""

    __tablename__ = "sr_schedule"
    __table_args__ = (
        UniqueConstraint("user_id", "card_id", name="uq_sr_schedule_user_card"),
        Index("idx_sr_schedule_user_id_next_review_at", "user_id", "next_review_at"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(64), nullable=False)
    card_id = Column(Integer, ForeignKey("vocabulary_cards.id"), nullable=False)
    interval = Column(Integer, nullable=False, default=0)
    ease_factor = Column(Float, nullable=False, default=INITIAL_EASE_FACTOR)
    next_review_at = Column(IsoTimestamp, nullable=False, default=_utcnow)
    review_count = Column(Integer, nullable=False, default=0)
    accuracy = Column(Float, nullable=False, default=0.0)
    depth_level = Column(Integer, nullable=False, default=MIN_DEPTH_LEVEL)
    created_at = Column(IsoTimestamp, nullable=False, default=_utcnow)
    updated_at = Column(IsoTimestamp, nullable=False, default=_utcnow, onupdate=_utcnow)


class LearningEventRow(Base):
    """Append-only learning event log"""

    __tablename__ = "learning_events"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(64), nullable=False, index=True)
    card_id = Column(Integer, ForeignKey("vocabulary_cards.id"), nullable=False)
    event_type = Column(String(32), nullable=False)
    payload = Column(JSON)
    created_at = Column(IsoTimestamp, nullable=False, default=_utcnow)
