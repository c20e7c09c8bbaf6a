"""
SQL adapters: SQLAlchemy implementations of the catalog, schedule and
event-log ports.
"""

import logging
from collections.abc import Iterable
from datetime import datetime
from types import TracebackType

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from lexicard.domain.models import Card, LearningEvent, ScheduleRecord
from lexicard.domain.ports import CardCatalog, EventLog, ScheduleRepository, UnitOfWork

from .database import Database
from .tables import LearningEventRow, ScheduleRow, VocabularyCardRow

logger = logging.getLogger(__name__)


def _to_card(row: VocabularyCardRow) -> Card:
    return Card(
        id=row.id,
        word=row.word,
        definition=row.definition,
        part_of_speech=row.part_of_speech,
        difficulty_level=row.difficulty_level,
        topic_tags=tuple(row.topic_tags or ()),
        ipa=row.ipa,
        example_sentence=row.example_sentence,
        audio_url_american=row.audio_url_american,
        audio_url_british=row.audio_url_british,
        image_url=row.image_url,
    )


def _to_record(row: ScheduleRow) -> ScheduleRecord:
    return ScheduleRecord(
        id=row.id,
        user_id=row.user_id,
        card_id=row.card_id,
        interval=row.interval,
        ease_factor=row.ease_factor,
        next_review_at=row.next_review_at,
        review_count=row.review_count,
        accuracy=row.accuracy,
        depth_level=row.depth_level,
    )


class SqlCardCatalog(CardCatalog):
    """Reads cards from the vocabulary_cards table."""

    def __init__(self, database: Database):
        self.database = database

    def get_cards_by_ids(self, ids: Iterable[int]) -> list[Card]:
        id_list = list(ids)
        if not id_list:
            return []
        with self.database.session() as session:
            rows = session.scalars(
                select(VocabularyCardRow).where(VocabularyCardRow.id.in_(id_list))
            )
            return [_to_card(row) for row in rows]

    def get_cards_by_difficulty(
        self,
        level: int | None,
        exclude_ids: Iterable[int] | None = None,
        limit: int | None = None,
    ) -> list[Card]:
        query = select(VocabularyCardRow)
        if level is not None:
            query = query.where(VocabularyCardRow.difficulty_level == level)
        excluded = list(exclude_ids or ())
        if excluded:
            query = query.where(VocabularyCardRow.id.notin_(excluded))
        query = query.order_by(VocabularyCardRow.difficulty_level.asc(), VocabularyCardRow.id.asc())
        if limit is not None:
            query = query.limit(limit)

        with self.database.session() as session:
            return [_to_card(row) for row in session.scalars(query)]

    def get_cards_by_topic_and_difficulty(self, level: int, topic_tag: str) -> list[Card]:
        # Tags are a JSON list; filter in Python to stay engine-agnostic
        cards = self.get_cards_by_difficulty(level)
        return [card for card in cards if topic_tag in card.topic_tags]

    def add_card(self, card: Card) -> Card:
        """Insert a card, returning it with its assigned ID."""
        with self.database.session() as session:
            row = VocabularyCardRow(
                word=card.word,
                definition=card.definition,
                part_of_speech=card.part_of_speech,
                difficulty_level=card.difficulty_level,
                topic_tags=list(card.topic_tags),
                ipa=card.ipa,
                example_sentence=card.example_sentence,
                audio_url_american=card.audio_url_american,
                audio_url_british=card.audio_url_british,
                image_url=card.image_url,
            )
            if card.id:
                row.id = card.id
            session.add(row)
            session.commit()
            return _to_card(row)

    def count(self) -> int:
        with self.database.session() as session:
            return session.scalar(select(func.count()).select_from(VocabularyCardRow)) or 0


class SqlScheduleRepository(ScheduleRepository):
    """Schedule records bound to the session of an open unit of work."""

    def __init__(self, session: Session):
        self.session = session

    def _row(self, user_id: str, card_id: int) -> ScheduleRow | None:
        return self.session.scalars(
            select(ScheduleRow).where(
                ScheduleRow.user_id == user_id, ScheduleRow.card_id == card_id
            )
        ).first()

    def get(self, user_id: str, card_id: int) -> ScheduleRecord | None:
        row = self._row(user_id, card_id)
        return _to_record(row) if row else None

    def add(self, record: ScheduleRecord) -> ScheduleRecord:
        row = ScheduleRow(
            user_id=record.user_id,
            card_id=record.card_id,
            interval=record.interval,
            ease_factor=record.ease_factor,
            next_review_at=record.next_review_at,
            review_count=record.review_count,
            accuracy=record.accuracy,
            depth_level=record.depth_level,
        )
        self.session.add(row)
        self.session.flush()
        record.id = row.id
        return record

    def update(self, record: ScheduleRecord) -> ScheduleRecord:
        row = self._row(record.user_id, record.card_id)
        if row is None:
            raise LookupError(
                f"No schedule for user={record.user_id} card={record.card_id}"
            )
        row.interval = record.interval
        row.ease_factor = record.ease_factor
        row.next_review_at = record.next_review_at
        row.review_count = record.review_count
        row.accuracy = record.accuracy
        row.depth_level = record.depth_level
        self.session.flush()
        return record

    def list_due(self, user_id: str, now: datetime) -> list[ScheduleRecord]:
        rows = self.session.scalars(
            select(ScheduleRow)
            .where(ScheduleRow.user_id == user_id, ScheduleRow.next_review_at <= now)
            .order_by(ScheduleRow.next_review_at.asc(), ScheduleRow.card_id.asc())
        )
        return [_to_record(row) for row in rows]

    def reviewed_card_ids(self, user_id: str) -> set[int]:
        return set(
            self.session.scalars(
                select(ScheduleRow.card_id).where(ScheduleRow.user_id == user_id)
            )
        )


class SqlEventLog(EventLog):
    """Appends to the learning_events table. Rows are never updated or deleted."""

    def __init__(self, session: Session):
        self.session = session

    def append(self, event: LearningEvent) -> int:
        row = LearningEventRow(
            user_id=event.user_id,
            card_id=event.card_id,
            event_type=event.event_type.value,
            payload=event.payload,
            created_at=event.created_at,
        )
        self.session.add(row)
        self.session.flush()
        return row.id

    def list_for_user(self, user_id: str) -> list[LearningEventRow]:
        return list(
            self.session.scalars(
                select(LearningEventRow)
                .where(LearningEventRow.user_id == user_id)
                .order_by(LearningEventRow.id.asc())
            )
        )


class SqlAlchemyUnitOfWork(UnitOfWork):
    """One SQLAlchemy session per transaction."""

    def __init__(self, database: Database):
        self.database = database
        self.session: Session | None = None

    def __enter__(self) -> "SqlAlchemyUnitOfWork":
        self.session = self.database.session()
        self.schedules = SqlScheduleRepository(self.session)
        self.events = SqlEventLog(self.session)
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        try:
            super().__exit__(exc_type, exc, tb)
        finally:
            if self.session is not None:
                self.session.close()
                self.session = None

    def commit(self) -> None:
        self.session.commit()

    def rollback(self) -> None:
        logger.debug("Rolling back unit of work")
        self.session.rollback()
