from datetime import timedelta

import pytest
from sqlalchemy.exc import IntegrityError

from lexicard.domain.models import Card, EventType, LearningEvent, ScheduleRecord
from lexicard.infrastructure.database import Database
from lexicard.infrastructure.repositories import SqlAlchemyUnitOfWork, SqlCardCatalog


def test_catalog_add_and_fetch(catalog):
    added = catalog.add_card(
        Card(
            id=0,
            word="itinerary",
            definition="a planned route",
            part_of_speech="noun",
            difficulty_level=2,
            topic_tags=("travel", "reading"),
            ipa="/aɪˈtɪnəˌrɛri/",
        )
    )

    assert added.id > 0
    assert catalog.count() == 1
    assert catalog.get_cards_by_ids([added.id]) == [added]
    assert added.topic_tags == ("travel", "reading")


def test_catalog_by_ids_empty(catalog):
    assert catalog.get_cards_by_ids([]) == []


def test_catalog_by_difficulty_filters_and_orders(catalog, add_cards):
    hard = add_cards(2, difficulty=3)
    easy = add_cards(2, difficulty=0)

    assert [c.id for c in catalog.get_cards_by_difficulty(None)] == [c.id for c in easy + hard]
    assert [c.id for c in catalog.get_cards_by_difficulty(3)] == [c.id for c in hard]
    assert [c.id for c in catalog.get_cards_by_difficulty(None, limit=1)] == [easy[0].id]
    assert [c.id for c in catalog.get_cards_by_difficulty(0, exclude_ids={easy[0].id})] == [
        easy[1].id
    ]


def test_catalog_by_topic(catalog, add_cards):
    add_cards(2, difficulty=1)
    business = add_cards(2, difficulty=1, tags=("business",))
    add_cards(1, difficulty=2, tags=("business",))

    found = catalog.get_cards_by_topic_and_difficulty(1, "business")

    assert [c.id for c in found] == [c.id for c in business]


def test_schedule_roundtrip_keeps_timestamp_precision(database, clock):
    due = clock.now + timedelta(microseconds=123456)
    with SqlAlchemyUnitOfWork(database) as uow:
        saved = uow.schedules.add(ScheduleRecord(user_id="u1", card_id=1, next_review_at=due))

    with SqlAlchemyUnitOfWork(database) as uow:
        record = uow.schedules.get("u1", 1)

    assert saved.id is not None
    assert record.next_review_at == due
    assert record.next_review_at.tzinfo is not None


def test_unique_schedule_per_user_and_card(database):
    with SqlAlchemyUnitOfWork(database) as uow:
        uow.schedules.add(ScheduleRecord(user_id="u1", card_id=1))

    with pytest.raises(IntegrityError):
        with SqlAlchemyUnitOfWork(database) as uow:
            uow.schedules.add(ScheduleRecord(user_id="u1", card_id=1))


def test_update_missing_record_raises(database):
    with pytest.raises(LookupError):
        with SqlAlchemyUnitOfWork(database) as uow:
            uow.schedules.update(ScheduleRecord(user_id="u1", card_id=1))


def test_rollback_on_exception(database):
    with pytest.raises(RuntimeError):
        with SqlAlchemyUnitOfWork(database) as uow:
            uow.schedules.add(ScheduleRecord(user_id="u1", card_id=1))
            raise RuntimeError("abort")

    with SqlAlchemyUnitOfWork(database) as uow:
        assert uow.schedules.get("u1", 1) is None


def test_list_due_and_reviewed_ids(database, clock):
    with SqlAlchemyUnitOfWork(database) as uow:
        uow.schedules.add(ScheduleRecord(user_id="u1", card_id=1, next_review_at=clock.now))
        uow.schedules.add(
            ScheduleRecord(user_id="u1", card_id=2, next_review_at=clock.now - timedelta(days=1))
        )
        uow.schedules.add(
            ScheduleRecord(user_id="u1", card_id=3, next_review_at=clock.now + timedelta(seconds=1))
        )
        uow.schedules.add(ScheduleRecord(user_id="u2", card_id=4, next_review_at=clock.now))

    with SqlAlchemyUnitOfWork(database) as uow:
        due = uow.schedules.list_due("u1", clock.now)
        reviewed = uow.schedules.reviewed_card_ids("u1")

    assert [record.card_id for record in due] == [2, 1]
    assert reviewed == {1, 2, 3}


def test_event_log_append(database, clock):
    with SqlAlchemyUnitOfWork(database) as uow:
        first = uow.events.append(
            LearningEvent("u1", 1, EventType.CARD_REVIEWED, {"direction": "left"}, clock.now)
        )
        second = uow.events.append(LearningEvent("u1", 1, EventType.CARD_UNDONE, {}, clock.now))

    with SqlAlchemyUnitOfWork(database) as uow:
        rows = uow.events.list_for_user("u1")
        assert [row.id for row in rows] == [first, second]
        assert rows[0].payload == {"direction": "left"}
        assert rows[0].created_at == clock.now


def test_file_database_creates_parent_dir(tmp_path):
    path = tmp_path / "nested" / "dir" / "lexicard.db"
    db = Database(f"sqlite:///{path}")
    db.init_schema()

    assert path.parent.is_dir()
    assert SqlCardCatalog(db).count() == 0
    db.dispose()
