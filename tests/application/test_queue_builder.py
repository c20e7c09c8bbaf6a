from datetime import timedelta
from unittest.mock import MagicMock

import pytest

from lexicard.application.queue_builder import QueueBuilder
from lexicard.domain.models import ScheduleRecord
from lexicard.infrastructure.repositories import SqlAlchemyUnitOfWork


@pytest.fixture
def builder(uow_factory, catalog, clock):
    return QueueBuilder(uow_factory, catalog, clock=clock)


@pytest.fixture
def schedule(database, clock):
    """schedule(card_id, due_in=timedelta) inserts a reviewed card's record."""

    def _schedule(card_id, due_in, user_id="u1"):
        with SqlAlchemyUnitOfWork(database) as uow:
            uow.schedules.add(
                ScheduleRecord(
                    user_id=user_id,
                    card_id=card_id,
                    interval=1,
                    next_review_at=clock.now + due_in,
                    review_count=1,
                    accuracy=1.0,
                )
            )

    return _schedule


# --- fetch_sr_queue ---


def test_empty_catalog_gives_empty_queue(builder):
    result = builder.fetch_sr_queue("u1")

    assert result.success
    assert result.cards == []
    assert result.estimated_minutes == 0
    assert not result.burnout_warning


def test_due_cards_most_overdue_first(builder, add_cards, schedule):
    a, b, c = add_cards(3)
    schedule(a.id, -timedelta(days=1))
    schedule(b.id, -timedelta(days=5))
    schedule(c.id, -timedelta(days=3))

    result = builder.fetch_sr_queue("u1")

    assert [card.id for card in result.cards] == [b.id, c.id, a.id]
    assert result.due_count == 3
    assert result.new_count == 0
    assert result.total_due == 3


def test_due_ties_break_by_card_id(builder, add_cards, schedule):
    cards = add_cards(3)
    for card in reversed(cards):
        schedule(card.id, -timedelta(days=2))

    result = builder.fetch_sr_queue("u1")

    assert [card.id for card in result.cards] == [card.id for card in cards]


def test_future_cards_are_not_due_or_new(builder, add_cards, schedule):
    due, later = add_cards(2)
    schedule(due.id, timedelta(0))
    schedule(later.id, timedelta(days=3))

    result = builder.fetch_sr_queue("u1")

    assert [card.id for card in result.cards] == [due.id]
    assert result.new_count == 0


def test_due_cards_capped_at_daily_limit(builder, add_cards, schedule):
    cards = add_cards(100)
    for i, card in enumerate(cards):
        schedule(card.id, -timedelta(minutes=i + 1))
    add_cards(20, prefix="fresh")

    result = builder.fetch_sr_queue("u1")

    assert len(result.cards) == 75
    assert result.due_count == 75
    assert result.new_count == 0
    assert result.total_due == 100
    assert result.burnout_warning
    assert result.estimated_minutes == 10
    # most overdue was scheduled last
    assert result.cards[0].id == cards[-1].id


def test_new_cards_limited_and_by_difficulty(builder, add_cards):
    for level in (3, 1, 0, 2):
        add_cards(50, difficulty=level, prefix=f"lvl{level}-")

    result = builder.fetch_sr_queue("u1")

    assert result.due_count == 0
    assert result.new_count == 15
    assert [card.difficulty_level for card in result.cards] == [0] * 15
    assert result.estimated_minutes == 2
    assert not result.burnout_warning


def test_due_then_new_excluding_reviewed(builder, add_cards, schedule):
    reviewed = add_cards(4)
    schedule(reviewed[0].id, -timedelta(days=1))
    schedule(reviewed[1].id, -timedelta(days=2))
    schedule(reviewed[2].id, timedelta(days=4))
    schedule(reviewed[3].id, timedelta(days=9))
    fresh = add_cards(3, prefix="fresh")

    result = builder.fetch_sr_queue("u1")

    ids = [card.id for card in result.cards]
    assert ids[:2] == [reviewed[1].id, reviewed[0].id]
    assert sorted(ids[2:]) == sorted(card.id for card in fresh)
    assert result.due_count == 2
    assert result.new_count == 3
    assert result.estimated_minutes == 1


def test_new_cards_fill_up_to_daily_limit(builder, add_cards, schedule):
    due = add_cards(70)
    for card in due:
        schedule(card.id, -timedelta(hours=1))
    add_cards(30, prefix="fresh")

    result = builder.fetch_sr_queue("u1")

    assert result.due_count == 70
    assert result.new_count == 5
    assert len(result.cards) == 75


def test_queue_is_per_user(builder, add_cards, schedule):
    card = add_cards(1)[0]
    schedule(card.id, -timedelta(days=1), user_id="someone-else")

    result = builder.fetch_sr_queue("u1")

    assert result.due_count == 0
    assert [c.id for c in result.cards] == [card.id]


def test_queue_storage_error(catalog, clock):
    builder = QueueBuilder(MagicMock(side_effect=RuntimeError("db gone")), catalog, clock=clock)

    result = builder.fetch_sr_queue("u1")

    assert not result.success
    assert result.error == "db gone"
    assert result.cards == []


# --- select_first_session_words ---


def test_first_session_prefers_goal_words(builder, add_cards):
    add_cards(10, difficulty=0)
    travel = add_cards(3, difficulty=0, tags=("travel",), prefix="trip")

    cards = builder.select_first_session_words(0, "travel")

    assert len(cards) == 5
    assert [card.id for card in cards[:3]] == [card.id for card in travel]
    assert len({card.id for card in cards}) == 5


def test_first_session_without_goal(builder, add_cards):
    level_one = add_cards(6, difficulty=1)
    add_cards(6, difficulty=0)

    cards = builder.select_first_session_words(1, None)

    assert [card.id for card in cards] == [card.id for card in level_one[:5]]


def test_first_session_falls_back_to_next_level(builder, add_cards):
    same = add_cards(2, difficulty=2)
    harder = add_cards(5, difficulty=3)
    add_cards(5, difficulty=4)

    cards = builder.select_first_session_words(2, "ielts")

    assert [card.id for card in cards] == [c.id for c in same] + [c.id for c in harder[:3]]


def test_first_session_may_be_short(builder, add_cards):
    add_cards(2, difficulty=0)

    cards = builder.select_first_session_words(0, "movies")

    assert len(cards) == 2


def test_first_session_returns_partial_on_error(clock):
    catalog = MagicMock()
    partial = [MagicMock(id=1), MagicMock(id=2)]
    catalog.get_cards_by_topic_and_difficulty.return_value = partial
    catalog.get_cards_by_difficulty.side_effect = RuntimeError("db gone")
    builder = QueueBuilder(MagicMock(), catalog, clock=clock)

    cards = builder.select_first_session_words(0, "business")

    assert cards == partial
    catalog.get_cards_by_topic_and_difficulty.assert_called_once_with(0, "business")
