"""
Queue builder for daily review sessions.

Builds ordered study queues by:
1. Collecting due schedules, most overdue first
2. Capping them to the daily queue size
3. Backfilling unseen cards by ascending difficulty

Also selects the bootstrap words for a brand-new learner's first session.
"""

import logging
import math
from collections.abc import Iterable

from lexicard.domain import errors
from lexicard.domain.constants import (
    FIRST_SESSION_CARD_COUNT,
    MAX_DAILY_QUEUE,
    MAX_NEW_CARDS_PER_DAY,
    SECONDS_PER_CARD,
)
from lexicard.domain.goals import goal_topic_tag
from lexicard.domain.models import Card, QueueResult
from lexicard.domain.ports import CardCatalog, Clock, UnitOfWorkFactory, utc_now

logger = logging.getLogger(__name__)


class QueueBuilder:
    """Assembles review queues from schedule records and the card catalog."""

    def __init__(
        self,
        uow_factory: UnitOfWorkFactory,
        catalog: CardCatalog,
        clock: Clock = utc_now,
    ):
        self._uow_factory = uow_factory
        self._catalog = catalog
        self._clock = clock

    def fetch_sr_queue(self, user_id: str) -> QueueResult:
        """
        Build the bounded daily queue for a user.

        Due cards always precede new cards. ``total_due`` is the pre-cap due
        count, used for the burnout warning.
        """
        try:
            now = self._clock()
            with self._uow_factory() as uow:
                due_records = uow.schedules.list_due(user_id, now)
                reviewed_ids = uow.schedules.reviewed_card_ids(user_id)

            total_due = len(due_records)
            capped_ids = [record.card_id for record in due_records[:MAX_DAILY_QUEUE]]
            due_cards = _restore_order(self._catalog.get_cards_by_ids(capped_ids), capped_ids)

            remaining_slots = min(MAX_NEW_CARDS_PER_DAY, MAX_DAILY_QUEUE - len(due_cards))
            new_cards: list[Card] = []
            if remaining_slots > 0:
                new_cards = self._catalog.get_cards_by_difficulty(
                    None,
                    exclude_ids=reviewed_ids or None,
                    limit=remaining_slots,
                )
        except Exception as e:
            logger.error(f"Failed to build review queue for user={user_id}: {e}", exc_info=True)
            return QueueResult(error=errors.error_message(e, errors.SR_QUEUE_FETCH_FAILED))

        cards = due_cards + new_cards
        if total_due > MAX_DAILY_QUEUE:
            logger.info(f"User {user_id} has {total_due} due cards; queue capped at {MAX_DAILY_QUEUE}")

        return QueueResult(
            cards=cards,
            due_count=len(due_cards),
            new_count=len(new_cards),
            estimated_minutes=math.ceil(len(cards) * SECONDS_PER_CARD / 60),
            total_due=total_due,
        )

    def select_first_session_words(self, level: int, goal_id: str | None) -> list[Card]:
        """
        Pick the first-session words for a learner with no history.

        Fallback chain, stopping once FIRST_SESSION_CARD_COUNT cards are found:
        goal-tagged words at ``level`` (skipped when ``goal_id`` is None),
        any words at ``level``, then any words at ``level + 1``.

        A short or empty list means the catalog ran out; it is not an error.
        """
        selected: list[Card] = []
        selected_ids: set[int] = set()

        def take(cards: Iterable[Card]) -> None:
            for card in cards:
                if len(selected) >= FIRST_SESSION_CARD_COUNT:
                    return
                if card.id not in selected_ids:
                    selected.append(card)
                    selected_ids.add(card.id)

        try:
            if goal_id is not None:
                tag = goal_topic_tag(goal_id)
                take(self._catalog.get_cards_by_topic_and_difficulty(level, tag))

            for fill_level in (level, level + 1):
                missing = FIRST_SESSION_CARD_COUNT - len(selected)
                if missing <= 0:
                    break
                take(
                    self._catalog.get_cards_by_difficulty(
                        fill_level,
                        exclude_ids=set(selected_ids) or None,
                        limit=missing,
                    )
                )
        except Exception as e:
            logger.error(f"First-session word selection failed: {e}", exc_info=True)

        if len(selected) < FIRST_SESSION_CARD_COUNT:
            logger.warning(
                f"Only {len(selected)}/{FIRST_SESSION_CARD_COUNT} first-session words "
                f"found for level={level} goal={goal_id}"
            )
        return selected


def _restore_order(cards: list[Card], ordered_ids: list[int]) -> list[Card]:
    """
    Re-sort catalog rows to match ``ordered_ids``.

    A fetch by ID list does not guarantee order. IDs missing from the
    catalog are dropped.
    """
    by_id = {card.id: card for card in cards}
    return [by_id[card_id] for card_id in ordered_ids if card_id in by_id]
