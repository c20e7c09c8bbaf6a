"""
Review flow: wires a SessionEngine to the ScheduleStore.

Each swipe advances the session, logs a CARD_REVIEWED event and adjusts the
schedule; an undo inside the window rolls both back using the snapshot from
the most recent adjustment.
"""

import logging

from lexicard.domain.models import Card, QueueResult, ScheduleSnapshot, SwipeDirection

from .queue_builder import QueueBuilder
from .schedule_store import ScheduleStore
from .session import SessionEngine

logger = logging.getLogger(__name__)

SWIPE_RESPONSES = {"right": "know", "left": "dontKnow"}


class ReviewFlow:
    """
    One learner's review session.

    Only the latest snapshot is held: the session's single-slot undo buffer
    means only the most recent swipe can be undone.
    """

    def __init__(
        self,
        user_id: str,
        store: ScheduleStore,
        queue_builder: QueueBuilder,
        session: SessionEngine | None = None,
    ):
        self.user_id = user_id
        self._store = store
        self._queue_builder = queue_builder
        self.session = session or SessionEngine()
        self._forget_last_adjustment()

    def load(self) -> QueueResult:
        """Fetch today's queue and load it into the session."""
        result = self._queue_builder.fetch_sr_queue(self.user_id)
        if not result.success:
            logger.error(f"Could not load queue for user={self.user_id}: {result.error}")
        self.session.load_queue(result.cards)
        return result

    def current_card(self) -> Card | None:
        return self.session.get_current_card()

    def swipe(self, card_id: int, direction: SwipeDirection) -> None:
        """
        Record a swipe. ``up`` is a peek and leaves schedule state alone.

        Event-log and schedule failures are logged; the session still
        advances so the learner is never blocked.
        """
        self.session.record_swipe(card_id, direction)
        self._forget_last_adjustment()

        response = SWIPE_RESPONSES.get(direction)
        if response is None:
            return

        event = self._store.log_learning_event(card_id, self.user_id, direction)
        if not event.success:
            logger.warning(f"Failed to log event for card={card_id}: {event.error}")

        result = self._store.adjust_schedule(card_id, self.user_id, response)
        if result.success:
            self._last_adjusted = True
            self._last_snapshot = result.previous_state
            self._last_is_first_review = result.is_first_review
        else:
            logger.error(f"Failed to adjust schedule for card={card_id}: {result.error}")

    def undo(self) -> bool:
        """
        Undo the last swipe if its window is still open.

        The schedule is reverted only when the swipe actually changed it; a
        failed adjustment already rolled back and has nothing to undo.
        Returns True when a swipe was undone.
        """
        action = self.session.undo_last_swipe()
        if action is None:
            return False

        if action.direction in SWIPE_RESPONSES:
            if self._last_adjusted:
                revert = self._store.revert_schedule_adjustment(
                    action.card_id,
                    self.user_id,
                    previous_state=self._last_snapshot,
                    is_first_review=self._last_is_first_review,
                )
                if not revert.success:
                    logger.error(
                        f"Failed to revert schedule for card={action.card_id}: {revert.error}"
                    )
            self._store.log_undo_event(action.card_id, self.user_id)

        self._forget_last_adjustment()
        return True

    def close(self) -> None:
        self.session.reset_session()
        self._forget_last_adjustment()

    def _forget_last_adjustment(self) -> None:
        self._last_adjusted = False
        self._last_snapshot: ScheduleSnapshot | None = None
        self._last_is_first_review = False
