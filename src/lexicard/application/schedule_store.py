"""
Schedule Store: application service for per-card SM-2 state.

Applies SM-2 results to schedule records inside a single transaction, hands
back snapshots for undo, and writes the learning event log.
"""

import logging
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime

from lexicard.domain import errors
from lexicard.domain.constants import (
    DIRECTION_QUALITY,
    INITIAL_EASE_FACTOR,
    MIN_DEPTH_LEVEL,
    PASSING_QUALITY,
)
from lexicard.domain.models import (
    EventResult,
    EventType,
    LearningEvent,
    RevertResult,
    ScheduleRecord,
    ScheduleResult,
    ScheduleSnapshot,
)
from lexicard.domain.ports import Clock, UnitOfWorkFactory, utc_now

from .depth import calculate_depth_level
from .sm2 import calculate_next_review, quality_for_response

logger = logging.getLogger(__name__)


@dataclass
class _KeyLock:
    lock: threading.Lock = field(default_factory=threading.Lock)
    users: int = 0


class ScheduleStore:
    """
    Application service owning the read-modify-write cycle on schedule records.

    Mutations for the same (user, card) pair are serialized with a per-key
    lock; different pairs proceed independently.
    """

    def __init__(
        self,
        uow_factory: UnitOfWorkFactory,
        clock: Clock = utc_now,
        strict_undo: bool = False,
    ):
        """
        Args:
            uow_factory: Opens a new transaction over schedules and events.
            clock: Source of "now" for due dates and event timestamps.
            strict_undo: Refuse the lossy revert when no snapshot is given.
        """
        self._uow_factory = uow_factory
        self._clock = clock
        self._strict_undo = strict_undo
        self._locks: dict[tuple[str, int], _KeyLock] = {}
        self._locks_guard = threading.Lock()

    @contextmanager
    def _lock_for(self, user_id: str, card_id: int) -> Iterator[None]:
        # Entries live only while a caller holds or waits on them
        key = (user_id, card_id)
        with self._locks_guard:
            entry = self._locks.get(key)
            if entry is None:
                entry = self._locks[key] = _KeyLock()
            entry.users += 1
        try:
            with entry.lock:
                yield
        finally:
            with self._locks_guard:
                entry.users -= 1
                if entry.users == 0:
                    del self._locks[key]

    # ------------------------------------------------------------------
    # Adjust
    # ------------------------------------------------------------------

    def adjust_schedule(self, card_id: int, user_id: str, response: str) -> ScheduleResult:
        """
        Apply one review to the (user, card) schedule.

        The first review inserts a record and returns no snapshot
        (``is_first_review=True``). Later reviews return the prior state in
        ``previous_state`` so the caller can undo exactly.
        """
        try:
            quality = quality_for_response(response)
        except ValueError:
            return ScheduleResult(success=False, error=errors.INVALID_RESPONSE)

        try:
            with self._lock_for(user_id, card_id):
                now = self._clock()
                with self._uow_factory() as uow:
                    existing = uow.schedules.get(user_id, card_id)
                    if existing is None:
                        record = self._first_review(user_id, card_id, quality, now)
                        uow.schedules.add(record)
                        logger.debug(f"Created schedule for user={user_id} card={card_id}")
                        return ScheduleResult(
                            success=True,
                            next_review_at=record.next_review_at,
                            is_first_review=True,
                        )

                    previous = existing.snapshot()
                    self._apply_review(existing, quality, now)
                    uow.schedules.update(existing)

                    if existing.depth_level > previous.depth_level:
                        uow.events.append(
                            LearningEvent(
                                user_id=user_id,
                                card_id=card_id,
                                event_type=EventType.DEPTH_ADVANCED,
                                payload={
                                    "previous_level": previous.depth_level,
                                    "new_level": existing.depth_level,
                                    "review_count": existing.review_count,
                                },
                                created_at=now,
                            )
                        )
                        logger.info(
                            f"Depth advanced for user={user_id} card={card_id}: "
                            f"{previous.depth_level} -> {existing.depth_level}"
                        )

                    return ScheduleResult(
                        success=True,
                        next_review_at=existing.next_review_at,
                        previous_state=previous,
                    )
        except Exception as e:
            logger.error(f"Schedule adjustment failed for card={card_id}: {e}", exc_info=True)
            return ScheduleResult(
                success=False,
                error=errors.error_message(e, errors.SR_SCHEDULE_ADJUSTMENT_FAILED),
            )

    def _first_review(
        self, user_id: str, card_id: int, quality: int, now: datetime
    ) -> ScheduleRecord:
        sm2 = calculate_next_review(
            quality=quality,
            previous_interval=0,
            ease_factor=INITIAL_EASE_FACTOR,
            review_count=0,
            now=now,
        )
        return ScheduleRecord(
            user_id=user_id,
            card_id=card_id,
            interval=sm2.next_interval,
            ease_factor=sm2.next_ease_factor,
            next_review_at=sm2.next_review_date,
            review_count=1,
            accuracy=1.0 if quality >= PASSING_QUALITY else 0.0,
            depth_level=MIN_DEPTH_LEVEL,
        )

    def _apply_review(self, record: ScheduleRecord, quality: int, now: datetime) -> None:
        sm2 = calculate_next_review(
            quality=quality,
            previous_interval=record.interval,
            ease_factor=record.ease_factor,
            review_count=record.review_count,
            now=now,
        )
        correct = 1 if quality >= PASSING_QUALITY else 0
        accuracy = (record.accuracy * record.review_count + correct) / (record.review_count + 1)
        review_count = record.review_count + 1

        record.interval = sm2.next_interval
        record.ease_factor = sm2.next_ease_factor
        record.next_review_at = sm2.next_review_date
        record.review_count = review_count
        record.accuracy = accuracy
        record.depth_level = calculate_depth_level(review_count, sm2.next_ease_factor, accuracy)

    # ------------------------------------------------------------------
    # Revert
    # ------------------------------------------------------------------

    def revert_schedule_adjustment(
        self,
        card_id: int,
        user_id: str,
        previous_state: ScheduleSnapshot | None = None,
        is_first_review: bool = False,
    ) -> RevertResult:
        """
        Undo the most recent adjustment of a (user, card) schedule.

        With a snapshot the record is restored exactly. Without one, a
        first-review undo resets the record to its never-reviewed baseline,
        and any other undo falls back to decrementing ``review_count`` and
        making the card due now. That fallback loses ease-factor and accuracy
        precision. Events are never deleted.
        """
        try:
            with self._lock_for(user_id, card_id):
                now = self._clock()
                with self._uow_factory() as uow:
                    record = uow.schedules.get(user_id, card_id)
                    if record is None:
                        return RevertResult(success=False, error=errors.NO_SCHEDULE_TO_REVERT)

                    if previous_state is not None:
                        record.restore(previous_state)
                        uow.schedules.update(record)
                        return RevertResult(success=True, exact=True)

                    if is_first_review:
                        record.restore(
                            ScheduleSnapshot(
                                interval=0,
                                ease_factor=INITIAL_EASE_FACTOR,
                                next_review_at=now,
                                review_count=0,
                                accuracy=0.0,
                                depth_level=MIN_DEPTH_LEVEL,
                            )
                        )
                        uow.schedules.update(record)
                        return RevertResult(success=True, exact=True)

                    if self._strict_undo:
                        return RevertResult(success=False, error=errors.SNAPSHOT_REQUIRED)

                    logger.warning(
                        f"Reverting card={card_id} for user={user_id} without a snapshot; "
                        f"ease factor and accuracy are left as-is"
                    )
                    record.review_count = max(0, record.review_count - 1)
                    record.next_review_at = now
                    uow.schedules.update(record)
                    return RevertResult(success=True, exact=False)
        except Exception as e:
            logger.error(f"Schedule revert failed for card={card_id}: {e}", exc_info=True)
            return RevertResult(
                success=False,
                error=errors.error_message(e, errors.SR_SCHEDULE_REVERT_FAILED),
            )

    # ------------------------------------------------------------------
    # Event log
    # ------------------------------------------------------------------

    def log_learning_event(self, card_id: int, user_id: str, direction: str) -> EventResult:
        """
        Append a CARD_REVIEWED event for a swipe.

        Independent of adjust_schedule; callers treat a failure as
        non-blocking.
        """
        if direction not in DIRECTION_QUALITY:
            return EventResult(success=False, error=errors.INVALID_DIRECTION)

        now = self._clock()
        payload = {
            "direction": direction,
            "quality": DIRECTION_QUALITY[direction],
            "timestamp": int(now.timestamp() * 1000),
        }
        return self._append_event(card_id, user_id, EventType.CARD_REVIEWED, payload, now)

    def log_undo_event(self, card_id: int, user_id: str) -> EventResult:
        """Append a compensating CARD_UNDONE event after an undo."""
        now = self._clock()
        payload = {"timestamp": int(now.timestamp() * 1000)}
        return self._append_event(card_id, user_id, EventType.CARD_UNDONE, payload, now)

    def _append_event(
        self,
        card_id: int,
        user_id: str,
        event_type: EventType,
        payload: dict,
        now: datetime,
    ) -> EventResult:
        try:
            with self._uow_factory() as uow:
                event_id = uow.events.append(
                    LearningEvent(
                        user_id=user_id,
                        card_id=card_id,
                        event_type=event_type,
                        payload=payload,
                        created_at=now,
                    )
                )
            return EventResult(success=True, event_id=event_id)
        except Exception as e:
            logger.warning(f"Failed to log {event_type.value} for card={card_id}: {e}")
            return EventResult(
                success=False, error=errors.error_message(e, errors.EVENT_LOG_FAILED)
            )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_card_depth_level(self, card_id: int, user_id: str) -> int:
        """Stored depth level for a card, or 0 if the user never reviewed it."""
        try:
            with self._uow_factory() as uow:
                record = uow.schedules.get(user_id, card_id)
        except Exception as e:
            logger.warning(f"Failed to read depth level for card={card_id}: {e}")
            return 0
        return record.depth_level if record else 0
