"""
Learning session engine: transient, per-session swipe state.

Tracks queue position and a single-slot undo buffer that expires after a
short window. Holds no durable data: schedule and event changes live in the
ScheduleStore and are never touched from here.
"""

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Protocol

from lexicard.domain.constants import UNDO_WINDOW_SECONDS
from lexicard.domain.models import Card, SwipeDirection
from lexicard.domain.ports import Clock, utc_now

logger = logging.getLogger(__name__)


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


TimerFactory = Callable[[float, Callable[[], None]], TimerHandle]


def start_thread_timer(seconds: float, callback: Callable[[], None]) -> TimerHandle:
    """Default timer factory: a daemon threading.Timer, already started."""
    timer = threading.Timer(seconds, callback)
    timer.daemon = True
    timer.start()
    return timer


class SessionStatus(str, Enum):
    LOADING = "loading"
    ACTIVE = "active"
    EXHAUSTED = "exhausted"


@dataclass(frozen=True)
class UndoAction:
    card_id: int
    direction: SwipeDirection
    timestamp: datetime


@dataclass(frozen=True)
class QueueProgress:
    current: int  # 1-based, never exceeds total
    total: int


class SessionEngine:
    """
    State machine for one learning screen: LOADING -> ACTIVE -> EXHAUSTED.

    ``undo_last_swipe`` only moves the position back. Callers revert the
    schedule themselves, using the buffer's card and direction, before
    calling it.
    """

    def __init__(
        self,
        timer_factory: TimerFactory = start_thread_timer,
        clock: Clock = utc_now,
        undo_window_seconds: float = UNDO_WINDOW_SECONDS,
    ):
        self._timer_factory = timer_factory
        self._clock = clock
        self._undo_window = undo_window_seconds
        self._lock = threading.RLock()

        self._cards: list[Card] = []
        self._current_index = 0
        self._loaded = False
        self._undo_buffer: UndoAction | None = None
        self._undo_timer: TimerHandle | None = None

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def cards(self) -> list[Card]:
        with self._lock:
            return list(self._cards)

    @property
    def current_index(self) -> int:
        with self._lock:
            return self._current_index

    @property
    def undo_buffer(self) -> UndoAction | None:
        with self._lock:
            return self._undo_buffer

    @property
    def status(self) -> SessionStatus:
        with self._lock:
            if not self._loaded:
                return SessionStatus.LOADING
            if self._current_index >= len(self._cards):
                return SessionStatus.EXHAUSTED
            return SessionStatus.ACTIVE

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def load_queue(self, cards: list[Card]) -> None:
        """Replace the card list and start from the first card."""
        with self._lock:
            self._cancel_timer()
            self._cards = list(cards)
            self._current_index = 0
            self._undo_buffer = None
            self._loaded = True
        logger.debug(f"Session loaded with {len(cards)} cards")

    def record_swipe(self, card_id: int, direction: SwipeDirection) -> UndoAction:
        """Advance to the next card and open a fresh undo window."""
        with self._lock:
            self._cancel_timer()
            action = UndoAction(card_id=card_id, direction=direction, timestamp=self._clock())
            self._current_index += 1
            self._undo_buffer = action
            self._undo_timer = self._timer_factory(
                self._undo_window, lambda: self._expire(action)
            )
            return action

    def undo_last_swipe(self) -> UndoAction | None:
        """
        Step back one card if the undo window is still open.

        Returns the undone action, or None when there was nothing to undo.
        """
        with self._lock:
            action = self._undo_buffer
            if action is None:
                return None
            self._cancel_timer()
            self._current_index = max(0, self._current_index - 1)
            self._undo_buffer = None
            return action

    def clear_undo_buffer(self) -> None:
        with self._lock:
            self._cancel_timer()
            self._undo_buffer = None

    def reset_session(self) -> None:
        """Full teardown, called when the learning screen unmounts."""
        with self._lock:
            self._cancel_timer()
            self._cards = []
            self._current_index = 0
            self._undo_buffer = None
            self._loaded = False

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_current_card(self) -> Card | None:
        """The card at the current position, or None once exhausted."""
        with self._lock:
            if self._current_index < len(self._cards):
                return self._cards[self._current_index]
            return None

    def get_queue_progress(self) -> QueueProgress:
        with self._lock:
            total = len(self._cards)
            return QueueProgress(current=min(self._current_index + 1, total), total=total)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _expire(self, action: UndoAction) -> None:
        # A stale timer must not clear a newer swipe's buffer
        with self._lock:
            if self._undo_buffer is action:
                self._undo_buffer = None
                self._undo_timer = None

    def _cancel_timer(self) -> None:
        if self._undo_timer is not None:
            self._undo_timer.cancel()
            self._undo_timer = None
