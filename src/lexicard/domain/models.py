"""
Domain models for spaced-repetition scheduling.

These are pure data structures with no I/O or external dependencies.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Literal

from .constants import (
    BURNOUT_WARNING_THRESHOLD,
    INITIAL_EASE_FACTOR,
    MIN_DEPTH_LEVEL,
)

ReviewResponse = Literal["know", "dontKnow"]
SwipeDirection = Literal["left", "right", "up"]


class EventType(str, Enum):
    """Event types written to the append-only learning event log."""

    CARD_REVIEWED = "CARD_REVIEWED"
    DEPTH_ADVANCED = "DEPTH_ADVANCED"
    CARD_UNDONE = "CARD_UNDONE"


def format_timestamp(value: datetime) -> str:
    """
    Render an aware datetime as fixed-width ISO-8601 UTC text.

    Always six fractional digits and a ``Z`` suffix, so string order equals
    chronological order.
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    utc = value.astimezone(timezone.utc)
    return utc.isoformat(timespec="microseconds").replace("+00:00", "Z")


def parse_timestamp(value: str) -> datetime:
    """Inverse of format_timestamp. Naive input is treated as UTC."""
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


@dataclass(frozen=True)
class Card:
    """
    A vocabulary card from the catalog.

    Attributes:
        id: Catalog identifier.
        word: Headword shown on the card front.
        definition: Meaning shown on the back.
        part_of_speech: e.g. "noun", "verb".
        difficulty_level: 0 (easiest) upward; matches user levels.
        topic_tags: Topic tags used for goal matching (e.g. "travel").
    """

    id: int
    word: str
    definition: str
    part_of_speech: str
    difficulty_level: int = 0
    topic_tags: tuple[str, ...] = ()
    ipa: str | None = None
    example_sentence: str | None = None
    audio_url_american: str | None = None
    audio_url_british: str | None = None
    image_url: str | None = None


@dataclass(frozen=True)
class ScheduleSnapshot:
    """
    The mutable fields of a ScheduleRecord captured before an adjustment.

    Handed back to callers so a later undo restores the exact prior state.
    """

    interval: int
    ease_factor: float
    next_review_at: datetime
    review_count: int
    accuracy: float
    depth_level: int


@dataclass
class ScheduleRecord:
    """Spaced-repetition state for one (user, card) pair."""

    user_id: str
    card_id: int
    interval: int = 0
    ease_factor: float = INITIAL_EASE_FACTOR
    next_review_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    review_count: int = 0
    accuracy: float = 0.0
    depth_level: int = MIN_DEPTH_LEVEL
    id: int | None = None

    def snapshot(self) -> ScheduleSnapshot:
        return ScheduleSnapshot(
            interval=self.interval,
            ease_factor=self.ease_factor,
            next_review_at=self.next_review_at,
            review_count=self.review_count,
            accuracy=self.accuracy,
            depth_level=self.depth_level,
        )

    def restore(self, snapshot: ScheduleSnapshot) -> None:
        self.interval = snapshot.interval
        self.ease_factor = snapshot.ease_factor
        self.next_review_at = snapshot.next_review_at
        self.review_count = snapshot.review_count
        self.accuracy = snapshot.accuracy
        self.depth_level = snapshot.depth_level


@dataclass(frozen=True)
class LearningEvent:
    """An entry in the append-only learning event log."""

    user_id: str
    card_id: int
    event_type: EventType
    payload: dict[str, Any]
    created_at: datetime
    id: int | None = None


# ---------------------------------------------------------------------------
# Operation results
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ScheduleResult:
    """Outcome of ScheduleStore.adjust_schedule."""

    success: bool
    next_review_at: datetime | None = None
    previous_state: ScheduleSnapshot | None = None
    is_first_review: bool = False
    error: str | None = None


@dataclass(frozen=True)
class RevertResult:
    """Outcome of ScheduleStore.revert_schedule_adjustment."""

    success: bool
    exact: bool = False  # False when the lossy fallback was used
    error: str | None = None


@dataclass(frozen=True)
class EventResult:
    """Outcome of an event-log append."""

    success: bool
    event_id: int | None = None
    error: str | None = None


@dataclass
class QueueResult:
    """The daily review queue: due cards first, then new cards."""

    cards: list[Card] = field(default_factory=list)
    due_count: int = 0
    new_count: int = 0
    estimated_minutes: int = 0
    total_due: int = 0  # pre-cap due count
    error: str | None = None

    @property
    def success(self) -> bool:
        return self.error is None

    @property
    def burnout_warning(self) -> bool:
        return self.total_due >= BURNOUT_WARNING_THRESHOLD
