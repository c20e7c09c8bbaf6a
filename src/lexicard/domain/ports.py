"""
Ports (interfaces) for the catalog, schedule storage and event log.

These define the contract that infrastructure adapters must implement.
Application services depend on these abstractions, not concrete implementations.
"""

from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable
from datetime import datetime, timezone
from types import TracebackType

from .models import Card, LearningEvent, ScheduleRecord

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Default clock: the current wall-clock time in UTC."""
    return datetime.now(timezone.utc)


class CardCatalog(ABC):
    """
    Port for reading vocabulary cards.

    Implementations:
        - SqlCardCatalog: Reads the vocabulary_cards table.
    """

    @abstractmethod
    def get_cards_by_ids(self, ids: Iterable[int]) -> list[Card]:
        """
        Fetch cards by ID.

        Returned order is unspecified; callers that need a particular order
        must restore it themselves.
        """
        pass

    @abstractmethod
    def get_cards_by_difficulty(
        self,
        level: int | None,
        exclude_ids: Iterable[int] | None = None,
        limit: int | None = None,
    ) -> list[Card]:
        """
        Fetch cards ordered by ascending difficulty.

        Args:
            level: Exact difficulty level, or None for every level.
            exclude_ids: Card IDs to leave out.
            limit: Maximum number of cards to return.
        """
        pass

    @abstractmethod
    def get_cards_by_topic_and_difficulty(self, level: int, topic_tag: str) -> list[Card]:
        """Fetch cards at ``level`` whose topic tags include ``topic_tag``."""
        pass


class ScheduleRepository(ABC):
    """Port for schedule records. Used only inside a UnitOfWork."""

    @abstractmethod
    def get(self, user_id: str, card_id: int) -> ScheduleRecord | None:
        pass

    @abstractmethod
    def add(self, record: ScheduleRecord) -> ScheduleRecord:
        pass

    @abstractmethod
    def update(self, record: ScheduleRecord) -> ScheduleRecord:
        pass

    @abstractmethod
    def list_due(self, user_id: str, now: datetime) -> list[ScheduleRecord]:
        """
        Records with ``next_review_at <= now``, most overdue first.

        Ties on the due timestamp are broken by ascending card ID.
        """
        pass

    @abstractmethod
    def reviewed_card_ids(self, user_id: str) -> set[int]:
        """IDs of every card the user has a schedule record for."""
        pass


class EventLog(ABC):
    """Port for the append-only learning event log."""

    @abstractmethod
    def append(self, event: LearningEvent) -> int:
        """Append an event and return its ID."""
        pass


class UnitOfWork(ABC):
    """
    Transaction boundary over schedules and events.

    Used as a context manager: changes commit on a clean exit and roll back
    when the block raises.
    """

    schedules: ScheduleRepository
    events: EventLog

    def __enter__(self) -> "UnitOfWork":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        if exc_type is None:
            self.commit()
        else:
            self.rollback()

    @abstractmethod
    def commit(self) -> None:
        pass

    @abstractmethod
    def rollback(self) -> None:
        pass


UnitOfWorkFactory = Callable[[], UnitOfWork]
