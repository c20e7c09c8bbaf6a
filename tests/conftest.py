from datetime import datetime, timedelta, timezone

import pytest

from lexicard.application.config import AppConfig
from lexicard.application.factory import build_services
from lexicard.domain.models import Card
from lexicard.infrastructure.database import Database
from lexicard.infrastructure.repositories import SqlAlchemyUnitOfWork, SqlCardCatalog

NOW = datetime(2026, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    """A settable clock; tests move time with ``advance``."""

    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class ManualTimer:
    def __init__(self, seconds, callback):
        self.seconds = seconds
        self.callback = callback
        self.cancelled = False
        self.fired = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualTimerFactory:
    """Timer factory whose timers only fire when the test calls ``advance``."""

    def __init__(self):
        self.timers: list[ManualTimer] = []
        self.elapsed = 0.0

    def __call__(self, seconds, callback):
        timer = ManualTimer(self.elapsed + seconds, callback)
        self.timers.append(timer)
        return timer

    def advance(self, seconds: float) -> None:
        self.elapsed += seconds
        for timer in list(self.timers):
            if not timer.cancelled and not timer.fired and timer.seconds <= self.elapsed:
                timer.fired = True
                timer.callback()

    def fire_all(self) -> None:
        # Fires even cancelled timers, to simulate a late callback racing a cancel
        for timer in list(self.timers):
            if not timer.fired:
                timer.fired = True
                timer.callback()


@pytest.fixture
def mock_home(tmp_path, monkeypatch):
    """Mocks Path.home() to point to a temp dir."""
    home = tmp_path / "home"
    home.mkdir()

    # Mocking HOME to a temp directory to isolate config
    monkeypatch.setenv("HOME", str(home))
    for var in ("LEXICARD_DATABASE_URL", "LEXICARD_STRICT_UNDO", "LEXICARD_LOG_LEVEL"):
        monkeypatch.delenv(var, raising=False)
    return home


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def timers():
    return ManualTimerFactory()


@pytest.fixture
def database():
    db = Database("sqlite://")
    db.init_schema()
    yield db
    db.dispose()


@pytest.fixture
def catalog(database):
    return SqlCardCatalog(database)


@pytest.fixture
def uow_factory(database):
    return lambda: SqlAlchemyUnitOfWork(database)


@pytest.fixture
def services(database, clock):
    return build_services(AppConfig(database_url="sqlite://"), database=database, clock=clock)


@pytest.fixture
def add_cards(catalog):
    """Seed helper: add_cards(count, difficulty=0, tags=()) -> list[Card]."""

    def _add(count: int, difficulty: int = 0, tags: tuple[str, ...] = (), prefix: str = "word"):
        start = catalog.count()
        return [
            catalog.add_card(
                Card(
                    id=0,
                    word=f"{prefix}{start + i}",
                    definition=f"definition of {prefix}{start + i}",
                    part_of_speech="noun",
                    difficulty_level=difficulty,
                    topic_tags=tags,
                )
            )
            for i in range(count)
        ]

    return _add
