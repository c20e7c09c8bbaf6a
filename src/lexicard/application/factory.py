"""
Service Factory
Centralizes wiring of the storage adapters and application services.
"""

from dataclasses import dataclass

from lexicard.application.config import AppConfig
from lexicard.application.queue_builder import QueueBuilder
from lexicard.application.review_flow import ReviewFlow
from lexicard.application.schedule_store import ScheduleStore
from lexicard.application.session import SessionEngine
from lexicard.domain.ports import Clock, utc_now
from lexicard.infrastructure.database import Database
from lexicard.infrastructure.repositories import SqlAlchemyUnitOfWork, SqlCardCatalog


@dataclass
class Services:
    """The wired service graph for one database."""

    config: AppConfig
    database: Database
    catalog: SqlCardCatalog
    store: ScheduleStore
    queue_builder: QueueBuilder
    clock: Clock

    def uow(self) -> SqlAlchemyUnitOfWork:
        return SqlAlchemyUnitOfWork(self.database)

    def review_flow(self, user_id: str, session: SessionEngine | None = None) -> ReviewFlow:
        """A review flow for one learner, using the configured undo window."""
        return ReviewFlow(
            user_id=user_id,
            store=self.store,
            queue_builder=self.queue_builder,
            session=session
            or SessionEngine(clock=self.clock, undo_window_seconds=self.config.undo_window_seconds),
        )


def build_services(
    config: AppConfig,
    database: Database | None = None,
    clock: Clock = utc_now,
) -> Services:
    """
    Returns the service graph for ``config``.

    A ready ``database`` may be passed in (tests use an in-memory one);
    otherwise one is opened from ``config.database_url`` and its schema created.
    """
    if database is None:
        database = Database(config.database_url, echo=config.echo_sql)
        database.init_schema()

    def uow_factory() -> SqlAlchemyUnitOfWork:
        return SqlAlchemyUnitOfWork(database)

    catalog = SqlCardCatalog(database)
    return Services(
        config=config,
        database=database,
        catalog=catalog,
        store=ScheduleStore(uow_factory, clock=clock, strict_undo=config.strict_undo),
        queue_builder=QueueBuilder(uow_factory, catalog, clock=clock),
        clock=clock,
    )
