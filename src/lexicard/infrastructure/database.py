"""Database engine and session management"""

import logging
from pathlib import Path

from sqlalchemy import create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from .tables import Base

logger = logging.getLogger(__name__)


class Database:
    """
    Explicit handle on one database: engine plus session factory.

    Passed to the SQL adapters at construction time instead of living in a
    module-level global, so tests can hand in an in-memory instance.
    """

    def __init__(self, url: str, echo: bool = False):
        self.url = url
        parsed = make_url(url)
        kwargs = {}

        if parsed.get_backend_name() == "sqlite":
            kwargs["connect_args"] = {"check_same_thread": False}  # Needed for SQLite
            database = parsed.database
            if not database or database == ":memory:":
                # One shared connection so every session sees the same memory DB
                kwargs["poolclass"] = StaticPool
            else:
                Path(database).expanduser().parent.mkdir(parents=True, exist_ok=True)

        self.engine = create_engine(url, echo=echo, **kwargs)
        self.session_factory = sessionmaker(
            bind=self.engine, autoflush=False, expire_on_commit=False
        )

    def init_schema(self) -> None:
        """Create all tables that do not exist yet."""
        Base.metadata.create_all(bind=self.engine)
        logger.debug(f"Schema ready at {self.url}")

    def session(self) -> Session:
        """Get a new database session"""
        return self.session_factory()

    def dispose(self) -> None:
        self.engine.dispose()
