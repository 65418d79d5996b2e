"""Database connection and session management."""

import logging
from contextlib import contextmanager
from typing import Generator, Optional

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from .models import Base

logger = logging.getLogger(__name__)


class DatabaseManager:
    """Owns the SQLAlchemy engine and hands out transactional sessions.

    Usage:
        db = DatabaseManager("sqlite:///intelligence.db")
        db.init_db()
        with db.get_session() as session:
            session.add(obj)
    """

    def __init__(self, database_url: str):
        self.database_url = database_url
        connect_args = {}
        if database_url.startswith("sqlite"):
            # Sessions are used from FastAPI's worker threads
            connect_args["check_same_thread"] = False

        self.engine = create_engine(database_url, connect_args=connect_args, future=True)
        self._session_factory = sessionmaker(bind=self.engine, expire_on_commit=False)
        logger.info(f"DatabaseManager initialized ({self.engine.dialect.name})")

    @property
    def dialect(self) -> str:
        return self.engine.dialect.name

    def init_db(self) -> None:
        """Create tables if they don't exist."""
        Base.metadata.create_all(self.engine)
        logger.info("Database tables ensured")

    @contextmanager
    def get_session(self) -> Generator[Session, None, None]:
        """Yield a session; commit on success, roll back on any error."""
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def dispose(self) -> None:
        self.engine.dispose()


def get_database_manager(database_url: Optional[str] = None) -> DatabaseManager:
    """Create a DatabaseManager for ``database_url`` (settings default) with tables ensured."""
    if database_url is None:
        from ...setting import get_settings
        database_url = get_settings().database_url

    db_manager = DatabaseManager(database_url)
    db_manager.init_db()
    return db_manager
