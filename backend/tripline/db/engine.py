"""Database engine, session factory and document store dependency."""

import logging
from collections.abc import Generator

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker

from backend.tripline.config import Settings, get_settings
from backend.tripline.db.inmemory import InMemoryItineraryStore
from backend.tripline.db.models import Base
from backend.tripline.db.repositories import ItineraryStore
from backend.tripline.db.sql_repositories import SqlItineraryStore

logger = logging.getLogger(__name__)


def create_engine_from_settings(settings: Settings) -> Engine:
    """Create SQLAlchemy engine from settings.

    Raises:
        ValueError: If DATABASE_URL is unset or empty.
    """
    if not settings.database_url:
        raise ValueError(
            "DATABASE_URL must be set to a valid connection string. "
            "Please configure the database_url setting."
        )

    return create_engine(settings.database_url, pool_pre_ping=True, echo=False)


def create_session_factory(engine: Engine) -> sessionmaker[Session]:
    """Create sessionmaker for creating database sessions.

    Args:
        engine: SQLAlchemy engine

    Returns:
        Sessionmaker bound to the engine
    """
    return sessionmaker(bind=engine, expire_on_commit=False)


def init_db(engine: Engine) -> None:
    """Create document store tables if missing."""
    Base.metadata.create_all(engine)


# Global engine/session factory, created on first use
_session_factory: sessionmaker[Session] | None = None

# Fallback store when no database is configured
_memory_store = InMemoryItineraryStore()


def get_session_factory() -> sessionmaker[Session]:
    """Get global session factory, creating tables on first use."""
    global _session_factory
    if _session_factory is None:
        engine = create_engine_from_settings(get_settings())
        init_db(engine)
        _session_factory = create_session_factory(engine)
    return _session_factory


def get_itinerary_store() -> Generator[ItineraryStore, None, None]:
    """FastAPI dependency for the document store.

    Yields:
        SqlItineraryStore when DATABASE_URL is set, the process-wide in-memory store otherwise
    """
    if not get_settings().database_url:
        yield _memory_store
        return

    with get_session_factory()() as session:
        yield SqlItineraryStore(session)
