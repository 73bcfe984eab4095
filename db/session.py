"""
db/session.py

SQLAlchemy engine and session factory.
"""

from __future__ import annotations

import logging
from collections.abc import Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from db.config import load_database_settings

logger = logging.getLogger(__name__)


def create_db_engine(database_url: str | None = None) -> Engine:
    settings = load_database_settings(database_url)
    return create_engine(settings.url, **settings.engine_options())


_engine: Engine | None = None
_session_factory: sessionmaker[Session] | None = None


def get_engine() -> Engine:
    """Return the shared engine, creating it on first call."""
    global _engine
    if _engine is None:
        _engine = create_db_engine()
    return _engine


def get_session_factory() -> sessionmaker[Session]:
    global _session_factory
    if _session_factory is None:
        _session_factory = sessionmaker(
            bind=get_engine(),
            class_=Session,
            autocommit=False,
            autoflush=False,
            expire_on_commit=False,
        )
    return _session_factory


def SessionLocal() -> Session:
    """Lazy session factory. Drop-in replacement for a sessionmaker() call."""
    return get_session_factory()()


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_database(engine: Engine | None = None) -> None:
    """Create every table registered on Base.metadata that does not exist yet."""
    import db.models  # noqa: F401 registers all ORM models on Base.metadata
    from db.base import Base

    target = engine or get_engine()
    Base.metadata.create_all(target)
    logger.info("Database schema ensured tables=%s", ", ".join(sorted(Base.metadata.tables)))
