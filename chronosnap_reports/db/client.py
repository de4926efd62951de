"""SQLAlchemy engine/session helpers for the hosted ChronoSnap database.

Usage
-----
from chronosnap_reports.db.client import get_engine, get_session_factory, session_scope

factory = get_session_factory(get_engine())
with session_scope(factory) as s:
    s.execute(...)

Engines are created by the caller and passed down explicitly; nothing here is
cached at module level.
"""

from __future__ import annotations

import os
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker


def _database_url(override: str | None = None) -> str:
    url = override or os.getenv("DATABASE_URL")
    if not url:
        raise RuntimeError("DATABASE_URL is not set; cannot initialize database client")
    return url


def get_engine(*, database_url: str | None = None) -> Engine:
    """Create an engine for ``database_url`` (falls back to ``DATABASE_URL``)."""

    return create_engine(_database_url(database_url), pool_pre_ping=True)


def get_session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, expire_on_commit=False, class_=Session)


@contextmanager
def session_scope(session_factory: sessionmaker[Session]) -> Iterator[Session]:
    """Provide a transactional scope around a series of operations."""

    session = session_factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


__all__ = [
    "get_engine",
    "get_session_factory",
    "session_scope",
]
