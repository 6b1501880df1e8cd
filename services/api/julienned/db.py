"""Engine and session wiring.

The engine is built lazily from ``settings.database_url`` on first use, so
tests and migrations can point it elsewhere before anything connects.
"""
from __future__ import annotations

from typing import Iterator, Optional

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from .settings import settings


class Base(DeclarativeBase):
    pass


_engine: Optional[Engine] = None
_session_factory: Optional[sessionmaker] = None


def init_engine(database_url: str | None = None) -> Engine:
    global _engine, _session_factory
    url = database_url or settings.database_url
    # Sync routes run in a threadpool; SQLite must allow cross-thread use
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    _engine = create_engine(url, pool_pre_ping=True, connect_args=connect_args)
    _session_factory = sessionmaker(bind=_engine, autoflush=False)
    return _engine


def session_factory() -> sessionmaker:
    if _session_factory is None:
        init_engine()
    return _session_factory


def get_db() -> Iterator[Session]:
    db = session_factory()()
    try:
        yield db
    finally:
        db.close()
