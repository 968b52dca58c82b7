"""
SQLAlchemy engine setup with connection pooling and scoped sessions.

The SQL stores open one transaction per operation through
:func:`get_session_factory`.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import TYPE_CHECKING

from sqlalchemy import create_engine as sa_create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import QueuePool, StaticPool

from .config import DatabaseSettings, get_database_url, get_default_settings
from .models import Base

if TYPE_CHECKING:
    from collections.abc import Generator

    from sqlalchemy.engine import Engine

# ---------------------------------------------------------------------------
# Engine factories
# ---------------------------------------------------------------------------


def build_sync_engine(settings: DatabaseSettings | None = None) -> Engine:
    """Create a synchronous SQLAlchemy :class:`Engine`.

    PostgreSQL gets a :class:`QueuePool`; SQLite (used in tests) shares a
    single connection so an in-memory database survives across sessions.
    """
    s = settings or get_default_settings()
    url = get_database_url(s)

    if url.startswith("sqlite"):
        return sa_create_engine(
            url,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
            echo=False,
        )

    return sa_create_engine(
        url,
        poolclass=QueuePool,
        pool_size=s.POOL_SIZE,
        max_overflow=s.MAX_OVERFLOW,
        pool_timeout=s.POOL_TIMEOUT,
        pool_pre_ping=True,
        echo=False,
    )


def create_schema(engine: Engine) -> None:
    """Create every table that does not exist yet."""
    Base.metadata.create_all(engine)


# ---------------------------------------------------------------------------
# Module-level singletons (lazily initialised)
# ---------------------------------------------------------------------------

_sync_engine: Engine | None = None
_SyncSessionFactory: sessionmaker | None = None


def get_sync_engine(settings: DatabaseSettings | None = None) -> Engine:
    """Return (or create) the module-level synchronous engine."""
    global _sync_engine
    if _sync_engine is None:
        _sync_engine = build_sync_engine(settings)
    return _sync_engine


def get_session_factory(settings: DatabaseSettings | None = None) -> sessionmaker:
    global _SyncSessionFactory
    if _SyncSessionFactory is None:
        _SyncSessionFactory = sessionmaker(
            bind=get_sync_engine(settings),
            expire_on_commit=False,
        )
    return _SyncSessionFactory


# ---------------------------------------------------------------------------
# Session helpers
# ---------------------------------------------------------------------------


@contextmanager
def session_scope(factory: sessionmaker) -> Generator[Session, None, None]:
    """Commit on success, roll back on error, always close."""
    session = factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def dispose_engine() -> None:
    """Close all pooled connections. Call during application shutdown."""
    global _sync_engine, _SyncSessionFactory
    if _sync_engine is not None:
        _sync_engine.dispose()
        _sync_engine = None
        _SyncSessionFactory = None
