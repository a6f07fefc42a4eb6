"""
Database wiring for Monthly Zen.

Builds the SQLAlchemy engine and session factory from ZenSettings and
translates driver-level failures into the application's DatabaseError.

Every connection carries a caller-imposed timeout:
- PostgreSQL: ``statement_timeout`` set through connection options
- SQLite: busy timeout on the sqlite3 connection

Usage:
    from src.lib.database import get_session_factory

    SessionLocal = get_session_factory()
    with SessionLocal() as session:
        ...
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.exc import DBAPIError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.orm import Session, sessionmaker

from src.config.settings import ZenSettings, get_settings
from src.lib.exceptions import DatabaseError
from src.models.base import Base

logger = logging.getLogger(__name__)

_engine: Engine | None = None
_session_factory: sessionmaker[Session] | None = None


def _connect_args(settings: ZenSettings) -> dict[str, Any]:
    url = settings.database_url
    if url.startswith("sqlite"):
        return {"timeout": settings.db_timeout_seconds, "check_same_thread": False}
    if url.startswith("postgresql"):
        timeout_ms = settings.db_timeout_seconds * 1000
        return {"options": f"-c statement_timeout={timeout_ms}"}
    return {}


def build_engine(settings: ZenSettings | None = None) -> Engine:
    """Create an engine for the configured database URL."""
    settings = settings or get_settings()
    kwargs: dict[str, Any] = {
        "connect_args": _connect_args(settings),
        "pool_pre_ping": True,
    }
    if not settings.database_url.startswith("sqlite"):
        kwargs["pool_timeout"] = settings.db_timeout_seconds
    return create_engine(settings.database_url, **kwargs)


def init_db(engine: Engine) -> None:
    """Create all tables registered on Base.metadata."""
    import src.models  # noqa: F401  (register models)

    Base.metadata.create_all(engine)


def get_engine() -> Engine:
    """Get the process-wide engine, creating it on first use."""
    global _engine
    if _engine is None:
        _engine = build_engine()
        init_db(_engine)
    return _engine


def get_session_factory() -> sessionmaker[Session]:
    """Get the process-wide session factory."""
    global _session_factory
    if _session_factory is None:
        _session_factory = sessionmaker(bind=get_engine(), expire_on_commit=True)
    return _session_factory


@contextmanager
def translate_db_errors(operation: str) -> Iterator[None]:
    """
    Re-raise connection and timeout failures as DatabaseError.

    Integrity and programming errors pass through untouched: they are
    not transient and callers handle them explicitly.
    """
    try:
        yield
    except (OperationalError, PoolTimeoutError) as exc:
        logger.warning("Transient database failure during %s: %s", operation, exc)
        raise DatabaseError(f"Database unavailable during {operation}") from exc
    except DBAPIError as exc:
        if exc.connection_invalidated:
            logger.warning("Database connection lost during %s: %s", operation, exc)
            raise DatabaseError(f"Database connection lost during {operation}") from exc
        raise


__all__ = [
    "build_engine",
    "init_db",
    "get_engine",
    "get_session_factory",
    "translate_db_errors",
]
