"""Engine/session helpers for the SQL backend."""
from __future__ import annotations

import logging
from contextlib import contextmanager
from functools import lru_cache

from sqlalchemy import create_engine, text
from sqlalchemy.exc import OperationalError, SQLAlchemyError, TimeoutError as PoolTimeoutError
from sqlalchemy.orm import declarative_base, sessionmaker, Session

from medikeep.core.config import get_settings
from medikeep.core.errors import ServiceUnavailable

logger = logging.getLogger(__name__)

Base = declarative_base()


@lru_cache
def get_engine():
    settings = get_settings()
    url = (settings.database_url or "").strip()
    if not url:
        raise RuntimeError("DATABASE_URL must be configured to use the SQL backend.")
    timeout = max(1, settings.db_timeout_seconds)
    if url.startswith("sqlite"):
        # Requests run in a threadpool; the lock timeout bounds how long a write waits.
        return create_engine(
            url,
            future=True,
            connect_args={"check_same_thread": False, "timeout": timeout},
        )
    return create_engine(url, future=True, pool_pre_ping=True, pool_timeout=timeout)


@lru_cache
def _get_sessionmaker():
    return sessionmaker(bind=get_engine(), autoflush=False, autocommit=False, future=True)


@contextmanager
def get_session() -> Session:
    """Yield a session; roll back on error and surface outages as retryable."""
    session: Session = _get_sessionmaker()()
    try:
        yield session
    except (OperationalError, PoolTimeoutError) as exc:
        session.rollback()
        logger.error("DB unavailable: %s", exc, extra={"dependency": "database"})
        raise ServiceUnavailable("Database is unavailable", "database") from exc
    except SQLAlchemyError:
        session.rollback()
        raise
    finally:
        session.close()


def health_check() -> bool:
    try:
        with get_session() as session:
            session.execute(text("SELECT 1"))
        return True
    except ServiceUnavailable:
        return False
