"""
Engine and session management (DATABASE_URL -> Postgres, else SQLite).

One cached engine per database URL. session_scope() commits on success and
rolls back on error.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from allowgate.allowgate_logging import get_logger
from allowgate.config import get_settings
from allowgate.database.models import Base

logger = get_logger(__name__)

_engines: dict[str, Engine] = {}
_session_factories: dict[str, sessionmaker] = {}


def _redact(url: str) -> str:
    return url.split("?")[0].split("//")[-1].split("@")[-1]


def get_engine(url: str | None = None) -> Engine:
    """Create or return the cached engine for url (default: settings.database_url)."""
    url = url or get_settings().database_url
    engine = _engines.get(url)
    if engine is None:
        connect_args = {}
        if url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        engine = create_engine(url, connect_args=connect_args, pool_pre_ping=True)
        _engines[url] = engine
        logger.info("db_engine_created", url=_redact(url))
    return engine


def _get_session_factory(url: str | None = None) -> sessionmaker:
    url = url or get_settings().database_url
    factory = _session_factories.get(url)
    if factory is None:
        factory = sessionmaker(autocommit=False, autoflush=False, bind=get_engine(url))
        _session_factories[url] = factory
    return factory


@contextmanager
def session_scope(url: str | None = None) -> Iterator[Session]:
    """Context manager for a single session. Commits on success, rolls back on error."""
    session = _get_session_factory(url)()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def init_db(url: str | None = None) -> None:
    """
    Create tables if they do not exist. Safe to call on every startup.
    """
    url = url or get_settings().database_url
    try:
        Base.metadata.create_all(bind=get_engine(url))
        logger.info("db_init", url=_redact(url))
    except Exception as e:
        logger.exception("db_init_failed", url=_redact(url), error=str(e))
        raise


def reset_engine_for_test() -> None:
    """
    Dispose cached engines and session factories. For tests only; use with a new ALLOWGATE_DB_PATH.
    """
    for engine in _engines.values():
        engine.dispose()
    _engines.clear()
    _session_factories.clear()
