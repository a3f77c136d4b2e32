"""
Database engine and session management.

Every interactive transition runs in its own short session; the purge sweep
opens one session and commits per batch.
"""

import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from .config import CMSConfig, get_config

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Declarative base for all Radio CMS tables."""


def _enable_sqlite_foreign_keys(dbapi_connection: Any, connection_record: Any) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_db_engine(
    config: Optional[CMSConfig] = None, url: Optional[str] = None, **kwargs: Any
) -> Engine:
    """
    Create an engine for the configured database.

    Args:
        config: Configuration to read the URL from (global config if omitted)
        url: Explicit database URL, overrides the configuration
        **kwargs: Extra arguments for ``sqlalchemy.create_engine``

    Returns:
        SQLAlchemy engine
    """
    config = config or get_config()
    database_url = url or config.database_url

    engine_kwargs: Dict[str, Any] = {"echo": config.database_echo, "future": True}
    if database_url.startswith("sqlite"):
        engine_kwargs["connect_args"] = {"check_same_thread": False}
    else:
        engine_kwargs["pool_pre_ping"] = True
    engine_kwargs.update(kwargs)

    engine = create_engine(database_url, **engine_kwargs)
    if engine.dialect.name == "sqlite":
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)

    logger.debug("Created database engine for %s", engine.url.render_as_string())
    return engine


def create_session_factory(engine: Engine) -> sessionmaker[Session]:
    """Session factory bound to an engine."""
    return sessionmaker(bind=engine, expire_on_commit=False)


def init_db(engine: Engine) -> None:
    """Create all tables and indexes that do not exist yet."""
    # Import models so they are registered on the metadata
    from .audit_trail import storage  # noqa: F401
    from .content import models  # noqa: F401

    Base.metadata.create_all(engine)
    logger.info("Database schema initialized")


@contextmanager
def session_scope(factory: sessionmaker[Session]) -> Iterator[Session]:
    """
    Provide a transactional scope around a series of operations.

    Rolls back on error; the caller's commits inside the block stand.
    """
    session = factory()
    try:
        yield session
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
