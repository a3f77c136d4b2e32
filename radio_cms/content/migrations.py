"""
Schema revisions for the content database.

Wraps Alembic so the CLI and tests can upgrade, stamp and inspect a database
through an engine instead of an ini file. Revisions live in
``radio_cms/migrations/versions``.
"""

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional, Tuple

from alembic import command
from alembic.config import Config
from alembic.runtime.migration import MigrationContext
from alembic.script import ScriptDirectory
from sqlalchemy.engine import Connection, Engine

logger = logging.getLogger(__name__)

MIGRATIONS_DIR = Path(__file__).resolve().parent.parent / "migrations"


def alembic_config(connection: Optional[Connection] = None) -> Config:
    """
    Build an Alembic configuration pointing at the bundled revisions.

    Args:
        connection: Open connection the revisions should run on
    """
    config = Config()
    config.set_main_option("script_location", str(MIGRATIONS_DIR))
    if connection is not None:
        config.attributes["connection"] = connection
    return config


def head_revision() -> Optional[str]:
    """Latest revision shipped with the package."""
    return ScriptDirectory.from_config(alembic_config()).get_current_head()


def current_revision(engine: Engine) -> Optional[str]:
    """Revision the database is at, or None if it was never stamped."""
    with engine.connect() as connection:
        return MigrationContext.configure(connection).get_current_revision()


@contextmanager
def _migration_connection(engine: Engine) -> Iterator[Connection]:
    with engine.connect() as connection:
        sqlite = connection.dialect.name == "sqlite"
        if sqlite:
            # Table rebuilds must not fire foreign key actions
            connection.exec_driver_sql("PRAGMA foreign_keys=OFF")
            connection.commit()
        try:
            with connection.begin():
                yield connection
        finally:
            if sqlite:
                connection.exec_driver_sql("PRAGMA foreign_keys=ON")
                connection.commit()


def upgrade_schema(
    engine: Engine, revision: str = "head"
) -> Tuple[Optional[str], Optional[str]]:
    """
    Upgrade the database to a revision.

    Adds the trash lifecycle columns, the deletion consistency check and
    the lifecycle indexes to content tables created before the trash
    existed.

    Args:
        engine: Engine of the database to upgrade
        revision: Target revision

    Returns:
        Tuple of the revision before and after the upgrade
    """
    with _migration_connection(engine) as connection:
        before = MigrationContext.configure(connection).get_current_revision()
        command.upgrade(alembic_config(connection), revision)
        after = MigrationContext.configure(connection).get_current_revision()

    if before != after:
        logger.info(f"Upgraded content schema from {before or 'base'} to {after}")
    return before, after


def downgrade_schema(engine: Engine, revision: str) -> None:
    """Downgrade the database to a revision ("base" removes every revision)."""
    with _migration_connection(engine) as connection:
        command.downgrade(alembic_config(connection), revision)
    logger.info(f"Downgraded content schema to {revision}")


def stamp_schema(engine: Engine, revision: str = "head") -> None:
    """Record a revision without running it; used after ``init_db``."""
    with engine.begin() as connection:
        command.stamp(alembic_config(connection), revision)
