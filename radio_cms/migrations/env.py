"""
Alembic environment for the Radio CMS content database.

The database URL comes from the Radio CMS configuration, not from an ini
file. Programmatic callers (``radio_cms.content.migrations``) hand over an
open connection through ``config.attributes["connection"]``.
"""

from logging.config import fileConfig

from alembic import context
from sqlalchemy import pool
from sqlalchemy.engine import Connection

from radio_cms.audit_trail import storage  # noqa: F401
from radio_cms.config import get_config
from radio_cms.content import models  # noqa: F401
from radio_cms.database import Base, create_db_engine

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def get_url() -> str:
    return config.get_main_option("sqlalchemy.url") or get_config().database_url


def run_migrations_offline() -> None:
    """
    Emit the migration SQL without connecting.

    Usage:
        alembic upgrade head --sql > migration.sql
    """
    context.configure(
        url=get_url(),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        render_as_batch=True,
    )

    with context.begin_transaction():
        context.run_migrations()


def do_run_migrations(connection: Connection) -> None:
    context.configure(
        connection=connection,
        target_metadata=target_metadata,
        # SQLite can only alter constraints by rebuilding the table
        render_as_batch=True,
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    connection = config.attributes.get("connection")
    if connection is not None:
        do_run_migrations(connection)
        return

    engine = create_db_engine(url=get_url(), poolclass=pool.NullPool)
    try:
        with engine.connect() as connection:
            do_run_migrations(connection)
    finally:
        engine.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
