"""
Alembic environment for the PeerStudy schema.

Migrations run on a synchronous engine built from
``Settings.database_url_sync``: sqlite3 for the default local database, or
psycopg2 when the postgres extra is installed. SQLite has no ALTER TABLE for
most column changes, so its migrations are rendered in batch mode.
"""

from logging.config import fileConfig

from alembic import context
from sqlalchemy import create_engine, pool

from peerstudy.config import get_settings
from peerstudy.db.base import Base
from peerstudy.db import models  # noqa: F401 - registers users, groups, messages, tasks and notes

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

settings = get_settings()
target_metadata = Base.metadata


def _configure(**kwargs) -> None:
    context.configure(
        target_metadata=target_metadata,
        render_as_batch=settings.database_is_sqlite,
        **kwargs,
    )


def run_migrations_offline() -> None:
    """Emit the PeerStudy DDL as a SQL script without connecting."""
    _configure(
        url=settings.database_url_sync,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    connectable = create_engine(settings.database_url_sync, poolclass=pool.NullPool)
    with connectable.connect() as connection:
        _configure(connection=connection)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
