"""Alembic async migration environment."""

import asyncio
from logging.config import fileConfig

from alembic import context

from jobstore.config import settings
from jobstore.db.base import Base
from jobstore.db.engine import create_db_engine
import jobstore.db.models  # noqa: F401

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def _database_url() -> str:
    return config.get_main_option("sqlalchemy.url") or settings.database_url


def run_migrations_offline():
    """Run migrations in offline mode."""
    context.configure(url=_database_url(), target_metadata=target_metadata, literal_binds=True)
    with context.begin_transaction():
        context.run_migrations()


def do_run_migrations(connection):
    context.configure(connection=connection, target_metadata=target_metadata)
    with context.begin_transaction():
        context.run_migrations()


async def run_migrations_online():
    """Run migrations in online mode with async engine."""
    connectable = create_db_engine(settings.model_copy(update={"database_url": _database_url()}))
    async with connectable.begin() as connection:
        await connection.run_sync(do_run_migrations)
    await connectable.dispose()


if context.is_offline_mode():
    run_migrations_offline()
elif config.attributes.get("connection") is not None:
    # Connection shared by jobstore.db.migrate from inside a running event loop
    do_run_migrations(config.attributes["connection"])
else:
    asyncio.run(run_migrations_online())
