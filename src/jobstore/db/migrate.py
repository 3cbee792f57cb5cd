"""Alembic migration runner invoked once at startup."""

import logging
import os
from pathlib import Path

from alembic import command
from alembic.config import Config
from alembic.runtime.migration import MigrationContext
from sqlalchemy import Connection, inspect
from sqlalchemy.ext.asyncio import AsyncEngine

from jobstore.config import Settings

logger = logging.getLogger(__name__)

MIGRATIONS_DIR = Path(__file__).resolve().parent / "migrations"
BASELINE_REVISION = "0001"
SCHEMA_TABLES = frozenset({"BINARIES", "BINARIES_CONTENTS", "JOBS", "CONFIGS"})


def build_alembic_config(config: Settings) -> Config:
    """Build an in-memory Alembic config pointing at the bundled environment."""
    alembic_cfg = Config()
    alembic_cfg.set_main_option("script_location", str(MIGRATIONS_DIR))
    alembic_cfg.set_main_option("path_separator", "os")
    alembic_cfg.set_main_option("version_path_separator", "os")
    alembic_cfg.set_main_option("version_locations", os.pathsep.join(config.migration_locations))
    alembic_cfg.set_main_option("sqlalchemy.url", config.database_url.replace("%", "%%"))
    return alembic_cfg


def _needs_baseline(connection: Connection) -> bool:
    """True for a schema created outside Alembic: all tables present, no version table."""
    tables = set(inspect(connection).get_table_names())
    return "alembic_version" not in tables and SCHEMA_TABLES <= tables


def _migrate(connection: Connection, alembic_cfg: Config, baseline_on_migrate: bool) -> None:
    alembic_cfg.attributes["connection"] = connection
    if baseline_on_migrate and _needs_baseline(connection):
        logger.info("Baselining existing schema at revision %s", BASELINE_REVISION)
        command.stamp(alembic_cfg, BASELINE_REVISION)
    command.upgrade(alembic_cfg, "head")


async def run_migrations(engine: AsyncEngine, config: Settings) -> None:
    """Bring the schema to the latest revision."""
    alembic_cfg = build_alembic_config(config)
    async with engine.begin() as conn:
        await conn.run_sync(_migrate, alembic_cfg, config.baseline_on_migrate)
    logger.info("Schema migrated to head (locations=%s)", config.migration_locations)


def _revision(connection: Connection) -> str | None:
    return MigrationContext.configure(connection).get_current_revision()


async def current_revision(engine: AsyncEngine) -> str | None:
    """Return the revision recorded in the database, or None if unversioned."""
    async with engine.connect() as conn:
        return await conn.run_sync(_revision)
