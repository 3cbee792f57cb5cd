"""Persistence layer configuration via environment variables."""

from pathlib import Path

from pydantic_settings import BaseSettings

_BUNDLED_MIGRATIONS = str(Path(__file__).resolve().parent / "db" / "migrations" / "versions")


class Settings(BaseSettings):
    # Database
    database_url: str = "sqlite+aiosqlite:///jobstore.db"
    pool_size: int = 10
    max_overflow: int = 20

    # Bounded wait applied to every database unit of work (seconds)
    wait_timeout_seconds: float = 60.0

    # Local binary cache
    rootdir: str = "/tmp/jobstore/sqldao/data"

    # Migrations
    migration_locations: list[str] = [_BUNDLED_MIGRATIONS]
    baseline_on_migrate: bool = False

    # Logging
    log_level: str = "info"
    json_logs: bool = False

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "env_prefix": "JOBSTORE_",
    }

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")


settings = Settings()
