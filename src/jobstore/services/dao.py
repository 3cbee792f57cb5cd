"""SQL-backed job DAO: the single entry point used by the job server."""

import logging
from collections.abc import Mapping
from datetime import datetime
from pathlib import Path
from typing import Any

from sqlalchemy.ext.asyncio import AsyncEngine

from jobstore.config import Settings, settings as default_settings
from jobstore.db.engine import create_db_engine, create_session_factory
from jobstore.db.migrate import run_migrations
from jobstore.logging_config import configure_logging
from jobstore.models.enums import BinaryType, JobStatus
from jobstore.models.job import JobInfo
from jobstore.services.binary_store import BinaryDeletion, BinaryStore
from jobstore.services.cache import BinaryCache, LocalFileCache
from jobstore.services.config_store import ConfigStore
from jobstore.services.job_store import JobStore
from jobstore.services.unit_of_work import SessionRunner

logger = logging.getLogger(__name__)


class JobSqlDAO:
    """Binary, job and config stores over one connection pool and one file cache.

    Use ``JobSqlDAO.open()`` to prepare the cache directory and migrate the
    schema before the first call.
    """

    def __init__(self, engine: AsyncEngine, config: Settings, cache: BinaryCache | None = None):
        self.engine = engine
        self.config = config
        self.cache = cache or LocalFileCache(config.rootdir)
        runner = SessionRunner(create_session_factory(engine), config.wait_timeout_seconds)
        self.binaries = BinaryStore(runner, self.cache)
        self.jobs = JobStore(runner, self.binaries)
        self.configs = ConfigStore(runner)

    @classmethod
    async def open(
        cls,
        config: Settings | None = None,
        cache: BinaryCache | None = None,
        configure_logs: bool = False,
    ) -> "JobSqlDAO":
        config = config or default_settings
        if configure_logs:
            configure_logging(log_level=config.log_level, json_output=config.json_logs)

        rootdir = Path(config.rootdir)
        rootdir.mkdir(parents=True, exist_ok=True)
        logger.info("rootdir is %s", rootdir.absolute())

        engine = create_db_engine(config)
        try:
            await run_migrations(engine, config)
        except BaseException:
            await engine.dispose()
            raise
        return cls(engine, config, cache)

    async def close(self) -> None:
        await self.engine.dispose()

    async def __aenter__(self) -> "JobSqlDAO":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    # Binaries

    async def save_binary(
        self, app_name: str, binary_type: BinaryType, upload_time: datetime, content: bytes
    ) -> None:
        await self.binaries.save_binary(app_name, binary_type, upload_time, content)

    async def delete_binary(self, app_name: str) -> BinaryDeletion:
        return await self.binaries.delete_binary(app_name)

    async def retrieve_binary_path(
        self, app_name: str, binary_type: BinaryType, upload_time: datetime
    ) -> Path:
        return await self.binaries.retrieve_binary_path(app_name, binary_type, upload_time)

    async def get_apps(self) -> dict[str, tuple[BinaryType, datetime]]:
        return await self.binaries.get_apps()

    async def get_last_upload_time_and_type(
        self, app_name: str
    ) -> tuple[datetime, BinaryType] | None:
        return await self.binaries.get_last_upload_time_and_type(app_name)

    # Jobs

    async def save_job_info(self, job_info: JobInfo) -> None:
        await self.jobs.save_job_info(job_info)

    async def get_job_info(self, job_id: str) -> JobInfo | None:
        return await self.jobs.get_job_info(job_id)

    async def get_job_infos(self, limit: int, status: JobStatus | str | None = None) -> list[JobInfo]:
        return await self.jobs.get_job_infos(limit, status)

    async def get_running_job_infos_for_context(self, context_name: str) -> list[JobInfo]:
        return await self.jobs.get_running_job_infos_for_context(context_name)

    async def clean_running_job_infos_for_context(self, context_name: str, end_time: datetime) -> int:
        return await self.jobs.clean_running_job_infos_for_context(context_name, end_time)

    # Configs

    async def save_job_config(self, job_id: str, config: Mapping[str, Any]) -> None:
        await self.configs.save_job_config(job_id, config)

    async def get_job_config(self, job_id: str) -> dict[str, Any] | None:
        return await self.configs.get_job_config(job_id)
