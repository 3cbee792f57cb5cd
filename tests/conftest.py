"""Shared test fixtures."""

from datetime import datetime, timezone

import pytest

from jobstore.config import Settings
from jobstore.models.binary import BinaryInfo
from jobstore.models.enums import BinaryType
from jobstore.models.job import JobInfo
from jobstore.services.dao import JobSqlDAO


@pytest.fixture
def test_settings(tmp_path) -> Settings:
    """Settings pointing at a throwaway SQLite file and cache directory."""
    return Settings(
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'jobstore.db'}",
        rootdir=str(tmp_path / "binaries"),
        wait_timeout_seconds=10,
    )


@pytest.fixture
async def dao(test_settings):
    """A migrated DAO over a fresh database."""
    _dao = await JobSqlDAO.open(test_settings)
    yield _dao
    await _dao.close()


@pytest.fixture
def upload_time() -> datetime:
    return datetime(2026, 10, 18, 10, 15, 2, 123000, tzinfo=timezone.utc)


@pytest.fixture
def jar_info(upload_time) -> BinaryInfo:
    return BinaryInfo(app_name="app1", binary_type=BinaryType.JAR, upload_time=upload_time)


@pytest.fixture
async def saved_jar(dao, jar_info) -> BinaryInfo:
    """app1.jar saved through the DAO."""
    await dao.save_binary(
        jar_info.app_name, jar_info.binary_type, jar_info.upload_time, b"jar-bytes"
    )
    return jar_info


def make_job(
    job_id: str,
    binary_info: BinaryInfo,
    start_time: datetime,
    context_name: str = "ctx",
    **kwargs,
) -> JobInfo:
    return JobInfo(
        job_id=job_id,
        context_name=context_name,
        binary_info=binary_info,
        class_path="com.example.WordCount",
        start_time=start_time,
        **kwargs,
    )
