"""Tests for the job store: upsert, joined reads, status filters and context cleanup."""

from datetime import timedelta

import pytest
from sqlalchemy import event
from sqlalchemy.exc import OperationalError

from jobstore.db.engine import create_session_factory
from jobstore.errors.exceptions import NotFoundError, PersistenceFailure
from jobstore.models.enums import BinaryType, JobStatus
from jobstore.models.job import ErrorData
from jobstore.repositories.job_repo import JobRepository
from jobstore.services.job_store import job_info_from_row

from conftest import make_job


@pytest.fixture
async def mixed_jobs(dao, saved_jar, upload_time):
    """Two running, one finished and one errored job in ``ctx``; one running job elsewhere."""
    t0 = upload_time + timedelta(minutes=1)
    jobs = [
        make_job("running-1", saved_jar, t0),
        make_job("finished-1", saved_jar, t0 + timedelta(minutes=1), end_time=t0 + timedelta(minutes=2)),
        make_job(
            "error-1",
            saved_jar,
            t0 + timedelta(minutes=2),
            end_time=t0 + timedelta(minutes=3),
            error=ErrorData(message="boom", error_class="java.lang.RuntimeException", stack_trace="at X"),
        ),
        make_job("running-2", saved_jar, t0 + timedelta(minutes=3)),
        make_job("other-ctx", saved_jar, t0 + timedelta(minutes=4), context_name="ctx2"),
    ]
    for job in jobs:
        await dao.save_job_info(job)
    return {job.job_id: job for job in jobs}


@pytest.mark.asyncio
async def test_running_job_then_context_terminated(dao, saved_jar, upload_time):
    t1 = upload_time + timedelta(minutes=1)
    t2 = upload_time + timedelta(minutes=30)
    await dao.save_job_info(make_job("J1", saved_jar, t1))

    job = await dao.get_job_info("J1")
    assert job.status is JobStatus.RUNNING
    assert job.binary_info == saved_jar

    cleaned = await dao.clean_running_job_infos_for_context("ctx", t2)

    job = await dao.get_job_info("J1")
    assert cleaned == 1
    assert job.status is JobStatus.ERROR
    assert job.end_time == t2
    assert job.error.message == "Unexpected termination of context ctx"
    assert job.error.error_class == ""
    assert job.error.stack_trace == ""


@pytest.mark.asyncio
async def test_get_job_info_missing(dao):
    assert await dao.get_job_info("nope") is None


@pytest.mark.asyncio
async def test_save_job_info_round_trips_all_fields(dao, mixed_jobs):
    stored = await dao.get_job_info("error-1")
    assert stored == mixed_jobs["error-1"]


@pytest.mark.asyncio
async def test_save_job_info_upserts(dao, saved_jar, upload_time):
    job = make_job("J1", saved_jar, upload_time)
    await dao.save_job_info(job)

    finished = job.model_copy(update={"end_time": upload_time + timedelta(seconds=42)})
    await dao.save_job_info(finished)

    stored = await dao.get_job_info("J1")
    assert stored.status is JobStatus.FINISHED
    assert stored.end_time == upload_time + timedelta(seconds=42)
    assert len(await dao.get_job_infos(10)) == 1


@pytest.mark.asyncio
async def test_save_job_info_requires_known_binary(dao, jar_info, upload_time):
    with pytest.raises(NotFoundError):
        await dao.save_job_info(make_job("J1", jar_info, upload_time))


@pytest.mark.asyncio
async def test_job_survives_binary_deletion_without_join(dao, saved_jar, upload_time):
    await dao.save_job_info(make_job("J1", saved_jar, upload_time))

    await dao.delete_binary(saved_jar.app_name)

    # The JOBS row remains; it simply no longer joins to a binary.
    assert await dao.get_job_info("J1") is None


@pytest.mark.asyncio
async def test_get_job_infos_newest_first(dao, mixed_jobs):
    jobs = await dao.get_job_infos(10)
    assert [j.job_id for j in jobs] == ["other-ctx", "running-2", "error-1", "finished-1", "running-1"]


@pytest.mark.asyncio
async def test_get_job_infos_limit(dao, mixed_jobs):
    jobs = await dao.get_job_infos(2)
    assert [j.job_id for j in jobs] == ["other-ctx", "running-2"]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "status, expected",
    [
        (JobStatus.RUNNING, ["other-ctx", "running-2", "running-1"]),
        (JobStatus.FINISHED, ["finished-1"]),
        (JobStatus.ERROR, ["error-1"]),
        ("RUNNING", ["other-ctx", "running-2", "running-1"]),
    ],
)
async def test_get_job_infos_status_filter(dao, mixed_jobs, status, expected):
    jobs = await dao.get_job_infos(10, status)
    assert [j.job_id for j in jobs] == expected
    assert all(j.status == JobStatus(status) for j in jobs)


@pytest.mark.asyncio
async def test_running_jobs_for_context(dao, mixed_jobs):
    jobs = await dao.get_running_job_infos_for_context("ctx")
    assert sorted(j.job_id for j in jobs) == ["running-1", "running-2"]
    assert await dao.get_running_job_infos_for_context("unknown") == []


@pytest.mark.asyncio
async def test_clean_only_touches_running_jobs_of_context(dao, mixed_jobs, upload_time):
    end = upload_time + timedelta(hours=1)

    cleaned = await dao.clean_running_job_infos_for_context("ctx", end)

    assert cleaned == 2
    for job_id in ("running-1", "running-2"):
        job = await dao.get_job_info(job_id)
        assert job.status is JobStatus.ERROR
        assert job.end_time == end
    assert await dao.get_job_info("finished-1") == mixed_jobs["finished-1"]
    assert await dao.get_job_info("error-1") == mixed_jobs["error-1"]
    assert (await dao.get_job_info("other-ctx")).status is JobStatus.RUNNING
    assert await dao.get_running_job_infos_for_context("ctx") == []


@pytest.mark.asyncio
async def test_clean_with_no_running_jobs(dao, upload_time):
    assert await dao.clean_running_job_infos_for_context("ctx", upload_time) == 0


def test_job_info_from_row_flattens_missing_error_fields(upload_time):
    naive = upload_time.replace(tzinfo=None)
    row = ("J1", "ctx", "app1", "Jar", naive, "Main", naive, None, "failed", None, None)

    job = job_info_from_row(row)

    assert job.binary_info.binary_type is BinaryType.JAR
    assert job.error == ErrorData(message="failed", error_class="", stack_trace="")
    assert job.status is JobStatus.ERROR


def test_job_info_from_row_without_error(upload_time):
    naive = upload_time.replace(tzinfo=None)
    row = ("J1", "ctx", "app1", "Egg", naive, "Main", naive, naive, None, None, None)

    job = job_info_from_row(row)

    assert job.error is None
    assert job.status is JobStatus.FINISHED
    assert job.start_time == upload_time


@pytest.mark.asyncio
async def test_upsert_is_a_single_insert_on_conflict(dao, saved_jar, upload_time):
    statements = []

    def record(conn, cursor, statement, parameters, context, executemany):
        statements.append(statement)

    bin_id = await dao.binaries.resolve_id(saved_jar)
    values = {
        "context_name": "ctx",
        "bin_id": bin_id,
        "class_path": "Main",
        "start_time": upload_time.replace(tzinfo=None),
    }
    event.listen(dao.engine.sync_engine, "before_cursor_execute", record)
    try:
        async with create_session_factory(dao.engine)() as session:
            async with session.begin():
                repo = JobRepository(session)
                assert await repo.upsert("J1", **values) == 1
                assert await repo.upsert("J1", **{**values, "class_path": "Other"}) == 1
    finally:
        event.remove(dao.engine.sync_engine, "before_cursor_execute", record)

    writes = [s for s in statements if s.lstrip().upper().startswith(("INSERT", "UPDATE"))]
    assert len(writes) == 2
    assert all("ON CONFLICT" in s for s in writes)
    assert (await dao.get_job_info("J1")).class_path == "Other"


@pytest.mark.asyncio
async def test_clean_translates_database_errors(dao, mixed_jobs, upload_time, monkeypatch):
    async def failing(self, context_name, end_time, error):
        raise OperationalError("UPDATE JOBS", {}, Exception("database is locked"))

    monkeypatch.setattr(JobRepository, "mark_running_as_errored", failing)

    with pytest.raises(PersistenceFailure) as exc_info:
        await dao.clean_running_job_infos_for_context("ctx", upload_time)

    assert "ctx" in exc_info.value.message
    assert "database is locked" in exc_info.value.details["error"]
    monkeypatch.undo()
    assert len(await dao.get_running_job_infos_for_context("ctx")) == 2
