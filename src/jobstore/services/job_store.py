"""Job store: JOBS rows joined with the BINARIES they reference."""

import logging
from datetime import datetime

from sqlalchemy import Row
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from jobstore.db.conversions import from_db_timestamp, to_db_timestamp
from jobstore.errors.exceptions import ContextTerminatedError, PersistenceFailure
from jobstore.models.binary import BinaryInfo
from jobstore.models.enums import BinaryType, JobStatus
from jobstore.models.job import ErrorData, JobInfo
from jobstore.repositories.job_repo import JobRepository
from jobstore.services.binary_store import BinaryStore
from jobstore.services.unit_of_work import SessionRunner

logger = logging.getLogger(__name__)


def job_info_from_row(row: Row | tuple) -> JobInfo:
    """Assemble a JobInfo from the eleven joined job/binary columns.

    The error sub-record exists iff ERROR is set; its class and stack trace
    default to empty strings.
    """
    (
        job_id, context_name, app_name, binary_type, upload_time, class_path,
        start_time, end_time, error, error_class, error_stack_trace,
    ) = row
    error_data = None
    if error is not None:
        error_data = ErrorData(
            message=error,
            error_class=error_class or "",
            stack_trace=error_stack_trace or "",
        )
    return JobInfo(
        job_id=job_id,
        context_name=context_name,
        binary_info=BinaryInfo(
            app_name=app_name,
            binary_type=BinaryType.from_string(binary_type),
            upload_time=from_db_timestamp(upload_time),
        ),
        class_path=class_path,
        start_time=from_db_timestamp(start_time),
        end_time=from_db_timestamp(end_time),
        error=error_data,
    )


class JobStore:
    def __init__(self, runner: SessionRunner, binary_store: BinaryStore):
        self.runner = runner
        self.binary_store = binary_store

    async def save_job_info(self, job_info: JobInfo) -> None:
        """Insert or replace the JOBS row for ``job_info.job_id``."""
        bin_id = await self.binary_store.resolve_id(job_info.binary_info)
        error = job_info.error
        values = {
            "context_name": job_info.context_name,
            "bin_id": bin_id,
            "class_path": job_info.class_path,
            "start_time": to_db_timestamp(job_info.start_time),
            "end_time": to_db_timestamp(job_info.end_time) if job_info.end_time else None,
            "error": error.message if error else None,
            "error_class": error.error_class if error else None,
            "error_stack_trace": error.stack_trace if error else None,
        }

        async def _upsert(session: AsyncSession) -> int:
            async with session.begin():
                return await JobRepository(session).upsert(job_info.job_id, **values)

        try:
            affected = await self.runner.run("save_job_info", _upsert)
        except SQLAlchemyError as exc:
            raise PersistenceFailure(
                f"Could not update {job_info.job_id} in the database",
                details={"error": str(exc)},
            ) from exc
        if affected == 0:
            raise PersistenceFailure(f"Could not update {job_info.job_id} in the database")
        logger.debug("Saved job %s (status=%s)", job_info.job_id, job_info.status)

    async def get_job_info(self, job_id: str) -> JobInfo | None:
        async def _query(session: AsyncSession):
            return await JobRepository(session).get_joined(job_id)

        row = await self.runner.run("get_job_info", _query)
        return job_info_from_row(row) if row is not None else None

    async def get_job_infos(self, limit: int, status: JobStatus | str | None = None) -> list[JobInfo]:
        """Newest-first jobs, optionally restricted to one derived status."""
        status = JobStatus(status) if status is not None else None

        async def _query(session: AsyncSession):
            return await JobRepository(session).list_joined(limit, status)

        rows = await self.runner.run("get_job_infos", _query)
        return [job_info_from_row(row) for row in rows]

    async def get_running_job_infos_for_context(self, context_name: str) -> list[JobInfo]:
        async def _query(session: AsyncSession):
            return await JobRepository(session).list_running_for_context(context_name)

        rows = await self.runner.run("get_running_job_infos_for_context", _query)
        return [job_info_from_row(row) for row in rows]

    async def clean_running_job_infos_for_context(
        self, context_name: str, end_time: datetime
    ) -> int:
        """Mark every running job of a terminated context as errored. Returns the count."""
        message = ContextTerminatedError(context_name).message
        db_end_time = to_db_timestamp(end_time)

        async def _update(session: AsyncSession) -> int:
            async with session.begin():
                return await JobRepository(session).mark_running_as_errored(
                    context_name, db_end_time, message
                )

        try:
            count = await self.runner.run("clean_running_job_infos_for_context", _update)
        except SQLAlchemyError as exc:
            raise PersistenceFailure(
                f"Could not clean running jobs of context {context_name} in the database",
                details={"error": str(exc)},
            ) from exc
        if count:
            logger.info("Marked %d running jobs of context %s as errored", count, context_name)
        return count
