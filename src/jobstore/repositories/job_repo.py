"""Job repository."""

from datetime import datetime

from sqlalchemy import Row, inspect, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from jobstore.db.conversions import status_clauses
from jobstore.db.models.binary import BinaryRow
from jobstore.db.models.job import JobRow
from jobstore.models.enums import JobStatus
from jobstore.repositories.base import BaseRepository

_DIALECT_INSERTS = {"sqlite": sqlite.insert, "postgresql": postgresql.insert}

# Column order of every joined job row.
JOINED_COLUMNS = (
    JobRow.job_id,
    JobRow.context_name,
    BinaryRow.app_name,
    BinaryRow.binary_type,
    BinaryRow.upload_time,
    JobRow.class_path,
    JobRow.start_time,
    JobRow.end_time,
    JobRow.error,
    JobRow.error_class,
    JobRow.error_stack_trace,
)


class JobRepository(BaseRepository):
    def __init__(self, session: AsyncSession):
        super().__init__(session, JobRow)

    def _joined(self, *conditions):
        return (
            select(*JOINED_COLUMNS)
            .select_from(JobRow)
            .join(BinaryRow, BinaryRow.bin_id == JobRow.bin_id)
            .where(*conditions)
        )

    async def upsert(self, job_id: str, **values) -> int:
        """Insert the row for ``job_id`` or replace it in place, atomically.

        Uses the dialect's INSERT ... ON CONFLICT DO UPDATE. Returns rows affected.
        """
        columns = inspect(JobRow).columns
        row = {columns[key]: value for key, value in values.items()}
        insert = _DIALECT_INSERTS[self.session.bind.dialect.name]
        stmt = insert(JobRow.__table__).values({columns["job_id"]: job_id, **row})
        stmt = stmt.on_conflict_do_update(index_elements=[columns["job_id"]], set_=row)
        result = await self.session.execute(stmt)
        return result.rowcount or 0

    async def get_joined(self, job_id: str) -> Row | None:
        result = await self.session.execute(self._joined(JobRow.job_id == job_id))
        return result.first()

    async def list_joined(self, limit: int, status: JobStatus | None = None) -> list[Row]:
        stmt = (
            self._joined(*status_clauses(status))
            .order_by(JobRow.start_time.desc())
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.all())

    async def list_running_for_context(self, context_name: str) -> list[Row]:
        stmt = self._joined(
            JobRow.context_name == context_name,
            *status_clauses(JobStatus.RUNNING),
        )
        result = await self.session.execute(stmt)
        return list(result.all())

    async def mark_running_as_errored(
        self, context_name: str, end_time: datetime, error: str
    ) -> int:
        """Set END_TIME and ERROR on every running job of a context in one statement."""
        stmt = (
            update(JobRow)
            .where(
                JobRow.context_name == context_name,
                *status_clauses(JobStatus.RUNNING),
            )
            .values(end_time=end_time, error=error)
        )
        return await self.execute_count(stmt)
