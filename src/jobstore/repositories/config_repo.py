"""Job configuration repository."""

from sqlalchemy.ext.asyncio import AsyncSession

from jobstore.db.models.job_config import JobConfigRow
from jobstore.repositories.base import BaseRepository


class JobConfigRepository(BaseRepository):
    def __init__(self, session: AsyncSession):
        super().__init__(session, JobConfigRow)

    async def get(self, job_id: str) -> JobConfigRow | None:
        return await self.get_by_id("job_id", job_id)

    async def insert(self, job_id: str, job_config: str) -> JobConfigRow:
        return await self.create(job_id=job_id, job_config=job_config)
