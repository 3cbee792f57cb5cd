"""Binary metadata and content repository."""

from datetime import datetime

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from jobstore.db.conversions import to_db_timestamp
from jobstore.db.models.binary import BinaryContentRow, BinaryRow
from jobstore.models.binary import BinaryInfo
from jobstore.repositories.base import BaseRepository


class BinaryRepository(BaseRepository):
    def __init__(self, session: AsyncSession):
        super().__init__(session, BinaryRow)

    def _natural_key(self, info: BinaryInfo):
        return [
            BinaryRow.app_name == info.app_name,
            BinaryRow.binary_type == info.binary_type.value,
            BinaryRow.upload_time == to_db_timestamp(info.upload_time),
        ]

    async def insert(self, info: BinaryInfo, content: bytes) -> int | None:
        """Insert the metadata row, then its content row. Returns the new BIN_ID."""
        row = await self.create(
            app_name=info.app_name,
            binary_type=info.binary_type.value,
            upload_time=to_db_timestamp(info.upload_time),
        )
        if row.bin_id is None:
            return None
        self.session.add(BinaryContentRow(bin_id=row.bin_id, binary=content))
        await self.session.flush()
        return row.bin_id

    async def find_id(self, info: BinaryInfo) -> int | None:
        stmt = select(BinaryRow.bin_id).where(*self._natural_key(info)).limit(1)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def fetch_content(self, info: BinaryInfo) -> bytes | None:
        stmt = (
            select(BinaryContentRow.binary)
            .join(BinaryRow, BinaryRow.bin_id == BinaryContentRow.bin_id)
            .where(*self._natural_key(info))
            .limit(1)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def delete_contents_for_app(self, app_name: str) -> int:
        ids = select(BinaryRow.bin_id).where(BinaryRow.app_name == app_name)
        return await self.execute_count(
            delete(BinaryContentRow).where(BinaryContentRow.bin_id.in_(ids))
        )

    async def delete_for_app(self, app_name: str) -> int:
        return await self.execute_count(
            delete(BinaryRow).where(BinaryRow.app_name == app_name)
        )

    async def latest_per_app_and_type(self) -> list[tuple[str, str, datetime]]:
        """(app name, binary type, newest upload time) for every distinct name/type pair."""
        stmt = select(
            BinaryRow.app_name,
            BinaryRow.binary_type,
            func.max(BinaryRow.upload_time),
        ).group_by(BinaryRow.app_name, BinaryRow.binary_type)
        result = await self.session.execute(stmt)
        return [tuple(row) for row in result.all()]

    async def last_upload(self, app_name: str) -> tuple[datetime, str] | None:
        stmt = (
            select(BinaryRow.upload_time, BinaryRow.binary_type)
            .where(BinaryRow.app_name == app_name)
            .order_by(BinaryRow.upload_time.desc())
            .limit(1)
        )
        result = await self.session.execute(stmt)
        row = result.first()
        return tuple(row) if row else None
