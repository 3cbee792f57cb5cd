"""Binary store: BINARIES + BINARIES_CONTENTS backed by a local read-through cache.

Cache and database are not kept transactionally consistent. Saves write the
cache first, so a failed insert never leaves a stored but uncached binary, and
a missing cache entry is repaired from the database on the next retrieval.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from jobstore.db.conversions import from_db_timestamp
from jobstore.errors.exceptions import BestEffortCleanupFailure, NotFoundError, PersistenceFailure
from jobstore.models.binary import BinaryInfo
from jobstore.models.enums import BinaryType
from jobstore.repositories.binary_repo import BinaryRepository
from jobstore.services.cache import BinaryCache, binary_cache_key
from jobstore.services.unit_of_work import SessionRunner

logger = logging.getLogger(__name__)


@dataclass
class BinaryDeletion:
    """Outcome of deleting every binary of an application."""

    app_name: str
    binaries_deleted: int
    contents_deleted: int
    cleanup_failure: BestEffortCleanupFailure | None = None
    cache_entries_removed: int = 0


def _describe(info: BinaryInfo) -> str:
    return f"{info.app_name} of type {info.binary_type.value} at {info.upload_time.isoformat()}"


class BinaryStore:
    def __init__(self, runner: SessionRunner, cache: BinaryCache):
        self.runner = runner
        self.cache = cache

    async def save_binary(
        self,
        app_name: str,
        binary_type: BinaryType,
        upload_time: datetime,
        content: bytes,
    ) -> None:
        info = BinaryInfo(app_name=app_name, binary_type=binary_type, upload_time=upload_time)
        key = binary_cache_key(info)
        # The natural key carries no unique constraint in the schema. A rejected
        # save must not touch the cached copy of the accepted binary.
        if await self._find_id(info) is not None:
            raise PersistenceFailure(f"Binary {_describe(info)} already exists")

        # The order is important: cache the file first, then record it in the database.
        self.cache.put(key, content)

        async def _insert(session: AsyncSession) -> int | None:
            async with session.begin():
                repo = BinaryRepository(session)
                if await repo.find_id(info) is not None:
                    raise PersistenceFailure(f"Binary {_describe(info)} already exists")
                return await repo.insert(info, content)

        try:
            bin_id = await self.runner.run("save_binary", _insert)
        except PersistenceFailure:
            # Lost a race with a concurrent save; the next retrieval repopulates from the database.
            self.cache.discard(key)
            raise
        except SQLAlchemyError as exc:
            raise PersistenceFailure(
                f"Failed to insert binary: {_describe(info)} into database",
                details={"error": str(exc)},
            ) from exc
        if bin_id is None:
            raise PersistenceFailure(f"Failed to insert binary: {_describe(info)} into database")
        logger.info("Saved binary %s", _describe(info))

    async def delete_binary(self, app_name: str) -> BinaryDeletion:
        """Delete every binary named ``app_name``, contents first, in one transaction.

        A failing content delete is rolled back to a savepoint, reported in the
        outcome and counted as zero rows; the metadata delete still runs.
        """

        async def _delete(session: AsyncSession) -> BinaryDeletion:
            repo = BinaryRepository(session)
            cleanup_failure = None
            async with session.begin():
                try:
                    async with session.begin_nested():
                        contents = await repo.delete_contents_for_app(app_name)
                except SQLAlchemyError as exc:
                    cleanup_failure = BestEffortCleanupFailure(
                        f"Failed to delete binary contents of {app_name}", cause=exc
                    )
                    logger.error("%s: %s", cleanup_failure.message, exc, exc_info=exc)
                    contents = 0
                binaries = await repo.delete_for_app(app_name)
            return BinaryDeletion(
                app_name=app_name,
                binaries_deleted=binaries,
                contents_deleted=contents,
                cleanup_failure=cleanup_failure,
            )

        try:
            outcome = await self.runner.run("delete_binary", _delete)
        except SQLAlchemyError as exc:
            raise PersistenceFailure(
                f"Failed to delete binary: {app_name} from database",
                details={"error": str(exc)},
            ) from exc
        if outcome.binaries_deleted == 0:
            raise PersistenceFailure(f"Failed to delete binary: {app_name} from database")

        outcome.cache_entries_removed = len(self.cache.delete(app_name))
        logger.info(
            "Deleted %d binaries (%d contents) for %s",
            outcome.binaries_deleted, outcome.contents_deleted, app_name,
        )
        return outcome

    async def retrieve_binary_path(
        self, app_name: str, binary_type: BinaryType, upload_time: datetime
    ) -> Path:
        """Local path of a binary, fetched from the database on a cache miss."""
        info = BinaryInfo(app_name=app_name, binary_type=binary_type, upload_time=upload_time)
        key = binary_cache_key(info)
        if not self.cache.exists(key):
            content = await self._fetch_content(info)
            self.cache.put(key, content)
            logger.info("Cache miss for %s repaired from database", key)
        return self.cache.path(key)

    async def _fetch_content(self, info: BinaryInfo) -> bytes:
        async def _fetch(session: AsyncSession) -> bytes | None:
            async with session.begin():
                return await BinaryRepository(session).fetch_content(info)

        content = await self.runner.run("retrieve_binary_path", _fetch)
        if content is None:
            raise NotFoundError("Binary", _describe(info))
        return content

    async def get_apps(self) -> dict[str, tuple[BinaryType, datetime]]:
        """Newest binary type and upload time per application name.

        Rows come from a GROUP BY (name, type). When one name has several types,
        the type with the latest upload wins. An exact tie between types keeps
        whichever group the database returned first, which is not guaranteed.
        """

        async def _query(session: AsyncSession):
            return await BinaryRepository(session).latest_per_app_and_type()

        rows = await self.runner.run("get_apps", _query)
        apps: dict[str, tuple[BinaryType, datetime]] = {}
        for app_name, binary_type, upload_time in rows:
            upload_time = from_db_timestamp(upload_time)
            current = apps.get(app_name)
            if current is None or upload_time > current[1]:
                apps[app_name] = (BinaryType.from_string(binary_type), upload_time)
        return apps

    async def get_last_upload_time_and_type(
        self, app_name: str
    ) -> tuple[datetime, BinaryType] | None:
        async def _query(session: AsyncSession):
            return await BinaryRepository(session).last_upload(app_name)

        row = await self.runner.run("get_last_upload_time_and_type", _query)
        if row is None:
            return None
        upload_time, binary_type = row
        return from_db_timestamp(upload_time), BinaryType.from_string(binary_type)

    async def _find_id(self, info: BinaryInfo, operation: str = "save_binary") -> int | None:
        async def _query(session: AsyncSession):
            return await BinaryRepository(session).find_id(info)

        return await self.runner.run(operation, _query)

    async def resolve_id(self, info: BinaryInfo) -> int:
        """Surrogate BIN_ID for a natural key. Not exposed outside the layer."""
        bin_id = await self._find_id(info, operation="resolve_id")
        if bin_id is None:
            raise NotFoundError("Binary", _describe(info))
        return bin_id
