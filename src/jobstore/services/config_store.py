"""Config store: the configuration submitted with each job."""

import json
import logging
from collections.abc import Mapping
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from jobstore.errors.exceptions import PersistenceFailure
from jobstore.repositories.config_repo import JobConfigRepository
from jobstore.services.unit_of_work import SessionRunner

logger = logging.getLogger(__name__)


def _check_keys(value: Any) -> None:
    if isinstance(value, Mapping):
        for key, item in value.items():
            if not isinstance(key, str):
                raise TypeError(f"config keys must be strings, got {key!r}")
            _check_keys(item)
    elif isinstance(value, (list, tuple)):
        for item in value:
            _check_keys(item)


def render_config(config: Mapping[str, Any]) -> str:
    """Concise text form: compact JSON with sorted keys.

    Configs are JSON objects: keys must be strings and values JSON-encodable,
    otherwise ``TypeError``/``ValueError`` is raised.
    """
    _check_keys(config)
    return json.dumps(config, separators=(",", ":"), sort_keys=True, ensure_ascii=False)


def parse_config(text: str) -> dict[str, Any]:
    return json.loads(text)


class ConfigStore:
    def __init__(self, runner: SessionRunner):
        self.runner = runner

    async def save_job_config(self, job_id: str, config: Mapping[str, Any]) -> None:
        """Insert the config for ``job_id``. A second save for the same job fails."""
        try:
            rendered = render_config(config)
        except (TypeError, ValueError) as exc:
            raise PersistenceFailure(
                f"Could not insert {job_id} into database: config is not a JSON object",
                details={"error": str(exc)},
            ) from exc

        async def _insert(session: AsyncSession) -> bool:
            async with session.begin():
                row = await JobConfigRepository(session).insert(job_id, rendered)
            return row is not None

        try:
            inserted = await self.runner.run("save_job_config", _insert)
        except SQLAlchemyError as exc:
            raise PersistenceFailure(
                f"Could not insert {job_id} into database",
                details={"error": str(exc)},
            ) from exc
        if not inserted:
            raise PersistenceFailure(f"Could not insert {job_id} into database")
        logger.debug("Saved config for job %s", job_id)

    async def get_job_config(self, job_id: str) -> dict[str, Any] | None:
        async def _query(session: AsyncSession) -> str | None:
            row = await JobConfigRepository(session).get(job_id)
            return row.job_config if row else None

        text = await self.runner.run("get_job_config", _query)
        return parse_config(text) if text is not None else None
