"""Bounded waits on database units of work.

Every store operation runs in its own session drawn from the shared pool.
The caller waits at most ``wait_timeout`` seconds; on expiry the work keeps
running to completion in the background and the caller gets WaitTimeoutError.
Nothing is retried.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from jobstore.errors.exceptions import WaitTimeoutError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _report_abandoned(operation: str):
    def _done(task: asyncio.Task) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("%s failed after its caller timed out: %s", operation, exc)
        else:
            logger.warning("%s completed after its caller timed out", operation)

    return _done


class SessionRunner:
    """Runs async callables against a fresh session under a bounded wait."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession], wait_timeout: float):
        self.session_factory = session_factory
        self.wait_timeout = wait_timeout

    async def run(self, operation: str, work: Callable[[AsyncSession], Awaitable[T]]) -> T:
        async def _unit() -> T:
            async with self.session_factory() as session:
                return await work(session)

        task = asyncio.ensure_future(_unit())
        try:
            return await asyncio.wait_for(asyncio.shield(task), timeout=self.wait_timeout)
        except TimeoutError:
            task.add_done_callback(_report_abandoned(operation))
            logger.error("%s timed out after %ss", operation, self.wait_timeout)
            raise WaitTimeoutError(operation, self.wait_timeout) from None
