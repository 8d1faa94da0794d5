"""Fork-join task group for independent concurrent requests."""

import asyncio
import logging
from typing import Any, Awaitable, Optional

logger = logging.getLogger(__name__)


class TaskGroup:
    """Run a group of coroutines concurrently and join them as a unit.

    Results come back in spawn order regardless of completion order. The
    first failure cancels every task still running and is re-raised; if the
    joining coroutine itself is cancelled, all tasks are cancelled too.

    Example:
        ```python
        async with TaskGroup() as group:
            for batch in batches:
                group.spawn(embed(batch))
        results = group.results
        ```
    """

    def __init__(self, name: str = "group"):
        self.name = name
        self._tasks: list[asyncio.Task] = []
        self._results: Optional[list[Any]] = None

    def spawn(self, coro: Awaitable[Any]) -> asyncio.Task:
        """Schedule a coroutine as a member of the group."""
        if self._results is not None:
            raise RuntimeError(f"Task group '{self.name}' has already been joined")

        task = asyncio.ensure_future(coro)
        self._tasks.append(task)
        return task

    @property
    def results(self) -> list[Any]:
        """Results of a joined group, in spawn order."""
        if self._results is None:
            raise RuntimeError(f"Task group '{self.name}' has not been joined")
        return self._results

    def __len__(self) -> int:
        return len(self._tasks)

    async def join(self) -> list[Any]:
        """Wait for every task and return their results in spawn order."""
        if self._results is not None:
            return self._results

        if not self._tasks:
            self._results = []
            return self._results

        try:
            done, pending = await asyncio.wait(
                self._tasks,
                return_when=asyncio.FIRST_EXCEPTION,
            )
        except asyncio.CancelledError:
            await self.cancel()
            raise

        failed = [
            task for task in self._tasks
            if task in done and not task.cancelled() and task.exception() is not None
        ]
        if failed:
            if pending:
                logger.debug(
                    f"Task group '{self.name}': cancelling {len(pending)} tasks after failure"
                )
            await self.cancel()
            raise failed[0].exception()

        self._results = [task.result() for task in self._tasks]
        return self._results

    async def cancel(self) -> None:
        """Cancel every unfinished task and wait for them to settle."""
        unfinished = [task for task in self._tasks if not task.done()]
        for task in unfinished:
            task.cancel()
        if unfinished:
            await asyncio.gather(*unfinished, return_exceptions=True)

    async def __aenter__(self) -> "TaskGroup":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if exc_type is not None:
            await self.cancel()
            return
        await self.join()
