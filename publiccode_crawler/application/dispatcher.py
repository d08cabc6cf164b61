"""Bounded fan-out of repository tasks."""
import asyncio
import logging
from typing import Set
from publiccode_crawler.application.completion import RepositoryQueue
from publiccode_crawler.application.repository_processor import RepositoryProcessor
from publiccode_crawler.domain.models import Repository


logger = logging.getLogger(__name__)


class Dispatcher:
    """Drains the repository queue, running one task per repository.

    At most max_concurrency tasks run at once; receiving the next item
    waits for a free slot, never for a particular task.
    """

    def __init__(self, processor: RepositoryProcessor, max_concurrency: int = 50):
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        self._processor = processor
        self._max_concurrency = max_concurrency
        self._in_flight: Set[asyncio.Task] = set()
        self._active = 0
        self.peak_concurrency = 0

    async def dispatch(self, queue: RepositoryQueue) -> int:
        """Process repositories until the queue is closed and drained.

        Returns:
            Number of repositories dispatched
        """
        slots = asyncio.Semaphore(self._max_concurrency)
        dispatched = 0

        logger.debug("Repositories are going to be processed...")

        async for repository in queue:
            await slots.acquire()
            task = asyncio.create_task(self._run(repository, slots))
            self._in_flight.add(task)
            task.add_done_callback(self._in_flight.discard)
            dispatched += 1

        if self._in_flight:
            await asyncio.gather(*self._in_flight)

        logger.info(f"Dispatcher finished after {dispatched} repositories")
        return dispatched

    async def _run(self, repository: Repository, slots: asyncio.Semaphore) -> None:
        self._active += 1
        self.peak_concurrency = max(self.peak_concurrency, self._active)
        try:
            await self._processor.process(repository)
        finally:
            self._active -= 1
            slots.release()
