"""Repository queue and completion tracking shared by crawlers and tasks."""
import asyncio
import logging
from typing import AsyncIterator, Callable, Optional
from publiccode_crawler.domain.exceptions import QueueClosedError
from publiccode_crawler.domain.models import Repository


logger = logging.getLogger(__name__)

_CLOSED = object()


class RepositoryQueue:
    """Unbounded FIFO conduit from domain crawlers to the dispatcher.

    Many producers, one consumer. Iterating the queue yields repositories
    until it has been closed and drained.
    """

    def __init__(self):
        self._queue: asyncio.Queue = asyncio.Queue()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def put(self, repository: Repository) -> None:
        """Append a repository.

        Raises:
            QueueClosedError: If the queue has already been closed
        """
        if self._closed:
            raise QueueClosedError(f"Queue closed, cannot accept {repository.name}")
        await self._queue.put(repository)

    def close(self) -> None:
        """Stop accepting items; the consumer drains what is left."""
        if self._closed:
            return
        self._closed = True
        self._queue.put_nowait(_CLOSED)
        logger.debug("Repository queue closed")

    async def get(self) -> Optional[Repository]:
        """Return the next repository, or None once closed and drained."""
        item = await self._queue.get()
        if item is _CLOSED:
            # Keep the marker for any later reader
            self._queue.put_nowait(_CLOSED)
            return None
        return item

    def __aiter__(self) -> AsyncIterator[Repository]:
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[Repository]:
        while True:
            repository = await self.get()
            if repository is None:
                return
            yield repository


class CompletionCoordinator:
    """Counts outstanding units of work and fires one closing action at zero.

    Units are running domain crawlers and repositories that are queued or
    being processed. A repository is counted by its producer before it is
    queued, so the count cannot reach zero while items wait in the queue.
    """

    def __init__(self, on_complete: Callable[[], None]):
        self._on_complete = on_complete
        self._outstanding = 0
        self._completed = False
        self.finished = asyncio.Event()

    @property
    def outstanding(self) -> int:
        return self._outstanding

    @property
    def completed(self) -> bool:
        return self._completed

    def add(self, count: int = 1) -> None:
        if self._completed:
            raise RuntimeError("Cannot add work after completion")
        if count < 0:
            raise ValueError("count must not be negative")
        self._outstanding += count

    def done(self) -> None:
        if self._outstanding <= 0:
            raise RuntimeError("done() called with no outstanding work")
        self._outstanding -= 1
        if self._outstanding == 0:
            self._complete()

    def _complete(self) -> None:
        self._completed = True
        logger.debug("All crawlers and repository tasks finished")
        self._on_complete()
        self.finished.set()

    async def wait(self) -> None:
        await self.finished.wait()
