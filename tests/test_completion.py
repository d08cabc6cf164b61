"""Tests for the repository queue and the completion coordinator."""
import asyncio
import pytest
from publiccode_crawler.application.completion import CompletionCoordinator, RepositoryQueue
from publiccode_crawler.domain.exceptions import QueueClosedError
from fakes import make_repository


def test_coordinator_fires_once_at_zero():
    closes = []

    async def scenario():
        coordinator = CompletionCoordinator(lambda: closes.append(True))
        coordinator.add(2)
        coordinator.done()
        assert closes == []
        coordinator.done()
        assert coordinator.completed
        assert coordinator.finished.is_set()

    asyncio.run(scenario())
    assert closes == [True]


def test_coordinator_never_goes_negative():
    async def scenario():
        coordinator = CompletionCoordinator(lambda: None)
        with pytest.raises(RuntimeError):
            coordinator.done()
        assert coordinator.outstanding == 0

    asyncio.run(scenario())


def test_coordinator_rejects_work_after_completion():
    async def scenario():
        coordinator = CompletionCoordinator(lambda: None)
        coordinator.add()
        coordinator.done()
        with pytest.raises(RuntimeError):
            coordinator.add()
        with pytest.raises(RuntimeError):
            coordinator.done()

    asyncio.run(scenario())


def test_queue_drains_in_order_then_stops():
    async def scenario():
        queue = RepositoryQueue()
        names = ["a/one", "a/two", "b/three"]
        for name in names:
            await queue.put(make_repository(name))
        queue.close()

        received = [repository.name async for repository in queue]
        assert received == names
        # A closed, drained queue keeps returning nothing
        assert await queue.get() is None

    asyncio.run(scenario())


def test_put_after_close_raises():
    async def scenario():
        queue = RepositoryQueue()
        queue.close()
        queue.close()
        with pytest.raises(QueueClosedError):
            await queue.put(make_repository("a/b"))

    asyncio.run(scenario())


def test_consumer_blocks_until_close():
    async def scenario():
        queue = RepositoryQueue()
        coordinator = CompletionCoordinator(queue.close)
        coordinator.add()

        async def consume():
            return [repository.name async for repository in queue]

        consumer = asyncio.create_task(consume())
        await asyncio.sleep(0.01)
        assert not consumer.done()

        coordinator.add()
        await queue.put(make_repository("a/b"))
        coordinator.done()
        assert not queue.closed
        coordinator.done()

        assert await asyncio.wait_for(consumer, timeout=1) == ["a/b"]

    asyncio.run(scenario())


def test_wait_returns_once_all_work_is_done():
    async def scenario():
        queue = RepositoryQueue()
        coordinator = CompletionCoordinator(queue.close)
        coordinator.add(2)

        waiter = asyncio.create_task(coordinator.wait())
        coordinator.done()
        await asyncio.sleep(0)
        assert not waiter.done()

        coordinator.done()
        await asyncio.wait_for(waiter, timeout=1)
        assert queue.closed

    asyncio.run(scenario())
