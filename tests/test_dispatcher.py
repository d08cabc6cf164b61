"""Tests for bounded repository dispatch."""
import asyncio
import random
import pytest
from publiccode_crawler.application.completion import CompletionCoordinator, RepositoryQueue
from publiccode_crawler.application.dispatcher import Dispatcher
from publiccode_crawler.application.repository_processor import RepositoryProcessor
from publiccode_crawler.application.validation import ValidationPipeline
from publiccode_crawler.infrastructure.file_storage import ManifestFileStorage
from publiccode_crawler.infrastructure.metrics import (
    REPOSITORY_FILE_SAVED,
    REPOSITORY_PROCESSED,
    MetricsRegistry
)
from publiccode_crawler.infrastructure.publiccode_validator import PublicCodeValidator
from fakes import FakeFetchClient, make_repository


def build(fetch_client, metrics, coordinator, data_dir, max_concurrency):
    processor = RepositoryProcessor(
        fetch_client=fetch_client,
        storage=ManifestFileStorage("publiccode.yml", metrics, data_dir),
        validation=ValidationPipeline(PublicCodeValidator(), "publiccode.yml", metrics),
        coordinator=coordinator,
        metrics=metrics
    )
    return Dispatcher(processor, max_concurrency=max_concurrency)


def test_every_repository_processed_exactly_once(tmp_path):
    total = 40
    names = [f"vendor{i % 7}/repo{i}" for i in range(total)]
    random.Random(7).shuffle(names)
    metrics = MetricsRegistry()
    fetch_client = FakeFetchClient(delay=0.001)

    async def scenario():
        queue = RepositoryQueue()
        coordinator = CompletionCoordinator(queue.close)
        dispatcher = build(fetch_client, metrics, coordinator, tmp_path, max_concurrency=5)

        coordinator.add(total)
        for name in names:
            await queue.put(make_repository(name))

        dispatched = await asyncio.wait_for(dispatcher.dispatch(queue), timeout=5)
        return dispatched, dispatcher, coordinator

    dispatched, dispatcher, coordinator = asyncio.run(scenario())

    assert dispatched == total
    assert metrics.value(REPOSITORY_PROCESSED) == total
    assert metrics.value(REPOSITORY_FILE_SAVED) == total
    assert sorted(url for url, _ in fetch_client.requests) == sorted(
        make_repository(name).file_raw_url for name in names
    )
    assert coordinator.completed


def test_concurrency_is_bounded(tmp_path):
    metrics = MetricsRegistry()
    fetch_client = FakeFetchClient(delay=0.01)

    async def scenario():
        queue = RepositoryQueue()
        coordinator = CompletionCoordinator(queue.close)
        dispatcher = build(fetch_client, metrics, coordinator, tmp_path, max_concurrency=3)

        coordinator.add(12)
        for i in range(12):
            await queue.put(make_repository(f"acme/repo{i}"))

        await asyncio.wait_for(dispatcher.dispatch(queue), timeout=5)
        return dispatcher

    dispatcher = asyncio.run(scenario())

    assert dispatcher.peak_concurrency == 3
    assert fetch_client.peak_active <= 3
    assert metrics.value(REPOSITORY_PROCESSED) == 12


def test_dispatch_processes_items_arriving_while_running(tmp_path):
    metrics = MetricsRegistry()

    async def scenario():
        queue = RepositoryQueue()
        coordinator = CompletionCoordinator(queue.close)
        dispatcher = build(FakeFetchClient(), metrics, coordinator, tmp_path, max_concurrency=2)
        coordinator.add()

        async def producer():
            for i in range(5):
                coordinator.add()
                await queue.put(make_repository(f"late/repo{i}"))
                await asyncio.sleep(0.001)
            coordinator.done()

        producer_task = asyncio.create_task(producer())
        await asyncio.wait_for(dispatcher.dispatch(queue), timeout=5)
        await producer_task

    asyncio.run(scenario())

    assert metrics.value(REPOSITORY_PROCESSED) == 5


def test_invalid_pool_size():
    with pytest.raises(ValueError):
        Dispatcher(processor=None, max_concurrency=0)
