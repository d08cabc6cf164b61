"""Tests for the checkpointed pagination loop."""
import asyncio
from publiccode_crawler.application.completion import CompletionCoordinator, RepositoryQueue
from publiccode_crawler.application.domain_crawler import DomainCrawler
from publiccode_crawler.domain.models import Domain, PageResult, ProgressStatus
from publiccode_crawler.infrastructure.metrics import DOMAIN_PAGINATION_FAILED, MetricsRegistry
from fakes import FakePageHandler, RecordingProgressStore, make_repository


DOMAIN = Domain(id="example.org", url="https://example.org/list?page=A", kind="bitbucket")
URL_A = DOMAIN.url
URL_B = "https://example.org/list?page=B"
URL_C = "https://example.org/list?page=C"

PAGES = {
    URL_A: PageResult([make_repository("acme/one")], next_url=URL_B),
    URL_B: PageResult([make_repository("acme/two")], next_url=URL_C),
    URL_C: PageResult([make_repository("acme/three")], next_url=""),
}


def run_crawler(handler, store, metrics=None, max_attempts=5):
    metrics = metrics or MetricsRegistry()

    async def scenario():
        queue = RepositoryQueue()
        coordinator = CompletionCoordinator(queue.close)
        coordinator.add()
        crawler = DomainCrawler(
            page_handler=handler,
            progress_store=store,
            coordinator=coordinator,
            metrics=metrics,
            max_attempts=max_attempts,
            backoff_multiplier=0,
            backoff_max=0
        )
        await asyncio.wait_for(crawler.run(DOMAIN, queue), timeout=5)

        closed_by_crawler = queue.closed
        queue.close()
        queued = [repository.name async for repository in queue]
        return coordinator, closed_by_crawler, queued

    return asyncio.run(scenario())


def test_failed_page_is_retried_and_checkpoint_cleared():
    store = RecordingProgressStore()
    handler = FakePageHandler(PAGES, failures={URL_B: 1}, store=store)

    coordinator, closed, queued = run_crawler(handler, store)

    assert handler.calls == [URL_A, URL_B, URL_B, URL_C]
    assert queued == ["acme/one", "acme/two", "acme/three"]

    # B is recorded as failed while it is being attempted, and only B
    assert handler.store_during_call[1] == {(DOMAIN.id, URL_B): ProgressStatus.FAILED}
    assert handler.store_during_call[2] == {(DOMAIN.id, URL_B): ProgressStatus.FAILED}
    assert store.records() == {}

    assert store.operations == [
        ("set", DOMAIN.id, URL_A, ProgressStatus.FAILED),
        ("clear", DOMAIN.id, URL_A),
        ("set", DOMAIN.id, URL_B, ProgressStatus.FAILED),
        ("clear", DOMAIN.id, URL_B),
        ("set", DOMAIN.id, URL_C, ProgressStatus.FAILED),
        ("clear", DOMAIN.id, URL_C),
    ]

    # The crawler unit is released; the three queued repositories remain counted
    assert coordinator.outstanding == 3
    assert not closed


def test_persistent_failure_abandons_domain_and_keeps_checkpoint():
    store = RecordingProgressStore()
    metrics = MetricsRegistry()
    handler = FakePageHandler(PAGES, failures={URL_B: 100}, store=store)

    coordinator, closed, queued = run_crawler(handler, store, metrics=metrics, max_attempts=3)

    assert handler.calls == [URL_A, URL_B, URL_B, URL_B]
    assert URL_C not in handler.calls
    assert queued == ["acme/one"]
    assert store.records() == {(DOMAIN.id, URL_B): ProgressStatus.FAILED}
    assert metrics.value(DOMAIN_PAGINATION_FAILED) == 1
    assert coordinator.outstanding == 1


def test_crawl_resumes_from_failed_checkpoint():
    store = RecordingProgressStore()
    store.set_status(DOMAIN.id, URL_B, ProgressStatus.FAILED)
    handler = FakePageHandler(PAGES, store=store)

    coordinator, closed, queued = run_crawler(handler, store)

    assert handler.calls == [URL_B, URL_C]
    assert queued == ["acme/two", "acme/three"]
    assert store.records() == {}


def test_empty_domain_closes_queue():
    store = RecordingProgressStore()
    handler = FakePageHandler({URL_A: PageResult([], next_url="")})

    coordinator, closed, queued = run_crawler(handler, store)

    assert queued == []
    assert coordinator.completed
    assert closed


class BrokenStore(RecordingProgressStore):
    def set_status(self, domain_id, url, status):
        raise ConnectionError("store down")

    def get_failed_url(self, domain_id):
        raise ConnectionError("store down")


def test_store_errors_do_not_stop_the_crawl():
    store = BrokenStore()
    handler = FakePageHandler(PAGES)

    coordinator, closed, queued = run_crawler(handler, store)

    assert handler.calls == [URL_A, URL_B, URL_C]
    assert len(queued) == 3
