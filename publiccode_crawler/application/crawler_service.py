"""Crawler service orchestrating the domain crawlers and the repository pipeline."""
import asyncio
import logging
import time
from typing import Callable, Dict, List, Optional
from publiccode_crawler.application.completion import CompletionCoordinator, RepositoryQueue
from publiccode_crawler.application.dispatcher import Dispatcher
from publiccode_crawler.application.domain_crawler import DomainCrawler
from publiccode_crawler.application.repository_processor import RepositoryProcessor
from publiccode_crawler.application.validation import ValidationPipeline
from publiccode_crawler.config import Settings
from publiccode_crawler.domain.fetch_interface import IFetchClient, IPageHandler
from publiccode_crawler.domain.models import CrawlMetrics, Domain
from publiccode_crawler.domain.progress_store_interface import IProgressStore
from publiccode_crawler.domain.validator_interface import IManifestValidator
from publiccode_crawler.infrastructure.file_storage import ManifestFileStorage
from publiccode_crawler.infrastructure.metrics import (
    DOMAIN_PAGINATION_FAILED,
    REPOSITORY_FILE_SAVED,
    REPOSITORY_FILE_SAVED_VALID,
    REPOSITORY_PROCESSED,
    MetricsRegistry,
    register_default_counters
)


logger = logging.getLogger(__name__)

PageHandlerFactory = Callable[[Domain], IPageHandler]


class CrawlerService:
    """Application service for crawling the configured domains.

    Starts one DomainCrawler per domain and a single Dispatcher; the
    completion coordinator closes the repository queue once every crawler
    and every repository task has finished, which ends the dispatcher.
    """

    def __init__(
        self,
        page_handler_factory: PageHandlerFactory,
        fetch_client: IFetchClient,
        progress_store: IProgressStore,
        validator: IManifestValidator,
        settings: Settings,
        metrics: Optional[MetricsRegistry] = None
    ):
        """Initialize crawler service.

        Args:
            page_handler_factory: Builds the listing handler of a domain
            fetch_client: Client fetching raw manifest files
            progress_store: Pagination checkpoint storage
            validator: Manifest validator
            settings: Runtime settings
            metrics: Counter registry; a fresh one is created if omitted
        """
        self._page_handler_factory = page_handler_factory
        self._fetch_client = fetch_client
        self._progress_store = progress_store
        self._validator = validator
        self._settings = settings
        self.metrics = metrics or MetricsRegistry()
        self._page_handlers: Dict[str, IPageHandler] = {}

    async def crawl(self, domains: List[Domain]) -> CrawlMetrics:
        """Crawl every domain and process all discovered repositories.

        Args:
            domains: Domains to crawl

        Returns:
            CrawlMetrics with operation statistics
        """
        start_time = time.time()
        settings = self._settings

        register_default_counters(self.metrics)
        for domain in domains:
            self.metrics.register_counter(domain.id, f"Number of repository processed for {domain.id}.")
            if domain.id not in self._page_handlers:
                self._page_handlers[domain.id] = self._page_handler_factory(domain)

        queue = RepositoryQueue()
        coordinator = CompletionCoordinator(queue.close)
        processor = RepositoryProcessor(
            fetch_client=self._fetch_client,
            storage=ManifestFileStorage(settings.crawled_filename, self.metrics, settings.data_dir),
            validation=ValidationPipeline(self._validator, settings.crawled_filename, self.metrics),
            coordinator=coordinator,
            metrics=self.metrics
        )
        dispatcher = Dispatcher(processor, max_concurrency=settings.max_concurrent_tasks)

        logger.info(f"Starting crawl of {len(domains)} domains")

        # Held while crawlers are being started so the count cannot reach zero early
        coordinator.add()
        crawler_tasks = []
        for domain in domains:
            crawler = DomainCrawler(
                page_handler=self._page_handlers[domain.id],
                progress_store=self._progress_store,
                coordinator=coordinator,
                metrics=self.metrics,
                max_attempts=settings.page_max_attempts,
                backoff_multiplier=settings.page_backoff_multiplier,
                backoff_max=settings.page_backoff_max
            )
            coordinator.add()
            crawler_tasks.append(asyncio.create_task(crawler.run(domain, queue)))
        coordinator.done()

        try:
            await dispatcher.dispatch(queue)
            await coordinator.wait()
        except BaseException:
            for task in crawler_tasks:
                task.cancel()
            raise
        finally:
            await asyncio.gather(*crawler_tasks, return_exceptions=True)

        duration = time.time() - start_time
        metrics = CrawlMetrics(
            repositories_processed=self.metrics.value(REPOSITORY_PROCESSED),
            files_saved=self.metrics.value(REPOSITORY_FILE_SAVED),
            files_valid=self.metrics.value(REPOSITORY_FILE_SAVED_VALID),
            domains_failed=self.metrics.value(DOMAIN_PAGINATION_FAILED),
            duration_seconds=duration
        )

        logger.info(
            f"Crawl completed: {metrics.repositories_processed} repositories processed, "
            f"{metrics.files_saved} saved, {metrics.files_valid} valid in {duration:.2f} seconds"
        )
        logger.debug(f"Counters: {self.metrics.snapshot()}")

        return metrics

    async def close(self) -> None:
        """Close connections."""
        for handler in self._page_handlers.values():
            await handler.close()
        self._page_handlers = {}
        await self._fetch_client.close()
        self._progress_store.close()
