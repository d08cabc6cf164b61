"""Checkpointed pagination loop over one domain's repository listing."""
import logging
from tenacity import AsyncRetrying, RetryCallState, stop_after_attempt, wait_exponential
from publiccode_crawler.application.completion import CompletionCoordinator, RepositoryQueue
from publiccode_crawler.domain.fetch_interface import IPageHandler
from publiccode_crawler.domain.models import Domain, PageResult, ProgressStatus
from publiccode_crawler.domain.progress_store_interface import IProgressStore
from publiccode_crawler.infrastructure.metrics import DOMAIN_PAGINATION_FAILED, MetricsRegistry


logger = logging.getLogger(__name__)


class DomainCrawler:
    """Walks a domain's listing page by page, feeding the repository queue.

    Before a page is fetched its URL is checkpointed as failed; the record is
    removed once the page has been processed. A crash or an abandoned domain
    therefore leaves the last attempted URL in the progress store, and the
    next run resumes from it.
    """

    def __init__(
        self,
        page_handler: IPageHandler,
        progress_store: IProgressStore,
        coordinator: CompletionCoordinator,
        metrics: MetricsRegistry,
        max_attempts: int = 5,
        backoff_multiplier: float = 1.0,
        backoff_max: float = 60.0
    ):
        """Initialize domain crawler.

        Args:
            page_handler: Reads one listing page of the domain
            progress_store: Durable checkpoint storage
            coordinator: Completion tracker, signalled once when the crawl ends
            metrics: Counter registry
            max_attempts: Attempts per page before the domain is abandoned
            backoff_multiplier: Exponential backoff multiplier in seconds
            backoff_max: Upper bound of a single backoff wait in seconds
        """
        self._page_handler = page_handler
        self._progress_store = progress_store
        self._coordinator = coordinator
        self._metrics = metrics
        self._max_attempts = max_attempts
        self._backoff_multiplier = backoff_multiplier
        self._backoff_max = backoff_max

    async def run(self, domain: Domain, queue: RepositoryQueue) -> None:
        """Crawl every page of the domain, then signal completion.

        Never raises; the coordinator is signalled whatever happens.
        """
        try:
            await self._crawl(domain, queue)
        except Exception as e:
            logger.error(f"{domain.id}: crawl aborted: {e}", exc_info=True)
        finally:
            self._coordinator.done()

    async def _crawl(self, domain: Domain, queue: RepositoryQueue) -> None:
        url = self._start_url(domain)

        while True:
            self._set_failed(domain, url)

            try:
                page = await self._fetch_page(domain, url)
            except Exception as e:
                self._metrics.increment(DOMAIN_PAGINATION_FAILED)
                logger.error(
                    f"{domain.id}: giving up on {url} after {self._max_attempts} attempts: {e}. "
                    f"Checkpoint kept for the next run."
                )
                return

            for repository in page.repositories:
                self._coordinator.add()
                try:
                    await queue.put(repository)
                except Exception:
                    self._coordinator.done()
                    raise

            self._clear(domain, url)

            if page.is_last:
                logger.info(f"{domain.id}: {url} is the last page")
                return

            url = page.next_url

    def _start_url(self, domain: Domain) -> str:
        try:
            failed_url = self._progress_store.get_failed_url(domain.id)
        except Exception as e:
            logger.error(f"{domain.id}: cannot read checkpoint, starting from {domain.url}: {e}")
            return domain.url

        if failed_url:
            logger.info(f"{domain.id}: resuming from failed page {failed_url}")
            return failed_url
        return domain.url

    async def _fetch_page(self, domain: Domain, url: str) -> PageResult:
        def log_retry(retry_state: RetryCallState) -> None:
            logger.error(
                f"{domain.id}: error reading repository list {url}: "
                f"{retry_state.outcome.exception()}. "
                f"Retry {retry_state.attempt_number}/{self._max_attempts - 1} "
                f"in {retry_state.next_action.sleep:.1f}s"
            )

        retrying = AsyncRetrying(
            stop=stop_after_attempt(self._max_attempts),
            wait=wait_exponential(multiplier=self._backoff_multiplier, max=self._backoff_max),
            before_sleep=log_retry,
            reraise=True
        )

        async for attempt in retrying:
            with attempt:
                page = await self._page_handler.process_page(url)
        return page

    def _set_failed(self, domain: Domain, url: str) -> None:
        try:
            self._progress_store.set_status(domain.id, url, ProgressStatus.FAILED)
        except Exception as e:
            logger.error(f"{domain.id}: cannot checkpoint {url}: {e}")

    def _clear(self, domain: Domain, url: str) -> None:
        try:
            self._progress_store.clear_status(domain.id, url)
        except Exception as e:
            logger.error(f"{domain.id}: cannot clear checkpoint {url}: {e}")
