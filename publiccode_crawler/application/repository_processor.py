"""Fetch, save and validate the manifest of one repository."""
import logging
from publiccode_crawler.application.completion import CompletionCoordinator
from publiccode_crawler.application.validation import ValidationPipeline
from publiccode_crawler.domain.exceptions import MalformedNameError
from publiccode_crawler.domain.fetch_interface import IFetchClient
from publiccode_crawler.domain.models import Repository
from publiccode_crawler.infrastructure.file_storage import ManifestFileStorage
from publiccode_crawler.infrastructure.metrics import MetricsRegistry, REPOSITORY_PROCESSED


logger = logging.getLogger(__name__)


class RepositoryProcessor:
    """Runs the per-repository task body.

    Failures are final for the repository and only show up in logs and
    counters; process() never raises.
    """

    def __init__(
        self,
        fetch_client: IFetchClient,
        storage: ManifestFileStorage,
        validation: ValidationPipeline,
        coordinator: CompletionCoordinator,
        metrics: MetricsRegistry
    ):
        self._fetch_client = fetch_client
        self._storage = storage
        self._validation = validation
        self._coordinator = coordinator
        self._metrics = metrics

    async def process(self, repository: Repository) -> None:
        """Fetch the repository's manifest, save it and validate it.

        Args:
            repository: Repository discovered by a domain crawler
        """
        try:
            await self._process(repository)
        except Exception as e:
            logger.error(f"Error processing {repository.name} ({repository.file_raw_url}): {e}")
        finally:
            self._coordinator.done()

    async def _process(self, repository: Repository) -> None:
        self._metrics.increment(REPOSITORY_PROCESSED)
        self._metrics.increment(repository.domain)

        response = await self._fetch_client.get(repository.file_raw_url, repository.headers)
        if not response.ok:
            logger.debug(f"{repository.name}: {repository.file_raw_url} returned HTTP {response.status}")
            return

        try:
            self._storage.save(repository.domain, repository.name, response.body)
        except MalformedNameError as e:
            logger.error(f"{repository.domain}: {e}")
            return

        error = self._validation.validate(response.body, repository.file_raw_url)
        if error is not None:
            logger.warning(f"Validator fails for: {repository.file_raw_url}")
            logger.warning(f"Validator errors: {error}")
