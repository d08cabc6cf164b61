"""Main entry point for the publiccode crawler.

This script wires the adapters together and runs one crawl of every
configured domain.
"""
import asyncio
import sys
import logging
from dotenv import load_dotenv
from publiccode_crawler.application.crawler_service import CrawlerService
from publiccode_crawler.config import Settings, get_connection_string, load_domains
from publiccode_crawler.domain.exceptions import ConfigurationError
from publiccode_crawler.infrastructure.http_client import AiohttpFetchClient
from publiccode_crawler.infrastructure.memory_progress_store import InMemoryProgressStore
from publiccode_crawler.infrastructure.page_handlers import build_page_handler
from publiccode_crawler.infrastructure.postgres_progress_store import PostgresProgressStore
from publiccode_crawler.infrastructure.publiccode_validator import PublicCodeValidator

# Load environment variables from .env or env file
load_dotenv('.env') or load_dotenv('env')


logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


async def main():
    """Execute the crawling operation."""
    try:
        settings = Settings.from_env()
        domains = load_domains(settings.domains_file)
    except ConfigurationError as e:
        logger.error(f"Invalid configuration: {e}")
        sys.exit(1)

    if any(domain.kind == "github" for domain in domains) and not settings.github_token:
        logger.warning("GITHUB_TOKEN is not set; GitHub listings will be rate limited or refused")

    # Initialize infrastructure components
    if settings.use_postgres:
        progress_store = PostgresProgressStore(get_connection_string())
    else:
        logger.warning("Using in-memory progress store; checkpoints will not survive this run")
        progress_store = InMemoryProgressStore()
    fetch_client = AiohttpFetchClient()

    # Initialize application service
    crawler = CrawlerService(
        page_handler_factory=lambda domain: build_page_handler(domain, settings, fetch_client),
        fetch_client=fetch_client,
        progress_store=progress_store,
        validator=PublicCodeValidator(),
        settings=settings
    )

    try:
        metrics = await crawler.crawl(domains)

        # Log results
        logger.info("=" * 50)
        logger.info("Crawl Metrics:")
        logger.info(f"  Repositories processed: {metrics.repositories_processed}")
        logger.info(f"  Files saved: {metrics.files_saved}")
        logger.info(f"  Valid files: {metrics.files_valid}")
        logger.info(f"  Domains abandoned: {metrics.domains_failed}")
        logger.info(f"  Duration: {metrics.duration_seconds:.2f} seconds")
        logger.info("=" * 50)

        for name, value in sorted(crawler.metrics.snapshot().items()):
            logger.info(f"  {name}: {value} - {crawler.metrics.describe(name)}")

    except ConfigurationError as e:
        logger.error(f"Invalid configuration: {e}")
        sys.exit(1)
    except Exception as e:
        logger.error(f"Crawl failed: {e}", exc_info=True)
        sys.exit(1)
    finally:
        await crawler.close()


if __name__ == "__main__":
    asyncio.run(main())
