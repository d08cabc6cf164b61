"""Page handler selection by domain kind."""
from publiccode_crawler.config import Settings
from publiccode_crawler.domain.exceptions import ConfigurationError
from publiccode_crawler.domain.fetch_interface import IFetchClient, IPageHandler
from publiccode_crawler.domain.models import Domain
from publiccode_crawler.infrastructure.bitbucket_client import BitbucketPageHandler
from publiccode_crawler.infrastructure.github_client import GitHubGraphQLPageHandler


def build_page_handler(domain: Domain, settings: Settings, fetch_client: IFetchClient) -> IPageHandler:
    """Return the listing handler for a domain.

    Raises:
        ConfigurationError: If the domain kind is unknown
    """
    if domain.kind == "github":
        return GitHubGraphQLPageHandler(
            domain,
            access_token=settings.github_token,
            file_name=settings.crawled_filename
        )
    if domain.kind == "bitbucket":
        return BitbucketPageHandler(domain, fetch_client, settings.crawled_filename)
    raise ConfigurationError(f"Unknown kind {domain.kind!r} for domain {domain.id}")
