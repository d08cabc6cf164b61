"""GitHub GraphQL listing handler with rate limiting and retry logic."""
import asyncio
import logging
from datetime import datetime, timezone
from typing import Dict, Optional, Tuple
from urllib.parse import parse_qs, urlencode, urlsplit, urlunsplit
from gql import gql, Client
from gql.transport.aiohttp import AIOHTTPTransport
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type
)
from publiccode_crawler.domain.fetch_interface import IPageHandler
from publiccode_crawler.domain.models import Domain, PageResult, Repository


logger = logging.getLogger(__name__)

RAW_FILE_URL = "https://raw.githubusercontent.com/{name}/{branch}/{file_name}"


class RateLimitException(Exception):
    """Exception raised when rate limit is hit."""
    pass


def parse_page_url(url: str) -> Tuple[str, str, Optional[str]]:
    """Split a listing page URL into (endpoint, organization, cursor).

    Page URLs look like https://api.github.com/graphql?org=<login>&after=<cursor>;
    the first page has no cursor.
    """
    parts = urlsplit(url)
    query = parse_qs(parts.query)
    org = query.get("org", [""])[0]
    if not org:
        raise ValueError(f"GitHub listing URL has no org parameter: {url}")
    cursor = query.get("after", [None])[0]
    endpoint = urlunsplit((parts.scheme, parts.netloc, parts.path, "", ""))
    return endpoint, org, cursor


def build_page_url(endpoint: str, org: str, cursor: Optional[str] = None) -> str:
    """Inverse of parse_page_url."""
    params = {"org": org}
    if cursor:
        params["after"] = cursor
    return f"{endpoint}?{urlencode(params)}"


class GitHubGraphQLPageHandler(IPageHandler):
    """Reads an organisation's repository listing through the GitHub GraphQL API.

    Each page holds up to 100 repositories; the next page URL carries the
    end cursor of the current one.
    """

    # GraphQL query to list an organisation's repositories with their default branch
    REPOSITORY_QUERY = gql("""
        query OrganizationRepositories($org: String!, $cursor: String, $first: Int!) {
            organization(login: $org) {
                repositories(first: $first, after: $cursor) {
                    pageInfo {
                        hasNextPage
                        endCursor
                    }
                    nodes {
                        nameWithOwner
                        defaultBranchRef {
                            name
                        }
                    }
                }
            }
            rateLimit {
                remaining
                resetAt
            }
        }
    """)

    def __init__(
        self,
        domain: Domain,
        access_token: str,
        file_name: str,
        batch_size: int = 100
    ):
        """Initialize GitHub handler.

        Args:
            domain: Domain whose listing this handler reads
            access_token: GitHub personal access token
            file_name: Manifest file name looked up in each repository
            batch_size: Number of repositories to fetch per page (max 100)
        """
        self._domain = domain
        self._access_token = access_token
        self._file_name = file_name
        self._batch_size = min(batch_size, 100)  # GitHub max is 100
        self._transport: Optional[AIOHTTPTransport] = None
        self._client: Optional[Client] = None
        self._rate_limit_remaining: int = 5000
        self._rate_limit_reset_at: Optional[datetime] = None

    @property
    def headers(self) -> Dict[str, str]:
        """Headers attached to each discovered repository's raw file request."""
        if not self._access_token:
            return {}
        return {"Authorization": f"Bearer {self._access_token}"}

    async def _init_client(self, endpoint: str) -> None:
        """Initialize the GraphQL client (lazy initialization)."""
        if self._client is None:
            self._transport = AIOHTTPTransport(url=endpoint, headers=self.headers)
            self._client = Client(
                transport=self._transport,
                fetch_schema_from_transport=False
            )

    async def _check_rate_limit(self) -> None:
        """Check and handle rate limiting."""
        if self._rate_limit_remaining <= 10:
            if self._rate_limit_reset_at:
                wait_time = (self._rate_limit_reset_at - datetime.now(timezone.utc)).total_seconds()
                if wait_time > 0:
                    logger.warning(
                        f"Rate limit nearly exhausted. Waiting {wait_time:.0f} seconds "
                        f"until reset at {self._rate_limit_reset_at}"
                    )
                    await asyncio.sleep(wait_time + 1)  # Add 1 second buffer

    @retry(
        retry=retry_if_exception_type((RateLimitException, asyncio.TimeoutError)),
        stop=stop_after_attempt(5),
        wait=wait_exponential(multiplier=1, min=4, max=60),
        reraise=True
    )
    async def _execute_query(self, endpoint: str, org: str, cursor: Optional[str]) -> dict:
        """Execute GraphQL query with retry logic.

        Raises:
            RateLimitException: When rate limit is hit
        """
        await self._init_client(endpoint)
        await self._check_rate_limit()

        try:
            async with self._client as session:
                result = await session.execute(
                    self.REPOSITORY_QUERY,
                    variable_values={"org": org, "cursor": cursor, "first": self._batch_size}
                )
        except Exception as e:
            logger.error(f"Error executing GraphQL query: {e}")
            if "rate limit" in str(e).lower():
                raise RateLimitException(str(e))
            raise

        # Update rate limit info
        rate_limit = result.get("rateLimit") or {}
        self._rate_limit_remaining = rate_limit.get("remaining", 0)
        reset_at_str = rate_limit.get("resetAt")
        if reset_at_str:
            self._rate_limit_reset_at = datetime.fromisoformat(
                reset_at_str.replace("Z", "+00:00")
            )

        logger.debug(
            f"Rate limit remaining: {self._rate_limit_remaining}, "
            f"resets at: {self._rate_limit_reset_at}"
        )
        return result

    def parse_result(self, result: dict, endpoint: str, org: str) -> PageResult:
        """Transform a GraphQL response into a PageResult."""
        organization = result.get("organization")
        if organization is None:
            raise ValueError(f"GitHub organization not found: {org}")

        listing = organization.get("repositories") or {}
        page_info = listing.get("pageInfo") or {}
        repositories = []

        for node in listing.get("nodes") or []:
            name = node.get("nameWithOwner")
            branch_ref = node.get("defaultBranchRef")
            # Empty repositories have no default branch and no files
            if not name or not branch_ref:
                continue
            repositories.append(Repository(
                name=name,
                file_raw_url=RAW_FILE_URL.format(
                    name=name,
                    branch=branch_ref["name"],
                    file_name=self._file_name
                ),
                domain=self._domain.id,
                headers=self.headers
            ))

        next_url = ""
        if page_info.get("hasNextPage") and page_info.get("endCursor"):
            next_url = build_page_url(endpoint, org, page_info["endCursor"])

        return PageResult(repositories=repositories, next_url=next_url)

    async def process_page(self, url: str) -> PageResult:
        endpoint, org, cursor = parse_page_url(url)
        result = await self._execute_query(endpoint, org, cursor)
        page = self.parse_result(result, endpoint, org)
        logger.info(f"{self._domain.id}: {len(page.repositories)} repositories on {url}")
        return page

    async def close(self) -> None:
        """Close the GraphQL client and transport."""
        if self._transport:
            await self._transport.close()
            self._transport = None
            self._client = None
