"""HTTP interfaces (ports) used by the crawl pipeline.

These are the anti-corruption layer that shields the domain from the
hosting platforms and the transport library.
"""
from abc import ABC, abstractmethod
from typing import Dict, Optional
from publiccode_crawler.domain.models import FetchResponse, PageResult


class IFetchClient(ABC):
    """Abstract interface for fetching raw manifest files."""

    @abstractmethod
    async def get(self, url: str, headers: Optional[Dict[str, str]] = None) -> FetchResponse:
        """Perform an HTTP GET.

        Args:
            url: Address to fetch
            headers: Outgoing request headers

        Returns:
            FetchResponse with status code and body

        Raises:
            Exception: On transport failure
        """
        pass

    @abstractmethod
    async def close(self) -> None:
        """Close any open connections."""
        pass


class IPageHandler(ABC):
    """Abstract interface for reading one page of a domain's repository listing."""

    @abstractmethod
    async def process_page(self, url: str) -> PageResult:
        """Fetch and parse the listing page at url.

        Args:
            url: Listing page address

        Returns:
            PageResult with the repositories found and the next page URL
            (empty on the last page)
        """
        pass

    async def close(self) -> None:
        """Close any open connections."""
        pass
