"""Progress store interface (port) for pagination checkpoints.

Each domain keeps at most one record, keyed by the URL of the listing page
currently being processed.
"""
from abc import ABC, abstractmethod
from typing import Optional
from publiccode_crawler.domain.models import ProgressStatus


class IProgressStore(ABC):
    """Abstract interface for durable checkpoint storage."""

    @abstractmethod
    def set_status(self, domain_id: str, url: str, status: ProgressStatus) -> None:
        """Record the status of a listing page.

        Args:
            domain_id: Owning domain identifier
            url: Listing page URL
            status: Status to store, overwriting any previous one
        """
        pass

    @abstractmethod
    def clear_status(self, domain_id: str, url: str) -> None:
        """Remove the record of a listing page, if any."""
        pass

    @abstractmethod
    def get_failed_url(self, domain_id: str) -> Optional[str]:
        """Return the page URL left as failed by an earlier run, if any."""
        pass

    @abstractmethod
    def close(self) -> None:
        """Close any open connections."""
        pass
