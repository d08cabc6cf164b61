"""Domain models representing core business entities."""
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Tuple

from publiccode_crawler.domain.exceptions import MalformedNameError


class ProgressStatus(str, Enum):
    """Checkpoint status of a listing page."""
    PENDING = "pending"
    FAILED = "failed"


@dataclass(frozen=True)
class Domain:
    """A configured code-hosting source with its own paginated listing.

    The id is opaque; it is also the source tag stamped on every
    repository discovered in this domain.
    """
    id: str
    url: str
    kind: str = "github"


@dataclass(frozen=True)
class Repository:
    """Immutable domain entity representing one discovered repository."""
    name: str
    file_raw_url: str
    domain: str
    headers: Dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class PageResult:
    """One processed listing page.

    An empty next_url means this was the last page of the domain.
    """
    repositories: List[Repository]
    next_url: str = ""

    @property
    def is_last(self) -> bool:
        return not self.next_url


@dataclass(frozen=True)
class FetchResponse:
    """Status code and body of an HTTP GET."""
    status: int
    body: bytes = b""

    @property
    def ok(self) -> bool:
        return self.status == 200


@dataclass(frozen=True)
class CrawlMetrics:
    """Metrics for a crawl operation."""
    repositories_processed: int
    files_saved: int
    files_valid: int
    domains_failed: int
    duration_seconds: float


def split_full_name(full_name: str) -> Tuple[str, str]:
    """Split a "<vendor>/<repo>" name into its two segments.

    Only the first "/"-delimited pair is used, so "a/b/c" yields ("a", "b").

    Raises:
        MalformedNameError: If the name has no separator, or a segment is
            empty, "." or "..", or holds a backslash or NUL
    """
    parts = full_name.split("/")
    if len(parts) < 2:
        raise MalformedNameError(full_name)
    vendor, repo = parts[0], parts[1]
    for segment in (vendor, repo):
        if segment in ("", ".", "..") or "\\" in segment or "\x00" in segment:
            raise MalformedNameError(full_name)
    return vendor, repo
