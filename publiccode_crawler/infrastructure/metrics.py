"""In-process counter registry for crawl metrics."""
import logging
from collections import defaultdict
from threading import Lock
from typing import Dict


logger = logging.getLogger(__name__)

REPOSITORY_PROCESSED = "repository_processed"
REPOSITORY_FILE_SAVED = "repository_file_saved"
REPOSITORY_FILE_SAVED_VALID = "repository_file_saved_valid"
DOMAIN_PAGINATION_FAILED = "domain_pagination_failed"


class MetricsRegistry:
    """Named monotonic counters with thread-safe increments.

    Counters incremented without registration are created on the fly;
    per-domain counters work that way.
    """

    def __init__(self):
        self._lock = Lock()
        self._counters: Dict[str, int] = defaultdict(int)
        self._descriptions: Dict[str, str] = {}

    def register_counter(self, name: str, description: str) -> None:
        """Register a counter, keeping its current value if already present."""
        with self._lock:
            self._descriptions[name] = description
            self._counters[name] += 0

    def increment(self, name: str, amount: int = 1) -> None:
        with self._lock:
            self._counters[name] += amount

    def value(self, name: str) -> int:
        with self._lock:
            return self._counters.get(name, 0)

    def snapshot(self) -> Dict[str, int]:
        """Return a copy of all counter values."""
        with self._lock:
            return dict(self._counters)

    def describe(self, name: str) -> str:
        return self._descriptions.get(name, "")


def register_default_counters(registry: MetricsRegistry) -> None:
    """Register the counters the crawl pipeline reports on."""
    registry.register_counter(REPOSITORY_PROCESSED, "Number of repository processed.")
    registry.register_counter(REPOSITORY_FILE_SAVED, "Number of file saved.")
    registry.register_counter(REPOSITORY_FILE_SAVED_VALID, "Number of valid file saved.")
    registry.register_counter(DOMAIN_PAGINATION_FAILED, "Number of domains abandoned after repeated listing failures.")
    logger.debug("Registered crawl counters")
