"""In-memory progress store for single runs and tests."""
from threading import Lock
from typing import Dict, Optional, Tuple
from publiccode_crawler.domain.models import ProgressStatus
from publiccode_crawler.domain.progress_store_interface import IProgressStore


class InMemoryProgressStore(IProgressStore):
    """Keeps checkpoints in a dict; nothing survives the process."""

    def __init__(self):
        self._lock = Lock()
        self._records: Dict[Tuple[str, str], ProgressStatus] = {}

    def set_status(self, domain_id: str, url: str, status: ProgressStatus) -> None:
        with self._lock:
            self._records[(domain_id, url)] = status

    def clear_status(self, domain_id: str, url: str) -> None:
        with self._lock:
            self._records.pop((domain_id, url), None)

    def get_failed_url(self, domain_id: str) -> Optional[str]:
        with self._lock:
            for (record_domain, url), status in self._records.items():
                if record_domain == domain_id and status == ProgressStatus.FAILED:
                    return url
        return None

    def records(self) -> Dict[Tuple[str, str], ProgressStatus]:
        """Return a copy of the stored checkpoints."""
        with self._lock:
            return dict(self._records)

    def close(self) -> None:
        pass
