"""Filesystem persistence for fetched manifest files."""
import logging
from pathlib import Path
from typing import Optional, Union
from publiccode_crawler.domain.models import split_full_name
from publiccode_crawler.infrastructure.metrics import MetricsRegistry, REPOSITORY_FILE_SAVED


logger = logging.getLogger(__name__)


class ManifestFileStorage:
    """Saves manifests under <data_dir>/<domain>/<vendor>/<repo>/<file_name>.

    Every save overwrites the previous file for the same repository.
    """

    def __init__(
        self,
        file_name: str,
        metrics: MetricsRegistry,
        data_dir: Union[str, Path] = "data"
    ):
        """Initialize file storage.

        Args:
            file_name: Name the manifest is written under
            metrics: Registry receiving the "file saved" counter
            data_dir: Root directory of the crawled data
        """
        self._file_name = file_name
        self._metrics = metrics
        self._data_dir = Path(data_dir)

    def path_for(self, domain_tag: str, repository_name: str) -> Path:
        """Return the destination path of a repository's manifest.

        Raises:
            MalformedNameError: If repository_name is not "<vendor>/<repo>"
        """
        vendor, repo = split_full_name(repository_name)
        return self._data_dir / domain_tag / vendor / repo / self._file_name

    def save(self, domain_tag: str, repository_name: str, data: bytes) -> Optional[Path]:
        """Write the manifest, creating missing directories.

        Args:
            domain_tag: Source tag of the owning domain
            repository_name: "<vendor>/<repo>" identifier
            data: Manifest contents

        Returns:
            Path written, or None if the write failed

        Raises:
            MalformedNameError: If repository_name is not "<vendor>/<repo>";
                nothing is written in that case
        """
        path = self.path_for(domain_tag, repository_name)

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
        except OSError as e:
            logger.error(f"Error saving {repository_name} to {path}: {e}")
            return None

        self._metrics.increment(REPOSITORY_FILE_SAVED)
        logger.debug(f"Saved {repository_name} to {path}")
        return path
