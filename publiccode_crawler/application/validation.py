"""Manifest validation step of the repository pipeline."""
import logging
from typing import Optional
from publiccode_crawler.domain.exceptions import ManifestValidationError
from publiccode_crawler.domain.validator_interface import IManifestValidator
from publiccode_crawler.infrastructure.metrics import MetricsRegistry, REPOSITORY_FILE_SAVED_VALID


logger = logging.getLogger(__name__)


def base_dir_for(source_url: str, file_name: str) -> str:
    """Return the location relative manifest references resolve against."""
    if file_name and source_url.endswith(file_name):
        return source_url[:-len(file_name)]
    return source_url


class ValidationPipeline:
    """Validates fetched manifests and counts the valid ones."""

    def __init__(self, validator: IManifestValidator, file_name: str, metrics: MetricsRegistry):
        self._validator = validator
        self._file_name = file_name
        self._metrics = metrics

    def validate(self, data: bytes, source_url: str) -> Optional[ManifestValidationError]:
        """Validate a manifest fetched from source_url.

        The base directory is passed to the validator on every call, so
        concurrent validations never share it.

        Returns:
            None if the manifest is valid, otherwise the validation error
        """
        base_dir = base_dir_for(source_url, self._file_name)
        try:
            self._validator.parse(data, base_dir)
        except ManifestValidationError as e:
            return e

        self._metrics.increment(REPOSITORY_FILE_SAVED_VALID)
        return None
