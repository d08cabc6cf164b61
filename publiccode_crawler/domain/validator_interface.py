"""Manifest validator interface (port)."""
from abc import ABC, abstractmethod
from typing import Any, Dict


class IManifestValidator(ABC):
    """Abstract interface for parsing and validating manifest files."""

    @abstractmethod
    def parse(self, data: bytes, base_dir: str) -> Dict[str, Any]:
        """Parse and validate a manifest.

        Args:
            data: Raw manifest bytes
            base_dir: Base location used to resolve relative references
                inside the manifest

        Returns:
            The parsed manifest

        Raises:
            ManifestValidationError: If the manifest does not satisfy the schema
        """
        pass
