"""Exceptions raised by the crawl domain."""
from typing import List


class MalformedNameError(ValueError):
    """Raised when a repository name is not in "<vendor>/<repo>" form."""

    def __init__(self, name: str):
        super().__init__(f"Malformed repository name: {name!r} (expected <vendor>/<repo>)")
        self.name = name


class ManifestValidationError(Exception):
    """Raised when a manifest file does not satisfy the schema."""

    def __init__(self, errors: List[str]):
        super().__init__("; ".join(errors))
        self.errors = list(errors)


class QueueClosedError(RuntimeError):
    """Raised when a repository is pushed onto a closed queue."""
    pass


class ConfigurationError(Exception):
    """Raised when the crawler configuration is missing or invalid."""
    pass
