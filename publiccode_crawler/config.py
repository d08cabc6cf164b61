"""Crawler configuration read from the environment and the domains file."""
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import List, Union
import yaml
from publiccode_crawler.domain.exceptions import ConfigurationError
from publiccode_crawler.domain.models import Domain


logger = logging.getLogger(__name__)


def get_connection_string() -> str:
    """Build PostgreSQL connection string from environment variables."""
    host = os.getenv("POSTGRES_HOST", "localhost")
    port = os.getenv("POSTGRES_PORT", "5432")
    database = os.getenv("POSTGRES_DB", "publiccode_crawler")
    user = os.getenv("POSTGRES_USER", "postgres")
    password = os.getenv("POSTGRES_PASSWORD", "postgres")

    return f"host={host} port={port} dbname={database} user={user} password={password}"


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}")


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}")


@dataclass(frozen=True)
class Settings:
    """Runtime settings of a crawl."""
    crawled_filename: str = "publiccode.yml"
    data_dir: str = "data"
    domains_file: str = "domains.yml"
    max_concurrent_tasks: int = 50
    page_max_attempts: int = 5
    page_backoff_multiplier: float = 1.0
    page_backoff_max: float = 60.0
    github_token: str = ""
    use_postgres: bool = True

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from environment variables (after load_dotenv)."""
        settings = cls(
            crawled_filename=os.getenv("CRAWLED_FILENAME", cls.crawled_filename),
            data_dir=os.getenv("DATA_DIR", cls.data_dir),
            domains_file=os.getenv("DOMAINS_FILE", cls.domains_file),
            max_concurrent_tasks=_int_env("MAX_CONCURRENT_TASKS", cls.max_concurrent_tasks),
            page_max_attempts=_int_env("PAGE_MAX_ATTEMPTS", cls.page_max_attempts),
            page_backoff_multiplier=_float_env("PAGE_BACKOFF_MULTIPLIER", cls.page_backoff_multiplier),
            page_backoff_max=_float_env("PAGE_BACKOFF_MAX", cls.page_backoff_max),
            github_token=os.getenv("GITHUB_TOKEN", ""),
            use_postgres=os.getenv("PROGRESS_STORE", "postgres").lower() != "memory"
        )
        if settings.max_concurrent_tasks < 1:
            raise ConfigurationError("MAX_CONCURRENT_TASKS must be at least 1")
        if settings.page_max_attempts < 1:
            raise ConfigurationError("PAGE_MAX_ATTEMPTS must be at least 1")
        return settings


def load_domains(path: Union[str, Path]) -> List[Domain]:
    """Load the configured domains from a YAML file.

    The file holds a list of mappings with "id", "url" and optionally
    "kind" (defaults to github).

    Raises:
        ConfigurationError: If the file is missing or malformed
    """
    path = Path(path)
    try:
        entries = yaml.safe_load(path.read_text(encoding="utf-8")) or []
    except OSError as e:
        raise ConfigurationError(f"Cannot read domains file {path}: {e}")
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid domains file {path}: {e}")

    if not isinstance(entries, list):
        raise ConfigurationError(f"Domains file {path} must contain a list")

    domains = []
    seen = set()
    for index, entry in enumerate(entries):
        if not isinstance(entry, dict) or not entry.get("id") or not entry.get("url"):
            raise ConfigurationError(f"Domain #{index} in {path} needs an id and a url")
        if entry["id"] in seen:
            raise ConfigurationError(f"Duplicate domain id {entry['id']!r} in {path}")
        seen.add(entry["id"])
        domains.append(Domain(
            id=str(entry["id"]),
            url=str(entry["url"]),
            kind=str(entry.get("kind", "github"))
        ))

    logger.info(f"Loaded {len(domains)} domains from {path}")
    return domains
