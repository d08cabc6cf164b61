"""PostgreSQL implementation of the pagination checkpoint store."""
import logging
from typing import Optional
import psycopg2
from publiccode_crawler.domain.models import ProgressStatus
from publiccode_crawler.domain.progress_store_interface import IProgressStore


logger = logging.getLogger(__name__)


class PostgresProgressStore(IProgressStore):
    """PostgreSQL implementation of the progress store.

    Records live in the crawl_progress table, keyed by (domain_id, url), so
    concurrent domains never touch the same row. Each statement commits on
    its own; the store relies on per-row atomicity only.
    """

    def __init__(self, connection_string: str):
        """Initialize PostgreSQL connection.

        Args:
            connection_string: PostgreSQL connection string
        """
        self._connection_string = connection_string
        self._conn = psycopg2.connect(connection_string)
        self._conn.autocommit = False
        logger.info("Connected to PostgreSQL progress store")

    def set_status(self, domain_id: str, url: str, status: ProgressStatus) -> None:
        """Upsert the status of a listing page."""
        cursor = self._conn.cursor()

        try:
            cursor.execute(
                """
                INSERT INTO crawl_progress (domain_id, url, status, updated_at)
                VALUES (%s, %s, %s, CURRENT_TIMESTAMP)
                ON CONFLICT (domain_id, url)
                DO UPDATE SET
                    status = EXCLUDED.status,
                    updated_at = CURRENT_TIMESTAMP
                """,
                (domain_id, url, ProgressStatus(status).value)
            )
            self._conn.commit()
        except Exception as e:
            self._conn.rollback()
            logger.error(f"Error setting progress for {domain_id} {url}: {e}")
            raise
        finally:
            cursor.close()

    def clear_status(self, domain_id: str, url: str) -> None:
        """Delete the record of a listing page."""
        cursor = self._conn.cursor()

        try:
            cursor.execute(
                "DELETE FROM crawl_progress WHERE domain_id = %s AND url = %s",
                (domain_id, url)
            )
            self._conn.commit()
        except Exception as e:
            self._conn.rollback()
            logger.error(f"Error clearing progress for {domain_id} {url}: {e}")
            raise
        finally:
            cursor.close()

    def get_failed_url(self, domain_id: str) -> Optional[str]:
        """Return the most recently failed page URL of a domain.

        Returns:
            Page URL, or None if the domain has no failed checkpoint
        """
        cursor = self._conn.cursor()
        try:
            cursor.execute(
                """
                SELECT url FROM crawl_progress
                WHERE domain_id = %s AND status = %s
                ORDER BY updated_at DESC
                LIMIT 1
                """,
                (domain_id, ProgressStatus.FAILED.value)
            )
            row = cursor.fetchone()
            self._conn.commit()
            return row[0] if row else None
        finally:
            cursor.close()

    def close(self) -> None:
        """Close the database connection."""
        if self._conn:
            self._conn.close()
            logger.info("Closed PostgreSQL connection")
