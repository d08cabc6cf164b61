"""Database initialization script.

Creates the table holding pagination checkpoints.
"""
import sys
import psycopg2
import logging
from dotenv import load_dotenv
from publiccode_crawler.config import get_connection_string

# Load environment variables from .env or env file
load_dotenv('.env') or load_dotenv('env')


logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)


def create_schema(conn) -> None:
    """Create database schema.

    Schema design considerations:
    - one row per (domain_id, url); the composite key keeps domains from
      contending on the same row
    - a healthy domain has at most one row, for the page being processed
    - rows left with status 'failed' after a run mark where each domain
      resumes
    """
    cursor = conn.cursor()

    try:
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS crawl_progress (
                domain_id VARCHAR(255) NOT NULL,
                url TEXT NOT NULL,
                status VARCHAR(16) NOT NULL,
                updated_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
                CONSTRAINT crawl_progress_pkey PRIMARY KEY (domain_id, url),
                CONSTRAINT crawl_progress_status_check CHECK (status IN ('pending', 'failed'))
            )
        """)

        # Index for resume lookups
        cursor.execute("""
            CREATE INDEX IF NOT EXISTS idx_crawl_progress_domain_status
            ON crawl_progress(domain_id, status, updated_at DESC)
        """)

        conn.commit()
        logger.info("Database schema created successfully")

    except Exception as e:
        conn.rollback()
        logger.error(f"Error creating schema: {e}")
        raise
    finally:
        cursor.close()


def main():
    """Initialize the database."""
    try:
        conn_string = get_connection_string()
        logger.info("Connecting to database...")

        conn = psycopg2.connect(conn_string)
        conn.autocommit = False

        create_schema(conn)

        conn.close()
        logger.info("Database initialization completed successfully")

    except Exception as e:
        logger.error(f"Failed to initialize database: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
