"""Display the pagination checkpoints left by the last crawl."""
import psycopg2
from dotenv import load_dotenv
from publiccode_crawler.config import get_connection_string

# Load environment variables from .env or env file
load_dotenv('.env') or load_dotenv('env')


def print_section(title: str):
    """Print a section header."""
    print("\n" + "=" * 60)
    print(title)
    print("=" * 60)


def display_progress():
    """Display per-domain checkpoint records."""
    conn = psycopg2.connect(get_connection_string())
    cursor = conn.cursor()

    print_section("Checkpoints by status")
    cursor.execute("""
        SELECT status, COUNT(*)
        FROM crawl_progress
        GROUP BY status
        ORDER BY status
    """)
    rows = cursor.fetchall()
    if not rows:
        print("No checkpoints: every domain finished its last crawl.")
    for status, count in rows:
        print(f"{status:10} {count:,}")

    print_section("Resume points")
    cursor.execute("""
        SELECT domain_id, url, status, updated_at
        FROM crawl_progress
        ORDER BY domain_id, updated_at DESC
    """)
    for domain_id, url, status, updated_at in cursor.fetchall():
        print(f"{domain_id:30} {status:8} {updated_at:%Y-%m-%d %H:%M:%S}  {url}")

    cursor.close()
    conn.close()


if __name__ == "__main__":
    display_progress()
