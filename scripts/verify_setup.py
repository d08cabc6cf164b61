"""Verify that the setup is correct before running the crawler."""
import os
import sys
import psycopg2
from dotenv import load_dotenv
from publiccode_crawler.config import Settings, get_connection_string, load_domains
from publiccode_crawler.domain.exceptions import ConfigurationError

# Load environment variables from .env or env file
load_dotenv('.env') or load_dotenv('env')


def check_settings():
    """Check that the environment parses into valid settings."""
    print("Checking settings...")

    try:
        settings = Settings.from_env()
    except ConfigurationError as e:
        print(f"❌ {e}")
        return False

    print("✅ Settings are valid")
    print(f"   Manifest file name: {settings.crawled_filename}")
    print(f"   Data directory: {settings.data_dir}")
    print(f"   Max concurrent tasks: {settings.max_concurrent_tasks}")
    return True


def check_domains():
    """Check that the domains file loads."""
    print("\nChecking domains file...")

    path = os.getenv("DOMAINS_FILE", Settings.domains_file)
    try:
        domains = load_domains(path)
    except ConfigurationError as e:
        print(f"❌ {e}")
        return False

    print(f"✅ {len(domains)} domains configured in {path}")
    for domain in domains:
        print(f"   {domain.id} ({domain.kind}): {domain.url}")
    return True


def check_database_schema():
    """Check PostgreSQL connection and the checkpoint table."""
    print("\nChecking database...")

    if os.getenv("PROGRESS_STORE", "postgres").lower() == "memory":
        print("✅ In-memory progress store selected, skipping database checks")
        return True

    try:
        conn = psycopg2.connect(get_connection_string())
        cursor = conn.cursor()

        cursor.execute("""
            SELECT table_name
            FROM information_schema.tables
            WHERE table_schema = 'public' AND table_name = 'crawl_progress'
        """)

        if cursor.fetchone():
            cursor.execute("SELECT COUNT(*) FROM crawl_progress WHERE status = 'failed'")
            count = cursor.fetchone()[0]
            print("✅ Database schema exists")
            print(f"   Failed checkpoints to resume: {count}")
            result = True
        else:
            print("❌ Database schema not found. Run 'python setup_postgres.py' first.")
            result = False

        cursor.close()
        conn.close()
        return result

    except Exception as e:
        print(f"❌ Failed to check database: {e}")
        return False


def check_github_token():
    """Verify GitHub token format."""
    print("\nChecking GitHub token...")

    token = os.getenv("GITHUB_TOKEN")
    if not token:
        print("⚠️  GITHUB_TOKEN not set (only needed for github domains)")
        return True

    if token.startswith("ghp_") or token.startswith("github_pat_"):
        print("✅ GitHub token format looks valid")
        print(f"   Token prefix: {token[:10]}...")
    else:
        print("⚠️  Token format may be invalid (expected ghp_* or github_pat_*)")
    return True


def main():
    """Run all verification checks."""
    print("=" * 60)
    print("publiccode crawler - Setup Verification")
    print("=" * 60)

    checks = [
        ("Settings", check_settings),
        ("Domains", check_domains),
        ("Database", check_database_schema),
        ("GitHub Token", check_github_token),
    ]

    results = {}
    for name, check_func in checks:
        try:
            results[name] = check_func()
        except Exception as e:
            print(f"❌ {name} check failed with exception: {e}")
            results[name] = False

    print("\n" + "=" * 60)
    print("Verification Summary")
    print("=" * 60)

    for name, passed in results.items():
        status = "✅ PASS" if passed else "❌ FAIL"
        print(f"{status}: {name}")

    if all(results.values()):
        print("\n✅ All checks passed! Ready to run the crawler.")
        print("\nNext steps:")
        print("  python crawl_publiccode.py")
        sys.exit(0)
    else:
        print("\n❌ Some checks failed. Please fix the issues above.")
        sys.exit(1)


if __name__ == "__main__":
    main()
