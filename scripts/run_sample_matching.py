#!/usr/bin/env python3
"""Sample matching harness for end-to-end validation.

Seeds a database with the users and jobs from a fixture file, then runs
signup matching once per user and prints what each tier produced. No
network access is needed unless --use-ai is given and OPENAI_API_KEY is set.

Usage:
    # Rule-based matching against an in-memory database
    python scripts/run_sample_matching.py

    # Keep the database for inspection
    python scripts/run_sample_matching.py --database data/sample_matching.db

    # Rank with the reasoning service
    python scripts/run_sample_matching.py --use-ai
"""

import argparse
import sys
from datetime import timedelta
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

import yaml
from dotenv import load_dotenv

from jobping.ai.client import OpenAIReasoningClient
from jobping.config.environment import load_environment_config
from jobping.config.models import AppConfig
from jobping.domain.models import Job, UserPreferences
from jobping.logging.config import configure_logging
from jobping.main import format_summary
from jobping.metrics import InMemoryMetricsSink
from jobping.orchestrator import create_matching_service
from jobping.persistence import (
    JobRepository,
    UserRepository,
    close_database,
    get_session,
    init_database,
)
from jobping.utils.timestamps import utc_now


def print_header(title: str):
    """Print a formatted section header."""
    width = 80
    print("\n" + "=" * width)
    print(f" {title}")
    print("=" * width + "\n")


def load_fixtures(path: Path):
    """Read users and jobs; posted_days_ago becomes an absolute posted_at."""
    with open(path, "r") as f:
        data = yaml.safe_load(f) or {}

    now = utc_now()
    users = [UserPreferences(**entry) for entry in data.get("users", [])]
    jobs = []
    for entry in data.get("jobs", []):
        entry = dict(entry)
        days = entry.pop("posted_days_ago", None)
        if days is not None:
            entry["posted_at"] = now - timedelta(days=days)
        jobs.append(Job(**entry))
    return users, jobs


def seed(users, jobs):
    with get_session() as session:
        stored_users = [UserRepository(session).upsert(user) for user in users]
        job_repo = JobRepository(session)
        for job in jobs:
            job_repo.upsert(job)
    return stored_users


def main():
    """Main entry point for sample matching harness."""
    parser = argparse.ArgumentParser(
        description="Run sample signup matching for end-to-end validation",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "--fixtures",
        type=Path,
        default=Path("tests/fixtures/sample_signups.yaml"),
        help="Path to fixtures YAML file (default: tests/fixtures/sample_signups.yaml)",
    )
    parser.add_argument(
        "--database",
        type=Path,
        default=None,
        help="Path to SQLite database (default: in-memory)",
    )
    parser.add_argument(
        "--use-ai",
        action="store_true",
        help="Rank with the reasoning service when OPENAI_API_KEY is set",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Log level (default: WARNING)",
    )

    args = parser.parse_args()

    load_dotenv()

    print_header("JobPing - Sample Matching Harness")

    if not args.fixtures.exists():
        print(f"Error: Fixture file not found: {args.fixtures}")
        return 1

    database_url = (
        f"sqlite:///{args.database.absolute()}" if args.database else "sqlite:///:memory:"
    )
    print(f"Fixtures: {args.fixtures}")
    print(f"Database: {database_url}")

    try:
        configure_logging(level=args.log_level, format_type="key-value", environment="validation")
        env_config = load_environment_config()

        client = None
        if args.use_ai:
            if env_config.ai_available:
                client = OpenAIReasoningClient(env_config.openai_api_key)
            else:
                print("OPENAI_API_KEY is not set, using rule-based matching")

        init_database(database_url)
        users, jobs = load_fixtures(args.fixtures)
        stored_users = seed(users, jobs)
        print(f"Seeded {len(stored_users)} users and {len(jobs)} jobs")

        metrics = InMemoryMetricsSink()
        service = create_matching_service(AppConfig(), client=client, metrics=metrics)

        failures = 0
        for user in stored_users:
            print_header(f"{user.subscription_tier.value.upper()} - {user.email}")
            outcome = service.run(user)
            print(format_summary(outcome))
            for match in outcome.matches:
                print(f"      {match.match_reason}")
            if not outcome.success:
                failures += 1

        print_header("Metrics")
        print(f"Reasoning calls:    {metrics.count('ai.calls')}")
        print(f"Reasoning failures: {metrics.count('ai.failures')}")
        print(f"Matching runs:      {metrics.count('matching.runs')}")

        return 1 if failures else 0

    except Exception as e:
        print(f"\nFatal error: {e}")
        import traceback
        traceback.print_exc()
        return 1
    finally:
        close_database()


if __name__ == "__main__":
    sys.exit(main())
