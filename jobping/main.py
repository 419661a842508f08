"""Command-line entry point: run signup matching for one stored user."""

from dotenv import load_dotenv
load_dotenv()

import argparse
import sys
import time
from pathlib import Path
from typing import Optional, Tuple

from jobping.ai.client import OpenAIReasoningClient
from jobping.config.environment import EnvironmentConfig
from jobping.config.exceptions import ConfigurationError
from jobping.config.loader import load_config
from jobping.config.models import AppConfig, Tier
from jobping.config.tiers import resolve_tier
from jobping.domain.models import UserPreferences
from jobping.logging import get_logger, mask_email
from jobping.logging.config import configure_logging
from jobping.metrics import InMemoryMetricsSink
from jobping.orchestrator import MatchingOutcome, create_matching_service
from jobping.persistence.database import close_database, get_session, init_database
from jobping.persistence.exceptions import PersistenceError
from jobping.persistence.repositories import UserRepository

logger = get_logger(__name__, component="cli")

EXIT_OK = 0
EXIT_DATABASE_ERROR = 1
EXIT_USAGE_ERROR = 2


def load_runtime_config(
    config_path: Optional[Path], log_level_override: Optional[str]
) -> Tuple[AppConfig, EnvironmentConfig]:
    """
    Load configuration and settle the effective log level.

    Log level priority: CLI > environment > config file.

    Raises:
        ConfigurationError: If configuration is invalid
    """
    app_config, env_config = load_config(config_path)

    if log_level_override:
        env_config.log_level = log_level_override
    elif not env_config.log_level:
        level = app_config.logging.level
        env_config.log_level = getattr(level, "value", level)

    return app_config, env_config


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="JobPing matching - generate job matches for a signed-up user"
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to configuration file (default: config.yaml if present)",
    )
    parser.add_argument("--email", required=True, help="Email of the user to match")
    parser.add_argument(
        "--tier",
        default=None,
        choices=[tier.value for tier in Tier],
        help="Override the user's stored subscription tier",
    )
    parser.add_argument(
        "--database-url",
        default=None,
        help="SQLAlchemy database URL (overrides DATABASE_URL)",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Log level (overrides config and environment)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Compute matches without saving them",
    )
    return parser


def load_user(email: str, tier_override: Optional[str]) -> Optional[UserPreferences]:
    """Stored preferences for ``email`` with the optional tier override applied."""
    with get_session() as session:
        prefs = UserRepository(session).get_preferences(email)
    if prefs is None:
        return None
    if tier_override:
        prefs = prefs.model_copy(update={"subscription_tier": resolve_tier(tier_override)})
    return prefs


def format_summary(outcome: MatchingOutcome) -> str:
    """Human-readable report of one matching run."""
    lines = [
        f"Status:   {outcome.status.value}",
        f"Tier:     {outcome.tier.value}",
        f"Method:   {outcome.method.value if outcome.method else '-'}",
        f"Strategy: {outcome.strategy_method.value if outcome.strategy_method else '-'}",
        f"Matches:  {outcome.match_count}",
        f"Saved:    {'yes' if outcome.persisted else 'no'}",
    ]
    if outcome.message:
        lines.append(f"Message:  {outcome.message}")
    for position, match in enumerate(outcome.matches, 1):
        lines.append(
            f"  {position:>2}. [{match.match_score:>3.0f}] {match.job.title} - "
            f"{match.job.company} ({match.job.city or 'unknown city'})"
        )
    return "\n".join(lines)


def main(argv=None) -> int:
    """
    Run matching for one user and print a summary.

    Returns:
        0 on success (including zero matches), 1 on database or persistence
        failure, 2 on configuration error or unknown user.
    """
    start_time = time.time()
    args = build_parser().parse_args(argv)

    try:
        app_config, env_config = load_runtime_config(args.config, args.log_level)
        configure_logging(
            level=env_config.log_level,
            format_type=app_config.logging.format,
            environment=env_config.environment,
        )

        init_database(args.database_url or env_config.database_url)

        prefs = load_user(args.email, args.tier)
        if prefs is None:
            print(f"Unknown user: {mask_email(args.email)}", file=sys.stderr)
            return EXIT_USAGE_ERROR

        client = None
        if env_config.ai_available and app_config.ai.enabled:
            client = OpenAIReasoningClient(
                env_config.openai_api_key, timeout=app_config.ai.timeout_seconds
            )
        else:
            logger.info(
                "Reasoning service disabled, using rule-based matching",
                extra={"event": "ai.disabled"},
            )

        metrics = InMemoryMetricsSink()
        service = create_matching_service(app_config, client=client, metrics=metrics)
        outcome = service.run(prefs, dry_run=args.dry_run)

        print(format_summary(outcome))
        logger.info(
            "Matching command finished",
            extra={
                "event": "cli.completed",
                "status": outcome.status.value,
                "ai_calls": metrics.count("ai.calls"),
                "ai_failures": metrics.count("ai.failures"),
                "uptime_seconds": round(time.time() - start_time, 2),
            },
        )
        return EXIT_OK if outcome.success else EXIT_DATABASE_ERROR

    except ConfigurationError as e:
        print(f"Configuration Error: {e}", file=sys.stderr)
        return EXIT_USAGE_ERROR
    except PersistenceError as e:
        print(f"Database Error: {e}", file=sys.stderr)
        logger.error(
            f"Database error: {e}",
            extra={"event": "cli.database_error", "error_type": type(e).__name__},
        )
        return EXIT_DATABASE_ERROR
    except KeyboardInterrupt:
        print("\nInterrupted by user", file=sys.stderr)
        return EXIT_DATABASE_ERROR
    finally:
        close_database()


if __name__ == "__main__":
    sys.exit(main())
