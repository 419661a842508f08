"""Environment variable loading and validation."""

import os
from typing import Optional

from .exceptions import ConfigurationError

DEFAULT_DATABASE_URL = "sqlite:///./data/jobping.sqlite"
VALID_LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class EnvironmentConfig:
    """Environment variable configuration holder."""

    def __init__(
        self,
        openai_api_key: Optional[str] = None,
        database_url: Optional[str] = None,
        log_level: Optional[str] = None,
        environment: Optional[str] = None,
    ):
        """Initialize environment configuration."""
        self.openai_api_key = openai_api_key
        self.database_url = database_url or DEFAULT_DATABASE_URL
        self.log_level = log_level
        self.environment = environment or "local"

    @property
    def ai_available(self) -> bool:
        """Whether credentials for the reasoning service are present."""
        return bool(self.openai_api_key)


def load_environment_config() -> EnvironmentConfig:
    """
    Load and validate environment variables.

    Optional environment variables:
    - OPENAI_API_KEY: Reasoning-service key; AI ranking is disabled without it
    - DATABASE_URL: SQLAlchemy URL (default: sqlite:///./data/jobping.sqlite)
    - LOG_LEVEL: Override log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    - ENVIRONMENT: Environment label attached to every log record

    Returns:
        EnvironmentConfig object with validated values

    Raises:
        ConfigurationError: If any variable is set to an invalid value
    """
    errors = []

    openai_api_key = (os.getenv("OPENAI_API_KEY") or "").strip() or None
    database_url = os.getenv("DATABASE_URL")
    log_level = os.getenv("LOG_LEVEL")
    environment = os.getenv("ENVIRONMENT")

    if openai_api_key and not openai_api_key.startswith("sk-"):
        errors.append("Invalid OPENAI_API_KEY: expected a key starting with 'sk-'")

    if log_level and log_level.upper() not in VALID_LOG_LEVELS:
        errors.append(
            f"Invalid LOG_LEVEL: '{log_level}'. Must be one of: {', '.join(VALID_LOG_LEVELS)}"
        )

    if database_url is not None and not database_url.strip():
        errors.append("DATABASE_URL is set but empty")

    if errors:
        raise ConfigurationError(
            "Environment variable validation failed",
            errors=errors,
            suggestions=[
                "Copy .env.example to .env and fill in your credentials",
                "Unset OPENAI_API_KEY to run with rule-based matching only",
            ],
        )

    return EnvironmentConfig(
        openai_api_key=openai_api_key,
        database_url=database_url,
        log_level=log_level.upper() if log_level else None,
        environment=environment,
    )
