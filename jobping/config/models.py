"""Configuration schema models using Pydantic."""

from enum import Enum
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, field_validator


class Tier(str, Enum):
    """Subscription tiers. Each one maps to exactly one matching policy."""

    FREE = "free"
    PREMIUM_PENDING = "premium_pending"
    PREMIUM = "premium"

    @property
    def is_premium(self) -> bool:
        return self in (Tier.PREMIUM_PENDING, Tier.PREMIUM)


class LogLevel(str, Enum):
    """Logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LogFormat(str, Enum):
    """Log output formats."""

    JSON = "json"
    KEY_VALUE = "key-value"


class MatchingConfig(BaseModel):
    """Immutable matching policy for one subscription tier.

    Attributes:
        tier: Tier this policy belongs to
        max_matches: Target result-set size
        job_freshness_days: Maximum age of a candidate job posting
        use_ai: Whether AI ranking is attempted before the rule-based fallback
        max_jobs_for_ai: Upper bound on jobs submitted to the reasoning service
        fallback_threshold: Minimum AI yield considered healthy
        max_jobs_to_fetch: Database scan bound for candidate jobs
    """

    tier: Tier
    max_matches: int = Field(..., ge=1)
    job_freshness_days: int = Field(..., ge=1)
    use_ai: bool = True
    max_jobs_for_ai: int = Field(..., ge=1)
    fallback_threshold: int = Field(..., ge=0)
    max_jobs_to_fetch: int = Field(..., ge=1)

    model_config = {"frozen": True}


class AIConfig(BaseModel):
    """Reasoning-service settings shared by both tiers."""

    enabled: bool = Field(True, description="Disable to always use rule-based ranking")
    model: str = Field("gpt-4o-mini", min_length=1, description="Model identifier")
    max_tokens: int = Field(2000, ge=100, le=16000, description="Completion token cap")
    temperature: float = Field(0.3, ge=0.0, le=2.0, description="Sampling temperature")
    timeout_seconds: float = Field(
        30.0, gt=0, le=300, description="Per-call timeout for the reasoning service"
    )
    batch_size: int = Field(5, ge=1, le=50, description="Jobs per reasoning-service call")
    batch_delay_seconds: float = Field(
        1.0, ge=0.0, le=60.0, description="Pause between consecutive batches"
    )
    min_match_score: int = Field(
        30, ge=0, le=100, description="AI matches scoring below this are discarded"
    )
    cache_max_entries: int = Field(10000, ge=1, description="Match cache capacity")
    cache_ttl_seconds: int = Field(1800, ge=1, description="Match cache entry lifetime")

    @field_validator("model")
    @classmethod
    def strip_model(cls, v: str) -> str:
        stripped = v.strip()
        if not stripped:
            raise ValueError("model cannot be empty")
        return stripped


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: LogLevel = Field(LogLevel.INFO, description="Log level")
    format: LogFormat = Field(
        LogFormat.KEY_VALUE, description="Log output format (json or key-value)"
    )

    model_config = {"use_enum_values": True}


class AppConfig(BaseModel):
    """Root configuration object for the matching service."""

    ai: AIConfig = Field(default_factory=AIConfig, description="Reasoning-service settings")
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig, description="Logging configuration"
    )
    tables_path: Optional[Path] = Field(
        None, description="Optional YAML file overriding the matching reference tables"
    )
