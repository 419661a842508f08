"""Configuration management for the matching service."""

from .environment import EnvironmentConfig, load_environment_config
from .exceptions import ConfigurationError, UnknownTierError
from .loader import load_config, parse_config_dict
from .models import (
    AIConfig,
    AppConfig,
    LogFormat,
    LogLevel,
    LoggingConfig,
    MatchingConfig,
    Tier,
)
from .tiers import TIER_CONFIGS, get_matching_config, resolve_tier

__all__ = [
    # Loader functions
    "load_config",
    "parse_config_dict",
    "load_environment_config",
    # Tier policy
    "Tier",
    "MatchingConfig",
    "TIER_CONFIGS",
    "get_matching_config",
    "resolve_tier",
    # Configuration models
    "AppConfig",
    "AIConfig",
    "LoggingConfig",
    "EnvironmentConfig",
    "LogLevel",
    "LogFormat",
    # Exceptions
    "ConfigurationError",
    "UnknownTierError",
]
