"""Additional validation utilities for configuration."""

import warnings
from typing import Any, Dict, List


def check_for_warnings(config_dict: Dict[str, Any]) -> List[str]:
    """
    Check configuration for potential issues and return warnings.

    Args:
        config_dict: Raw configuration dictionary

    Returns:
        List of warning messages
    """
    warning_messages = []

    ai = config_dict.get("ai", {})
    if isinstance(ai, dict):
        if ai.get("enabled") is False:
            warning_messages.append(
                "AI ranking is disabled; every tier will use rule-based matching"
            )

        temperature = ai.get("temperature")
        if isinstance(temperature, (int, float)) and temperature > 1.0:
            warning_messages.append(
                f"High ai.temperature ({temperature}) makes rankings less repeatable"
            )

        delay = ai.get("batch_delay_seconds")
        if isinstance(delay, (int, float)) and delay < 0.5:
            warning_messages.append(
                f"Short ai.batch_delay_seconds ({delay}) may trigger rate limits"
            )

        batch_size = ai.get("batch_size")
        if isinstance(batch_size, int) and batch_size > 10:
            warning_messages.append(
                f"Large ai.batch_size ({batch_size}) may exceed the completion token cap"
            )

        ttl = ai.get("cache_ttl_seconds")
        if isinstance(ttl, int) and ttl > 86400:
            warning_messages.append(
                f"ai.cache_ttl_seconds ({ttl}) keeps rankings for more than a day"
            )

    return warning_messages


def emit_warnings(warning_messages: List[str]) -> None:
    """Emit warning messages using Python's warnings module."""
    for message in warning_messages:
        warnings.warn(message, UserWarning, stacklevel=2)
