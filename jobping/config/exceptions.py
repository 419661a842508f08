"""Custom exceptions for configuration management."""

from typing import List, Optional


class ConfigurationError(Exception):
    """
    Exception raised when configuration validation fails.

    Carries every validation error found plus hints for fixing them, so the
    CLI can print one complete report instead of failing on the first issue.
    """

    def __init__(
        self,
        message: str,
        errors: Optional[List[str]] = None,
        suggestions: Optional[List[str]] = None,
    ):
        """
        Initialize ConfigurationError.

        Args:
            message: Primary error message
            errors: List of specific validation errors
            suggestions: List of helpful suggestions to fix the errors
        """
        self.message = message
        self.errors = errors or []
        self.suggestions = suggestions or []
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        parts = [self.message]

        if self.errors:
            parts.append("\nValidation Errors:")
            parts.extend(f"  {i}. {error}" for i, error in enumerate(self.errors, 1))

        if self.suggestions:
            parts.append("\nSuggestions:")
            parts.extend(f"  - {suggestion}" for suggestion in self.suggestions)

        return "\n".join(parts)


class UnknownTierError(ConfigurationError):
    """Raised when a subscription tier label has no matching policy."""

    def __init__(self, tier: object, valid_tiers: List[str]):
        self.tier = tier
        super().__init__(
            f"Unknown subscription tier: {tier!r}",
            suggestions=[f"Use one of: {', '.join(valid_tiers)}"],
        )
