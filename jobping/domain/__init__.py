"""Domain models for the matching service."""

from .models import Job, MatchMethod, MatchRecord, UserPreferences, WorkEnvironment

__all__ = ["Job", "MatchMethod", "MatchRecord", "UserPreferences", "WorkEnvironment"]
