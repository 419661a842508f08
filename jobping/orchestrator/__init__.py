"""Signup matching orchestration: idempotency, job fetch, tier dispatch, persistence."""

from .models import MatchingOutcome, MatchingStatus
from .service import SignupMatchingService, create_matching_service

__all__ = [
    "SignupMatchingService",
    "create_matching_service",
    "MatchingOutcome",
    "MatchingStatus",
]
