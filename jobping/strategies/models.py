"""Result models for tier strategies."""

from dataclasses import dataclass, field
from enum import Enum
from typing import List

from jobping.domain.models import MatchMethod
from jobping.matching.models import JobMatch


class StrategyMethod(str, Enum):
    """Which path inside a tier strategy produced the result."""

    FREE_AI_RANKED = "free_ai_ranked"
    FREE_AI_PLUS_FALLBACK = "free_ai_plus_fallback"
    FREE_FALLBACK_ONLY = "free_fallback_only"
    NO_MATCHING_JOBS = "no_matching_jobs"
    PREMIUM_AI_RANKED = "premium_ai_ranked"
    PREMIUM_RELAXED_AI_RANKED = "premium_relaxed_ai_ranked"
    PREMIUM_FALLBACK_FILTERED = "premium_fallback_filtered"
    PREMIUM_RELAXED_FALLBACK_FILTERED = "premium_relaxed_fallback_filtered"
    NO_JOBS_AFTER_FILTER = "no_jobs_after_filter"


@dataclass
class StrategyResult:
    """
    Outcome of one tier strategy run.

    Attributes:
        matches: Selected matches, best first
        method: Path that produced them
        candidates: Jobs handed to the strategy
        filtered: Jobs surviving the tier's pre-filter
        relaxed: Whether a relaxed filter pass was used
    """

    matches: List[JobMatch] = field(default_factory=list)
    method: StrategyMethod = StrategyMethod.NO_MATCHING_JOBS
    candidates: int = 0
    filtered: int = 0
    relaxed: bool = False

    @property
    def match_method(self) -> MatchMethod:
        """AI when any match came from the reasoning service, fallback otherwise."""
        if any(m.method == MatchMethod.AI for m in self.matches):
            return MatchMethod.AI
        return MatchMethod.FALLBACK
