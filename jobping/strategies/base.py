"""Shared behaviour for tier strategies."""

import logging
from typing import Iterable, List

from jobping.ai.service import AIRankingAdapter
from jobping.config.models import MatchingConfig
from jobping.domain.models import Job, MatchMethod, UserPreferences
from jobping.matching.fallback import FallbackScorer
from jobping.matching.models import JobMatch

from .models import StrategyResult


class TierStrategy:
    """Base class: pre-filter, rank with AI, fall back to rule-based selection."""

    name = "base"

    def __init__(
        self,
        ai_adapter: AIRankingAdapter,
        fallback_scorer: FallbackScorer,
        logger_instance: logging.Logger = None,
    ):
        self.ai_adapter = ai_adapter
        self.fallback_scorer = fallback_scorer
        self.logger = logger_instance

    def run(self, prefs: UserPreferences, jobs: List[Job], config: MatchingConfig) -> StrategyResult:
        raise NotImplementedError

    def _rank_with_ai(
        self, prefs: UserPreferences, jobs: List[Job], config: MatchingConfig
    ) -> List[JobMatch]:
        if not config.use_ai:
            return []
        matches = self.ai_adapter.find_matches(prefs, jobs, config)
        if 0 < len(matches) < config.fallback_threshold:
            self.logger.warning(
                f"AI returned only {len(matches)} matches, below the healthy yield of "
                f"{config.fallback_threshold}",
                extra={
                    "event": "ai.low_yield",
                    "matches": len(matches),
                    "fallback_threshold": config.fallback_threshold,
                },
            )
        return matches

    def _fallback_matches(
        self,
        prefs: UserPreferences,
        jobs: List[Job],
        limit: int,
        score: float,
        reason: str,
        exclude: Iterable[str] = (),
    ) -> List[JobMatch]:
        """
        Rule-based selection carrying the tier's fixed score and reason.

        Jobs are ordered and balanced by the fallback scorer; the scorer's
        justification is appended to the fixed reason.
        """
        if limit <= 0:
            return []
        excluded = set(exclude)
        pool = [job for job in jobs if job.dedupe_key not in excluded]
        ranked = self.fallback_scorer.generate_matches(pool, prefs, limit)
        return [
            JobMatch(
                job=match.job,
                match_score=score,
                match_reason=f"{reason} - {match.match_reason}",
                method=MatchMethod.FALLBACK,
                confidence_score=match.confidence_score,
                match_quality=match.match_quality,
                breakdown=match.breakdown,
            )
            for match in ranked
        ]
