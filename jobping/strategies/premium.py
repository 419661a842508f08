"""Premium-tier matching strategy."""

import logging
from typing import List

from jobping.ai.service import AIRankingAdapter
from jobping.config.models import MatchingConfig
from jobping.domain.models import Job, UserPreferences, WorkEnvironment
from jobping.logging import get_logger
from jobping.matching.fallback import FallbackScorer
from jobping.matching.scoring import city_matches

from .base import TierStrategy
from .models import StrategyMethod, StrategyResult

PREMIUM_FALLBACK_SCORE = 70
PREMIUM_FALLBACK_REASON = "Matched your premium preferences (city, career, work environment, visa)"
PREMIUM_RELAXED_REASON = "Matched your premium preferences (city, career, work environment)"


class PremiumMatchingStrategy(TierStrategy):
    """
    Four-dimension filter (city, career path, work environment, visa).

    If the strict filter leaves nothing, a second pass drops the visa
    requirement only. An empty second pass is a legitimate zero-match result.
    """

    name = "premium"

    def __init__(
        self,
        ai_adapter: AIRankingAdapter,
        fallback_scorer: FallbackScorer,
        logger_instance: logging.Logger = None,
    ):
        super().__init__(
            ai_adapter,
            fallback_scorer,
            logger_instance or get_logger(__name__, component="strategy.premium"),
        )
        self.tables = fallback_scorer.tables

    def run(self, prefs: UserPreferences, jobs: List[Job], config: MatchingConfig) -> StrategyResult:
        """Select up to ``config.max_matches`` jobs for a premium user."""
        pool = self.filter_jobs(prefs, jobs, require_visa=True)
        relaxed = False

        if not pool and prefs.needs_visa_sponsorship:
            pool = self.filter_jobs(prefs, jobs, require_visa=False)
            relaxed = bool(pool)
            self.logger.info(
                f"Strict premium filter empty, visa-relaxed pass kept {len(pool)} jobs",
                extra={"event": "strategy.premium.relaxed", "filtered": len(pool)},
            )

        self.logger.info(
            f"Premium filter kept {len(pool)} of {len(jobs)} jobs",
            extra={
                "event": "strategy.premium.filtered",
                "candidates": len(jobs),
                "filtered": len(pool),
                "relaxed": relaxed,
            },
        )

        if not pool:
            return StrategyResult(
                method=StrategyMethod.NO_JOBS_AFTER_FILTER, candidates=len(jobs), filtered=0
            )

        ai_matches = self._rank_with_ai(prefs, pool[: config.max_jobs_for_ai], config)

        if ai_matches:
            matches = ai_matches[: config.max_matches]
            method = (
                StrategyMethod.PREMIUM_RELAXED_AI_RANKED if relaxed
                else StrategyMethod.PREMIUM_AI_RANKED
            )
        else:
            matches = self._fallback_matches(
                prefs,
                pool,
                config.max_matches,
                PREMIUM_FALLBACK_SCORE,
                PREMIUM_RELAXED_REASON if relaxed else PREMIUM_FALLBACK_REASON,
            )
            method = (
                StrategyMethod.PREMIUM_RELAXED_FALLBACK_FILTERED if relaxed
                else StrategyMethod.PREMIUM_FALLBACK_FILTERED
            )

        self.logger.info(
            f"Premium matching produced {len(matches)} matches",
            extra={
                "event": "strategy.premium.completed",
                "strategy_method": method.value,
                "matches": len(matches),
            },
        )
        return StrategyResult(
            matches=matches,
            method=method,
            candidates=len(jobs),
            filtered=len(pool),
            relaxed=relaxed,
        )

    def filter_jobs(
        self, prefs: UserPreferences, jobs: List[Job], require_visa: bool = True
    ) -> List[Job]:
        """Jobs passing every premium dimension the user constrained."""
        return [job for job in jobs if self._passes(job, prefs, require_visa)]

    def _passes(self, job: Job, prefs: UserPreferences, require_visa: bool) -> bool:
        if prefs.target_cities and not any(city_matches(job, c) for c in prefs.target_cities):
            return False

        if prefs.career_path and not any(
            self.tables.category_matches_path(category, path)
            for category in job.categories
            for path in prefs.career_path
        ):
            return False

        wanted = prefs.work_environment
        if wanted and wanted != WorkEnvironment.UNCLEAR and job.work_environment != wanted:
            return False

        if require_visa and prefs.needs_visa_sponsorship and not job.offers_visa_support:
            return False

        return True
