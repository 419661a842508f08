"""Free-tier matching strategy."""

import logging
from collections import OrderedDict, deque
from typing import Dict, List

from jobping.ai.service import AIRankingAdapter
from jobping.config.models import MatchingConfig
from jobping.domain.models import Job, UserPreferences
from jobping.logging import get_logger
from jobping.matching.distribution import source_key
from jobping.matching.fallback import FallbackScorer

from .base import TierStrategy
from .models import StrategyMethod, StrategyResult

FREE_FALLBACK_SCORE = 50
FREE_FALLBACK_REASON = "AI matching temporarily unavailable, ranked by profile fit"
MAX_SAMPLE_PER_SOURCE = 3


class FreeMatchingStrategy(TierStrategy):
    """
    Strict city + career filter, then AI ranking with a rule-based safety net.

    Free users give two signals only, so the pre-filter is a plain boolean
    AND: the job city must equal a target city and one job category must
    equal the career path, both case-insensitively.
    """

    name = "free"

    def __init__(
        self,
        ai_adapter: AIRankingAdapter,
        fallback_scorer: FallbackScorer,
        logger_instance: logging.Logger = None,
    ):
        super().__init__(
            ai_adapter,
            fallback_scorer,
            logger_instance or get_logger(__name__, component="strategy.free"),
        )

    def run(self, prefs: UserPreferences, jobs: List[Job], config: MatchingConfig) -> StrategyResult:
        """
        Select up to ``config.max_matches`` jobs for a free-tier user.

        Premium-only attributes are stripped from ``prefs`` before anything
        reads them.
        """
        prefs = prefs.for_free_tier()
        filtered = self.filter_jobs(prefs, jobs)

        self.logger.info(
            f"Free filter kept {len(filtered)} of {len(jobs)} jobs",
            extra={
                "event": "strategy.free.filtered",
                "candidates": len(jobs),
                "filtered": len(filtered),
            },
        )

        if not filtered:
            return StrategyResult(
                method=StrategyMethod.NO_MATCHING_JOBS, candidates=len(jobs), filtered=0
            )

        sample = self.diversify(filtered, prefs.target_cities, config.max_jobs_for_ai)
        ai_matches = self._rank_with_ai(prefs, sample, config)[: config.max_matches]

        if len(ai_matches) >= config.max_matches:
            method = StrategyMethod.FREE_AI_RANKED
            matches = ai_matches
        else:
            top_up = self._fallback_matches(
                prefs,
                filtered,
                config.max_matches - len(ai_matches),
                FREE_FALLBACK_SCORE,
                FREE_FALLBACK_REASON,
                exclude=[m.job.dedupe_key for m in ai_matches],
            )
            matches = ai_matches + top_up
            if not ai_matches:
                method = StrategyMethod.FREE_FALLBACK_ONLY
            elif top_up:
                method = StrategyMethod.FREE_AI_PLUS_FALLBACK
            else:
                method = StrategyMethod.FREE_AI_RANKED

        self.logger.info(
            f"Free matching produced {len(matches)} matches",
            extra={
                "event": "strategy.free.completed",
                "strategy_method": method.value,
                "ai_matches": len(ai_matches),
                "matches": len(matches),
            },
        )
        return StrategyResult(
            matches=matches, method=method, candidates=len(jobs), filtered=len(filtered)
        )

    @staticmethod
    def filter_jobs(prefs: UserPreferences, jobs: List[Job]) -> List[Job]:
        """Jobs in one of the target cities with a category equal to the career path."""
        cities = {city.lower() for city in prefs.target_cities}
        career = (prefs.primary_career_path or "").lower()
        if not cities or not career:
            return []

        return [
            job
            for job in jobs
            if job.city
            and job.city.lower() in cities
            and any(category.lower() == career for category in job.categories)
        ]

    @staticmethod
    def diversify(
        jobs: List[Job],
        cities: List[str],
        limit: int,
        max_per_source: int = MAX_SAMPLE_PER_SOURCE,
    ) -> List[Job]:
        """
        Round-robin sample across target cities so one city cannot fill the AI batch.

        No more than ``max_per_source`` jobs come from one source, so a single
        board cannot crowd the batch either. Jobs without a known source are
        not capped. The sample may come out smaller than ``limit``.
        """
        buckets: Dict[str, List[Job]] = OrderedDict((city.lower(), []) for city in cities)
        for job in jobs:
            buckets.setdefault((job.city or "").lower(), []).append(job)

        sample: List[Job] = []
        source_counts: Dict[str, int] = {}
        queues = [deque(bucket) for bucket in buckets.values() if bucket]
        while len(sample) < limit and queues:
            for queue in queues:
                while queue and len(sample) < limit:
                    job = queue.popleft()
                    source = source_key(job)
                    if source is not None:
                        if source_counts.get(source, 0) >= max_per_source:
                            continue
                        source_counts[source] = source_counts.get(source, 0) + 1
                    sample.append(job)
                    break
            queues = [queue for queue in queues if queue]
        return sample
